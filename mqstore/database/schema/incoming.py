from __future__ import annotations

from sqlalchemy import Column, DateTime, Index, Integer, UniqueConstraint

from .base import Base, ClientIdType, MessageIdType, PayloadType, QoSType, TopicType, utcnow


class IncomingRow(Base):
    """In-flight QoS 2 packets received from clients."""

    __tablename__ = "mqstore_incoming"
    __table_args__ = (
        UniqueConstraint("client_id", "message_id", name="uq_mqstore_incoming_client_message"),
        Index("ix_mqstore_incoming_client_id", "client_id"),
        Index("ix_mqstore_incoming_topic", "topic"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    client_id = Column(ClientIdType, nullable=False)
    message_id = Column(MessageIdType, nullable=False)
    topic = Column(TopicType, nullable=False)
    payload = Column(PayloadType, nullable=True)
    qos = Column(QoSType, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
