from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, false

from .base import Base, ClientIdType, MessageIdType, PayloadType, QoSType, TopicType, utcnow


class OutgoingRow(Base):
    """Offline delivery queue. Append-only; ``id`` order is delivery order."""

    __tablename__ = "mqstore_outgoing"
    __table_args__ = (
        Index("ix_mqstore_outgoing_client_id", "client_id"),
        Index("ix_mqstore_outgoing_client_message", "client_id", "message_id"),
        Index("ix_mqstore_outgoing_topic", "topic"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    client_id = Column(ClientIdType, nullable=False)
    message_id = Column(MessageIdType, nullable=True)
    topic = Column(TopicType, nullable=False)
    payload = Column(PayloadType, nullable=True)
    qos = Column(QoSType, nullable=False)
    retain_flag = Column(Boolean, nullable=False, default=False, server_default=false())
    dup_flag = Column(Boolean, nullable=False, default=False, server_default=false())
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
