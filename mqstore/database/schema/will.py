from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, UniqueConstraint, false

from .base import Base, BrokerIdType, ClientIdType, PayloadType, QoSType, TopicType, utcnow


class WillRow(Base):
    __tablename__ = "mqstore_will"
    __table_args__ = (
        UniqueConstraint("client_id", name="uq_mqstore_will_client_id"),
        Index("ix_mqstore_will_broker_id", "broker_id"),
        Index("ix_mqstore_will_topic", "topic"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    client_id = Column(ClientIdType, nullable=False)
    topic = Column(TopicType, nullable=False)
    payload = Column(PayloadType, nullable=True)
    qos = Column(QoSType, nullable=False)
    retain_flag = Column(Boolean, nullable=False, default=False, server_default=false())
    broker_id = Column(BrokerIdType, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
