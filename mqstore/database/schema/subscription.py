from __future__ import annotations

from sqlalchemy import Column, DateTime, Index, Integer, UniqueConstraint

from .base import Base, ClientIdType, QoSType, TopicType, utcnow


class SubscriptionRow(Base):
    __tablename__ = "mqstore_subscription"
    __table_args__ = (
        UniqueConstraint("client_id", "topic", name="uq_mqstore_subscription_client_topic"),
        Index("ix_mqstore_subscription_client_id", "client_id"),
        Index("ix_mqstore_subscription_topic", "topic"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    client_id = Column(ClientIdType, nullable=False)
    topic = Column(TopicType, nullable=False)
    qos = Column(QoSType, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
