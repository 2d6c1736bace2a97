from __future__ import annotations

from sqlalchemy import Column, DateTime, Integer, UniqueConstraint

from .base import Base, PayloadType, QoSType, TopicType, utcnow


class RetainedRow(Base):
    __tablename__ = "mqstore_retained"
    # The unique constraint doubles as the topic index
    __table_args__ = (
        UniqueConstraint("topic", name="uq_mqstore_retained_topic"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    topic = Column(TopicType, nullable=False)
    payload = Column(PayloadType, nullable=True)
    qos = Column(QoSType, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
