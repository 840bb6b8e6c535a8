"""
Subscription model: a directed edge subscriber -> channel, both users.
Fields:
- subscriber_id (String(36)) - FK to users.id
- channel_id (String(36)) - FK to users.id
- created_at, updated_at

A (subscriber, channel) pair can exist at most once.
"""
from sqlalchemy import Column, String, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base


class Subscription(BaseModel, Base):
    __tablename__ = "subscriptions"

    subscriber_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    channel_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    subscriber = relationship("User", foreign_keys=[subscriber_id])
    channel = relationship("User", foreign_keys=[channel_id])

    __table_args__ = (
        UniqueConstraint("subscriber_id", "channel_id", name="uq_subscriptions_subscriber_channel"),
    )

    def __repr__(self):
        return f"<Subscription subscriber={self.subscriber_id} channel={self.channel_id}>"
