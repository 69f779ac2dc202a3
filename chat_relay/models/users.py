from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from chat_relay.database.sql import Base
from chat_relay.models._ids import generate_id
from chat_relay.utils.time_utils import utc_now


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_id)
    username = Column(String(50), unique=True, index=True, nullable=False)
    active_avatar_id = Column(String(36), ForeignKey("store_items.id"), nullable=True)  # Equipped avatar
    created_at = Column(DateTime, default=utc_now)

    # Relationships
    active_avatar = relationship("StoreItem", foreign_keys=[active_avatar_id])
    blocking = relationship("BlockUser", foreign_keys="BlockUser.user_id", back_populates="blocker")
    blocked_by = relationship("BlockUser", foreign_keys="BlockUser.blocked_user_id", back_populates="blocked")

    def __repr__(self):
        return f"<User(id={self.id}, username={self.username})>"
