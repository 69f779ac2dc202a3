from sqlalchemy import Column, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from chat_relay.database.sql import Base
from chat_relay.models._ids import generate_id
from chat_relay.utils.time_utils import utc_now


class BlockUser(Base):
    __tablename__ = "blocked_users"
    __table_args__ = (UniqueConstraint("user_id", "blocked_user_id", name="uq_block_pair"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)  # User who blocks
    blocked_user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)  # User being blocked
    created_at = Column(DateTime, default=utc_now)

    # Relationships
    blocker = relationship("User", foreign_keys=[user_id], back_populates="blocking")
    blocked = relationship("User", foreign_keys=[blocked_user_id], back_populates="blocked_by")

    def __repr__(self):
        return f"<BlockUser(user_id={self.user_id}, blocked_user_id={self.blocked_user_id})>"
