from sqlalchemy import Column, String, DateTime
from chat_relay.database.sql import Base
from chat_relay.models._ids import generate_id
from chat_relay.utils.time_utils import utc_now


class PrivateConversation(Base):
    """Two-party channel. Participant order carries no meaning."""
    __tablename__ = "private_conversations"

    id = Column(String(36), primary_key=True, default=generate_id)
    user1_id = Column(String(36), nullable=False, index=True)
    user2_id = Column(String(36), nullable=False, index=True)
    last_message_at = Column(DateTime, nullable=False, default=utc_now)

    def has_participant(self, user_id: str) -> bool:
        return user_id in (self.user1_id, self.user2_id)

    def __repr__(self):
        return f"<PrivateConversation(id={self.id}, user1_id={self.user1_id}, user2_id={self.user2_id})>"
