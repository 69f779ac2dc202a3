from sqlalchemy import Column, String, Text, DateTime, Boolean
from chat_relay.database.sql import Base
from chat_relay.models._ids import generate_id
from chat_relay.utils.time_utils import utc_now


class ChatRoom(Base):
    """Public many-to-many room. Live membership is tracked by the relay, not here."""
    __tablename__ = "chat_rooms"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    is_public = Column(Boolean, nullable=False, default=True)
    created_by = Column(String(36), nullable=False)
    created_at = Column(DateTime, default=utc_now)

    def __repr__(self):
        return f"<ChatRoom(id={self.id}, name={self.name})>"
