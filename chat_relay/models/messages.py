from sqlalchemy import Column, String, Text, DateTime, Boolean, Index
from chat_relay.database.sql import Base
from chat_relay.models._ids import generate_id
from chat_relay.utils.time_utils import utc_now


class ChatMessage(Base):
    __tablename__ = "chat_messages"
    __table_args__ = (
        Index("ix_chat_messages_room_created", "room_id", "created_at"),  # For room history
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    room_id = Column(String(36), nullable=False)
    user_id = Column(String(36), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utc_now)

    def __repr__(self):
        return f"<ChatMessage(id={self.id}, room_id={self.room_id}, user_id={self.user_id})>"


class PrivateMessage(Base):
    __tablename__ = "private_messages"
    __table_args__ = (
        Index("ix_private_messages_conversation_created", "conversation_id", "created_at"),
    )

    id = Column(String(36), primary_key=True, default=generate_id)
    conversation_id = Column(String(36), nullable=False)
    sender_id = Column(String(36), nullable=False)
    content = Column(Text, nullable=False)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utc_now)

    def __repr__(self):
        return f"<PrivateMessage(id={self.id}, conversation_id={self.conversation_id}, sender_id={self.sender_id})>"
