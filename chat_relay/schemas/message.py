from datetime import datetime
from typing import Optional, List
from pydantic import Field

from chat_relay.schemas.base import CamelModel


class ChatMessageWithUser(CamelModel):
    """발신자 표시 정보가 포함된 채팅방 메시지"""
    id: str = Field(..., description="메시지 ID")
    room_id: str = Field(..., description="채팅방 ID")
    user_id: str = Field(..., description="발신자 ID")
    content: str = Field(..., description="메시지 내용")
    created_at: datetime = Field(..., description="생성일시")
    username: str = Field(..., description="발신자 표시 이름")
    avatar_image_url: Optional[str] = Field(None, description="발신자 아바타 이미지")

    @classmethod
    def from_message(cls, message, username: str, avatar_image_url: Optional[str]) -> "ChatMessageWithUser":
        return cls(
            id=message.id,
            room_id=message.room_id,
            user_id=message.user_id,
            content=message.content,
            created_at=message.created_at,
            username=username,
            avatar_image_url=avatar_image_url,
        )


class PrivateMessageWithUser(CamelModel):
    """발신자 표시 정보가 포함된 1:1 메시지"""
    id: str = Field(..., description="메시지 ID")
    conversation_id: str = Field(..., description="대화 ID")
    sender_id: str = Field(..., description="발신자 ID")
    content: str = Field(..., description="메시지 내용")
    created_at: datetime = Field(..., description="생성일시")
    username: str = Field(..., description="발신자 표시 이름")
    avatar_image_url: Optional[str] = Field(None, description="발신자 아바타 이미지")

    @classmethod
    def from_message(cls, message, username: str, avatar_image_url: Optional[str]) -> "PrivateMessageWithUser":
        return cls(
            id=message.id,
            conversation_id=message.conversation_id,
            sender_id=message.sender_id,
            content=message.content,
            created_at=message.created_at,
            username=username,
            avatar_image_url=avatar_image_url,
        )


class ChatMessageList(CamelModel):
    """채팅방 메시지 히스토리"""
    messages: List[ChatMessageWithUser]
    limit: int
    skip: int


class PrivateMessageList(CamelModel):
    """대화 메시지 히스토리"""
    messages: List[PrivateMessageWithUser]
    limit: int
    skip: int
