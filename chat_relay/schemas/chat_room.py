from datetime import datetime
from typing import Optional, List
from pydantic import Field, ConfigDict
from pydantic.alias_generators import to_camel

from chat_relay.schemas.base import CamelModel


class ChatRoomCreate(CamelModel):
    """채팅방 생성 스키마"""
    name: str = Field(..., min_length=1, max_length=100, description="채팅방 이름")
    description: Optional[str] = Field(None, max_length=500, description="채팅방 설명")
    is_public: bool = Field(default=True, description="공개 여부")


class ChatRoomResponse(CamelModel):
    """채팅방 응답 스키마"""
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str
    description: Optional[str] = None
    is_public: bool
    created_by: str
    created_at: datetime


class RoomStatus(CamelModel):
    """채팅방의 현재 접속 상태"""
    room_id: str
    online_users: List[str]
    online_count: int
    is_active: bool
