"""
WebSocket 프레임 스키마

수신 프레임은 `type` 태그로 구분되는 판별 유니온(discriminated union)으로,
송신 프레임은 `*Event` 모델로 정의합니다.
"""

import json
from typing import Annotated, Any, Dict, Literal, Optional, Union, get_args

from pydantic import Field, TypeAdapter, ValidationError, model_serializer

from chat_relay.core.errors import ProtocolError
from chat_relay.schemas.base import CamelModel
from chat_relay.schemas.message import ChatMessageWithUser, PrivateMessageWithUser


# =============================================================================
# 수신 프레임
# =============================================================================

class AuthFrame(CamelModel):
    type: Literal["auth"]
    user_id: str = Field(..., min_length=1)
    username: str = Field(..., min_length=1)
    token: Optional[str] = None


class JoinRoomFrame(CamelModel):
    type: Literal["join_room"]
    room_id: str = Field(..., min_length=1)


class LeaveRoomFrame(CamelModel):
    type: Literal["leave_room"]
    room_id: Optional[str] = None  # 생략 시 현재 채팅방


class ChatMessageFrame(CamelModel):
    type: Literal["chat_message"]
    content: Optional[str] = None


class PrivateMessageFrame(CamelModel):
    type: Literal["private_message"]
    conversation_id: str = Field(..., min_length=1)
    recipient_id: str = Field(..., min_length=1)
    content: Optional[str] = None


class TypingFrame(CamelModel):
    type: Literal["typing"]
    room_id: Optional[str] = None
    conversation_id: Optional[str] = None
    recipient_id: Optional[str] = None


InboundFrame = Annotated[
    Union[AuthFrame, JoinRoomFrame, LeaveRoomFrame, ChatMessageFrame, PrivateMessageFrame, TypingFrame],
    Field(discriminator="type"),
]

INBOUND_FRAME_TYPES = get_args(get_args(InboundFrame)[0])

_inbound_adapter = TypeAdapter(InboundFrame)
_known_tags = {get_args(frame_cls.model_fields["type"].annotation)[0] for frame_cls in INBOUND_FRAME_TYPES}

# 필드 검증 실패 시 태그별 에러 메시지
_invalid_messages = {
    "auth": "invalid auth data",
}


def parse_frame(raw: str) -> Optional[CamelModel]:
    """
    수신한 텍스트 프레임을 파싱합니다.

    Returns:
        파싱된 프레임, 알 수 없는 `type`이면 None

    Raises:
        ProtocolError: JSON이 아니거나 필드 검증에 실패한 경우
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        raise ProtocolError("invalid frame")

    if not isinstance(data, dict):
        raise ProtocolError("invalid frame")

    tag = data.get("type")
    if not isinstance(tag, str) or tag not in _known_tags:
        return None

    try:
        return _inbound_adapter.validate_python(data)
    except ValidationError:
        raise ProtocolError(_invalid_messages.get(tag, f"invalid {tag} frame"))


# =============================================================================
# 송신 프레임
# =============================================================================

class OutboundEvent(CamelModel):
    """한 번만 직렬화되어 여러 연결로 전달되는 송신 프레임"""

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class AuthSuccessEvent(OutboundEvent):
    type: Literal["auth_success"] = "auth_success"


class RoomJoinedEvent(OutboundEvent):
    type: Literal["room_joined"] = "room_joined"
    room_id: str


class UserJoinedEvent(OutboundEvent):
    type: Literal["user_joined"] = "user_joined"
    user_id: str
    username: str


class UserLeftEvent(OutboundEvent):
    type: Literal["user_left"] = "user_left"
    user_id: str
    username: str


class ChatMessageEvent(OutboundEvent):
    type: Literal["chat_message"] = "chat_message"
    message: ChatMessageWithUser


class PrivateMessageEvent(OutboundEvent):
    type: Literal["private_message"] = "private_message"
    message: PrivateMessageWithUser


class TypingEvent(OutboundEvent):
    type: Literal["typing"] = "typing"
    user_id: str
    username: str
    conversation_id: Optional[str] = None

    @model_serializer(mode="wrap")
    def _drop_missing_conversation(self, handler) -> Dict[str, Any]:
        # 채팅방 타이핑에는 conversationId 키 자체가 없어야 함
        data = handler(self)
        for key in ("conversationId", "conversation_id"):
            if key in data and data[key] is None:
                del data[key]
        return data


class ErrorEvent(OutboundEvent):
    type: Literal["error"] = "error"
    message: str
