from .message import ChatMessageWithUser, PrivateMessageWithUser, ChatMessageList, PrivateMessageList
from .chat_room import ChatRoomCreate, ChatRoomResponse, RoomStatus
from .conversation import ConversationCreate, ConversationResponse
from .frames import (
    AuthFrame,
    JoinRoomFrame,
    LeaveRoomFrame,
    ChatMessageFrame,
    PrivateMessageFrame,
    TypingFrame,
    InboundFrame,
    parse_frame,
    OutboundEvent,
    AuthSuccessEvent,
    RoomJoinedEvent,
    UserJoinedEvent,
    UserLeftEvent,
    ChatMessageEvent,
    PrivateMessageEvent,
    TypingEvent,
    ErrorEvent,
)

__all__ = [
    # Message schemas
    "ChatMessageWithUser",
    "PrivateMessageWithUser",
    "ChatMessageList",
    "PrivateMessageList",

    # Room / conversation schemas
    "ChatRoomCreate",
    "ChatRoomResponse",
    "RoomStatus",
    "ConversationCreate",
    "ConversationResponse",

    # Inbound frames
    "AuthFrame",
    "JoinRoomFrame",
    "LeaveRoomFrame",
    "ChatMessageFrame",
    "PrivateMessageFrame",
    "TypingFrame",
    "InboundFrame",
    "parse_frame",

    # Outbound frames
    "OutboundEvent",
    "AuthSuccessEvent",
    "RoomJoinedEvent",
    "UserJoinedEvent",
    "UserLeftEvent",
    "ChatMessageEvent",
    "PrivateMessageEvent",
    "TypingEvent",
    "ErrorEvent",
]
