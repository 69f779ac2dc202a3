import logging
from typing import Awaitable, Callable, Dict, Optional, Type

from chat_relay.core.config import Settings
from chat_relay.core.errors import (
    AuthRequiredError,
    NotInRoomError,
    PersistenceError,
    ProtocolError,
    RelayError,
)
from chat_relay.core.logging import log_websocket_event, set_connection_context
from chat_relay.schemas.base import CamelModel
from chat_relay.schemas.frames import (
    INBOUND_FRAME_TYPES,
    AuthFrame,
    AuthSuccessEvent,
    ChatMessageEvent,
    ChatMessageFrame,
    ErrorEvent,
    JoinRoomFrame,
    LeaveRoomFrame,
    PrivateMessageEvent,
    PrivateMessageFrame,
    RoomJoinedEvent,
    TypingFrame,
    parse_frame,
)
from chat_relay.schemas.message import ChatMessageWithUser, PrivateMessageWithUser
from chat_relay.services.storage import PersistenceGateway, call_gateway
from chat_relay.websockets.auth import verify_auth_token
from chat_relay.websockets.broadcaster import Broadcaster
from chat_relay.websockets.connection import Connection
from chat_relay.websockets.moderation import ModerationGate
from chat_relay.websockets.presence import PresenceSignaler
from chat_relay.websockets.registry import ConnectionRegistry
from chat_relay.websockets.rooms import RoomMembershipIndex

logger = logging.getLogger(__name__)

Handler = Callable[[Connection, CamelModel], Awaitable[None]]


class MessageRouter:
    """
    WebSocket 프로토콜 상태 머신

    연결 상태: Connected(미인증) -> Authenticated -> InRoom(R)
    수신 프레임은 프레임 클래스별 핸들러로 분기되며, 처리 중 발생한 RelayError는
    해당 연결에만 error 프레임으로 응답합니다.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        rooms: RoomMembershipIndex,
        broadcaster: Broadcaster,
        moderation: ModerationGate,
        presence: PresenceSignaler,
        storage: PersistenceGateway,
        settings: Settings,
    ):
        self.registry = registry
        self.rooms = rooms
        self.broadcaster = broadcaster
        self.moderation = moderation
        self.presence = presence
        self.storage = storage
        self.settings = settings

        self._handlers: Dict[Type[CamelModel], Handler] = {
            AuthFrame: self._handle_auth,
            JoinRoomFrame: self._handle_join_room,
            LeaveRoomFrame: self._handle_leave_room,
            ChatMessageFrame: self._handle_chat_message,
            PrivateMessageFrame: self._handle_private_message,
            TypingFrame: self._handle_typing,
        }

        missing = [frame_cls.__name__ for frame_cls in INBOUND_FRAME_TYPES if frame_cls not in self._handlers]
        if missing:
            raise RuntimeError(f"No handler registered for frame types: {', '.join(missing)}")

    async def handle_text(self, connection: Connection, raw: str):
        """
        수신한 텍스트 프레임 하나를 끝까지 처리합니다.

        Args:
            connection: 프레임을 보낸 연결
            raw: 클라이언트가 보낸 JSON 문자열
        """
        try:
            frame = parse_frame(raw)
            if frame is None:
                # 알 수 없는 type은 무시 (하위 호환)
                logger.debug(f"Ignoring unknown frame type from connection {connection.id}")
                return

            await self.dispatch(connection, frame)

        except RelayError as e:
            logger.info(f"Rejected frame from connection {connection.id} (user {connection.user_id}): {e.message}")
            await self.broadcaster.to_connection(connection, ErrorEvent(message=e.message))

        except Exception as e:
            logger.error(f"Error processing frame from connection {connection.id}: {e}", exc_info=True)
            await self.broadcaster.to_connection(connection, ErrorEvent(message="internal error"))

    async def dispatch(self, connection: Connection, frame: CamelModel):
        handler = self._handlers[type(frame)]
        await handler(connection, frame)

    # -------------------------------------------------------------------------
    # 핸들러
    # -------------------------------------------------------------------------

    async def _handle_auth(self, connection: Connection, frame: AuthFrame):
        if self.settings.require_ws_token and not verify_auth_token(frame.token, frame.user_id):
            raise ProtocolError("invalid auth token")

        self.registry.authenticate(connection, frame.user_id, frame.username)
        set_connection_context(connection.id, frame.user_id)
        log_websocket_event(logger, "authenticated", frame.user_id, connection_id=connection.id)

        await self.broadcaster.to_connection(connection, AuthSuccessEvent())

    async def _handle_join_room(self, connection: Connection, frame: JoinRoomFrame):
        self._require_identity(connection)

        if connection.current_room == frame.room_id:
            await self.broadcaster.to_connection(connection, RoomJoinedEvent(room_id=frame.room_id))
            return

        previous = self.rooms.join(connection, frame.room_id)
        if previous is not None:
            log_websocket_event(logger, "left", connection.user_id, previous)
            await self.presence.user_left(previous, connection)

        log_websocket_event(logger, "joined", connection.user_id, frame.room_id)
        await self.presence.user_joined(frame.room_id, connection)
        await self.broadcaster.to_connection(connection, RoomJoinedEvent(room_id=frame.room_id))

    async def _handle_leave_room(self, connection: Connection, frame: LeaveRoomFrame):
        self._require_identity(connection)

        room_id = frame.room_id or connection.current_room
        if room_id is None or room_id != connection.current_room:
            return

        if self.rooms.leave(connection, room_id):
            log_websocket_event(logger, "left", connection.user_id, room_id)
            await self.presence.user_left(room_id, connection)

    async def _handle_chat_message(self, connection: Connection, frame: ChatMessageFrame):
        self._require_identity(connection)
        if connection.current_room is None:
            raise NotInRoomError()

        content = self._clean_content(frame.content)
        if content is None:
            return

        # 저장 대기 중 방을 옮기더라도 메시지는 보낸 시점의 방으로 전달
        room_id = connection.current_room
        message = await call_gateway(
            self.storage.add_chat_message(room_id, connection.user_id, content),
            self.settings.gateway_timeout,
            "add_chat_message"
        )
        avatar_image_url = await self._resolve_avatar(connection.user_id)

        event = ChatMessageEvent(
            message=ChatMessageWithUser.from_message(message, connection.username, avatar_image_url)
        )
        await self.broadcaster.to_room(room_id, event)

    async def _handle_private_message(self, connection: Connection, frame: PrivateMessageFrame):
        self._require_identity(connection)

        content = self._clean_content(frame.content)
        if content is None:
            return

        await self._ensure_conversation_pair(connection.user_id, frame.conversation_id, frame.recipient_id)
        await self.moderation.ensure_can_message(connection.user_id, frame.recipient_id)

        message = await call_gateway(
            self.storage.add_private_message(frame.conversation_id, connection.user_id, content),
            self.settings.gateway_timeout,
            "add_private_message"
        )
        avatar_image_url = await self._resolve_avatar(connection.user_id)

        event = PrivateMessageEvent(
            message=PrivateMessageWithUser.from_message(message, connection.username, avatar_image_url)
        )
        recipients = [
            target for target in self.registry.find_by_identity(frame.recipient_id)
            if target is not connection
        ]
        await self.broadcaster.to_connections([connection, *recipients], event)

    async def _handle_typing(self, connection: Connection, frame: TypingFrame):
        if not connection.is_authenticated:
            return

        if frame.room_id and frame.room_id == connection.current_room:
            await self.presence.typing_in_room(connection, frame.room_id)
        elif frame.conversation_id and frame.recipient_id:
            await self.presence.typing_in_conversation(connection, frame.conversation_id, frame.recipient_id)

    # -------------------------------------------------------------------------
    # 헬퍼
    # -------------------------------------------------------------------------

    def _require_identity(self, connection: Connection):
        if not connection.is_authenticated or not self.registry.is_registered(connection):
            raise AuthRequiredError()

    async def _ensure_conversation_pair(self, sender_id: str, conversation_id: str, recipient_id: str):
        """
        발신자와 수신자가 정확히 그 대화의 두 참여자인지 확인합니다.

        Raises:
            ProtocolError: 대화가 없거나 참여자 쌍이 일치하지 않는 경우
            PersistenceError: 대화 조회가 실패한 경우
        """
        conversation = await call_gateway(
            self.storage.get_conversation(conversation_id),
            self.settings.gateway_timeout,
            "get_conversation"
        )
        if (
            conversation is None
            or sender_id == recipient_id
            or {sender_id, recipient_id} != {conversation.user1_id, conversation.user2_id}
        ):
            logger.info(f"Private message from {sender_id} rejected: {recipient_id} is not the peer in {conversation_id}")
            raise ProtocolError("invalid conversation")

    def _clean_content(self, content: Optional[str]) -> Optional[str]:
        """공백만 있는 내용은 None (조용히 버림), 너무 길면 ProtocolError"""
        content = (content or "").strip()
        if not content:
            return None
        if len(content) > self.settings.max_message_length:
            raise ProtocolError("message too long")
        return content

    async def _resolve_avatar(self, user_id: str) -> Optional[str]:
        """발신자의 현재 아바타 이미지. 조회 실패는 메시지 전달을 막지 않습니다."""
        try:
            user = await call_gateway(self.storage.get_user(user_id), self.settings.gateway_timeout, "get_user")
            if user is None or not user.active_avatar_id:
                return None

            item = await call_gateway(
                self.storage.get_store_item_by_id(user.active_avatar_id),
                self.settings.gateway_timeout,
                "get_store_item_by_id"
            )
            return item.image_url if item else None
        except PersistenceError:
            logger.warning(f"Avatar lookup failed for user {user_id}; sending without avatar")
            return None
