import logging

from chat_relay.core.errors import PersistenceError
from chat_relay.schemas.frames import TypingEvent, UserJoinedEvent, UserLeftEvent
from chat_relay.websockets.broadcaster import Broadcaster
from chat_relay.websockets.connection import Connection
from chat_relay.websockets.moderation import ModerationGate

logger = logging.getLogger(__name__)


class PresenceSignaler:
    """입장/퇴장/타이핑 알림. 어떤 것도 저장하지 않습니다."""

    def __init__(self, broadcaster: Broadcaster, moderation: ModerationGate):
        self.broadcaster = broadcaster
        self.moderation = moderation

    async def user_joined(self, room_id: str, connection: Connection):
        """입장한 연결을 제외한 채팅방 멤버에게 알립니다."""
        await self.broadcaster.to_room(
            room_id,
            UserJoinedEvent(user_id=connection.user_id, username=connection.username),
            exclude=connection
        )

    async def user_left(self, room_id: str, connection: Connection):
        await self.broadcaster.to_room(
            room_id,
            UserLeftEvent(user_id=connection.user_id, username=connection.username),
            exclude=connection
        )

    async def typing_in_room(self, connection: Connection, room_id: str):
        if connection.current_room != room_id:
            return

        await self.broadcaster.to_room(
            room_id,
            TypingEvent(user_id=connection.user_id, username=connection.username),
            exclude=connection
        )

    async def typing_in_conversation(self, connection: Connection, conversation_id: str, recipient_id: str):
        try:
            if await self.moderation.is_blocked(connection.user_id, recipient_id):
                return
        except PersistenceError:
            logger.warning(f"Dropping typing indicator from {connection.user_id}: block check unavailable")
            return

        await self.broadcaster.to_identity(
            recipient_id,
            TypingEvent(
                user_id=connection.user_id,
                username=connection.username,
                conversation_id=conversation_id
            ),
            exclude=connection
        )
