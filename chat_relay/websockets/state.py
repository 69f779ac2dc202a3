import logging
from typing import Optional

from fastapi import WebSocket

from chat_relay.core.config import Settings, settings as default_settings
from chat_relay.core.logging import log_websocket_event
from chat_relay.schemas.chat_room import RoomStatus
from chat_relay.services.storage import PersistenceGateway
from chat_relay.websockets.broadcaster import Broadcaster
from chat_relay.websockets.connection import Connection
from chat_relay.websockets.handlers import MessageRouter
from chat_relay.websockets.moderation import ModerationGate
from chat_relay.websockets.presence import PresenceSignaler
from chat_relay.websockets.registry import ConnectionRegistry
from chat_relay.websockets.rooms import RoomMembershipIndex

logger = logging.getLogger(__name__)


class RelayState:
    """
    실시간 릴레이의 프로세스 단위 상태

    연결 레지스트리, 채팅방 인덱스, 브로드캐스터, 차단 확인, 라우터를 한데 묶습니다.
    애플리케이션 lifespan에서 생성되어 `app.state.relay`로 주입되며, 테스트에서는
    인스턴스를 여러 개 만들어 독립적으로 사용할 수 있습니다.
    """

    def __init__(self, storage: PersistenceGateway, settings: Optional[Settings] = None):
        self.settings = settings or default_settings
        self.storage = storage
        self.rooms = RoomMembershipIndex()
        self.registry = ConnectionRegistry(self.rooms)
        self.broadcaster = Broadcaster(self.registry, self.rooms, send_timeout=self.settings.send_timeout)
        self.moderation = ModerationGate(storage, timeout=self.settings.gateway_timeout)
        self.presence = PresenceSignaler(self.broadcaster, self.moderation)
        self.router = MessageRouter(
            registry=self.registry,
            rooms=self.rooms,
            broadcaster=self.broadcaster,
            moderation=self.moderation,
            presence=self.presence,
            storage=storage,
            settings=self.settings,
        )

    def open(self, websocket: WebSocket) -> Connection:
        """수락된 WebSocket을 인증되지 않은 연결로 등록합니다."""
        connection = Connection(websocket)
        self.registry.register(connection)
        logger.info(f"Connection {connection.id} opened")
        return connection

    async def handle_text(self, connection: Connection, raw: str):
        await self.router.handle_text(connection, raw)

    async def close(self, connection: Connection):
        """
        연결 종료 처리: 채팅방에 있었다면 퇴장시키고 남은 멤버에게 알립니다.
        등록되지 않은 연결이면 아무것도 하지 않습니다.
        """
        if not self.registry.is_registered(connection):
            return

        departed = self.registry.unregister(connection)
        if departed is not None and connection.is_authenticated:
            log_websocket_event(logger, "disconnected", connection.user_id, departed)
            await self.presence.user_left(departed, connection)

        logger.info(f"Connection {connection.id} closed (user {connection.user_id})")

    async def shutdown(self):
        """모든 활성 연결을 닫고 상태를 비웁니다."""
        connections = self.registry.connections()
        for connection in connections:
            try:
                await connection.close(code=1001)
            except Exception as e:
                logger.warning(f"Error closing connection {connection.id} during shutdown: {e}")

        self.registry.clear()
        self.rooms.clear()
        logger.info(f"Relay shut down, closed {len(connections)} connections")

    def room_status(self, room_id: str) -> RoomStatus:
        members = self.rooms.members_of(room_id)
        online_users = sorted({connection.user_id for connection in members if connection.user_id})
        return RoomStatus(
            room_id=room_id,
            online_users=online_users,
            online_count=len(online_users),
            is_active=bool(members)
        )
