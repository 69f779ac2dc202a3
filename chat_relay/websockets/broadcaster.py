import asyncio
import logging
from typing import Dict, Iterable, Optional

from chat_relay.schemas.frames import OutboundEvent
from chat_relay.websockets.connection import Connection
from chat_relay.websockets.registry import ConnectionRegistry
from chat_relay.websockets.rooms import RoomMembershipIndex

logger = logging.getLogger(__name__)


class Broadcaster:
    """
    송신 프레임을 채팅방, 사용자, 개별 연결로 전달합니다.

    프레임은 한 번만 직렬화됩니다. 채팅방 전달은 방마다 잠금으로 직렬화되어 같은
    채팅방의 멤버들은 라우터가 처리한 순서대로 프레임을 받고, 다른 채팅방의 전달은
    서로를 기다리지 않습니다. 연결 하나에 대한 송신은 `send_timeout`초로 제한되며,
    시간 안에 끝나지 않은 연결은 건너뜁니다.
    """

    def __init__(self, registry: ConnectionRegistry, rooms: RoomMembershipIndex, send_timeout: float = 5.0):
        self.registry = registry
        self.rooms = rooms
        self.send_timeout = send_timeout
        self._room_locks: Dict[str, asyncio.Lock] = {}
        self._room_lock_users: Dict[str, int] = {}

    async def to_room(self, room_id: str, event: OutboundEvent, exclude: Optional[Connection] = None) -> int:
        """채팅방의 모든 연결에 전달합니다. 전달된 연결 수를 반환합니다."""
        # 호출 시점의 멤버 스냅샷 기준으로 전달
        targets = [connection for connection in self.rooms.members_of(room_id) if connection is not exclude]
        payload = event.to_json()

        lock = self._room_locks.setdefault(room_id, asyncio.Lock())
        self._room_lock_users[room_id] = self._room_lock_users.get(room_id, 0) + 1
        try:
            async with lock:
                return await self._deliver(targets, payload)
        finally:
            self._room_lock_users[room_id] -= 1
            if not self._room_lock_users[room_id]:
                del self._room_lock_users[room_id]
                del self._room_locks[room_id]

    async def to_identity(self, user_id: str, event: OutboundEvent, exclude: Optional[Connection] = None) -> int:
        """해당 사용자로 인증된 모든 연결에 전달합니다."""
        return await self.to_connections(self.registry.find_by_identity(user_id), event, exclude=exclude)

    async def to_connection(self, connection: Connection, event: OutboundEvent) -> int:
        return await self.to_connections((connection,), event)

    async def to_connections(
        self,
        connections: Iterable[Connection],
        event: OutboundEvent,
        exclude: Optional[Connection] = None
    ) -> int:
        targets = [connection for connection in connections if connection is not exclude]
        return await self._deliver(targets, event.to_json())

    async def _deliver(self, targets, payload: str) -> int:
        delivered = 0
        for connection in targets:
            if not connection.is_writable:
                logger.debug(f"Skipping non-writable connection {connection.id}")
                continue

            try:
                await asyncio.wait_for(connection.send_text(payload), timeout=self.send_timeout)
                delivered += 1
            except asyncio.TimeoutError:
                logger.warning(
                    f"Send to connection {connection.id} (user {connection.user_id}) "
                    f"timed out after {self.send_timeout}s; skipping"
                )
            except Exception as e:
                # 끊어진 연결은 수신 루프의 종료 처리에서 정리됨
                logger.warning(f"Failed to send frame to connection {connection.id} (user {connection.user_id}): {e}")
        return delivered
