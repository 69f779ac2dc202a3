import logging
from typing import Dict, FrozenSet, List, Optional, Set

from chat_relay.core.errors import AuthRequiredError, ProtocolError
from chat_relay.websockets.connection import Connection
from chat_relay.websockets.rooms import RoomMembershipIndex

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """모든 활성 연결과 사용자별 연결 목록을 관리합니다."""

    def __init__(self, rooms: RoomMembershipIndex):
        self.rooms = rooms
        self._connections: Set[Connection] = set()
        # 같은 사용자가 여러 탭에서 접속할 수 있음: {user_id: {connection, ...}}
        self._by_identity: Dict[str, Set[Connection]] = {}

    def register(self, connection: Connection):
        """인증되지 않은 새 연결을 등록합니다."""
        self._connections.add(connection)

    def is_registered(self, connection: Connection) -> bool:
        return connection in self._connections

    def authenticate(self, connection: Connection, user_id: str, username: str):
        """
        연결에 사용자 신원을 바인딩합니다.

        Raises:
            AuthRequiredError: 등록되지 않은 연결
            ProtocolError: 이미 인증된 연결 (재인증은 거부)
        """
        if connection not in self._connections:
            raise AuthRequiredError()
        if connection.is_authenticated:
            raise ProtocolError("already authenticated")

        connection.user_id = user_id
        connection.username = username
        self._by_identity.setdefault(user_id, set()).add(connection)

    def unregister(self, connection: Connection) -> Optional[str]:
        """
        연결을 제거합니다. 채팅방에 있었다면 먼저 퇴장 처리합니다.

        Returns:
            퇴장한 채팅방 ID (없으면 None)
        """
        if connection not in self._connections:
            return None

        departed = connection.current_room
        if departed is not None:
            self.rooms.leave(connection, departed)

        self._connections.discard(connection)

        if connection.user_id is not None:
            identities = self._by_identity.get(connection.user_id)
            if identities is not None:
                identities.discard(connection)
                if not identities:
                    del self._by_identity[connection.user_id]

        return departed

    def find_by_identity(self, user_id: str) -> FrozenSet[Connection]:
        return frozenset(self._by_identity.get(user_id, ()))

    def connections(self) -> List[Connection]:
        return list(self._connections)

    def online_user_ids(self) -> List[str]:
        return list(self._by_identity.keys())

    def clear(self):
        self._connections.clear()
        self._by_identity.clear()

    def __len__(self) -> int:
        return len(self._connections)
