from typing import Dict, FrozenSet, List, Optional, Set

from chat_relay.websockets.connection import Connection


class RoomMembershipIndex:
    """
    채팅방 ID -> 현재 접속 중인 연결 집합

    연결은 동시에 하나의 채팅방에만 속하며, 인덱스와 `connection.current_room`은
    모든 연산 이후 항상 일치합니다. 멤버가 없는 채팅방은 인덱스에서 제거됩니다.
    """

    def __init__(self):
        self._rooms: Dict[str, Set[Connection]] = {}

    def join(self, connection: Connection, room_id: str) -> Optional[str]:
        """
        연결을 채팅방에 추가합니다. 다른 채팅방에 있었다면 먼저 퇴장시킵니다.

        Returns:
            이전에 속해 있던 채팅방 ID (없거나 같은 방이면 None)
        """
        previous = connection.current_room
        if previous == room_id and connection in self._rooms.get(room_id, ()):
            return None

        if previous is not None:
            self.leave(connection, previous)

        self._rooms.setdefault(room_id, set()).add(connection)
        connection.current_room = room_id
        return previous if previous != room_id else None

    def leave(self, connection: Connection, room_id: str) -> bool:
        """
        연결을 채팅방에서 제거합니다. 멤버가 아니었다면 아무것도 하지 않습니다.

        Returns:
            실제로 제거되었으면 True
        """
        members = self._rooms.get(room_id)
        if not members or connection not in members:
            return False

        members.discard(connection)
        if not members:
            del self._rooms[room_id]

        if connection.current_room == room_id:
            connection.current_room = None
        return True

    def members_of(self, room_id: str) -> FrozenSet[Connection]:
        return frozenset(self._rooms.get(room_id, ()))

    def room_ids(self) -> List[str]:
        return list(self._rooms.keys())

    def clear(self):
        for members in self._rooms.values():
            for connection in members:
                connection.current_room = None
        self._rooms.clear()

    def __contains__(self, room_id: str) -> bool:
        return room_id in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)
