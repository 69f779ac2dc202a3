import asyncio
import pytest
from starlette.websockets import WebSocketState

from chat_relay.schemas.frames import ErrorEvent, UserJoinedEvent
from chat_relay.websockets.broadcaster import Broadcaster
from chat_relay.websockets.connection import Connection
from chat_relay.websockets.registry import ConnectionRegistry
from chat_relay.websockets.rooms import RoomMembershipIndex
from tests.fakes import FakeWebSocket


@pytest.fixture
def rooms():
    return RoomMembershipIndex()


@pytest.fixture
def registry(rooms):
    return ConnectionRegistry(rooms)


@pytest.fixture
def broadcaster(registry, rooms):
    return Broadcaster(registry, rooms)


def add_member(registry, rooms, user_id, room_id=None, websocket=None):
    connection = Connection(websocket or FakeWebSocket())
    registry.register(connection)
    registry.authenticate(connection, user_id, user_id)
    if room_id:
        rooms.join(connection, room_id)
    return connection


class TestBroadcaster:
    """송신 프레임 전달 테스트"""

    @pytest.mark.asyncio
    async def test_to_room_excludes_connection(self, broadcaster, registry, rooms):
        sender = add_member(registry, rooms, "u1", "r1")
        other = add_member(registry, rooms, "u2", "r1")
        outsider = add_member(registry, rooms, "u3", "r2")

        delivered = await broadcaster.to_room("r1", UserJoinedEvent(user_id="u1", username="alice"), exclude=sender)

        assert delivered == 1
        assert other.websocket.sent == [{"type": "user_joined", "userId": "u1", "username": "alice"}]
        assert sender.websocket.sent == []
        assert outsider.websocket.sent == []

    @pytest.mark.asyncio
    async def test_to_room_skips_closed_connections(self, broadcaster, registry, rooms):
        """닫히는 중인 연결은 건너뛰고 나머지에는 전달"""
        closing = add_member(registry, rooms, "u1", "r1")
        closing.websocket.application_state = WebSocketState.DISCONNECTED
        live = add_member(registry, rooms, "u2", "r1")

        delivered = await broadcaster.to_room("r1", ErrorEvent(message="x"))

        assert delivered == 1
        assert closing.websocket.sent == []
        assert len(live.websocket.sent) == 1

    @pytest.mark.asyncio
    async def test_send_failure_does_not_abort_broadcast(self, broadcaster, registry, rooms):
        broken = add_member(registry, rooms, "u1", "r1", websocket=FakeWebSocket(fail_sends=True))
        live = add_member(registry, rooms, "u2", "r1")

        delivered = await broadcaster.to_room("r1", ErrorEvent(message="x"))

        assert delivered == 1
        assert live.websocket.sent == [{"type": "error", "message": "x"}]
        assert registry.is_registered(broken)

    @pytest.mark.asyncio
    async def test_to_identity_reaches_every_tab(self, broadcaster, registry, rooms):
        first = add_member(registry, rooms, "u1")
        second = add_member(registry, rooms, "u1", "r1")
        add_member(registry, rooms, "u2")

        delivered = await broadcaster.to_identity("u1", ErrorEvent(message="x"))

        assert delivered == 2
        assert len(first.websocket.sent) == 1
        assert len(second.websocket.sent) == 1

    @pytest.mark.asyncio
    async def test_to_room_unknown_room(self, broadcaster):
        assert await broadcaster.to_room("missing", ErrorEvent(message="x")) == 0

    @pytest.mark.asyncio
    async def test_concurrent_broadcasts_keep_order(self, broadcaster, registry, rooms):
        """동시에 시작된 전달도 모든 멤버에게 같은 순서로 도착"""
        members = [add_member(registry, rooms, f"u{i}", "r1") for i in range(3)]

        await asyncio.gather(*[
            broadcaster.to_room("r1", ErrorEvent(message=str(n))) for n in range(20)
        ])

        orders = [[frame["message"] for frame in member.websocket.sent] for member in members]
        assert orders[0] == [str(n) for n in range(20)]
        assert orders[0] == orders[1] == orders[2]

    @pytest.mark.asyncio
    async def test_slow_room_does_not_delay_other_rooms(self, registry, rooms):
        """한 채팅방의 느린 연결이 다른 채팅방 전달을 붙잡지 않음"""
        broadcaster = Broadcaster(registry, rooms, send_timeout=0.5)
        slow = add_member(registry, rooms, "u1", "room-a", websocket=FakeWebSocket(send_delay=3.0))
        peer = add_member(registry, rooms, "u2", "room-a")
        other = add_member(registry, rooms, "u3", "room-b")
        loop = asyncio.get_running_loop()

        room_a = asyncio.create_task(broadcaster.to_room("room-a", ErrorEvent(message="a")))
        await asyncio.sleep(0)

        started = loop.time()
        delivered = await broadcaster.to_room("room-b", ErrorEvent(message="b"))
        elapsed = loop.time() - started

        assert delivered == 1
        assert other.websocket.sent == [{"type": "error", "message": "b"}]
        assert elapsed < 0.2

        assert await room_a == 1
        assert peer.websocket.sent == [{"type": "error", "message": "a"}]
        assert slow.websocket.sent == []

    @pytest.mark.asyncio
    async def test_timed_out_send_is_skipped(self, registry, rooms):
        broadcaster = Broadcaster(registry, rooms, send_timeout=0.1)
        stalled = add_member(registry, rooms, "u1", websocket=FakeWebSocket(send_delay=1.0))
        live = add_member(registry, rooms, "u1")

        delivered = await broadcaster.to_identity("u1", ErrorEvent(message="x"))

        assert delivered == 1
        assert stalled.websocket.sent == []
        assert live.websocket.sent == [{"type": "error", "message": "x"}]
        assert registry.is_registered(stalled)

    @pytest.mark.asyncio
    async def test_room_locks_released_after_delivery(self, broadcaster, registry, rooms):
        add_member(registry, rooms, "u1", "r1")

        await asyncio.gather(*[broadcaster.to_room("r1", ErrorEvent(message=str(n))) for n in range(3)])

        assert broadcaster._room_locks == {}
