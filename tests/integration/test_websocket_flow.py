"""
실제 WebSocket 연결을 통한 전체 흐름 테스트

TestClient가 애플리케이션 lifespan을 실행하므로 인메모리 데이터베이스와
릴레이 상태가 테스트마다 새로 만들어집니다.
"""

from fastapi.testclient import TestClient

from chat_relay.main import app
from chat_relay.utils.auth import create_access_token


def authenticate(websocket, user_id: str, username: str):
    websocket.send_json({"type": "auth", "userId": user_id, "username": username})
    assert websocket.receive_json() == {"type": "auth_success"}


def join(websocket, room_id: str):
    websocket.send_json({"type": "join_room", "roomId": room_id})
    assert websocket.receive_json() == {"type": "room_joined", "roomId": room_id}


class TestRoomChatFlow:
    """채팅방 대화 흐름 테스트"""

    def test_two_users_chat_in_room(self):
        with TestClient(app) as client:
            with client.websocket_connect("/ws") as alice_ws:
                authenticate(alice_ws, "u1", "alice")
                join(alice_ws, "r1")

                with client.websocket_connect("/ws") as bob_ws:
                    authenticate(bob_ws, "u2", "bob")
                    join(bob_ws, "r1")
                    assert alice_ws.receive_json() == {"type": "user_joined", "userId": "u2", "username": "bob"}

                    alice_ws.send_json({"type": "chat_message", "content": "hi"})

                    to_bob = bob_ws.receive_json()
                    to_alice = alice_ws.receive_json()
                    assert to_bob == to_alice
                    assert to_bob["type"] == "chat_message"
                    assert to_bob["message"]["userId"] == "u1"
                    assert to_bob["message"]["username"] == "alice"
                    assert to_bob["message"]["content"] == "hi"
                    assert to_bob["message"]["roomId"] == "r1"

                    # 실시간으로 받은 메시지가 히스토리에도 저장됨
                    storage = client.app.state.relay.storage
                    history = client.portal.call(storage.get_room_messages, "r1")
                    assert [m.id for m in history] == [to_bob["message"]["id"]]

                # bob 연결 종료 -> alice에게 퇴장 알림
                assert alice_ws.receive_json() == {"type": "user_left", "userId": "u2", "username": "bob"}

    def test_chat_before_join_and_malformed_frames(self):
        with TestClient(app) as client:
            with client.websocket_connect("/ws") as websocket:
                websocket.send_json({"type": "chat_message", "content": "hi"})
                assert websocket.receive_json() == {"type": "error", "message": "not authenticated"}

                authenticate(websocket, "u1", "alice")

                websocket.send_json({"type": "chat_message", "content": "hi"})
                assert websocket.receive_json() == {"type": "error", "message": "not in a room"}

                websocket.send_text("this is not json")
                assert websocket.receive_json() == {"type": "error", "message": "invalid frame"}

                # 알 수 없는 type은 무시되고 연결은 유지됨
                websocket.send_json({"type": "presence_ping"})
                join(websocket, "r1")


class TestPrivateMessageFlow:
    """1:1 메시지 흐름 테스트"""

    def test_private_message_and_block(self):
        with TestClient(app) as client:
            storage = client.app.state.relay.storage
            alice = client.portal.call(storage.create_user, "alice")
            bob = client.portal.call(storage.create_user, "bob")
            conversation = client.portal.call(storage.get_or_create_conversation, alice.id, bob.id)

            with client.websocket_connect("/ws") as alice_ws, \
                    client.websocket_connect("/ws") as bob_ws:
                authenticate(alice_ws, alice.id, "alice")
                authenticate(bob_ws, bob.id, "bob")

                alice_ws.send_json({
                    "type": "private_message",
                    "conversationId": conversation.id,
                    "recipientId": bob.id,
                    "content": "hey bob"
                })
                received = bob_ws.receive_json()
                echoed = alice_ws.receive_json()
                assert received == echoed
                assert received["message"]["senderId"] == alice.id
                assert received["message"]["conversationId"] == conversation.id

                client.portal.call(storage.block_user, bob.id, alice.id)

                alice_ws.send_json({
                    "type": "private_message",
                    "conversationId": conversation.id,
                    "recipientId": bob.id,
                    "content": "are you there?"
                })
                assert alice_ws.receive_json() == {"type": "error", "message": "cannot message this user"}

            history = client.portal.call(storage.get_conversation_messages, conversation.id)
            assert [m.content for m in history] == ["hey bob"]

            response = client.get(
                f"/api/conversations/{conversation.id}/messages",
                headers={"Authorization": f"Bearer {create_access_token(data={'sub': bob.id})}"}
            )
            assert response.status_code == 200
            assert [m["content"] for m in response.json()["messages"]] == ["hey bob"]
