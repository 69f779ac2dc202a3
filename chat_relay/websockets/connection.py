import asyncio
import uuid
from typing import Optional

from fastapi import WebSocket
from starlette.websockets import WebSocketState


class Connection:
    """
    하나의 WebSocket 연결과 그 연결에 바인딩된 사용자 정보

    인증 전에는 user_id/username이 None이며, current_room은 채팅방 인덱스가 관리합니다.
    """

    def __init__(self, websocket: WebSocket):
        self.id = uuid.uuid4().hex
        self.websocket = websocket
        self.user_id: Optional[str] = None
        self.username: Optional[str] = None
        self.current_room: Optional[str] = None
        self._send_lock = asyncio.Lock()

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    @property
    def is_writable(self) -> bool:
        """닫혔거나 닫히는 중인 연결에는 쓰지 않습니다."""
        return (
            self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    async def send_text(self, payload: str):
        # 한 소켓에 대한 송신은 한 번에 하나씩
        async with self._send_lock:
            await self.websocket.send_text(payload)

    async def close(self, code: int = 1000):
        if self.websocket.application_state != WebSocketState.DISCONNECTED:
            await self.websocket.close(code=code)

    def __repr__(self):
        return f"<Connection(id={self.id}, user_id={self.user_id}, room={self.current_room})>"
