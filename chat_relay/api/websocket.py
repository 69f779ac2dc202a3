import logging
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from chat_relay.api.dependencies import get_relay
from chat_relay.core.logging import clear_connection_context, set_connection_context
from chat_relay.schemas.chat_room import RoomStatus
from chat_relay.utils.auth import get_current_user_id
from chat_relay.websockets.state import RelayState

logger = logging.getLogger(__name__)

router = APIRouter(tags=["WebSocket"])


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    실시간 채팅 WebSocket 엔드포인트

    연결 직후에는 인증되지 않은 상태이며, 클라이언트는 auth 프레임으로 신원을 바인딩한 뒤
    join_room / chat_message / private_message / typing 프레임을 보냅니다.
    """
    relay: RelayState = websocket.app.state.relay

    await websocket.accept()
    connection = relay.open(websocket)
    set_connection_context(connection.id)

    try:
        # 메시지 수신 루프: 연결별로 프레임을 하나씩 끝까지 처리
        while True:
            raw = await websocket.receive_text()
            await relay.handle_text(connection, raw)

    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected: connection {connection.id} (user {connection.user_id})")

    except Exception as e:
        logger.error(f"Unexpected error in WebSocket connection {connection.id}: {e}", exc_info=True)

    finally:
        await relay.close(connection)
        clear_connection_context()


@router.get("/ws/rooms/{room_id}/status", response_model=RoomStatus)
async def get_room_status(
    room_id: str,
    current_user_id: str = Depends(get_current_user_id),
    relay: RelayState = Depends(get_relay)
):
    """
    채팅방의 현재 접속 상태를 조회합니다.

    Returns:
        RoomStatus: 접속 중인 사용자 목록과 수
    """
    return relay.room_status(room_id)
