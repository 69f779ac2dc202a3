"""
API Dependencies

릴레이 상태와 저장소를 애플리케이션 state에서 꺼내는 의존성 함수
"""

from fastapi import Request

from chat_relay.services.storage import SqlStorage
from chat_relay.websockets.state import RelayState


def get_relay(request: Request) -> RelayState:
    return request.app.state.relay


def get_storage(request: Request) -> SqlStorage:
    return request.app.state.relay.storage
