"""
WebSocket 실시간 채팅 릴레이 모듈

주요 구성 요소:
- connection: 연결 하나와 바인딩된 사용자 정보
- rooms: 채팅방별 연결 인덱스
- registry: 활성 연결 및 사용자별 연결 관리
- broadcaster: 채팅방/사용자/연결 단위 전달
- moderation: 차단 관계 확인
- presence: 입장/퇴장/타이핑 알림
- handlers: 수신 프레임 처리 (프로토콜 상태 머신)
- state: 위 구성 요소를 묶은 릴레이 상태
"""

from .connection import Connection
from .rooms import RoomMembershipIndex
from .registry import ConnectionRegistry
from .broadcaster import Broadcaster
from .moderation import ModerationGate
from .presence import PresenceSignaler
from .handlers import MessageRouter
from .state import RelayState
from .auth import verify_auth_token

__all__ = [
    "Connection",
    "RoomMembershipIndex",
    "ConnectionRegistry",
    "Broadcaster",
    "ModerationGate",
    "PresenceSignaler",
    "MessageRouter",
    "RelayState",
    "verify_auth_token",
]
