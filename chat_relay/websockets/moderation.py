import logging

from chat_relay.core.errors import ModerationError
from chat_relay.core.logging import log_moderation_event
from chat_relay.services.storage import PersistenceGateway, call_gateway

logger = logging.getLogger(__name__)


class ModerationGate:
    """
    차단 관계 확인

    차단은 양방향으로 취급합니다. 1:1 메시지와 대화 타이핑 알림에만 적용되며,
    채팅방 메시지는 차단 관계로 걸러지지 않습니다.
    """

    def __init__(self, storage: PersistenceGateway, timeout: float):
        self.storage = storage
        self.timeout = timeout

    async def is_blocked(self, user_a: str, user_b: str) -> bool:
        return await call_gateway(self.storage.is_blocked(user_a, user_b), self.timeout, "is_blocked")

    async def ensure_can_message(self, sender_id: str, recipient_id: str):
        """
        Raises:
            ModerationError: 두 사용자 사이에 차단 관계가 있는 경우
        """
        if await self.is_blocked(sender_id, recipient_id):
            log_moderation_event(logger, "private_message_blocked", sender_id, recipient_id)
            raise ModerationError()
