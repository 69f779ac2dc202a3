import logging
from typing import Optional

from chat_relay.utils.auth import decode_access_token

logger = logging.getLogger(__name__)


def verify_auth_token(token: Optional[str], user_id: str) -> bool:
    """
    auth 프레임의 토큰을 검증합니다.

    Args:
        token: 세션 계층이 발급한 JWT 액세스 토큰
        user_id: auth 프레임이 주장하는 사용자 ID

    Returns:
        bool: 토큰이 유효하고 `sub`가 user_id와 같으면 True
    """
    if not token:
        logger.warning("No token provided in auth frame")
        return False

    payload = decode_access_token(token)
    if not payload:
        logger.warning("Invalid token provided in auth frame")
        return False

    subject = payload.get("sub")
    if str(subject) != user_id:
        logger.warning(f"Token subject {subject} does not match claimed user {user_id}")
        return False

    return True
