from datetime import timedelta
from typing import Annotated, Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

from chat_relay.core.config import settings
from chat_relay.core.errors import AuthenticationException, invalid_token_error
from chat_relay.utils.time_utils import utc_now

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token", auto_error=False)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    if expires_delta:
        expire = utc_now() + expires_delta
    else:
        expire = utc_now() + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None


async def get_current_user_id(token: Annotated[Optional[str], Depends(oauth2_scheme)]) -> str:
    """세션 계층이 발급한 Bearer 토큰에서 사용자 ID(sub)를 꺼냅니다."""
    if token is None:
        raise AuthenticationException("Does not have token")

    payload = decode_access_token(token)
    if not payload:
        raise invalid_token_error()

    user_id = payload.get("sub")
    if not user_id:
        raise invalid_token_error()

    return str(user_id)
