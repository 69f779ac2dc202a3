"""
HTTP 요청 로깅 미들웨어

요청마다 ID를 발급해 로그 컨텍스트와 `X-Request-ID` 응답 헤더에 싣습니다.
WebSocket 연결은 BaseHTTPMiddleware를 거치지 않으므로 대상이 아니며,
프로브/메트릭 수집 경로는 로그를 남기지 않습니다.
"""

import time
import uuid
from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from chat_relay.core.logging import get_logger, set_request_context, clear_request_context, log_api_call

logger = get_logger(__name__)

QUIET_PATHS = frozenset({"/metrics", "/health/live", "/health/ready"})


def client_ip(request: Request) -> str:
    """프록시 헤더를 우선으로 클라이언트 IP 추출"""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.headers.get("x-real-ip") or (request.client.host if request.client else "unknown")


class LoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        set_request_context(request_id)
        started = time.perf_counter()

        try:
            response = await call_next(request)

            if request.url.path not in QUIET_PATHS:
                log_api_call(
                    logger,
                    method=request.method,
                    path=request.url.path,
                    status_code=response.status_code,
                    duration_ms=(time.perf_counter() - started) * 1000,
                    client_ip=client_ip(request),
                )

            response.headers["X-Request-ID"] = request_id
            return response

        except Exception as e:
            logger.error(
                f"Request failed: {request.method} {request.url.path}",
                extra={
                    "event_type": "api_error",
                    "path": request.url.path,
                    "error_type": type(e).__name__,
                    "client_ip": client_ip(request),
                },
                exc_info=True
            )
            raise

        finally:
            clear_request_context()
