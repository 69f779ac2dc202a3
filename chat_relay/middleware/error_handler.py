import logging
import traceback
from typing import Callable, Optional
from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from sqlalchemy.exc import IntegrityError, OperationalError, DatabaseError
from pydantic import ValidationError as PydanticValidationError

from chat_relay.core.errors import (
    BaseCustomException,
    ValidationError,
    create_error_response,
    create_validation_error_response
)
from chat_relay.core.config import settings

logger = logging.getLogger(__name__)


def error_json(error: str, message: str, status_code: int, details: Optional[dict] = None) -> JSONResponse:
    body = create_error_response(error, message, status_code, details)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def _db_detail(exc: Exception) -> Optional[dict]:
    # 운영 환경에서는 SQL 원문을 응답에 노출하지 않음
    if not settings.debug:
        return None
    return {"detail": str(getattr(exc, "orig", exc))}


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """
    HTTP 라우터 밖으로 전파된 예외를 표준 에러 응답으로 변환합니다.

    - BaseCustomException: 예외가 가진 상태 코드와 본문
    - pydantic ValidationError: 422 + 필드별 검증 에러
    - IntegrityError: 409, 그 외 DB 오류: 503
    - ValueError (저장소 계층의 입력 검증): 400
    - 그 밖의 예외: 500
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)

        except BaseCustomException as e:
            return JSONResponse(status_code=e.status_code, content=e.to_dict())

        except PydanticValidationError as e:
            validation_errors = [
                ValidationError(
                    field=".".join(str(loc) for loc in error["loc"]),
                    message=error["msg"],
                    value=error.get("input")
                )
                for error in e.errors()
            ]
            body = create_validation_error_response("Request validation failed", validation_errors)
            return JSONResponse(status_code=body.status_code, content=body.model_dump(mode="json"))

        except IntegrityError as e:
            return error_json(
                "database_constraint", "Database constraint violation", status.HTTP_409_CONFLICT, _db_detail(e)
            )

        except (OperationalError, DatabaseError) as e:
            logger.error(f"Database error on {request.method} {request.url.path}: {type(e).__name__}")
            return error_json(
                "database_error",
                "Database connection or operation failed",
                status.HTTP_503_SERVICE_UNAVAILABLE,
                _db_detail(e)
            )

        except ValueError as e:
            return error_json("value_error", str(e), status.HTTP_400_BAD_REQUEST)

        except Exception as e:
            logger.error(f"Unhandled exception: {type(e).__name__}: {e}", exc_info=True)
            details = None
            if settings.debug:
                details = {"exception": str(e), "type": type(e).__name__, "traceback": traceback.format_exc()}
            return error_json(
                "internal_server_error", "An unexpected error occurred", status.HTTP_500_INTERNAL_SERVER_ERROR, details
            )


def create_http_exception_handler():
    """HTTPException(직접 발생시킨 것과 FastAPI/Starlette 내부 것 모두)을 표준 형식으로 변환"""

    async def http_exception_handler(request: Request, exc):
        if isinstance(exc, BaseCustomException):
            return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

        if isinstance(exc.detail, str):
            return error_json("http_error", exc.detail, exc.status_code)
        return error_json("http_error", "HTTP error occurred", exc.status_code, {"detail": exc.detail})

    return http_exception_handler
