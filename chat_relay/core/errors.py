"""
예외 계층

- HTTP API: `BaseCustomException` 하위 클래스는 표준 에러 응답(`ErrorResponse`)으로 변환됩니다.
- WebSocket 릴레이: `RelayError` 하위 클래스는 error 프레임으로 해당 연결에만 전달됩니다.

두 계층 모두 클래스 속성 `error`(분류 코드)와 `default_message`를 가집니다.
"""

from typing import Optional, Dict, Any, List
from fastapi import HTTPException, status
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """표준 에러 응답 모델"""
    error: str
    message: str
    details: Optional[Dict[str, Any]] = None
    status_code: int


class ValidationError(BaseModel):
    """검증 에러 세부사항"""
    field: str
    message: str
    value: Optional[Any] = None


class ValidationErrorResponse(BaseModel):
    error: str = "validation_error"
    message: str
    validation_errors: List[ValidationError]
    status_code: int


# =============================================================================
# HTTP API 예외
# =============================================================================

class BaseCustomException(HTTPException):
    """HTTP 에러 응답으로 변환되는 예외의 기본 클래스"""
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "internal_server_error"
    default_message = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(status_code=self.http_status, detail=self.to_dict())

    def to_dict(self) -> Dict[str, Any]:
        return ErrorResponse(
            error=self.error,
            message=self.message,
            details=self.details,
            status_code=self.http_status
        ).model_dump()


class ValidationException(BaseCustomException):
    """요청 값은 형식상 올바르지만 처리할 수 없는 경우 (예: 자기 자신과의 대화)"""
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    error = "validation_error"
    default_message = "Validation failed"

    def __init__(
        self,
        message: Optional[str] = None,
        validation_errors: Optional[List[ValidationError]] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.validation_errors = validation_errors or []
        super().__init__(message, details)

    def to_dict(self) -> Dict[str, Any]:
        return create_validation_error_response(self.message, self.validation_errors, self.http_status).model_dump()


class AuthenticationException(BaseCustomException):
    """Bearer 토큰이 없거나 유효하지 않음"""
    http_status = status.HTTP_401_UNAUTHORIZED
    error = "authentication_error"
    default_message = "Authentication failed"


class AuthorizationException(BaseCustomException):
    """대화 참여자가 아니거나 차단 관계인 사용자"""
    http_status = status.HTTP_403_FORBIDDEN
    error = "authorization_error"
    default_message = "Access denied"


class ResourceNotFoundException(BaseCustomException):
    http_status = status.HTTP_404_NOT_FOUND
    error = "resource_not_found"

    def __init__(
        self,
        resource: str = "Resource",
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message or f"{resource} not found", details or {"resource": resource})


# =============================================================================
# 실시간 릴레이 예외 클래스들
# =============================================================================

class RelayError(Exception):
    """
    WebSocket 프레임 처리 중 발생하는 예외의 기본 클래스

    `message`는 그대로 error 프레임에 담겨 해당 연결에만 전달됩니다.
    """
    error = "relay_error"
    default_message = "request failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ProtocolError(RelayError):
    """잘못된 형식이거나 순서에 맞지 않는 프레임"""
    error = "protocol_error"
    default_message = "invalid frame"


class AuthRequiredError(RelayError):
    """인증 전에 시도된 작업"""
    error = "auth_required"
    default_message = "not authenticated"


class NotInRoomError(RelayError):
    """채팅방에 입장하지 않은 상태에서 시도된 채팅방 작업"""
    error = "not_in_room"
    default_message = "not in a room"


class ModerationError(RelayError):
    """차단 관계인 사용자에게 보내려는 개인 메시지"""
    error = "moderation"
    default_message = "cannot message this user"


class PersistenceError(RelayError):
    """저장소 호출 실패 또는 시간 초과"""
    error = "persistence_error"
    default_message = "message could not be delivered"


# =============================================================================
# 에러 헬퍼 함수들
# =============================================================================

def create_error_response(
    error: str,
    message: str,
    status_code: int,
    details: Optional[Dict[str, Any]] = None
) -> ErrorResponse:
    return ErrorResponse(error=error, message=message, status_code=status_code, details=details)


def create_validation_error_response(
    message: str,
    validation_errors: List[ValidationError],
    status_code: int = status.HTTP_422_UNPROCESSABLE_ENTITY
) -> ValidationErrorResponse:
    return ValidationErrorResponse(message=message, validation_errors=validation_errors, status_code=status_code)


def invalid_token_error() -> AuthenticationException:
    return AuthenticationException("Invalid or expired token")
