"""
구조화된 로깅 시스템

JSON 한 줄 로그로 HTTP 요청과 WebSocket 연결을 추적합니다.
요청 ID, 연결 ID, 사용자 ID는 컨텍스트 변수로 관리되어 해당 흐름에서 남기는
모든 로그에 자동으로 붙습니다.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

from chat_relay.core.config import settings

request_id_var: ContextVar[Optional[str]] = ContextVar('request_id', default=None)
connection_id_var: ContextVar[Optional[str]] = ContextVar('connection_id', default=None)
user_id_var: ContextVar[Optional[str]] = ContextVar('user_id', default=None)

# 로그 레코드에 붙일 추적 정보: {로그 키: 컨텍스트 변수}
_TRACE_CONTEXT: Dict[str, ContextVar] = {
    "request_id": request_id_var,
    "connection_id": connection_id_var,
    "user_id": user_id_var,
}

# LogRecord 기본 속성 (extra로 넘어온 값과 구분)
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}

_NOISY_LOGGERS = ("uvicorn", "sqlalchemy", "aiosqlite")


class StructuredFormatter(logging.Formatter):
    """구조화된 JSON 로그 포매터"""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }

        for key, var in _TRACE_CONTEXT.items():
            value = var.get()
            if value:
                entry[key] = value

        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": self.formatException(record.exc_info),
            }

        extra = {
            key: value for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and not key.startswith('_')
        }
        if extra:
            entry["extra"] = extra

        return json.dumps(entry, ensure_ascii=False, default=str)


def _handler(handler: logging.Handler, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging():
    """
    로깅 시스템 초기화

    - 콘솔: debug 모드에서는 사람이 읽기 쉬운 형식, 그 외에는 JSON
    - 파일 (log_to_file): `relay.log`(INFO 이상), `error.log`(ERROR 이상), 항상 JSON
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if settings.debug else logging.INFO)
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)

    console_formatter = (
        logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        if settings.debug else StructuredFormatter()
    )
    root_logger.addHandler(_handler(logging.StreamHandler(sys.stdout), logging.INFO, console_formatter))

    if settings.log_to_file:
        log_dir = Path(settings.log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        for filename, level in (("relay.log", logging.INFO), ("error.log", logging.ERROR)):
            file_handler = logging.FileHandler(log_dir / filename, encoding='utf-8')
            root_logger.addHandler(_handler(file_handler, level, StructuredFormatter()))

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def set_request_context(request_id: str):
    request_id_var.set(request_id)


def clear_request_context():
    request_id_var.set(None)


def set_connection_context(connection_id: str, user_id: Optional[str] = None):
    """WebSocket 수신 루프의 추적 정보 설정 (인증 후 user_id 추가)"""
    connection_id_var.set(connection_id)
    if user_id:
        user_id_var.set(user_id)


def clear_connection_context():
    connection_id_var.set(None)
    user_id_var.set(None)


def log_api_call(
    logger: logging.Logger,
    method: str,
    path: str,
    status_code: int,
    duration_ms: float,
    **extra
):
    """HTTP 요청 처리 결과 로그 (5xx는 ERROR, 4xx는 WARNING)"""
    if status_code >= 500:
        level = logging.ERROR
    elif status_code >= 400:
        level = logging.WARNING
    else:
        level = logging.INFO

    logger.log(
        level,
        f"{method} {path} - {status_code} ({duration_ms:.1f}ms)",
        extra={
            "event_type": "api_call",
            "method": method,
            "path": path,
            "status_code": status_code,
            "duration_ms": round(duration_ms, 2),
            **extra
        }
    )


def log_websocket_event(
    logger: logging.Logger,
    event: str,
    user_id: Optional[str],
    room_id: Optional[str] = None,
    **extra
):
    """연결 인증, 채팅방 입장/퇴장, 연결 종료 등 릴레이 상태 변화 로그"""
    where = f" in room {room_id}" if room_id else ""
    logger.info(
        f"WebSocket {event}: user {user_id}{where}",
        extra={
            "event_type": "websocket",
            "event": event,
            "room_id": room_id,
            **extra
        }
    )


def log_moderation_event(
    logger: logging.Logger,
    event: str,
    sender_id: str,
    recipient_id: str,
    **extra
):
    """차단 관계로 전달이 거부된 이벤트 로그"""
    logger.warning(
        f"Moderation {event}: {sender_id} -> {recipient_id}",
        extra={
            "event_type": "moderation",
            "event": event,
            "sender_id": sender_id,
            "recipient_id": recipient_id,
            **extra
        }
    )
