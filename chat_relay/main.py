"""
Chat Relay - FastAPI Application

채팅방/1:1 대화 실시간 메시지 릴레이와 메시지 히스토리 조회를 담당합니다.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.exceptions import HTTPException as StarletteHTTPException

import chat_relay.api as api_package
from chat_relay.api import include_routers
from chat_relay.core.config import settings
from chat_relay.core.logging import setup_logging, get_logger
from chat_relay.database import AsyncSessionLocal, init_db, close_db
from chat_relay.middleware import ErrorHandlerMiddleware, LoggingMiddleware, create_http_exception_handler
from chat_relay.services.storage import SqlStorage
from chat_relay.websockets.state import RelayState

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle management"""
    # Startup
    setup_logging()
    logger.info(f"{settings.app_name} starting up...")
    await init_db()
    app.state.relay = RelayState(SqlStorage(AsyncSessionLocal), settings)

    yield

    # Shutdown
    logger.info(f"{settings.app_name} shutting down...")
    await app.state.relay.shutdown()
    await close_db()


app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    lifespan=lifespan
)

app.add_middleware(ErrorHandlerMiddleware)
app.add_middleware(LoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_exception_handler(StarletteHTTPException, create_http_exception_handler())

# Include routers
include_routers(app, "api", api_package.__path__)

# Prometheus metrics
Instrumentator().instrument(app).expose(app)


@app.get("/")
async def root():
    return {
        "service": settings.app_name,
        "version": settings.version,
        "status": "running"
    }
