import os

# 앱 설정은 import 시점에 읽히므로 chat_relay import 전에 테스트 환경을 지정
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("LOG_TO_FILE", "false")


import json
import pytest
import pytest_asyncio
from typing import AsyncGenerator, Optional
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

import chat_relay.models  # noqa: F401
from chat_relay.core.config import Settings
from chat_relay.database.sql import Base
from chat_relay.main import app
from chat_relay.services.storage import SqlStorage
from chat_relay.utils.auth import create_access_token
from chat_relay.websockets.state import RelayState
from tests.fakes import FakeStorage, FakeWebSocket


# 테스트용 인메모리 SQLite 데이터베이스 설정
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def relay_settings() -> Settings:
    """짧은 저장소 타임아웃을 사용하는 테스트 설정"""
    return Settings(gateway_timeout=0.2, max_message_length=100, log_to_file=False)


@pytest.fixture
def fake_storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def relay(fake_storage, relay_settings) -> RelayState:
    """테스트마다 독립된 릴레이 상태"""
    return RelayState(fake_storage, relay_settings)


@pytest.fixture
def connect(relay):
    """
    연결을 열고 선택적으로 인증까지 마친 뒤 (connection, websocket)을 반환하는 헬퍼

    인증 과정에서 받은 auth_success 프레임은 지워집니다.
    """
    async def _connect(user_id: Optional[str] = None, username: Optional[str] = None, room_id: Optional[str] = None):
        websocket = FakeWebSocket()
        connection = relay.open(websocket)
        if user_id is not None:
            await relay.handle_text(
                connection,
                json.dumps({"type": "auth", "userId": user_id, "username": username or user_id})
            )
        if room_id is not None:
            await relay.handle_text(connection, json.dumps({"type": "join_room", "roomId": room_id}))
        websocket.clear()
        return connection, websocket

    return _connect


@pytest_asyncio.fixture
async def test_engine():
    """테스트용 비동기 데이터베이스 엔진 생성"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        echo=False
    )

    # 테이블 생성
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # 정리
    await engine.dispose()


@pytest_asyncio.fixture
async def sql_storage(test_engine) -> SqlStorage:
    """테스트 엔진에 연결된 SQL 저장소"""
    session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    return SqlStorage(session_factory)


@pytest_asyncio.fixture
async def client(sql_storage, relay_settings) -> AsyncGenerator[AsyncClient, None]:
    """테스트용 비동기 HTTP 클라이언트"""
    app.state.relay = RelayState(sql_storage, relay_settings)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    del app.state.relay


@pytest_asyncio.fixture
async def alice(sql_storage):
    """테스트용 사용자 alice"""
    avatar = await sql_storage.create_store_item("Cat", "https://cdn.example.com/cat.png", price=100)
    return await sql_storage.create_user("alice", active_avatar_id=avatar.id)


@pytest_asyncio.fixture
async def bob(sql_storage):
    """테스트용 사용자 bob"""
    return await sql_storage.create_user("bob")


@pytest_asyncio.fixture
async def carol(sql_storage):
    """테스트용 사용자 carol"""
    return await sql_storage.create_user("carol")


@pytest.fixture
def auth_headers():
    """사용자 ID로 Bearer 인증 헤더를 만드는 헬퍼"""
    def _headers(user_id: str) -> dict:
        token = create_access_token(data={"sub": user_id})
        return {"Authorization": f"Bearer {token}"}

    return _headers
