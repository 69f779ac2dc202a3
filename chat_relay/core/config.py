from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

load_dotenv()  # .env 파일 로드


class Settings(BaseSettings):
    app_name: str = "chat-relay"
    version: str = "1.0.0"

    database_url: str = "sqlite+aiosqlite:///./chat_relay.db"
    secret_key: str = "change-me"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60
    debug: bool = False
    cors_origins: List[str] = ["http://localhost:3000"]

    # 실시간 릴레이
    gateway_timeout: float = 5.0  # 저장소 호출 최대 대기 시간(초)
    send_timeout: float = 5.0  # 연결 하나에 대한 송신 최대 대기 시간(초)
    max_message_length: int = 2000
    require_ws_token: bool = False

    # 로깅
    log_dir: str = "logs"
    log_to_file: bool = True

    model_config = SettingsConfigDict(env_file=".env")


settings = Settings()
