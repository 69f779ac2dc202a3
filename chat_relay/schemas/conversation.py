from datetime import datetime
from pydantic import Field, ConfigDict
from pydantic.alias_generators import to_camel

from chat_relay.schemas.base import CamelModel


class ConversationCreate(CamelModel):
    """1:1 대화 생성(또는 조회) 스키마"""
    other_user_id: str = Field(..., min_length=1, description="대화 상대 ID")


class ConversationResponse(CamelModel):
    """1:1 대화 응답 스키마"""
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    user1_id: str
    user2_id: str
    last_message_at: datetime
