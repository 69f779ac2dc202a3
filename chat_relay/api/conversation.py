from typing import List
from fastapi import APIRouter, Depends, Query

from chat_relay.api.dependencies import get_storage
from chat_relay.core.errors import AuthorizationException, ResourceNotFoundException, ValidationException
from chat_relay.schemas.conversation import ConversationCreate, ConversationResponse
from chat_relay.schemas.message import PrivateMessageList
from chat_relay.services.storage import SqlStorage
from chat_relay.utils.auth import get_current_user_id

router = APIRouter(prefix="/api/conversations", tags=["Conversations"])


@router.get("", response_model=List[ConversationResponse])
async def get_conversations(
    current_user_id: str = Depends(get_current_user_id),
    storage: SqlStorage = Depends(get_storage)
):
    """내가 참여한 1:1 대화 목록 (최근 메시지 순)"""
    return await storage.get_conversations_for_user(current_user_id)


@router.post("", response_model=ConversationResponse)
async def get_or_create_conversation(
    data: ConversationCreate,
    current_user_id: str = Depends(get_current_user_id),
    storage: SqlStorage = Depends(get_storage)
):
    """
    1:1 대화 생성

    두 사용자 간에 기존 대화가 있으면 기존 대화를 반환합니다.
    차단 관계인 사용자와는 대화를 시작할 수 없습니다.
    """
    if data.other_user_id == current_user_id:
        raise ValidationException("Cannot start a conversation with yourself")

    other_user = await storage.get_user(data.other_user_id)
    if not other_user:
        raise ResourceNotFoundException("User", details={"user_id": data.other_user_id})

    if await storage.is_blocked(current_user_id, data.other_user_id):
        raise AuthorizationException("Cannot message this user")

    return await storage.get_or_create_conversation(current_user_id, data.other_user_id)


@router.get("/{conversation_id}/messages", response_model=PrivateMessageList)
async def get_conversation_messages(
    conversation_id: str,
    limit: int = Query(50, ge=1, le=100, description="조회할 메시지 수"),
    skip: int = Query(0, ge=0, description="건너뛸 메시지 수"),
    current_user_id: str = Depends(get_current_user_id),
    storage: SqlStorage = Depends(get_storage)
):
    """1:1 대화 메시지 히스토리 조회 (참여자만 가능)"""
    conversation = await storage.get_conversation(conversation_id)
    if not conversation:
        raise ResourceNotFoundException("Conversation")

    if not conversation.has_participant(current_user_id):
        raise AuthorizationException("You are not a participant of this conversation")

    messages = await storage.get_conversation_messages(conversation_id, limit=limit, skip=skip)
    return PrivateMessageList(messages=messages, limit=limit, skip=skip)
