from typing import List
from fastapi import APIRouter, Depends, Query, status

from chat_relay.api.dependencies import get_storage
from chat_relay.core.errors import ResourceNotFoundException
from chat_relay.schemas.chat_room import ChatRoomCreate, ChatRoomResponse
from chat_relay.schemas.message import ChatMessageList
from chat_relay.services.storage import SqlStorage
from chat_relay.utils.auth import get_current_user_id

router = APIRouter(prefix="/api/chat-rooms", tags=["Chat Rooms"])


@router.get("", response_model=List[ChatRoomResponse])
async def get_chat_rooms(
    current_user_id: str = Depends(get_current_user_id),
    storage: SqlStorage = Depends(get_storage)
):
    """공개 채팅방 목록 조회"""
    return await storage.get_chat_rooms()


@router.post("", response_model=ChatRoomResponse, status_code=status.HTTP_201_CREATED)
async def create_chat_room(
    room_data: ChatRoomCreate,
    current_user_id: str = Depends(get_current_user_id),
    storage: SqlStorage = Depends(get_storage)
):
    """
    채팅방 생성

    - **name**: 채팅방 이름
    - **description**: 채팅방 설명 (선택)
    - **isPublic**: 공개 여부 (기본값 true)
    """
    return await storage.create_chat_room(
        name=room_data.name,
        created_by=current_user_id,
        description=room_data.description,
        is_public=room_data.is_public
    )


@router.get("/{room_id}/messages", response_model=ChatMessageList)
async def get_room_messages(
    room_id: str,
    limit: int = Query(50, ge=1, le=100, description="조회할 메시지 수"),
    skip: int = Query(0, ge=0, description="건너뛸 메시지 수"),
    current_user_id: str = Depends(get_current_user_id),
    storage: SqlStorage = Depends(get_storage)
):
    """
    채팅방 메시지 히스토리 조회

    실시간 프레임과 동시에 도착할 수 있으므로 클라이언트는 메시지 ID로 중복을 제거해야 합니다.
    """
    room = await storage.get_chat_room(room_id)
    if not room:
        raise ResourceNotFoundException("Chat room")

    messages = await storage.get_room_messages(room_id, limit=limit, skip=skip)
    return ChatMessageList(messages=messages, limit=limit, skip=skip)
