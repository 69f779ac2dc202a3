import asyncio
import logging
from typing import Awaitable, List, Optional, Protocol, TypeVar

from sqlalchemy import select, and_, or_, delete
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chat_relay.core.errors import PersistenceError
from chat_relay.models import (
    User,
    StoreItem,
    BlockUser,
    ChatRoom,
    ChatMessage,
    PrivateConversation,
    PrivateMessage,
)
from chat_relay.schemas.message import ChatMessageWithUser, PrivateMessageWithUser
from chat_relay.utils.time_utils import utc_now

logger = logging.getLogger(__name__)

T = TypeVar("T")

UNKNOWN_USERNAME = "Unknown"


class PersistenceGateway(Protocol):
    """실시간 릴레이가 사용하는 저장소 인터페이스"""

    async def get_user(self, user_id: str) -> Optional[User]: ...

    async def get_store_item_by_id(self, item_id: str) -> Optional[StoreItem]: ...

    async def is_blocked(self, user_a: str, user_b: str) -> bool: ...

    async def get_conversation(self, conversation_id: str) -> Optional[PrivateConversation]: ...

    async def add_chat_message(self, room_id: str, user_id: str, content: str) -> ChatMessage: ...

    async def add_private_message(self, conversation_id: str, sender_id: str, content: str) -> PrivateMessage: ...


class SqlStorage:
    """SQLAlchemy 기반 저장소 서비스"""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    # -------------------------------------------------------------------------
    # Users / store items
    # -------------------------------------------------------------------------

    async def get_user(self, user_id: str) -> Optional[User]:
        async with self.session_factory() as db:
            return await db.get(User, user_id)

    async def create_user(self, username: str, active_avatar_id: Optional[str] = None) -> User:
        async with self.session_factory() as db:
            user = User(username=username, active_avatar_id=active_avatar_id)
            db.add(user)
            await db.commit()
            await db.refresh(user)
            return user

    async def update_user_avatar(self, user_id: str, avatar_id: Optional[str]) -> None:
        async with self.session_factory() as db:
            user = await db.get(User, user_id)
            if user is None:
                raise ValueError("User not found")
            user.active_avatar_id = avatar_id
            await db.commit()

    async def get_store_item_by_id(self, item_id: str) -> Optional[StoreItem]:
        async with self.session_factory() as db:
            return await db.get(StoreItem, item_id)

    async def create_store_item(self, name: str, image_url: str, price: int = 0) -> StoreItem:
        async with self.session_factory() as db:
            item = StoreItem(name=name, image_url=image_url, price=price)
            db.add(item)
            await db.commit()
            await db.refresh(item)
            return item

    # -------------------------------------------------------------------------
    # Block relationships
    # -------------------------------------------------------------------------

    async def is_blocked(self, user_a: str, user_b: str) -> bool:
        """
        두 사용자 사이에 차단 관계가 있는지 확인합니다 (양방향).

        Args:
            user_a: 첫 번째 사용자 ID
            user_b: 두 번째 사용자 ID

        Returns:
            bool: 어느 한쪽이라도 상대를 차단했으면 True
        """
        query = select(BlockUser.id).where(
            or_(
                and_(BlockUser.user_id == user_a, BlockUser.blocked_user_id == user_b),
                and_(BlockUser.user_id == user_b, BlockUser.blocked_user_id == user_a)
            )
        ).limit(1)

        async with self.session_factory() as db:
            result = await db.execute(query)
            return result.scalar_one_or_none() is not None

    async def block_user(self, user_id: str, blocked_user_id: str) -> BlockUser:
        if user_id == blocked_user_id:
            raise ValueError("Cannot block yourself")

        async with self.session_factory() as db:
            existing = await db.execute(
                select(BlockUser).where(
                    BlockUser.user_id == user_id,
                    BlockUser.blocked_user_id == blocked_user_id
                )
            )
            block = existing.scalar_one_or_none()
            if block:
                return block

            block = BlockUser(user_id=user_id, blocked_user_id=blocked_user_id)
            db.add(block)
            await db.commit()
            await db.refresh(block)
            return block

    async def unblock_user(self, user_id: str, blocked_user_id: str) -> None:
        async with self.session_factory() as db:
            await db.execute(
                delete(BlockUser).where(
                    BlockUser.user_id == user_id,
                    BlockUser.blocked_user_id == blocked_user_id
                )
            )
            await db.commit()

    # -------------------------------------------------------------------------
    # Chat rooms
    # -------------------------------------------------------------------------

    async def create_chat_room(
        self,
        name: str,
        created_by: str,
        description: Optional[str] = None,
        is_public: bool = True
    ) -> ChatRoom:
        async with self.session_factory() as db:
            room = ChatRoom(name=name, description=description, is_public=is_public, created_by=created_by)
            db.add(room)
            await db.commit()
            await db.refresh(room)
            return room

    async def get_chat_room(self, room_id: str) -> Optional[ChatRoom]:
        async with self.session_factory() as db:
            return await db.get(ChatRoom, room_id)

    async def get_chat_rooms(self, include_private: bool = False) -> List[ChatRoom]:
        query = select(ChatRoom).order_by(ChatRoom.created_at)
        if not include_private:
            query = query.where(ChatRoom.is_public.is_(True))

        async with self.session_factory() as db:
            result = await db.execute(query)
            return list(result.scalars().all())

    async def add_chat_message(self, room_id: str, user_id: str, content: str) -> ChatMessage:
        async with self.session_factory() as db:
            message = ChatMessage(
                room_id=room_id,
                user_id=user_id,
                content=content,
                created_at=utc_now()
            )
            db.add(message)
            await db.commit()
            await db.refresh(message)
            return message

    async def get_room_messages(self, room_id: str, limit: int = 50, skip: int = 0) -> List[ChatMessageWithUser]:
        """
        채팅방의 최근 메시지를 발신자 정보와 함께 조회합니다.

        최신 `limit`개를 가져와 오래된 순으로 반환합니다.
        """
        query = (
            select(ChatMessage, User.username, StoreItem.image_url)
            .outerjoin(User, User.id == ChatMessage.user_id)
            .outerjoin(StoreItem, StoreItem.id == User.active_avatar_id)
            .where(ChatMessage.room_id == room_id)
            .order_by(ChatMessage.created_at.desc())
            .offset(skip)
            .limit(limit)
        )

        async with self.session_factory() as db:
            result = await db.execute(query)
            rows = result.all()

        return [
            ChatMessageWithUser.from_message(message, username or UNKNOWN_USERNAME, image_url)
            for message, username, image_url in reversed(rows)
        ]

    # -------------------------------------------------------------------------
    # Private conversations
    # -------------------------------------------------------------------------

    @staticmethod
    async def _find_conversation(db: AsyncSession, user_id: str, other_user_id: str) -> Optional[PrivateConversation]:
        query = select(PrivateConversation).where(
            or_(
                and_(PrivateConversation.user1_id == user_id, PrivateConversation.user2_id == other_user_id),
                and_(PrivateConversation.user1_id == other_user_id, PrivateConversation.user2_id == user_id)
            )
        )
        result = await db.execute(query)
        return result.scalars().first()

    async def get_or_create_conversation(self, user_id: str, other_user_id: str) -> PrivateConversation:
        if user_id == other_user_id:
            raise ValueError("Cannot start a conversation with yourself")

        async with self.session_factory() as db:
            conversation = await self._find_conversation(db, user_id, other_user_id)
            if conversation:
                return conversation

            conversation = PrivateConversation(
                user1_id=user_id,
                user2_id=other_user_id,
                last_message_at=utc_now()
            )
            db.add(conversation)
            await db.commit()
            await db.refresh(conversation)
            return conversation

    async def get_conversation(self, conversation_id: str) -> Optional[PrivateConversation]:
        async with self.session_factory() as db:
            return await db.get(PrivateConversation, conversation_id)

    async def get_conversations_for_user(self, user_id: str) -> List[PrivateConversation]:
        query = select(PrivateConversation).where(
            or_(PrivateConversation.user1_id == user_id, PrivateConversation.user2_id == user_id)
        ).order_by(PrivateConversation.last_message_at.desc())

        async with self.session_factory() as db:
            result = await db.execute(query)
            return list(result.scalars().all())

    async def add_private_message(self, conversation_id: str, sender_id: str, content: str) -> PrivateMessage:
        """
        1:1 메시지를 저장하고 대화의 마지막 메시지 시각을 갱신합니다.

        Raises:
            ValueError: 대화가 없거나 발신자가 대화 참여자가 아닌 경우
        """
        async with self.session_factory() as db:
            conversation = await db.get(PrivateConversation, conversation_id)
            if conversation is None:
                raise ValueError("Conversation not found")
            if not conversation.has_participant(sender_id):
                raise ValueError("Sender is not a participant of this conversation")

            now = utc_now()
            message = PrivateMessage(
                conversation_id=conversation_id,
                sender_id=sender_id,
                content=content,
                created_at=now
            )
            db.add(message)
            conversation.last_message_at = now
            await db.commit()
            await db.refresh(message)
            return message

    async def get_conversation_messages(
        self,
        conversation_id: str,
        limit: int = 50,
        skip: int = 0
    ) -> List[PrivateMessageWithUser]:
        query = (
            select(PrivateMessage, User.username, StoreItem.image_url)
            .outerjoin(User, User.id == PrivateMessage.sender_id)
            .outerjoin(StoreItem, StoreItem.id == User.active_avatar_id)
            .where(PrivateMessage.conversation_id == conversation_id)
            .order_by(PrivateMessage.created_at.desc())
            .offset(skip)
            .limit(limit)
        )

        async with self.session_factory() as db:
            result = await db.execute(query)
            rows = result.all()

        return [
            PrivateMessageWithUser.from_message(message, username or UNKNOWN_USERNAME, image_url)
            for message, username, image_url in reversed(rows)
        ]


async def call_gateway(awaitable: Awaitable[T], timeout: float, operation: str) -> T:
    """
    저장소 호출을 시간 제한과 함께 실행합니다.

    Raises:
        PersistenceError: 호출이 실패했거나 `timeout`초 안에 끝나지 않은 경우
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError:
        logger.error(f"Persistence call '{operation}' timed out after {timeout}s")
        raise PersistenceError()
    except Exception as e:
        logger.error(f"Persistence call '{operation}' failed: {e}", exc_info=True)
        raise PersistenceError()
