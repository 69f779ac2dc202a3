import pytest

from chat_relay.services.storage import SqlStorage


class TestBlocking:
    """차단 관계 테스트"""

    @pytest.mark.asyncio
    async def test_is_blocked_either_direction(self, sql_storage: SqlStorage, alice, bob, carol):
        await sql_storage.block_user(alice.id, bob.id)

        assert await sql_storage.is_blocked(alice.id, bob.id) is True
        assert await sql_storage.is_blocked(bob.id, alice.id) is True
        assert await sql_storage.is_blocked(alice.id, carol.id) is False

    @pytest.mark.asyncio
    async def test_block_is_idempotent(self, sql_storage: SqlStorage, alice, bob):
        first = await sql_storage.block_user(alice.id, bob.id)
        second = await sql_storage.block_user(alice.id, bob.id)

        assert first.id == second.id

    @pytest.mark.asyncio
    async def test_cannot_block_self(self, sql_storage: SqlStorage, alice):
        with pytest.raises(ValueError):
            await sql_storage.block_user(alice.id, alice.id)

    @pytest.mark.asyncio
    async def test_unblock(self, sql_storage: SqlStorage, alice, bob):
        await sql_storage.block_user(alice.id, bob.id)
        await sql_storage.unblock_user(alice.id, bob.id)

        assert await sql_storage.is_blocked(bob.id, alice.id) is False


class TestUsers:
    """사용자/아바타 조회 테스트"""

    @pytest.mark.asyncio
    async def test_avatar_resolution(self, sql_storage: SqlStorage, alice):
        user = await sql_storage.get_user(alice.id)
        item = await sql_storage.get_store_item_by_id(user.active_avatar_id)

        assert item.image_url == "https://cdn.example.com/cat.png"

    @pytest.mark.asyncio
    async def test_missing_user(self, sql_storage: SqlStorage):
        assert await sql_storage.get_user("missing") is None
        assert await sql_storage.get_store_item_by_id("missing") is None

    @pytest.mark.asyncio
    async def test_update_avatar(self, sql_storage: SqlStorage, bob):
        item = await sql_storage.create_store_item("Dog", "https://cdn.example.com/dog.png")

        await sql_storage.update_user_avatar(bob.id, item.id)

        user = await sql_storage.get_user(bob.id)
        assert user.active_avatar_id == item.id


class TestChatRooms:
    """채팅방과 메시지 히스토리 테스트"""

    @pytest.mark.asyncio
    async def test_public_rooms_only(self, sql_storage: SqlStorage, alice):
        public = await sql_storage.create_chat_room("lobby", alice.id)
        private = await sql_storage.create_chat_room("secret", alice.id, is_public=False)

        public_ids = [room.id for room in await sql_storage.get_chat_rooms()]
        all_ids = [room.id for room in await sql_storage.get_chat_rooms(include_private=True)]

        assert public_ids == [public.id]
        assert set(all_ids) == {public.id, private.id}

    @pytest.mark.asyncio
    async def test_add_chat_message_assigns_id_and_timestamp(self, sql_storage: SqlStorage, alice):
        room = await sql_storage.create_chat_room("lobby", alice.id)

        message = await sql_storage.add_chat_message(room.id, alice.id, "hi")

        assert message.id
        assert message.created_at is not None
        assert message.room_id == room.id

    @pytest.mark.asyncio
    async def test_room_history_oldest_first_with_sender_info(self, sql_storage: SqlStorage, alice, bob):
        room = await sql_storage.create_chat_room("lobby", alice.id)
        for n in range(3):
            await sql_storage.add_chat_message(room.id, alice.id if n % 2 == 0 else bob.id, f"m{n}")

        messages = await sql_storage.get_room_messages(room.id)

        assert [m.content for m in messages] == ["m0", "m1", "m2"]
        assert messages[0].username == "alice"
        assert messages[0].avatar_image_url == "https://cdn.example.com/cat.png"
        assert messages[1].username == "bob"
        assert messages[1].avatar_image_url is None

    @pytest.mark.asyncio
    async def test_room_history_limit_keeps_latest(self, sql_storage: SqlStorage, alice):
        room = await sql_storage.create_chat_room("lobby", alice.id)
        for n in range(5):
            await sql_storage.add_chat_message(room.id, alice.id, f"m{n}")

        messages = await sql_storage.get_room_messages(room.id, limit=2)

        assert [m.content for m in messages] == ["m3", "m4"]

    @pytest.mark.asyncio
    async def test_unknown_sender_fallback(self, sql_storage: SqlStorage, alice):
        room = await sql_storage.create_chat_room("lobby", alice.id)
        await sql_storage.add_chat_message(room.id, "deleted-user", "ghost")

        messages = await sql_storage.get_room_messages(room.id)

        assert messages[0].username == "Unknown"


class TestConversations:
    """1:1 대화 테스트"""

    @pytest.mark.asyncio
    async def test_get_or_create_is_order_independent(self, sql_storage: SqlStorage, alice, bob):
        first = await sql_storage.get_or_create_conversation(alice.id, bob.id)
        second = await sql_storage.get_or_create_conversation(bob.id, alice.id)

        assert first.id == second.id

    @pytest.mark.asyncio
    async def test_cannot_converse_with_self(self, sql_storage: SqlStorage, alice):
        with pytest.raises(ValueError):
            await sql_storage.get_or_create_conversation(alice.id, alice.id)

    @pytest.mark.asyncio
    async def test_add_private_message_updates_last_message_at(self, sql_storage: SqlStorage, alice, bob):
        conversation = await sql_storage.get_or_create_conversation(alice.id, bob.id)

        message = await sql_storage.add_private_message(conversation.id, bob.id, "hey")

        refreshed = await sql_storage.get_conversation(conversation.id)
        assert refreshed.last_message_at == message.created_at
        history = await sql_storage.get_conversation_messages(conversation.id)
        assert [(m.sender_id, m.content, m.username) for m in history] == [(bob.id, "hey", "bob")]

    @pytest.mark.asyncio
    async def test_non_participant_cannot_send(self, sql_storage: SqlStorage, alice, bob, carol):
        conversation = await sql_storage.get_or_create_conversation(alice.id, bob.id)

        with pytest.raises(ValueError):
            await sql_storage.add_private_message(conversation.id, carol.id, "hi")

    @pytest.mark.asyncio
    async def test_missing_conversation(self, sql_storage: SqlStorage, alice):
        with pytest.raises(ValueError):
            await sql_storage.add_private_message("missing", alice.id, "hi")

    @pytest.mark.asyncio
    async def test_conversations_for_user(self, sql_storage: SqlStorage, alice, bob, carol):
        with_bob = await sql_storage.get_or_create_conversation(alice.id, bob.id)
        with_carol = await sql_storage.get_or_create_conversation(carol.id, alice.id)
        await sql_storage.get_or_create_conversation(bob.id, carol.id)
        await sql_storage.add_private_message(with_bob.id, bob.id, "latest")

        conversations = await sql_storage.get_conversations_for_user(alice.id)

        assert [c.id for c in conversations] == [with_bob.id, with_carol.id]
