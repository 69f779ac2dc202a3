from .store_items import StoreItem
from .users import User
from .block_users import BlockUser
from .chat_rooms import ChatRoom
from .conversations import PrivateConversation
from .messages import ChatMessage, PrivateMessage

__all__ = [
    "StoreItem",
    "User",
    "BlockUser",
    "ChatRoom",
    "PrivateConversation",
    "ChatMessage",
    "PrivateMessage",
]
