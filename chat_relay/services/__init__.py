from .storage import PersistenceGateway, SqlStorage, call_gateway

__all__ = [
    "PersistenceGateway",
    "SqlStorage",
    "call_gateway",
]
