from .sql import Base, AsyncSessionLocal, engine, init_db, close_db, check_db_connection


async def check_database_health():
    """Check health of the database connection"""
    db_status = await check_db_connection()

    return {
        "database": db_status,
        "overall": db_status
    }

__all__ = [
    "Base",
    "AsyncSessionLocal",
    "engine",
    "init_db",
    "close_db",
    "check_database_health",
]
