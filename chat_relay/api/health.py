from fastapi import APIRouter, HTTPException, Request

from chat_relay.core.config import settings
from chat_relay.database import check_database_health
from chat_relay.utils.time_utils import utc_now

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check(request: Request):
    """
    서비스 상태 조회

    데이터베이스 연결 여부와 함께 현재 릴레이의 연결 수, 활성 채팅방 수를 보여줍니다.
    """
    db_health = await check_database_health()
    relay = getattr(request.app.state, "relay", None)
    if relay is None:
        raise HTTPException(status_code=503, detail="Relay not initialized")

    return {
        "status": "healthy" if db_health["overall"] else "unhealthy",
        "service": settings.app_name,
        "version": settings.version,
        "timestamp": utc_now(),
        "databases": {
            "database": "connected" if db_health["database"] else "disconnected"
        },
        "relay": {
            "connections": len(relay.registry),
            "online_users": len(relay.registry.online_user_ids()),
            "active_rooms": len(relay.rooms)
        }
    }


@router.get("/health/ready")
async def readiness_check():
    """Kubernetes readiness probe: 데이터베이스에 연결할 수 있어야 트래픽을 받음"""
    db_health = await check_database_health()
    if not db_health["overall"]:
        raise HTTPException(status_code=503, detail="Service not ready - database connection failed")
    return {"status": "ready"}


@router.get("/health/live")
async def liveness_check():
    """Kubernetes liveness probe"""
    return {"status": "alive", "timestamp": utc_now()}
