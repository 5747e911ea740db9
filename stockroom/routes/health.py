from fastapi import APIRouter, Depends, Request
from sqlalchemy import text

from stockroom.database import async_session
from stockroom.dependencies import get_connection_manager
from stockroom.services.websockets.manager import ConnectionManager

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Basic health check"""
    return {"status": "healthy", "service": "Stockroom Inventory API"}


@router.get("/health/db")
async def database_health():
    """Check database connectivity"""
    try:
        async with async_session() as session:
            await session.execute(text("SELECT 1"))
        return {"status": "healthy", "database": "connected"}
    except Exception as e:
        return {"status": "unhealthy", "database": "error", "error": str(e)}


@router.get("/health/realtime")
async def realtime_health(
    request: Request,
    manager: ConnectionManager = Depends(get_connection_manager),
):
    """Connected clients and change feed state"""
    listener = getattr(request.app.state, "change_feed", None)
    return {
        "connections": manager.connection_count,
        "change_feed": listener.status() if listener else {"connected": False, "enabled": False},
    }
