"""
Health Router
"""
from datetime import datetime

from fastapi import APIRouter, Depends

from festboard import __version__
from festboard.config.settings import settings
from festboard.realtime.fanout_bus import FanoutBus, get_fanout_bus

router = APIRouter(tags=["Health"])


def _status(bus: FanoutBus) -> dict:
    return {
        "status": "healthy",
        "environment": settings.ENVIRONMENT,
        "version": __version__,
        "subscribers": bus.subscriber_count,
        "timestamp": datetime.utcnow().isoformat() + "Z",
    }


@router.get("/health")
async def health_check(bus: FanoutBus = Depends(get_fanout_bus)):
    return _status(bus)


@router.get("/api/keepalive")
async def keepalive(bus: FanoutBus = Depends(get_fanout_bus)):
    """Polled by hosting platforms to keep the instance warm."""
    return _status(bus)
