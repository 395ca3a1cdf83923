"""
System health and sync monitoring API routes
"""

from fastapi import APIRouter
from pydantic import BaseModel
from typing import Optional
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)

# Response models
class SyncStatusResponse(BaseModel):
    current_server: int
    server_url: str
    sample_count: int
    newest_time: int
    last_update: Optional[datetime]
    last_history_fetch: Optional[datetime]
    authenticated: bool
    last_status_message: Optional[str]
    using_saved_history: bool
    tick_count: int
    failed_ticks: int


def _from_ms(value: Optional[float]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)


def create_system_routes(client):
    """Create system monitoring routes"""
    router = APIRouter(prefix="/api/system", tags=["system"])

    @router.get("/sync/status", response_model=SyncStatusResponse)
    async def get_sync_status():
        """Sync engine state: current server, timers and auth"""
        status = client.get_status()
        return SyncStatusResponse(
            current_server=status['current_server'],
            server_url=status['server_url'],
            sample_count=status['sample_count'],
            newest_time=status['newest_time'],
            last_update=_from_ms(status['last_update_time']),
            last_history_fetch=_from_ms(status['last_history_time']),
            authenticated=status['authenticated'],
            last_status_message=status['last_status_message'],
            using_saved_history=status['using_saved_history'],
            tick_count=status['tick_count'],
            failed_ticks=status['failed_ticks']
        )

    @router.get("/health")
    async def system_health():
        """System health check"""
        status = client.get_status()
        connected = client.latest_sample is not None

        return {
            "status": "healthy" if connected else "degraded",
            "heatermeter": {
                "connected": connected,
                "server_url": status['server_url'],
                "sample_count": status['sample_count'],
                "authenticated": status['authenticated']
            },
            "timestamp": datetime.now(timezone.utc).isoformat()
        }

    return router
