"""
Cron Router

Keep-alive ping for the session database, called by a scheduler so a
free-tier database is not paused for inactivity.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from docs_agent.core.errors import ServiceMisconfigured, SessionStoreError
from docs_agent.core.logging import get_logger
from docs_agent.services.session_store import SessionStore, get_session_store

router = APIRouter()
logger = get_logger(__name__)


@router.get("/keep-alive")
async def keep_alive(store: SessionStore = Depends(get_session_store)):
    try:
        await store.ping()
    except SessionStoreError as e:
        logger.warning(f"[Cron] Ping failed: {e.message}")
        return {"status": "warning", "message": "Database ping failed"}
    except ServiceMisconfigured as e:
        logger.error(f"[Cron] {e.message}")
        return JSONResponse(status_code=500, content={"status": "error", "message": e.message})

    logger.info("[Cron] Ping successful")
    return {
        "status": "ok",
        "message": "Database is alive",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
