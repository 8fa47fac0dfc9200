"""Health and runtime configuration routes."""

import logging
from datetime import datetime, timezone
from typing import Literal

from fastapi import APIRouter
from pydantic import BaseModel

from .. import status_store
from ..logging_config import get_logger, set_log_level

logger = get_logger(__name__, namespace='api')

router = APIRouter(prefix="/api", tags=["system"])


class LogLevelRequest(BaseModel):
    """Request model for changing the log level at runtime."""

    level: Literal['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


@router.get("/health")
def health():
    """Liveness check."""
    db_path = status_store.DB_PATH
    return {
        "status": "ok",
        "db_path": str(db_path),
        "db_exists": db_path.exists(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.post("/log-level")
def change_log_level(request: LogLevelRequest):
    """Change the log level of this process."""
    applied = set_log_level(request.level)
    logger.info("Log level set to %s", request.level)
    return {"level": logging.getLevelName(applied)}
