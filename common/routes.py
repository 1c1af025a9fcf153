"""Service status endpoint."""
from datetime import datetime, timezone

from fastapi import APIRouter

from config import Config
from generation.services import current_generator
from utils.logger import get_logger

logger = get_logger("health")
router = APIRouter(prefix="/api", tags=["health"])


def _presence(value: str) -> str:
    return "set" if value else "missing"


@router.get("/health")
def health():
    """
    Process status. Reports whether required settings are present without
    echoing them, and whether the Runware socket is currently open.
    """
    generator = current_generator()
    env_status = {
        "RUNWARE_API_KEY": _presence(Config.RUNWARE_API_KEY),
        "TELEGRAM_API_TOKEN": _presence(Config.TELEGRAM_API_TOKEN),
        "WEBAPP_URL": _presence(Config.WEBAPP_URL),
    }
    logger.debug(f"Health check, env status: {env_status}")
    return {
        "status": "ok",
        "version": Config.VERSION,
        "environment": Config.ENVIRONMENT,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "transport": Config.VENDOR_TRANSPORT,
        "connected": bool(generator and generator.connected),
        "env_status": env_status,
    }
