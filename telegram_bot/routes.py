"""Telegram bot configuration and webhook routes."""
from typing import Any, Callable, Dict, Optional

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import PlainTextResponse

from config import Config
from common.error_messages import ErrorCode, get_error_response
from common.exceptions import ConfigurationError, RelayError, TelegramAPIError
from telegram_bot.client import TelegramClient
from telegram_bot.services import configure_bot, get_bot_status, handle_update
from utils.logger import get_logger

logger = get_logger("telegram")
router = APIRouter(prefix="/api", tags=["telegram"])


TelegramClientFactory = Callable[[], TelegramClient]


def get_telegram_client_factory() -> TelegramClientFactory:
    """FastAPI dependency; the factory raises a configuration error when no token is set."""
    return TelegramClient


def require_webapp_url() -> str:
    if not Config.WEBAPP_URL:
        logger.error("WEBAPP_URL is not set")
        raise ConfigurationError(code=ErrorCode.MISSING_WEBAPP_URL)
    return Config.WEBAPP_URL


@router.get("/telegram")
async def telegram_status(client_factory: TelegramClientFactory = Depends(get_telegram_client_factory)):
    """Bot info and current menu button."""
    webapp_url = require_webapp_url()
    client = client_factory()
    async with client:
        return await get_bot_status(client, webapp_url)


@router.post("/telegram")
async def telegram_setup(
    request: Request,
    payload: Optional[Dict[str, Any]] = Body(None),
    client_factory: TelegramClientFactory = Depends(get_telegram_client_factory),
):
    """
    Configure webhook, commands and menu button.

    Webhook host: body "host", else the request Host header, else the host of
    WEBAPP_URL.
    """
    webapp_url = require_webapp_url()
    client = client_factory()
    host = (payload or {}).get("host") or request.headers.get("host") or Config.webapp_host()
    if not host:
        raise RelayError(code=ErrorCode.MISSING_WEBHOOK_HOST)

    async with client:
        return await configure_bot(client, webapp_url, host)


def _plain_error(code: ErrorCode, detail: Optional[str] = None) -> PlainTextResponse:
    message, status_code = get_error_response(code, detail)
    return PlainTextResponse(message, status_code=status_code)


@router.post("/webhook")
async def telegram_webhook(
    request: Request,
    client_factory: TelegramClientFactory = Depends(get_telegram_client_factory),
):
    """Inbound Telegram updates; answers in plain text as Telegram ignores the body."""
    if not Config.TELEGRAM_API_TOKEN:
        logger.error("Webhook called but TELEGRAM_API_TOKEN is not set")
        return PlainTextResponse("Webhook error: Token not configured", status_code=500)
    if not Config.WEBAPP_URL:
        logger.error("Webhook called but WEBAPP_URL is not set")
        return PlainTextResponse("Webhook error: WebApp URL not configured", status_code=500)

    try:
        update = await request.json()
    except ValueError:
        update = None
    if not isinstance(update, dict) or not update.get("update_id"):
        logger.warning(f"Invalid webhook payload: {update!r}")
        return _plain_error(ErrorCode.INVALID_UPDATE)

    logger.info(f"Webhook update {update['update_id']}")
    try:
        async with client_factory() as client:
            await handle_update(client, update, Config.WEBAPP_URL)
    except TelegramAPIError as e:
        logger.error(f"Webhook handling failed: {e.message}")
        return PlainTextResponse(f"Webhook Error: {e.message}", status_code=500)
    except Exception as e:
        logger.error(f"Webhook handling failed for update {update['update_id']}: {e!r}", exc_info=True)
        return PlainTextResponse(f"Webhook Error: {e}", status_code=500)

    return PlainTextResponse("OK")
