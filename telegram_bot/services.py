"""Telegram bot setup and update handling."""
import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from config import Config
from common.exceptions import TelegramAPIError
from telegram_bot.client import TelegramClient
from utils.logger import get_logger

logger = get_logger("telegram.services")

BOT_COMMANDS: List[Dict[str, str]] = [
    {"command": "start", "description": "Start the bot"},
    {"command": "generate", "description": "Generate an image"},
    {"command": "help", "description": "Show help"},
]

MENU_BUTTON_TEXT = "Generate"
OPEN_GENERATOR_TEXT = "Open generator"

START_TEXT = (
    "Hi! I generate images from text. Tap the \"Generate\" button in the menu "
    "or use the button below:"
)
COMMANDS_TEXT = (
    "Available commands:\n"
    "/start - Restart the bot\n"
    "/generate - Open the image generator\n"
    "/help - Show this message"
)
GENERATE_TEXT = "Tap the button below to open the image generator:"
HELP_TEXT = "I help you generate images with FLUX models.\n\n" + COMMANDS_TEXT
FALLBACK_TEXT = "To generate images tap the \"Generate\" button in the bot menu or send /generate"
WEB_APP_DATA_ERROR_TEXT = "Something went wrong while processing data from the web app"


def webapp_keyboard(webapp_url: str, text: str = OPEN_GENERATOR_TEXT) -> Dict[str, Any]:
    """Reply keyboard with a single WebApp button."""
    return {
        "keyboard": [[{"text": text, "web_app": {"url": webapp_url}}]],
        "resize_keyboard": True,
    }


def webapp_inline_keyboard(webapp_url: str, text: str = OPEN_GENERATOR_TEXT) -> Dict[str, Any]:
    """Inline keyboard with a single WebApp button."""
    return {"inline_keyboard": [[{"text": text, "web_app": {"url": webapp_url}}]]}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


async def get_bot_status(client: TelegramClient, webapp_url: str) -> Dict[str, Any]:
    """Bot identity and current menu button."""
    bot_info = await client.get_me()
    menu_button = await client.get_chat_menu_button()
    return {
        "status": "success",
        "bot": bot_info.get("result"),
        "menuButton": menu_button.get("result"),
        "webappUrl": webapp_url,
        "timestamp": _now_iso(),
    }


async def configure_bot(client: TelegramClient, webapp_url: str, host: str) -> Dict[str, Any]:
    """
    Point the bot at this deployment.

    Sets the webhook to https://<host>/api/webhook, registers the command
    list and installs the WebApp menu button. When ADMIN_CHAT_ID is set a
    confirmation with the WebApp keyboard is sent there as well; that message
    is best-effort and never fails the setup.
    """
    webhook_url = f"https://{host}/api/webhook"
    logger.info(f"Setting webhook to {webhook_url}")
    webhook_result = await client.set_webhook(webhook_url, drop_pending_updates=True)

    commands_result = await client.set_my_commands(BOT_COMMANDS)

    bot_info = await client.get_me()
    bot_username = (bot_info.get("result") or {}).get("username")

    logger.info(f"Setting WebApp menu button to {webapp_url}")
    menu_button_result = await client.set_chat_menu_button({
        "type": "web_app",
        "text": MENU_BUTTON_TEXT,
        "web_app": {"url": webapp_url},
    })

    if Config.ADMIN_CHAT_ID:
        try:
            await client.send_message(
                Config.ADMIN_CHAT_ID,
                f"WebApp setup complete!\nWebApp URL: {webapp_url}\nBot: @{bot_username}\nTime: {_now_iso()}",
                reply_markup=webapp_keyboard(webapp_url),
            )
            logger.info("Sent setup confirmation to admin chat")
        except TelegramAPIError as e:
            logger.error(f"Failed to notify admin chat: {e.message}")

    return {
        "status": "success",
        "webhook": webhook_result.get("result"),
        "commands": commands_result.get("result"),
        "menu_button": menu_button_result.get("result"),
        "webappUrl": webapp_url,
        "botUsername": bot_username,
        "timestamp": _now_iso(),
    }


async def _handle_web_app_data(client: TelegramClient, chat_id: Any, raw: Optional[str]) -> None:
    try:
        data = json.loads(raw or "")
    except ValueError:
        logger.warning(f"Unparseable web_app_data from chat {chat_id}")
        await client.send_message(chat_id, WEB_APP_DATA_ERROR_TEXT)
        return

    if isinstance(data, dict) and data.get("action") == "image_generated" and data.get("image_url"):
        await client.send_photo(
            chat_id,
            data["image_url"],
            caption=f"Image generated!\n\nPrompt: {data.get('prompt') or 'not specified'}",
        )
    else:
        logger.info(f"Ignoring web_app_data from chat {chat_id}: {data!r}")


async def handle_message(client: TelegramClient, message: Dict[str, Any], webapp_url: str) -> None:
    chat_id = (message.get("chat") or {}).get("id")
    if chat_id is None:
        logger.warning("Message without chat id, ignoring")
        return

    web_app_data = message.get("web_app_data")
    if web_app_data:
        await _handle_web_app_data(client, chat_id, web_app_data.get("data"))
        return

    text = message.get("text") or ""
    logger.info(f"Message from chat {chat_id}: {text[:100]}")

    if text.startswith("/start"):
        await client.send_message(chat_id, START_TEXT, reply_markup=webapp_keyboard(webapp_url))
        await client.send_message(chat_id, COMMANDS_TEXT, disable_notification=True)
    elif text.startswith("/generate"):
        await client.send_message(chat_id, GENERATE_TEXT, reply_markup=webapp_inline_keyboard(webapp_url))
    elif text.startswith("/help"):
        await client.send_message(chat_id, HELP_TEXT)
    else:
        await client.send_message(chat_id, FALLBACK_TEXT, disable_notification=True)


async def handle_update(client: TelegramClient, update: Dict[str, Any], webapp_url: str) -> None:
    """Reply to one inbound webhook update."""
    if update.get("message"):
        await handle_message(client, update["message"], webapp_url)
    elif update.get("callback_query"):
        callback_query = update["callback_query"]
        logger.info(f"Callback query {callback_query.get('id')}: {callback_query.get('data')}")
        if callback_query.get("id"):
            await client.answer_callback_query(callback_query["id"])
        else:
            logger.warning("Callback query without id, not answering")
    else:
        logger.debug(f"Ignoring update {update.get('update_id')} with no message or callback")
