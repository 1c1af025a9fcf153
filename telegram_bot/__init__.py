"""Telegram bot integration module."""
from telegram_bot.client import TelegramClient
from telegram_bot.services import (
    BOT_COMMANDS,
    configure_bot,
    get_bot_status,
    handle_update,
    webapp_keyboard,
    webapp_inline_keyboard
)

__all__ = [
    "TelegramClient",
    "BOT_COMMANDS",
    "configure_bot",
    "get_bot_status",
    "handle_update",
    "webapp_keyboard",
    "webapp_inline_keyboard"
]
