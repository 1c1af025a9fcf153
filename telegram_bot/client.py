"""Minimal async client for the Telegram Bot HTTP API."""
from typing import Any, Dict, List, Optional

import httpx

from config import Config
from common.error_messages import ErrorCode
from common.exceptions import ConfigurationError, TelegramAPIError
from utils.logger import get_logger

logger = get_logger("telegram.client")


class TelegramClient:
    """POSTs JSON to {api_base}/bot<token>/<method> and unwraps {"ok", "result"}."""

    def __init__(
        self,
        token: Optional[str] = None,
        api_base: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.token = token if token is not None else Config.TELEGRAM_API_TOKEN
        if not self.token:
            raise ConfigurationError(code=ErrorCode.MISSING_TELEGRAM_TOKEN)
        self.api_base = (api_base or Config.TELEGRAM_API_BASE).rstrip("/")
        self.timeout = timeout if timeout is not None else Config.TELEGRAM_TIMEOUT
        self._client = client
        self._owns_client = client is None

    async def __aenter__(self) -> "TelegramClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
            self._owns_client = True
        return self._client

    async def call(self, method: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Invoke a Bot API method; returns the full {"ok": true, "result": ...} body."""
        url = f"{self.api_base}/bot{self.token}/{method}"
        logger.info(f"Telegram request: {method}")
        logger.debug(f"{method} params: {params}")
        try:
            response = await self._get_client().post(url, json=params or {}, timeout=self.timeout)
        except httpx.TimeoutException:
            raise TelegramAPIError(f"{method} timed out after {self.timeout:g}s")
        except httpx.RequestError as e:
            raise TelegramAPIError(f"network error calling {method}: {e.__class__.__name__}")

        try:
            body = response.json()
        except ValueError:
            raise TelegramAPIError(f"could not parse {method} response (HTTP {response.status_code})")
        if not isinstance(body, dict):
            raise TelegramAPIError(f"unexpected {method} response (HTTP {response.status_code})")

        if not response.is_success or not body.get("ok"):
            description = body.get("description") or f"HTTP error: {response.status_code}"
            logger.error(f"Telegram {method} failed: {description}")
            raise TelegramAPIError(description, details=body)

        logger.debug(f"{method} response: {body}")
        return body

    async def get_me(self) -> Dict[str, Any]:
        return await self.call("getMe")

    async def get_chat_menu_button(self, chat_id: Optional[int] = None) -> Dict[str, Any]:
        params = {"chat_id": chat_id} if chat_id is not None else {}
        return await self.call("getChatMenuButton", params)

    async def set_webhook(self, url: str, drop_pending_updates: bool = True) -> Dict[str, Any]:
        return await self.call("setWebhook", {"url": url, "drop_pending_updates": drop_pending_updates})

    async def set_my_commands(self, commands: List[Dict[str, str]]) -> Dict[str, Any]:
        return await self.call("setMyCommands", {"commands": commands})

    async def set_chat_menu_button(self, menu_button: Dict[str, Any]) -> Dict[str, Any]:
        return await self.call("setChatMenuButton", {"menu_button": menu_button})

    async def send_message(self, chat_id: Any, text: str, **options: Any) -> Dict[str, Any]:
        return await self.call("sendMessage", {"chat_id": chat_id, "text": text, **options})

    async def send_photo(self, chat_id: Any, photo: str, **options: Any) -> Dict[str, Any]:
        return await self.call("sendPhoto", {"chat_id": chat_id, "photo": photo, **options})

    async def answer_callback_query(self, callback_query_id: str, **options: Any) -> Dict[str, Any]:
        return await self.call("answerCallbackQuery", {"callback_query_id": callback_query_id, **options})
