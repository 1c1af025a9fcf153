"""
Runware access over one persistent WebSocket.

Every outbound message gets the next integer id and a future in the pending
table; the reader task settles the future when a reply with the same id
arrives. Unsolicited messages (generation_result) go to waiters registered
by type, oldest first, unless they echo the id of the request that
started them. All of this runs on the application's event loop, so
the tables need no locking; only connect() is serialized, so concurrent
callers share a single handshake.
"""
import asyncio
import json
from collections import defaultdict, deque
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional

import aiohttp

from config import Config
from common.exceptions import (
    ConfigurationError,
    RelayError,
    VendorAPIError,
    VendorConnectionError,
    VendorTimeoutError,
)
from generation.models import GenerateRequest
from generation.payloads import build_socket_message, extract_image_urls
from utils.logger import get_logger

logger = get_logger("generation.socket")

RESULT_MESSAGE_TYPE = "generation_result"


class RunwareSocketClient:
    """Request/response correlation over a single Runware WebSocket."""

    transport_name = "websocket"

    def __init__(
        self,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        response_timeout: Optional[float] = None,
        result_timeout: Optional[float] = None,
        keepalive_interval: Optional[float] = None,
        ws_connect: Optional[Callable[[str], Awaitable[Any]]] = None,
    ):
        self.url = url or Config.RUNWARE_API_URL
        self._api_key = api_key
        self.response_timeout = response_timeout if response_timeout is not None else Config.RUNWARE_RESPONSE_TIMEOUT
        self.result_timeout = result_timeout if result_timeout is not None else Config.RUNWARE_RESULT_TIMEOUT
        self.keepalive_interval = keepalive_interval if keepalive_interval is not None else Config.RUNWARE_KEEPALIVE_INTERVAL
        self._ws_connect = ws_connect

        self._session: Optional[aiohttp.ClientSession] = None
        self._ws: Any = None
        self._reader_task: Optional[asyncio.Task] = None
        self._keepalive_task: Optional[asyncio.Task] = None
        self._connect_lock: Optional[asyncio.Lock] = None
        self._connected = False

        self._next_id = 1
        self._pending: Dict[int, asyncio.Future] = {}
        self._waiters: Dict[str, Deque[asyncio.Future]] = defaultdict(deque)
        self._id_waiters: Dict[int, asyncio.Future] = {}

    @property
    def api_key(self) -> str:
        return self._api_key if self._api_key is not None else Config.RUNWARE_API_KEY

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def _allocate_id(self) -> int:
        message_id = self._next_id
        self._next_id += 1
        return message_id

    # ---------- connection lifecycle ----------

    async def _open_socket(self) -> Any:
        if self._ws_connect is not None:
            return await self._ws_connect(self.url)
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return await self._session.ws_connect(self.url)

    async def connect(self) -> None:
        """Open the socket and authenticate; no-op when already connected."""
        if self._connect_lock is None:
            self._connect_lock = asyncio.Lock()

        async with self._connect_lock:
            if self._connected:
                return

            if not self.api_key:
                raise ConfigurationError()

            logger.info(f"Connecting to Runware API at {self.url}")
            try:
                self._ws = await self._open_socket()
            except (aiohttp.ClientError, OSError, asyncio.TimeoutError) as e:
                logger.error(f"WebSocket connection failed: {e!r}")
                raise VendorConnectionError(str(e) or e.__class__.__name__)

            self._reader_task = asyncio.create_task(self._read_loop(self._ws))

            try:
                await self._request({"type": "authenticate", "payload": {"api_key": self.api_key}})
            except RelayError as e:
                logger.error(f"Runware authentication failed: {e.message}")
                await self.close()
                raise

            self._connected = True
            self._keepalive_task = asyncio.create_task(self._keepalive())
            logger.info("Runware WebSocket connected and authenticated")

    async def close(self) -> None:
        """Stop background tasks, close the socket and fail anything still waiting."""
        self._connected = False

        for task in (self._keepalive_task, self._reader_task):
            if task is not None and not task.done() and task is not asyncio.current_task():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._keepalive_task = None
        self._reader_task = None

        ws, self._ws = self._ws, None
        if ws is not None:
            await ws.close()
        if self._session is not None:
            await self._session.close()
            self._session = None

        self._fail_all("connection closed")

    async def _keepalive(self) -> None:
        while True:
            await asyncio.sleep(self.keepalive_interval)
            ws = self._ws
            if not self._connected or ws is None:
                return
            try:
                await ws.send_str(json.dumps({"type": "ping"}))
            except (aiohttp.ClientError, OSError) as e:
                logger.warning(f"Keepalive ping failed: {e!r}")
                return

    async def _read_loop(self, ws: Any) -> None:
        try:
            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    try:
                        message = json.loads(msg.data)
                    except ValueError:
                        logger.warning(f"Ignoring non-JSON frame: {str(msg.data)[:200]!r}")
                        continue
                    if isinstance(message, dict):
                        self._dispatch(message)
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    logger.error(f"WebSocket error: {ws.exception()!r}")
                    break
        finally:
            if self._ws is ws:
                logger.info("Runware WebSocket closed")
                self._connected = False
                self._ws = None
                if self._keepalive_task is not None:
                    self._keepalive_task.cancel()
                    self._keepalive_task = None
                await ws.close()
            self._fail_all("connection closed")

    # ---------- correlation ----------

    def _dispatch(self, message: Dict[str, Any]) -> None:
        message_id = message.get("id")
        if not isinstance(message_id, int):
            message_id = None
        message_type = message.get("type")

        # A result echoing its request id belongs to that request, even after the ack
        if message_type == RESULT_MESSAGE_TYPE and message_id in self._id_waiters:
            waiter = self._id_waiters.pop(message_id)
            if not waiter.done():
                waiter.set_result(message)
            return

        future = self._pending.pop(message_id, None) if message_id is not None else None
        if future is not None:
            if future.done():
                return
            if message.get("error"):
                future.set_exception(VendorAPIError(_error_text(message["error"]), details=message))
            else:
                future.set_result(message)
            return

        waiters = self._waiters.get(message_type)
        while waiters:
            waiter = waiters.popleft()
            if not waiter.done():
                waiter.set_result(message)
                return
        logger.debug(f"Unmatched message: type={message_type!r} id={message_id!r}")

    def _fail_all(self, reason: str) -> None:
        pending, self._pending = self._pending, {}
        self._id_waiters = {}
        for future in pending.values():
            if not future.done():
                future.set_exception(VendorConnectionError(reason))
        for waiters in self._waiters.values():
            while waiters:
                waiter = waiters.popleft()
                if not waiter.done():
                    waiter.set_exception(VendorConnectionError(reason))

    async def _request(self, message: Dict[str, Any], message_id: Optional[int] = None) -> Dict[str, Any]:
        ws = self._ws
        if ws is None:
            raise VendorConnectionError("socket is not open")

        if message_id is None:
            message_id = self._allocate_id()
        future = asyncio.get_running_loop().create_future()
        self._pending[message_id] = future
        try:
            await ws.send_str(json.dumps({**message, "id": message_id}))
            return await asyncio.wait_for(future, timeout=self.response_timeout)
        except asyncio.TimeoutError:
            logger.error(f"No reply to message {message_id} ({message.get('type')}) within {self.response_timeout}s")
            raise VendorTimeoutError(f"No reply within {self.response_timeout:g}s")
        except (aiohttp.ClientError, OSError) as e:
            raise VendorConnectionError(str(e) or e.__class__.__name__)
        finally:
            self._pending.pop(message_id, None)

    async def send_message(self, message: Dict[str, Any]) -> Dict[str, Any]:
        """Send one message and return the reply that carries the same id."""
        if not self._connected:
            await self.connect()
        return await self._request(message)

    def _register_waiter(self, message_type: str, message_id: Optional[int] = None) -> asyncio.Future:
        future = asyncio.get_running_loop().create_future()
        self._waiters[message_type].append(future)
        if message_id is not None:
            self._id_waiters[message_id] = future
        return future

    def _discard_waiter(self, message_type: str, future: asyncio.Future, message_id: Optional[int] = None) -> None:
        waiters = self._waiters.get(message_type)
        if waiters and future in waiters:
            waiters.remove(future)
        if message_id is not None and self._id_waiters.get(message_id) is future:
            del self._id_waiters[message_id]
        if not future.done():
            future.cancel()
        elif not future.cancelled():
            future.exception()

    async def _await_waiter(
        self,
        message_type: str,
        future: asyncio.Future,
        timeout: float,
        message_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        try:
            return await asyncio.wait_for(future, timeout=timeout)
        except asyncio.TimeoutError:
            logger.error(f"No {message_type} message within {timeout}s")
            raise VendorTimeoutError(f"No {message_type} within {timeout:g}s")
        finally:
            self._discard_waiter(message_type, future, message_id)

    async def wait_for(self, message_type: str, timeout: Optional[float] = None) -> Dict[str, Any]:
        """Wait for the next unsolicited message of message_type."""
        future = self._register_waiter(message_type)
        return await self._await_waiter(message_type, future, timeout if timeout is not None else self.result_timeout)

    # ---------- generation ----------

    async def generate_image(self, req: GenerateRequest) -> List[str]:
        if not self.api_key:
            logger.error("RUNWARE_API_KEY is not set")
            raise ConfigurationError()

        if not self._connected:
            await self.connect()

        # Registered before sending so a fast result cannot slip past us
        message_id = self._allocate_id()
        result_future = self._register_waiter(RESULT_MESSAGE_TYPE, message_id)
        try:
            await self._request(build_socket_message(req), message_id)
            logger.info(f"Generation request {message_id} acknowledged, waiting for result")
            result = await self._await_waiter(RESULT_MESSAGE_TYPE, result_future, self.result_timeout, message_id)
        finally:
            self._discard_waiter(RESULT_MESSAGE_TYPE, result_future, message_id)

        payload = result.get("payload") or {}
        if result.get("error"):
            raise VendorAPIError(_error_text(result["error"]), details=result)
        if isinstance(payload, dict) and payload.get("error"):
            raise VendorAPIError(_error_text(payload["error"]), details=payload)

        urls = extract_image_urls(payload)
        logger.info(f"Received {len(urls)} image(s) from Runware")
        return urls


def _error_text(error: Any) -> str:
    if isinstance(error, dict):
        return str(error.get("message") or error)
    return str(error)
