"""Runware access over plain HTTPS, one POST per generation."""
from typing import Any, List, Optional

import httpx

from config import Config
from common.exceptions import (
    ConfigurationError,
    VendorAPIError,
    VendorConnectionError,
    VendorResponseError,
    VendorTimeoutError,
)
from generation.models import GenerateRequest
from generation.payloads import build_http_payload, extract_image_urls
from utils.logger import get_logger

logger = get_logger("generation.http")


class RunwareHttpClient:
    """Posts generation requests to {base_url}/image/generate."""

    transport_name = "http"

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = (base_url or Config.RUNWARE_HTTP_URL).rstrip("/")
        self._api_key = api_key
        self.timeout = timeout if timeout is not None else Config.RUNWARE_HTTP_TIMEOUT
        self._client = client

    @property
    def connected(self) -> bool:
        # Stateless transport; there is no socket to report on
        return False

    @property
    def api_key(self) -> str:
        return self._api_key if self._api_key is not None else Config.RUNWARE_API_KEY

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def generate_image(self, req: GenerateRequest) -> List[str]:
        if not self.api_key:
            logger.error("RUNWARE_API_KEY is not set")
            raise ConfigurationError()

        url = f"{self.base_url}/image/generate"
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        payload = build_http_payload(req)

        logger.info(f"POST {url} (model={req.model}, {req.width}x{req.height}, n={req.number_results})")
        try:
            response = await self._get_client().post(url, json=payload, headers=headers, timeout=self.timeout)
        except httpx.TimeoutException as e:
            logger.error(f"Runware request timed out after {self.timeout}s: {e!r}")
            raise VendorTimeoutError(f"No reply within {self.timeout:g}s")
        except httpx.RequestError as e:
            logger.error(f"Runware request failed: {e!r}")
            raise VendorConnectionError(str(e) or e.__class__.__name__)

        logger.info(f"Runware replied HTTP {response.status_code}")
        body = self._parse_body(response)

        if not response.is_success:
            message = body.get("error") if isinstance(body, dict) else None
            raise VendorAPIError(_error_text(message) or f"HTTP error: {response.status_code}", details=body)

        if isinstance(body, dict) and body.get("error"):
            raise VendorAPIError(_error_text(body["error"]), details=body)

        urls = extract_image_urls(body)
        logger.info(f"Received {len(urls)} image(s) from Runware")
        return urls

    @staticmethod
    def _parse_body(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            logger.error(f"Could not parse Runware reply: {response.text[:200]!r}")
            if not response.is_success:
                raise VendorAPIError(f"HTTP error: {response.status_code}")
            raise VendorResponseError("could not parse reply")

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def _error_text(error: Any) -> Optional[str]:
    """Vendor errors arrive either as a string or as {"message": ...}."""
    if error is None:
        return None
    if isinstance(error, dict):
        return str(error.get("message") or error)
    return str(error)
