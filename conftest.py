"""Shared fixtures: configured settings, an app client and fake upstreams."""
import json
from typing import Any, Callable, Dict, Iterable, List, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from config import Config
from telegram_bot.client import TelegramClient

TEST_WEBAPP_URL = "https://webapp.example.com/app"
TEST_BOT_TOKEN = "123456:TEST-TOKEN"


@pytest.fixture
def configured(monkeypatch):
    """Settings as they would be in a working deployment."""
    monkeypatch.setattr(Config, "RUNWARE_API_KEY", "test-runware-key")
    monkeypatch.setattr(Config, "TELEGRAM_API_TOKEN", TEST_BOT_TOKEN)
    monkeypatch.setattr(Config, "WEBAPP_URL", TEST_WEBAPP_URL)
    monkeypatch.setattr(Config, "ADMIN_CHAT_ID", "")
    monkeypatch.setattr(Config, "VENDOR_TRANSPORT", "http")
    return Config


@pytest.fixture
def client(configured):
    from app import app
    test_client = TestClient(app)
    yield test_client
    app.dependency_overrides.clear()


class FakeGenerator:
    """Stands in for a Runware client behind the get_generator dependency."""

    transport_name = "fake"
    connected = False

    def __init__(self, images: Optional[List[str]] = None, error: Optional[Exception] = None):
        self.images = images or []
        self.error = error
        self.requests = []

    async def generate_image(self, req):
        self.requests.append(req)
        if self.error is not None:
            raise self.error
        return self.images

    async def close(self):
        pass


class FakeTelegram:
    """Records Bot API calls made through an httpx.MockTransport."""

    RESULTS: Dict[str, Any] = {
        "getMe": {"id": 42, "is_bot": True, "username": "flux_relay_bot"},
        "getChatMenuButton": {"type": "web_app", "text": "Generate", "web_app": {"url": TEST_WEBAPP_URL}},
        "sendMessage": {"message_id": 100},
        "sendPhoto": {"message_id": 101},
    }

    def __init__(self, fail_methods: Iterable[str] = ()):
        self.fail_methods = set(fail_methods)
        self.calls: List[tuple] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        method = request.url.path.rsplit("/", 1)[-1]
        params = json.loads(request.content or b"{}")
        self.calls.append((method, params))
        if method in self.fail_methods:
            return httpx.Response(400, json={"ok": False, "error_code": 400, "description": "Bad Request: chat not found"})
        return httpx.Response(200, json={"ok": True, "result": self.RESULTS.get(method, True)})

    def methods(self) -> List[str]:
        return [method for method, _ in self.calls]

    def params(self, method: str) -> List[Dict[str, Any]]:
        return [params for name, params in self.calls if name == method]

    def make_client(self) -> TelegramClient:
        return TelegramClient(
            token=TEST_BOT_TOKEN,
            api_base="https://api.telegram.test",
            client=httpx.AsyncClient(transport=httpx.MockTransport(self.handler)),
        )

    def factory(self) -> Callable[[], TelegramClient]:
        return self.make_client


@pytest.fixture
def fake_telegram():
    return FakeTelegram()
