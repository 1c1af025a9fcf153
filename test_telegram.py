"""
Tests for the Telegram integration: Bot API client, bot setup routes and the
update webhook. Telegram itself is an httpx.MockTransport (see conftest).
"""
import asyncio
import json

import httpx
import pytest

from common.exceptions import ConfigurationError, TelegramAPIError
from conftest import FakeTelegram, TEST_BOT_TOKEN, TEST_WEBAPP_URL
from telegram_bot.client import TelegramClient
from telegram_bot.routes import get_telegram_client_factory
from telegram_bot.services import BOT_COMMANDS

from app import app


def use_telegram(fake):
    app.dependency_overrides[get_telegram_client_factory] = fake.factory
    return fake


# ---------- client ----------

def test_client_calls_method_url():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"ok": True, "result": {"username": "flux_relay_bot"}})

    async def scenario():
        async with TelegramClient(token="T0K3N", api_base="https://api.telegram.test",
                                  client=httpx.AsyncClient(transport=httpx.MockTransport(handler))) as client:
            return await client.get_me()

    body = asyncio.run(scenario())
    assert body["result"]["username"] == "flux_relay_bot"
    assert seen[0].url.path == "/botT0K3N/getMe"
    assert seen[0].method == "POST"


def test_client_raises_on_not_ok():
    fake = FakeTelegram(fail_methods={"sendMessage"})

    async def scenario():
        async with fake.make_client() as client:
            await client.send_message(1, "hi")

    with pytest.raises(TelegramAPIError) as excinfo:
        asyncio.run(scenario())
    assert "chat not found" in excinfo.value.message


def test_client_requires_token(monkeypatch):
    from config import Config
    monkeypatch.setattr(Config, "TELEGRAM_API_TOKEN", "")
    with pytest.raises(ConfigurationError):
        TelegramClient()


# ---------- /api/telegram ----------

def test_status(client, fake_telegram):
    use_telegram(fake_telegram)
    response = client.get("/api/telegram")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "success"
    assert data["bot"]["username"] == "flux_relay_bot"
    assert data["menuButton"]["type"] == "web_app"
    assert data["webappUrl"] == TEST_WEBAPP_URL
    assert fake_telegram.methods() == ["getMe", "getChatMenuButton"]


def test_setup_uses_host_from_body(client, fake_telegram):
    use_telegram(fake_telegram)
    response = client.post("/api/telegram", json={"host": "relay.example.com"})
    assert response.status_code == 200
    data = response.json()
    assert data["botUsername"] == "flux_relay_bot"
    assert data["webappUrl"] == TEST_WEBAPP_URL

    assert fake_telegram.methods() == ["setWebhook", "setMyCommands", "getMe", "setChatMenuButton"]
    assert fake_telegram.params("setWebhook")[0] == {
        "url": "https://relay.example.com/api/webhook",
        "drop_pending_updates": True,
    }
    assert fake_telegram.params("setMyCommands")[0] == {"commands": BOT_COMMANDS}
    menu_button = fake_telegram.params("setChatMenuButton")[0]["menu_button"]
    assert menu_button["type"] == "web_app"
    assert menu_button["web_app"] == {"url": TEST_WEBAPP_URL}


def test_setup_falls_back_to_host_header(client, fake_telegram):
    use_telegram(fake_telegram)
    response = client.post("/api/telegram", headers={"host": "bot.example.org"})
    assert response.status_code == 200
    assert fake_telegram.params("setWebhook")[0]["url"] == "https://bot.example.org/api/webhook"


def test_setup_notifies_admin_and_tolerates_failure(client, monkeypatch):
    from config import Config
    monkeypatch.setattr(Config, "ADMIN_CHAT_ID", "777")
    fake = use_telegram(FakeTelegram(fail_methods={"sendMessage"}))
    response = client.post("/api/telegram", json={"host": "relay.example.com"})
    assert response.status_code == 200
    message = fake.params("sendMessage")[0]
    assert message["chat_id"] == "777"
    assert message["reply_markup"]["keyboard"][0][0]["web_app"] == {"url": TEST_WEBAPP_URL}


def test_setup_reports_telegram_failure(client):
    use_telegram(FakeTelegram(fail_methods={"setWebhook"}))
    response = client.post("/api/telegram", json={"host": "relay.example.com"})
    assert response.status_code == 500
    assert response.json()["error"].startswith("Telegram API error:")


def test_setup_without_token(client, monkeypatch):
    from config import Config
    monkeypatch.setattr(Config, "TELEGRAM_API_TOKEN", "")
    response = client.post("/api/telegram", json={"host": "relay.example.com"})
    assert response.status_code == 500
    assert "token" in response.json()["error"].lower()


def test_status_without_webapp_url(client, fake_telegram, monkeypatch):
    from config import Config
    monkeypatch.setattr(Config, "WEBAPP_URL", "")
    use_telegram(fake_telegram)
    response = client.get("/api/telegram")
    assert response.status_code == 500
    assert "WebApp URL" in response.json()["error"]
    assert fake_telegram.calls == []


# ---------- /api/webhook ----------

def message_update(text=None, **extra):
    message = {"message_id": 5, "chat": {"id": 555, "type": "private"}, **extra}
    if text is not None:
        message["text"] = text
    return {"update_id": 1001, "message": message}


def test_webhook_start(client, fake_telegram):
    use_telegram(fake_telegram)
    response = client.post("/api/webhook", json=message_update("/start"))
    assert response.status_code == 200
    assert response.text == "OK"

    greeting, commands = fake_telegram.params("sendMessage")
    assert greeting["chat_id"] == 555
    assert greeting["reply_markup"]["keyboard"][0][0]["web_app"] == {"url": TEST_WEBAPP_URL}
    assert greeting["reply_markup"]["resize_keyboard"] is True
    assert "/generate" in commands["text"]
    assert commands["disable_notification"] is True


def test_webhook_generate(client, fake_telegram):
    use_telegram(fake_telegram)
    response = client.post("/api/webhook", json=message_update("/generate"))
    assert response.status_code == 200
    (reply,) = fake_telegram.params("sendMessage")
    assert reply["reply_markup"]["inline_keyboard"][0][0]["web_app"] == {"url": TEST_WEBAPP_URL}


def test_webhook_plain_text(client, fake_telegram):
    use_telegram(fake_telegram)
    client.post("/api/webhook", json=message_update("hello there"))
    (reply,) = fake_telegram.params("sendMessage")
    assert "/generate" in reply["text"]
    assert reply["disable_notification"] is True


def test_webhook_web_app_data_sends_photo(client, fake_telegram):
    use_telegram(fake_telegram)
    data = json.dumps({"action": "image_generated", "image_url": "https://im/1.png", "prompt": "a fox"})
    response = client.post("/api/webhook", json=message_update(web_app_data={"data": data, "button_text": "Open"}))
    assert response.status_code == 200
    (photo,) = fake_telegram.params("sendPhoto")
    assert photo["photo"] == "https://im/1.png"
    assert "a fox" in photo["caption"]


def test_webhook_callback_query(client, fake_telegram):
    use_telegram(fake_telegram)
    update = {"update_id": 1002, "callback_query": {"id": "cb-1", "data": "x", "message": {"chat": {"id": 555}}}}
    response = client.post("/api/webhook", json=update)
    assert response.status_code == 200
    assert fake_telegram.params("answerCallbackQuery") == [{"callback_query_id": "cb-1"}]


def test_webhook_rejects_invalid_update(client, fake_telegram):
    use_telegram(fake_telegram)
    response = client.post("/api/webhook", json={"message": {"text": "/start"}})
    assert response.status_code == 400
    assert response.text == "Bad Request: Invalid update format"
    assert fake_telegram.calls == []


def test_webhook_reports_telegram_failure(client):
    use_telegram(FakeTelegram(fail_methods={"sendMessage"}))
    response = client.post("/api/webhook", json=message_update("/start"))
    assert response.status_code == 500
    assert response.text.startswith("Webhook Error:")


def test_webhook_callback_without_id(client, fake_telegram):
    use_telegram(fake_telegram)
    response = client.post("/api/webhook", json={"update_id": 7, "callback_query": {"data": "x"}})
    assert response.status_code == 200
    assert response.text == "OK"
    assert fake_telegram.calls == []


@pytest.mark.parametrize("update", [
    {"update_id": 8, "message": "not an object"},
    {"update_id": 9, "message": {"chat": "555", "text": "/start"}},
    {"update_id": 10, "message": {"chat": {"id": 555}, "web_app_data": "raw string"}},
])
def test_webhook_malformed_update_answers_plain_text(client, fake_telegram, update):
    use_telegram(fake_telegram)
    response = client.post("/api/webhook", json=update)
    assert response.status_code == 500
    assert response.headers["content-type"].startswith("text/plain")
    assert response.text.startswith("Webhook Error:")


def test_webhook_without_token(client, monkeypatch):
    from config import Config
    monkeypatch.setattr(Config, "TELEGRAM_API_TOKEN", "")
    response = client.post("/api/webhook", json=message_update("/start"))
    assert response.status_code == 500
    assert response.text == "Webhook error: Token not configured"


def test_bot_token_never_leaks_in_responses(client, fake_telegram):
    use_telegram(fake_telegram)
    response = client.post("/api/telegram", json={"host": "relay.example.com"})
    assert TEST_BOT_TOKEN not in response.text
