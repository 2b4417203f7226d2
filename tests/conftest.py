import os

# Pflicht-Konfiguration setzen, bevor irgendein App-Modul importiert wird.
os.environ.setdefault("VAPI_API_KEY", "env-secret-key")
os.environ.setdefault("VAPI_ASSISTANT_ID", "env-assistant-id")
os.environ.setdefault("LOG_FILE", "")

import httpx
import pytest
from fastapi.testclient import TestClient

from chat_proxy.core.config import Settings
from chat_proxy.main import create_app

SECRET_KEY = "sk-live-do-not-leak-0000"
ALLOWED_ORIGIN = "https://widget.example.com"

UPSTREAM_REPLY = {
    "id": "chat_abc123",
    "output": [{"role": "assistant", "content": "<b>Hello</b> & welcome"}],
}


def upstream_ok(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json=UPSTREAM_REPLY)


def build_settings(**overrides) -> Settings:
    values = {
        "vapi_api_key": SECRET_KEY,
        "vapi_assistant_id": "asst_test_42",
        "vapi_public_api_key": "pub_key_123",
        "allowed_origins": ALLOWED_ORIGIN,
        "log_file": "",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings():
    return build_settings()


@pytest.fixture
def make_client():
    """Factory für TestClients mit simuliertem Upstream (httpx.MockTransport)."""
    opened = []

    def _make(app_settings=None, handler=upstream_ok):
        app_settings = app_settings or build_settings()
        http_client = httpx.AsyncClient(
            base_url=app_settings.vapi_base_url,
            transport=httpx.MockTransport(handler),
        )
        client = TestClient(create_app(app_settings, http_client=http_client))
        client.__enter__()  # Lifespan starten (ProxyState anlegen)
        opened.append(client)
        return client

    yield _make

    for client in opened:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client):
    return make_client()
