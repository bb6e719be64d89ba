"""Shared fixtures for the ContentGem backend test suite."""

import json
from unittest.mock import AsyncMock

import httpx
import pytest

from contentgem.api.client import ContentGemClient
from contentgem.api.models import ErrorKind, RequestResult
from contentgem.config.settings import Settings, get_settings

BASE_URL = "https://api.contentgem.test/api/v1"


@pytest.fixture
def settings() -> Settings:
    """Settings with an API key configured and a predictable base URL."""
    return Settings(
        contentgem_api_key="sk-contentgem-test",
        contentgem_base_url=BASE_URL,
        plugin_version="1.0.0",
        host_version="6.5",
        site_url="https://blog.example.com",
        nonce_secret="test-secret",
    )


@pytest.fixture
def override_settings(monkeypatch):
    """Factory fixture: set env vars and clear settings cache.

    Usage:
        override_settings(CONTENTGEM_API_KEY="sk-1", CACHE_BACKEND="memory")
    """
    def _override(**kwargs):
        for key, value in kwargs.items():
            monkeypatch.setenv(key.upper(), str(value))
        # Clear lru_cache so Settings re-reads env
        get_settings.cache_clear()

    yield _override

    get_settings.cache_clear()


@pytest.fixture
def users_json_file(tmp_path):
    """Create a temp users.json file and return its path."""
    data = {
        "users": [
            {
                "user_id": "42",
                "session_token": "sess-editor-42",
                "capabilities": ["edit_posts"],
            },
            {
                "user_id": "1",
                "session_token": "sess-admin-1",
                "capabilities": ["edit_posts", "manage_options"],
            },
            {
                "user_id": "7",
                "session_token": "sess-subscriber-7",
                "capabilities": ["read"],
            },
            {
                "user_id": "9",
                "session_token": "sess-disabled-9",
                "capabilities": ["edit_posts"],
                "status": "disabled",
            },
        ]
    }
    path = tmp_path / "users.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


def subscription_result(status="active", plan_slug="business", plan_name="Business") -> RequestResult:
    """Successful /subscription/status result as the client would return it."""
    payload = {
        "success": True,
        "data": {
            "subscription": {"status": status, "planSlug": plan_slug, "planName": plan_name},
        },
    }
    return RequestResult.from_payload(payload, 200)


def failed_result(kind=ErrorKind.REQUEST_FAILED, message="timed out", status_code=500) -> RequestResult:
    return RequestResult.failure(kind, message, status_code)


@pytest.fixture
def remote_client():
    """Client double for the gate; defaults to an active Business plan."""
    client = AsyncMock(spec=ContentGemClient)
    client.get_subscription_status.return_value = subscription_result()
    return client


def make_client(settings: Settings, handler) -> ContentGemClient:
    """Real client wired to an httpx.MockTransport handler."""
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ContentGemClient(settings, http_client=http_client)
