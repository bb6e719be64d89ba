"""Tests for contentgem/security/auth.py — session resolution and request context."""

import pytest
from fastapi import HTTPException
from starlette.requests import Request

import contentgem.users.store as users_mod
from contentgem.security.auth import request_context, resolve_caller, verify_action_nonce
from contentgem.security.nonce import create_nonce
from contentgem.users.models import CallerIdentity


@pytest.fixture(autouse=True)
def user_file(override_settings, users_json_file, monkeypatch):
    monkeypatch.setattr(users_mod, "_store", None)
    override_settings(USERS_CONFIG_PATH=users_json_file, NONCE_SECRET="auth-secret")
    yield
    monkeypatch.setattr(users_mod, "_store", None)


def make_request(path="/actions/generate-content", headers=None) -> Request:
    raw = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request({"type": "http", "method": "POST", "path": path, "headers": raw, "query_string": b""})


class TestResolveCaller:

    async def test_missing_token_is_anonymous(self):
        caller = await resolve_caller(token=None)
        assert caller == CallerIdentity.anonymous()

    async def test_known_token(self):
        caller = await resolve_caller(token="sess-admin-1")
        assert caller.authenticated is True
        assert caller.user_id == "1"
        assert caller.can("manage_options")

    async def test_unknown_token_is_anonymous(self):
        caller = await resolve_caller(token="sess-forged")
        assert caller.authenticated is False

    async def test_disabled_user_is_anonymous(self):
        caller = await resolve_caller(token="sess-disabled-9")
        assert caller.authenticated is False


class TestVerifyActionNonce:

    async def test_valid_nonce_passes_caller_through(self):
        caller = CallerIdentity(user_id="42", authenticated=True)
        assert await verify_action_nonce(nonce=create_nonce("42"), caller=caller) is caller

    async def test_invalid_nonce_rejected(self):
        caller = CallerIdentity(user_id="42", authenticated=True)
        with pytest.raises(HTTPException) as exc_info:
            await verify_action_nonce(nonce="bogus", caller=caller)
        assert exc_info.value.status_code == 403


class TestRequestContext:

    def test_ajax_request(self):
        ctx = request_context(make_request(headers={
            "User-Agent": "Mozilla/5.0",
            "Referer": "https://blog.example.com/wp-admin/",
            "X-Requested-With": "XMLHttpRequest",
        }))
        assert ctx.user_agent == "Mozilla/5.0"
        assert ctx.referer == "https://blog.example.com/wp-admin/"
        assert ctx.is_async is True
        assert ctx.is_api is False

    def test_api_path(self):
        ctx = request_context(make_request(path="/api/actions/generate-content"))
        assert ctx.is_api is True
        assert ctx.is_async is False

    def test_ajax_path_is_not_api(self):
        ctx = request_context(make_request(path="/actions/generate-content"))
        assert ctx.is_api is False
