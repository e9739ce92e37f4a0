"""Shared pytest fixtures for the Guild Apply test suite."""

from __future__ import annotations

import os
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient

# Ensure test environment variables are set BEFORE importing app modules
os.environ.setdefault("DISCORD_WEBHOOK_URL", "https://discord.test/api/webhooks/1/token")
os.environ.setdefault("TURNSTILE_SECRET", "test-secret-not-real")
os.environ.setdefault("DISCORD_ROLE_ID", "")
os.environ.setdefault("DISCORD_BOT_TOKEN", "")
os.environ.setdefault("DISCORD_GUILD_ID", "")
os.environ.setdefault("APPLY_SHARED_SECRET", "")
os.environ.setdefault("APPLY_DEBUG", "false")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

WEBHOOK_URL = "https://discord.test/api/webhooks/1/token"


def make_settings(**overrides: Any):
    """Settings with both required secrets set, plus any overrides."""
    from app.config import Settings

    values: dict[str, Any] = {
        "discord_webhook_url": WEBHOOK_URL,
        "turnstile_secret": "test-secret-not-real",
        "discord_role_id": "",
        "discord_bot_token": "",
        "discord_guild_id": "",
        "apply_shared_secret": "",
        "apply_debug": False,
        "require_links": True,
        "require_discord": False,
    }
    values.update(overrides)
    return Settings(**values)


def _make_application(**overrides: Any) -> dict[str, Any]:
    """A complete, valid application body (scenario A)."""
    body: dict[str, Any] = {
        "turnstileToken": "valid-token",
        "character": "Thrall",
        "realm": "Stormrage",
        "btag": "Thrall#1234",
        "classes": ["Shaman"],
        "roles": ["Healer"],
        "availability": "Weeknights",
        "rio": "https://raider.io/x",
        "wcl": "https://warcraftlogs.com/x",
        "notes": "",
        "consent": True,
        "discord": "toxarica",
        "website": "",
        "meta": {"ts": "2026-10-19T18:00:00Z"},
    }
    body.update(overrides)
    return {k: v for k, v in body.items() if v is not None}


def _http_response(status_code: int, url: str = WEBHOOK_URL, **kwargs: Any) -> httpx.Response:
    """Build an httpx.Response the way a real client call would return it."""
    return httpx.Response(status_code, request=httpx.Request("POST", url), **kwargs)


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def client() -> TestClient:
    """FastAPI synchronous test client."""
    from app.main import app

    return TestClient(app)


@pytest.fixture
def use_settings(monkeypatch):
    """Swap the settings the router sees; returns a setter."""

    def _use(**overrides: Any):
        configured = make_settings(**overrides)
        monkeypatch.setattr("app.routers.apply_router.get_settings", lambda: configured)
        return configured

    _use()
    return _use
