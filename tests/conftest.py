"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It ensures that the TESTING environment variable is set to prevent
loading the .env file during tests.
"""

import os

# CRITICAL: Set this before any imports that might load settings
# This prevents Pydantic from loading the .env file in tests
os.environ["TESTING"] = "true"

# Set default env vars that all tests might need
os.environ.setdefault("APP_API_KEY_REQUIRED", "true")
os.environ.setdefault("APP_API_KEYS", "test-api-key-123,test-api-key-456")
os.environ.setdefault("CACHE_BACKEND", "memory")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from typing import Callable  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from portfolio_api.adapters.cache.in_memory import InMemoryCacheStore  # noqa: E402
from portfolio_api.core.app_factory import create_app  # noqa: E402
from portfolio_api.core.config import AppSettings, Settings  # noqa: E402


class FakeClock:
    """Manually advanced time source shared by limiters and stores."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def github_handler(request: httpx.Request) -> httpx.Response:
    """Stand-in for the GitHub REST API used by app-level tests."""
    path = request.url.path
    if path == "/users/ghost":
        return httpx.Response(404, json={"message": "Not Found"})
    if path.startswith("/users/") and path.endswith("/repos"):
        return httpx.Response(
            200,
            json=[
                {
                    "name": "portfolio",
                    "full_name": "alice/portfolio",
                    "description": "My site",
                    "html_url": "https://github.com/alice/portfolio",
                    "language": "Python",
                    "stargazers_count": 3,
                    "forks_count": 1,
                    "updated_at": "2024-01-01T00:00:00Z",
                    "fork": False,
                }
            ],
        )
    if path.startswith("/users/"):
        login = path.rsplit("/", 1)[-1]
        return httpx.Response(200, json={"login": login, "name": login.title(), "public_repos": 1})
    if path == "/rate_limit":
        return httpx.Response(200, json={"rate": {"limit": 60, "remaining": 59, "reset": 0}})
    return httpx.Response(404, json={"message": "Not Found"})


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def valid_api_key_headers() -> dict[str, str]:
    return {"X-API-Key": "test-api-key-123"}


@pytest.fixture
def make_app(clock: FakeClock) -> Callable[..., FastAPI]:
    """Build an isolated app with an in-memory store, fake clock and fake GitHub."""

    def _make(**app_overrides) -> FastAPI:
        settings = Settings(app=AppSettings(**app_overrides))
        return create_app(
            settings,
            cache_store=InMemoryCacheStore(clock=clock),
            http_client=httpx.AsyncClient(
                base_url="https://api.github.test",
                transport=httpx.MockTransport(github_handler),
            ),
            clock=clock,
        )

    return _make


@pytest.fixture
def client(make_app) -> TestClient:
    return TestClient(make_app())
