"""
Shared fixtures: test settings, an in-memory SQLite database, a fake
identity provider and an ASGI client for the app.
"""

import os

os.environ.setdefault("OUTLOOK_CLIENT_ID", "test-client-id")
os.environ.setdefault("OUTLOOK_CLIENT_SECRET", "test-client-secret")
os.environ.setdefault("OUTLOOK_REDIRECT_URI", "http://testserver/auth/provider/callback")
os.environ.setdefault("OUTLOOK_TENANT", "common")
os.environ.setdefault("FRONTEND_URL", "http://frontend.test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("TOKEN_ENCRYPTION_KEY", "")

from typing import Any, Dict, Optional
from urllib.parse import parse_qs

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from config.settings import ProviderConfig
from database.models import Base


@pytest.fixture
def provider_config() -> ProviderConfig:
    return ProviderConfig(
        client_id="test-client-id",
        client_secret="test-client-secret",
        redirect_uri="http://testserver/auth/provider/callback",
        tenant="common",
        timeout=2.0,
    )


class FakeProvider:
    """
    Scriptable stand-in for the token endpoint and Graph ``/me``.

    Records every request so tests can assert on what was sent.
    """

    def __init__(self) -> None:
        self.token_status = 200
        self.token_body: Dict[str, Any] = {
            "access_token": "access-1",
            "refresh_token": "refresh-1",
            "expires_in": 3600,
            "token_type": "Bearer",
        }
        self.me_status = 200
        self.me_body: Dict[str, Any] = {
            "displayName": "A User",
            "mail": "a@x.com",
            "userPrincipalName": "a@x.onmicrosoft.com",
        }
        self.me_error: Optional[Exception] = None
        self.token_error: Optional[Exception] = None
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path.endswith("/oauth2/v2.0/token"):
            if self.token_error is not None:
                raise self.token_error
            return httpx.Response(self.token_status, json=self.token_body)
        if request.url.path == "/v1.0/me":
            if self.me_error is not None:
                raise self.me_error
            return httpx.Response(self.me_status, json=self.me_body)
        return httpx.Response(404, json={"error": "not_found"})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def token_requests(self) -> list[Dict[str, list]]:
        return [
            parse_qs(r.content.decode())
            for r in self.requests
            if r.url.path.endswith("/token")
        ]

    def me_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == "/v1.0/me"]


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def app(session_factory, fake_provider, provider_config):
    """The FastAPI app wired to the test database and fake provider."""
    from api.dependencies import get_provider_config, get_provider_transport
    from config.settings import config
    from database.session import get_db_session
    from main import create_app

    application = create_app(config.model_copy(update={"debug_routes": True}))

    async def _test_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    application.dependency_overrides[get_db_session] = _test_db_session
    application.dependency_overrides[get_provider_config] = lambda: provider_config
    application.dependency_overrides[get_provider_transport] = lambda: fake_provider.transport
    return application


@pytest_asyncio.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c