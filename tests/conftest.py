import asyncio

import pytest
from fastapi.testclient import TestClient

from app.auth.verify import auth_dependency
from app.dependencies import get_gateway, get_store
from app.main import app
from app.services.openai_service import GatewayErr, GatewayErrorKind, GatewayOk
from app.services.store import InMemoryStore


@pytest.fixture
def auth_override():
    def _override():
        return {"sub": "user-123", "email": "user@example.com"}

    return _override


class FakeGateway:
    """Scripted stand-in for TextGenerationGateway; records every call."""

    def __init__(self, results=None, configured: bool = True):
        self.results = list(results or [])
        self.configured = configured
        self.calls: list[dict] = []

    async def complete(self, user_prompt, *, system_prompt=None, options=None):
        self.calls.append(
            {"user_prompt": user_prompt, "system_prompt": system_prompt, "options": options}
        )
        if not self.configured:
            return GatewayErr(GatewayErrorKind.UNCONFIGURED, "OpenAI API key not configured")
        if not self.results:
            return GatewayErr(GatewayErrorKind.PROVIDER_ERROR, "unexpected error")
        result = self.results.pop(0)
        if isinstance(result, Exception):
            raise result
        if isinstance(result, dict):
            return GatewayOk(text="{}", payload=result)
        if isinstance(result, str):
            return GatewayOk(text=result)
        return result

    async def close(self):
        pass


@pytest.fixture
def make_gateway():
    return FakeGateway


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def apply_auth_override(auth_override):
    def _apply(app):
        app.dependency_overrides[auth_dependency] = auth_override

    return _apply


@pytest.fixture
def client(fake_gateway, store, apply_auth_override):
    apply_auth_override(app)
    app.dependency_overrides[get_gateway] = lambda: fake_gateway
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


async def _connect_partners(store: InMemoryStore) -> None:
    await store.ensure_user("user-123", "user@example.com")
    await store.ensure_user("partner-456", "partner@example.com")
    await store.update_user("user-123", first_name="Sam", nickname="Sammy", partner_nickname="Alex")
    await store.update_user("partner-456", first_name="Alex", nickname="Alex")
    await store.connect_partners("user-123", "partner-456")


@pytest.fixture
def partnered_user(store):
    """user-123 connected to partner-456, with nicknames set (for TestClient tests)."""
    asyncio.run(_connect_partners(store))
    return "user-123"
