from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

from qagate.config import GateSettings
from qagate.lock import InMemoryRenderLock
from studio_api.app import create_app
from studio_api.deps import build_services

TOKEN = "test-token"


@pytest.fixture
async def services(tmp_path):
    settings = GateSettings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'studio.db'}",
        admin_token=TOKEN,
        policy_file="",
    )
    services = await build_services(settings, lock=InMemoryRenderLock())
    await services.store.create_project("proj-1", owner_id="user-1", title="Launch teaser")
    yield services
    await services.close()


@pytest.fixture
async def client(services):
    """Async HTTP client wired to an app with test services."""
    transport = ASGITransport(app=create_app(services))
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def auth_headers():
    """Build request headers for a caller with the given role."""

    def build(role: str = "employee", user_id: str = "user-1") -> dict[str, str]:
        return {
            "Authorization": f"Bearer {TOKEN}",
            "X-User-Role": role,
            "X-User-Id": user_id,
        }

    return build
