"""Integration test fixtures: the FastAPI app over a throwaway SQLite database."""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from payroll_portal.api.app import create_app
from payroll_portal.config import Settings
from payroll_portal.database import create_schema
from payroll_portal.store import DocumentStore


@pytest_asyncio.fixture
async def app(settings: Settings) -> AsyncGenerator[FastAPI, None]:
    app = create_app(settings)
    await create_schema(app.state.engine)
    yield app
    await app.state.engine.dispose()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def app_store(app: FastAPI) -> DocumentStore:
    return app.state.store


@pytest_asyncio.fixture
async def auth_headers(client: AsyncClient) -> dict[str, str]:
    """Sign up the super admin and return bearer headers for it."""
    response = await client.post(
        "/api/auth/signup/super-admin",
        json={"email": "root@acme.com", "password": "rootpass", "displayName": "Root"},
    )
    assert response.status_code == 201, response.text

    response = await client.post(
        "/api/auth/login", json={"email": "root@acme.com", "password": "rootpass"}
    )
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['token']}"}
