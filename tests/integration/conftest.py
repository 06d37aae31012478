"""API test fixtures: the app wired to the test database and fakes."""

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from payroll_admin.api.app import create_app
from payroll_admin.api.dependencies import (
    get_app_settings,
    get_browser_launcher,
    get_db_session,
    get_email_sender,
    get_payslip_storage,
)


@pytest.fixture
def app(session_factory, settings, storage, browser_launcher, mailer) -> FastAPI:
    """Application with database, storage, browser and email dependencies overridden."""
    app = create_app()

    async def override_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_session
    app.dependency_overrides[get_app_settings] = lambda: settings
    app.dependency_overrides[get_payslip_storage] = lambda: storage
    app.dependency_overrides[get_browser_launcher] = lambda: browser_launcher
    app.dependency_overrides[get_email_sender] = lambda: mailer
    return app


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
