"""Shared fixtures: an in-memory database for service tests, a full app for API tests."""

from __future__ import annotations

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from contact_crm.config import Settings
from contact_crm.database.engine import init_db
from contact_crm.main import create_app
from contact_crm.models.user import Base, Role, User

TEST_SECRET = "test-secret"
PASSWORD = "secret123"


@pytest_asyncio.fixture
async def db_session():
    """Fresh in-memory database with two employees and one admin."""
    engine = create_async_engine("sqlite+aiosqlite://", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    async with session_factory() as session:
        session.add_all(
            [
                User(name="Alice Johnson", email="alice@example.com", password_hash="x", role=Role.EMPLOYEE),
                User(name="Bob Smith", email="bob@example.com", password_hash="x", role=Role.EMPLOYEE),
                User(name="Grace Admin", email="grace@example.com", password_hash="x", role=Role.ADMIN),
            ]
        )
        await session.commit()
        yield session

    await engine.dispose()


@pytest_asyncio.fixture
async def app(tmp_path):
    """Application bound to a throwaway SQLite file and upload directory."""
    settings = Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'crm.db'}",
        upload_dir=str(tmp_path / "uploads"),
        jwt_secret=TEST_SECRET,
    )
    application = create_app(settings)
    # ASGITransport does not run the lifespan hook.
    await init_db(application.state.engine)
    yield application
    await application.state.engine.dispose()


@pytest_asyncio.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def signup(client):
    """Create an account through the API and return ``(token, user)``."""

    async def _signup(name: str, email: str, role: str = "employee") -> tuple[str, dict]:
        resp = await client.post(
            "/api/auth/signup",
            json={"name": name, "email": email, "password": PASSWORD, "role": role},
        )
        assert resp.status_code == 201, resp.text
        body = resp.json()
        return body["token"], body["user"]

    return _signup


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth():
    return bearer
