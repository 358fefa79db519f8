"""Shared fixtures: an in-memory database, accounts, actors and an API client."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production-use")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.pop("EXTRACTION_WEBHOOK_URL", None)
os.environ.pop("SIGNUP_WEBHOOK_URL", None)

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from policy_desk.core.database import get_session
from policy_desk.models import AppUser, Base, Policy, TeamMember, UserRole
from policy_desk.services.activity_log import Actor

from factories import (
    ADMIN_PASSWORD,
    AGENT_PASSWORD,
    actor_for,
    make_member,
    make_policy,
    make_user,
)


# =============================================================================
# DATABASE
# =============================================================================


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def session(session_factory) -> AsyncSession:
    async with session_factory() as session:
        yield session


# =============================================================================
# ACCOUNTS
# =============================================================================


@pytest_asyncio.fixture
async def admin(session) -> AppUser:
    user = make_user("admin@agency.in", ADMIN_PASSWORD, UserRole.ADMIN, name="Asha Admin")
    session.add(user)
    await session.commit()
    return user


@pytest_asyncio.fixture
async def reviewer(session) -> AppUser:
    """A second admin, so requests can be reviewed by someone else."""
    user = make_user("reviewer@agency.in", ADMIN_PASSWORD, UserRole.ADMIN, name="Ravi Reviewer")
    session.add(user)
    await session.commit()
    return user


@pytest_asyncio.fixture
async def agent(session) -> AppUser:
    user = make_user("agent@agency.in", AGENT_PASSWORD, name="Meera Agent")
    session.add(user)
    await session.commit()
    return user


@pytest_asyncio.fixture
async def team_member(session, admin) -> TeamMember:
    member = make_member(admin, "member@agency.in", ["/dashboard", "/leads", "/follow-ups"])
    session.add(member)
    await session.commit()
    return member


@pytest.fixture
def admin_actor(admin) -> Actor:
    return actor_for(admin)


@pytest.fixture
def reviewer_actor(reviewer) -> Actor:
    return actor_for(reviewer)


@pytest.fixture
def agent_actor(agent) -> Actor:
    return actor_for(agent)


@pytest_asyncio.fixture
async def agent_policy(session, agent) -> Policy:
    policy = make_policy(agent)
    session.add(policy)
    await session.commit()
    return policy


# =============================================================================
# API CLIENT
# =============================================================================


@pytest_asyncio.fixture
async def app(session_factory):
    from policy_desk.main import app
    from policy_desk.services.autofill import AutoFillRegistry

    async def override_get_session():
        async with session_factory() as s:
            try:
                yield s
                await s.commit()
            except Exception:
                await s.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session
    app.state.autofill_registry = AutoFillRegistry()
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app) -> AsyncClient:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
