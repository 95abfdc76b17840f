"""
Shared fixtures: an in-memory SQLite database built from the SQLModel
metadata, a seeded pair of projects, and an HTTP client whose session and
caller dependencies are overridden.

Seed layout:
- alice: member of P1
- bob: owner of P1 and P2
- carol: no memberships
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

import taskboard_api.models  # noqa: F401
from taskboard_api.core.auth import Caller, get_current_caller
from taskboard_api.core.config import get_settings
from taskboard_api.core.database import get_session
from taskboard_api.core.errors import UnauthorizedError
from taskboard_api.main import app as fastapi_app
from taskboard_api.models import Label, Project, ProjectMember, Task, TaskAssignment, UserProfile
from taskboard_api.services.wire import from_epoch_ms

# 2023-11-14T22:13:20Z
T0 = 1_700_000_000_000

ts = from_epoch_ms


def make_token(
    user_id: str,
    email: Optional[str] = None,
    *,
    is_super_admin: bool = False,
    expires_delta: timedelta = timedelta(minutes=5),
) -> tuple[str, str]:
    """Sign a session JWT the way the auth service does. Returns (token, jti)."""
    settings = get_settings()
    jti = str(uuid.uuid4())
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "email": email,
        "is_super_admin": is_super_admin,
        "iat": now,
        "exp": now + expires_delta,
        "jti": jti,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm), jti


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def _stamped(model, epoch_ms: int, author: str, **fields):
    return model(
        **fields,
        created_at=ts(epoch_ms),
        updated_at=ts(epoch_ms),
        created_by=author,
        updated_by=author,
    )


@pytest.fixture
async def seeded(session_factory):
    """Users, two projects, their labels and one task owned by bob."""
    async with session_factory() as session:
        session.add_all(
            [
                UserProfile(id="alice", full_name="Alice Adams", email="alice@example.com",
                            avatar="https://img.example.com/alice.png"),
                UserProfile(id="bob", full_name="Bob Brown", email="bob@example.com",
                            profile_image="https://img.example.com/bob.png"),
                UserProfile(id="carol", full_name="Carol Chen", email="carol@example.com"),
            ]
        )
        session.add_all(
            [
                _stamped(Project, T0, "bob", id="P1", org_id="org-1", name="Launch"),
                _stamped(Project, T0, "bob", id="P2", org_id="org-1", name="Internal"),
            ]
        )
        await session.flush()
        session.add_all(
            [
                _stamped(ProjectMember, T0, "bob", project_id="P1", user_id="bob",
                         role="owner", is_owner=True),
                _stamped(ProjectMember, T0, "bob", project_id="P1", user_id="alice"),
                _stamped(ProjectMember, T0, "bob", project_id="P2", user_id="bob",
                         role="owner", is_owner=True),
                _stamped(Label, T0 + 10, "bob", id="S1", project_id="P1", type="status",
                         name="Todo", color="#ffffff"),
                _stamped(Label, T0 + 20, "bob", id="PR1", project_id="P1", type="priority",
                         name="High", color="#ff0000"),
                _stamped(Label, T0 + 30, "bob", id="S2", project_id="P2", type="status",
                         name="Todo", color="#ffffff"),
                _stamped(Label, T0 + 40, "bob", id="PR2", project_id="P2", type="priority",
                         name="Low", color="#00ff00"),
            ]
        )
        await session.flush()
        session.add(
            _stamped(Task, T0 + 50, "bob", id="T1", project_id="P1", name="Write launch post",
                     status_id="S1", priority_id="PR1")
        )
        await session.flush()
        session.add(TaskAssignment(task_id="T1", user_id="bob"))
        await session.commit()


@pytest.fixture
async def session(session_factory, seeded):
    async with session_factory() as session:
        yield session


class CallerOverride:
    """Stands in for the auth dependency; ``user_id=None`` means unauthenticated."""

    def __init__(self):
        self.user_id: Optional[str] = None

    def __call__(self) -> Caller:
        if self.user_id is None:
            raise UnauthorizedError("Authentication required")
        return Caller(id=self.user_id)


@pytest.fixture
async def app(session_factory, seeded):
    async def override_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    caller = CallerOverride()
    fastapi_app.dependency_overrides[get_session] = override_session
    fastapi_app.dependency_overrides[get_current_caller] = caller
    fastapi_app.state.test_caller = caller
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def login(app):
    """Authenticate subsequent requests as the given user id."""

    def _login(user_id: Optional[str]) -> None:
        app.state.test_caller.user_id = user_id

    return _login
