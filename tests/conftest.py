"""
Pytest configuration and fixtures for the relationship engine tests.

This module provides fixtures for:
- Engine tests (in-memory store and collaborators)
- SQL adapter tests (sqlite+aiosqlite database)
- API tests (FastAPI TestClient)
"""

import os

# Settings are read at import time, so the environment is fixed before any app import
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-that-is-long-enough-1234567890")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("EDGE_STORE_BACKEND", "MEMORY")
os.environ.setdefault("NOTIFICATION_BACKEND", "MEMORY")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("ENV", "development")

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

from app.infra.db import build_session_factory
from app.models import Base
from app.relationship.coordinator import TransitionCoordinator
from app.relationship.dispatcher import SideEffectDispatcher
from app.relationship.effects import InMemoryFriendCounter, InMemoryNotifier
from app.relationship.projector import QueryProjector
from app.relationship.service import RelationshipService
from app.relationship.store import InMemoryEdgeStore


# ============ Engine Fixtures ============

@pytest.fixture
def store():
    return InMemoryEdgeStore()


@pytest.fixture
def notifier():
    return InMemoryNotifier()


@pytest.fixture
def counter():
    return InMemoryFriendCounter()


@pytest.fixture
def dispatcher(notifier, counter):
    return SideEffectDispatcher(notifier, counter)


@pytest.fixture
def coordinator(store, dispatcher):
    return TransitionCoordinator(store, dispatcher)


@pytest.fixture
def projector(store):
    return QueryProjector(store)


@pytest.fixture
def service(coordinator, projector):
    return RelationshipService(coordinator, projector)


# ============ SQL Fixtures ============

@pytest_asyncio.fixture
async def sql_engine(tmp_path):
    """File-backed sqlite so every session sees the same database."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'relationships.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(sql_engine):
    return build_session_factory(sql_engine)
