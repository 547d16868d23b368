'''
Pytest configuration for the FastAPI application.

This file sets up fixtures for:
1. Forcing the application into TEST_MODE before any code is imported.
2. Providing a fresh in-memory database session for each service test,
   and a file-backed session factory for tests that need two writers.
3. Providing a FastAPI TestClient for endpoint testing.
4. Providing the ScheduleService, pre-injected with the test db session.
'''

import os

# Must be set BEFORE the application settings are imported
os.environ["TEST_MODE"] = "True"
os.environ["AUTO_CREATE_TABLES"] = "True"

import pytest
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

# --- FastAPI & Testing Imports ---
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

# --- Application Imports ---
from src.class_schedule_backend.main import app
from src.class_schedule_backend.common.config import settings
from src.class_schedule_backend.database.engine import build_engine, build_session_factory
from src.class_schedule_backend.database import models as db_models
from src.class_schedule_backend.services.dependents import DependentsChecker
from src.class_schedule_backend.services.schedule_service import ScheduleService

# --- Constant Imports ----
from tests.constants import (
    TEST_GROUP_ID,
    TEST_NOW,
    TEST_SUBJECT,
    TEST_DAYS,
    TEST_START_TIME,
    TEST_END_TIME
)


@pytest.fixture(scope="session")
def anyio_backend():
    """
    Override the default 'anyio_backend' fixture.
    1. Forces the backend to 'asyncio' (solves 'trio' error).
    2. Promotes the scope to 'session' (solves 'ScopeMismatch').
    """
    return "asyncio"


# --- 1. Dependents Hook ---

@pytest.fixture(scope="function")
def mock_dependents() -> DependentsChecker:
    """Provides a mock DependentsChecker that reports no dependents by default."""
    mock_checker = MagicMock(spec=DependentsChecker)
    mock_checker.has_dependents = AsyncMock(return_value=False)
    return mock_checker


# --- 2. API Client ---

@pytest.fixture(scope="function")
def client(mock_dependents: DependentsChecker) -> TestClient:
    """
    The core fixture for endpoint tests.

    1. Verifies TEST_MODE is on, so the in-memory database is used.
    2. Runs the app's lifespan, which creates the engine and the tables.
       Every test gets a brand new in-memory database this way.
    3. Replaces the dependents hook with the mock.
    """
    assert settings.TEST_MODE is True, \
        "TEST_MODE was not set to True! Check your .env file or environment."

    app.dependency_overrides[DependentsChecker] = lambda: mock_dependents

    with TestClient(app) as test_client:
        yield test_client

    # The app's shutdown lifespan runs here, and we clear the override.
    app.dependency_overrides.clear()


# --- 3. Function-Scoped Session Fixture (For Service Tests) ---

@pytest.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Provides an isolated session on its own in-memory database.
    The engine lives in the test's event loop and is disposed afterwards.
    """
    engine = build_engine(settings.DATABASE_URL_TEST)
    async with engine.begin() as conn:
        await conn.run_sync(db_models.Base.metadata.create_all)

    session = build_session_factory(engine)()
    try:
        yield session
    finally:
        await session.rollback()
        await session.close()
        await engine.dispose()


@pytest.fixture(scope="function")
async def file_session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """
    Session factory on a file-backed SQLite database. Every session gets its
    own connection, so two sessions behave like two concurrent writers.
    """
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'schedule.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(db_models.Base.metadata.create_all)
    try:
        yield build_session_factory(engine)
    finally:
        await engine.dispose()


# --- 4. SERVICE FIXTURES ---

@pytest.fixture(scope="function")
def schedule_service(db_session: AsyncSession, mock_dependents: DependentsChecker) -> ScheduleService:
    return ScheduleService(db=db_session, dependents=mock_dependents)


@pytest.fixture(scope="function")
async def test_series_orm(schedule_service: ScheduleService) -> db_models.RecurrenceSeries:
    """Mon/Wed 15:00-16:30 series created at TEST_NOW with a 2 week window."""
    return await schedule_service.create_series(
        group_id=TEST_GROUP_ID,
        subject=TEST_SUBJECT,
        days_of_week=TEST_DAYS,
        start_time=TEST_START_TIME,
        end_time=TEST_END_TIME,
        reference_now=TEST_NOW,
        window_weeks=2
    )
