"""Test fixtures and configuration for MediFind API tests."""
from __future__ import annotations

import os
from collections.abc import AsyncIterator, Iterator
from typing import Optional
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

# Settings are read at import time by the db and cache modules, so the test
# environment has to be in place before anything from medifind is imported.
os.environ.update(
    {
        "SECRET_KEY": "test-secret-key-that-is-at-least-32-chars-long",
        "ENVIRONMENT": "test",
        "DATABASE_URL": "sqlite+aiosqlite:///:memory:",
        "CREATE_SCHEMA_ON_STARTUP": "false",
        "REDIS_URL": "redis://localhost:6379/0",
        "API_CACHE_TTL_SECONDS": "0",
        "GEMINI_API_KEY": "",
        "CORS_ORIGINS": "http://localhost:5173",
        "RATE_LIMIT_ENABLED": "false",
    }
)


def pytest_configure(config):
    from medifind.core.config import get_settings
    get_settings.cache_clear()


from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from medifind.db.base import Base
from medifind.schemas.pharmacies import Location, MedicineEntry, MedicineInfo, StoreRecord
from medifind.services.repository import InMemoryStoreRepository


class FakeKnowledgeService:
    """Records calls and answers from a fixed table, or raises if told to."""

    def __init__(self, answers: Optional[dict[str, MedicineInfo]] = None, error: Optional[Exception] = None):
        self.answers = answers or {}
        self.error = error
        self.calls: list[str] = []

    async def describe_medicine(self, name: str) -> Optional[MedicineInfo]:
        self.calls.append(name)
        if self.error is not None:
            raise self.error
        return self.answers.get(name.lower())


class CountingStoreRepository(InMemoryStoreRepository):
    """In-memory repository that records how often stores were listed."""

    def __init__(self, stores=()):
        super().__init__(stores)
        self.calls = 0

    async def list_stores(self) -> list[StoreRecord]:
        self.calls += 1
        return await super().list_stores()


def make_store(
    name: str,
    lat: float,
    lng: float,
    inventory: list[MedicineEntry],
    *,
    address: Optional[str] = None,
) -> StoreRecord:
    slug = name.lower().replace(" ", "")
    return StoreRecord(
        id=f"owner@{slug}.example",
        store_name=name,
        address=address or f"1 {name} Street",
        location=Location(lat=lat, lng=lng),
        inventory=inventory,
    )


@pytest.fixture
def paracetamol_info() -> MedicineInfo:
    return MedicineInfo(
        description="A common pain reliever and fever reducer.",
        primary_use="Mild to moderate pain and fever",
        common_forms="Tablets, syrup, suppositories",
    )


@pytest.fixture
def city_pharmacy() -> StoreRecord:
    return make_store(
        "City Pharmacy",
        10.0,
        10.0,
        [
            MedicineEntry(name="Paracetamol", brands=["Calpol"], stock=5),
            MedicineEntry(name="Ibuprofen", brands=["Brufen", "Advil"], stock=0),
        ],
    )


@pytest.fixture
def town_pharmacy() -> StoreRecord:
    return make_store(
        "Town Pharmacy",
        10.0,
        10.01,
        [MedicineEntry(name="Paracetamol", brands=[], stock=0)],
    )


@pytest.fixture
def far_pharmacy() -> StoreRecord:
    return make_store(
        "Lakeside Drugstore",
        10.5,
        10.5,
        [
            MedicineEntry(name="Amoxicillin", brands=["Novamox"], stock=9),
            MedicineEntry(name="Paracetamol", brands=["Dolo 650"], stock=30),
        ],
    )


@pytest.fixture
def sample_stores(city_pharmacy, town_pharmacy, far_pharmacy) -> list[StoreRecord]:
    return [far_pharmacy, city_pharmacy, town_pharmacy]


@pytest.fixture
def repository(sample_stores) -> CountingStoreRepository:
    return CountingStoreRepository(sample_stores)


@pytest.fixture
def knowledge(paracetamol_info) -> FakeKnowledgeService:
    return FakeKnowledgeService({"paracetamol": paracetamol_info})


@pytest.fixture
def mock_redis():
    """Mock Redis client for tests."""
    mock = MagicMock()
    mock.get = AsyncMock(return_value=None)
    mock.set = AsyncMock(return_value=True)
    mock.ping = AsyncMock(return_value=True)
    return mock


@pytest.fixture
def client(repository, knowledge, mock_redis) -> Iterator[TestClient]:
    """Test client with the in-memory repository and fake knowledge service."""
    from medifind.core.config import get_settings
    get_settings.cache_clear()

    from medifind.main import app
    from medifind.services.knowledge import get_knowledge_service
    from medifind.services.repository import get_inventory_writer, get_store_repository

    app.dependency_overrides[get_store_repository] = lambda: repository
    app.dependency_overrides[get_inventory_writer] = lambda: repository
    app.dependency_overrides[get_knowledge_service] = lambda: knowledge
    try:
        with patch("medifind.services.cache._cache._redis", mock_redis):
            with TestClient(app) as test_client:
                yield test_client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def member_headers() -> dict[str, str]:
    from medifind.core.auth import create_member_token
    return {"Authorization": f"Bearer {create_member_token('customer@example.com')}"}


@pytest.fixture
def owner_headers(city_pharmacy) -> dict[str, str]:
    from medifind.core.auth import create_owner_token
    return {"Authorization": f"Bearer {create_owner_token(city_pharmacy.id)}"}


@pytest.fixture
async def async_engine():
    """Create an async SQLite engine for testing."""
    from medifind.db import models  # noqa: F401

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def async_session(async_engine) -> AsyncIterator[AsyncSession]:
    factory = async_sessionmaker(async_engine, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest.fixture
def test_settings():
    from medifind.core.config import get_settings
    get_settings.cache_clear()
    return get_settings()
