"""
Pytest configuration and shared fixtures for the rental ops test suite.

This module provides:
- In-memory object storage double
- Database fixtures (in-memory SQLite for fast tests)
- Row factories for rentals, requests and vehicles
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret-with-at-least-32-bytes!!")
os.environ.setdefault("JWT_ALGORITHM", "HS256")

from types import SimpleNamespace
from typing import AsyncGenerator, Dict, Iterable, List, Optional

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from core.db import Base
from core.storage import StorageEntry
from services.asset_resolver import AssetResolver
from services.exceptions import AssetStorageError
import models  # noqa: F401  registers tables on Base.metadata


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
PUBLIC_BASE = "https://assets.test/cars"


class InMemoryAssetStorage:
    """Folder -> object names, with optional per-folder failures."""

    def __init__(self, folders: Optional[Dict[str, Iterable[str]]] = None, failing: Iterable[str] = ()):
        self.folders = {key: list(names) for key, names in (folders or {}).items()}
        self.failing = set(failing)
        self.listed: List[str] = []

    async def list_folder(self, folder: str) -> List[StorageEntry]:
        self.listed.append(folder)
        if folder in self.failing:
            raise AssetStorageError(f"listing {folder} failed")
        return [StorageEntry(name=name) for name in self.folders.get(folder, [])]

    def public_url(self, folder: str, name: str) -> str:
        return f"{PUBLIC_BASE}/{folder}/{name}"


def asset_url(folder: str, name: str) -> str:
    return f"{PUBLIC_BASE}/{folder}/{name}"


@pytest.fixture
def c43_storage() -> InMemoryAssetStorage:
    return InMemoryAssetStorage({
        "mercedes-c43": ["c43-3.jpg", "c43-main.jpg", "c43-2.jpg", ".emptyFolderPlaceholder"],
        "audi-q7": ["q7-main.png", "q7-1.png"],
    })


@pytest.fixture
def resolver(c43_storage) -> AssetResolver:
    return AssetResolver(c43_storage)


def make_car(**overrides) -> SimpleNamespace:
    data = dict(
        id=1,
        make="Mercedes-AMG",
        model="C43",
        name="Mercedes-AMG C43",
        year=2022,
        transmission="automatic",
        fuel_type="petrol",
        status="available",
        price_per_day="120.00",
        image_url=None,
        photo_gallery=None,
    )
    data.update(overrides)
    return SimpleNamespace(**data)


def make_rental_row(**overrides) -> SimpleNamespace:
    data = dict(
        id=100,
        user_id="user-123456789",
        car_id=1,
        request_id=None,
        start_date="2025-03-10",
        start_time="10:00",
        end_date="2025-03-12",
        end_time="18:00",
        rental_status="ACTIVE",
        total_amount="240.00",
        price_per_day="120.00",
        contract_url=None,
        options=None,
        created_at=None,
    )
    data.update(overrides)
    return SimpleNamespace(**data)


def make_request_row(**overrides) -> SimpleNamespace:
    data = dict(
        id=42,
        user_id="user-123456789",
        car_id=1,
        start_date="2025-03-10",
        start_time="10:00",
        end_date="2025-03-12",
        end_time="18:00",
        status="PENDING",
        total_amount="200",
        price_per_day="100",
        contract_url=None,
        options=None,
        customer_first_name="Jane",
        customer_last_name="Doe",
        customer_email="jane@example.com",
        created_at=None,
    )
    data.update(overrides)
    return SimpleNamespace(**data)


@pytest_asyncio.fixture
async def async_engine():
    """Create async engine for testing with in-memory SQLite."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def async_db_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create async database session for testing."""
    async_session = async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:
        yield session
