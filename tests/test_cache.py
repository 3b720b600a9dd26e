"""
Unit tests for the cache backends.
The database backend runs against an in-memory SQLite database.
"""
import asyncio
import threading
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from simu.cache.models import CacheEntry
from simu.cache.service import (
    DatabaseCacheService,
    InMemoryCacheService,
    build_cache_service,
)
from simu.core.database import Base

SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def test_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


def test_in_memory_cache_roundtrip():
    cache = InMemoryCacheService()

    asyncio.run(cache.set("key", "value", timedelta(days=1)))

    assert asyncio.run(cache.get("key")) == "value"
    assert asyncio.run(cache.get("missing")) is None


def test_in_memory_cache_expires_entries():
    clock = FakeClock()
    cache = InMemoryCacheService(clock=clock)
    asyncio.run(cache.set("key", "value", timedelta(hours=1)))

    clock.now += 3599
    assert asyncio.run(cache.get("key")) == "value"

    clock.now += 1
    assert asyncio.run(cache.get("key")) is None


def test_in_memory_cache_last_write_wins():
    cache = InMemoryCacheService()
    asyncio.run(cache.set("key", "first", timedelta(days=1)))
    asyncio.run(cache.set("key", "second", timedelta(days=1)))

    assert asyncio.run(cache.get("key")) == "second"


def test_database_cache_roundtrip(test_db):
    cache = DatabaseCacheService(session_factory=TestingSessionLocal)

    asyncio.run(cache.set("Simulation_100000_28000_360", '{"monthly_amount": "395.12"}', timedelta(days=1)))

    assert asyncio.run(cache.get("Simulation_100000_28000_360")) == '{"monthly_amount": "395.12"}'
    assert asyncio.run(cache.get("Simulation_1_1_1")) is None


def test_database_cache_overwrites_existing_key(test_db):
    cache = DatabaseCacheService(session_factory=TestingSessionLocal)

    asyncio.run(cache.set("key", "first", timedelta(days=1)))
    asyncio.run(cache.set("key", "second", timedelta(days=1)))

    assert asyncio.run(cache.get("key")) == "second"


def test_database_cache_drops_expired_entries(test_db):
    db = TestingSessionLocal()
    db.add(CacheEntry(key="old", value="stale", expires_at=datetime.now(timezone.utc) - timedelta(seconds=1)))
    db.commit()
    db.close()

    cache = DatabaseCacheService(session_factory=TestingSessionLocal)

    assert asyncio.run(cache.get("old")) is None

    db = TestingSessionLocal()
    assert db.get(CacheEntry, "old") is None
    db.close()


def test_build_cache_service():
    assert isinstance(build_cache_service("memory"), InMemoryCacheService)
    assert isinstance(build_cache_service("database"), DatabaseCacheService)

    with pytest.raises(ValueError):
        build_cache_service("redis")


def test_in_memory_cache_sweeps_expired_entries_on_write():
    """Distinct keys that have expired do not accumulate in memory."""
    clock = FakeClock()
    cache = InMemoryCacheService(clock=clock)
    for index in range(2000):
        asyncio.run(cache.set(f"Simulation_{index}_28000_360", "value", timedelta(days=1)))
    assert cache.size == 2000

    clock.now += timedelta(days=2).total_seconds()
    asyncio.run(cache.set("fresh", "value", timedelta(days=1)))

    assert cache.size == 1
    assert asyncio.run(cache.get("fresh")) == "value"


def test_in_memory_cache_sweep_keeps_rewritten_keys():
    """A key rewritten with a later expiry survives the sweep of its older expiry."""
    clock = FakeClock()
    cache = InMemoryCacheService(clock=clock)
    asyncio.run(cache.set("key", "old", timedelta(hours=1)))

    clock.now += 1800
    asyncio.run(cache.set("key", "new", timedelta(hours=1)))

    clock.now += 1800
    asyncio.run(cache.set("other", "value", timedelta(hours=1)))

    assert asyncio.run(cache.get("key")) == "new"
    assert cache.size == 2


def test_database_cache_write_after_concurrent_insert(test_db):
    """Both writers miss, the other one commits first: the late write still succeeds and wins."""
    cache = DatabaseCacheService(session_factory=TestingSessionLocal)
    assert asyncio.run(cache.get("k")) is None

    other = TestingSessionLocal()
    other.add(CacheEntry(key="k", value="first", expires_at=datetime.now(timezone.utc) + timedelta(days=1)))
    other.commit()
    other.close()

    asyncio.run(cache.set("k", "second", timedelta(days=1)))

    assert asyncio.run(cache.get("k")) == "second"


def test_database_cache_concurrent_writers_same_key(tmp_path):
    """Parallel writers racing on one key never fail; one of the values is kept."""
    file_engine = create_engine(f"sqlite:///{tmp_path / 'cache.db'}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=file_engine)
    cache = DatabaseCacheService(session_factory=sessionmaker(autocommit=False, autoflush=False, bind=file_engine))
    errors = []

    def write(value: str) -> None:
        try:
            cache._set("Simulation_100000_28000_360", value, timedelta(days=1))
        except Exception as exc:
            errors.append(exc)

    threads = [threading.Thread(target=write, args=(f"value-{index}",)) for index in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert asyncio.run(cache.get("Simulation_100000_28000_360")).startswith("value-")
    file_engine.dispose()
