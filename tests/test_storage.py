"""Tests for the SQLAlchemy storage adapter against in-memory SQLite."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from pulsewatch.database import init_db
from pulsewatch.models import UptimeLog, Website
from pulsewatch.schemas import CheckResult, Status
from pulsewatch.services.storage import SqlStorage

T0 = datetime(2025, 1, 1, 12, 0)


@pytest.fixture
async def session_factory():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    await init_db(engine)
    factory = async_sessionmaker(engine, expire_on_commit=False)
    async with factory() as session:
        session.add_all([
            Website(id=1, url="https://a.test", name="A", frequency_minutes=1, enabled=1),
            Website(id=2, url="https://b.test", name="B", frequency_minutes=5, enabled=0),
            Website(id=3, url="https://c.test", name="C", frequency_minutes=10, enabled=1),
        ])
        await session.commit()
    yield factory
    await engine.dispose()


@pytest.fixture
def sql_storage(session_factory) -> SqlStorage:
    return SqlStorage(session_factory)


def result(target_id: int, status: Status, minutes: int, **kw) -> CheckResult:
    return CheckResult(
        target_id=target_id,
        status=status,
        response_time_ms=kw.pop("response_time_ms", 20),
        checked_at=T0 + timedelta(minutes=minutes),
        **kw,
    )


class TestSqlStorage:
    async def test_active_targets(self, sql_storage: SqlStorage) -> None:
        targets = await sql_storage.get_active_targets()
        assert [t.id for t in targets] == [1, 3]
        assert targets[0].frequency_minutes == 1
        assert targets[0].enabled is True
        assert targets[1].url == "https://c.test"

    async def test_check_results_are_appended(self, sql_storage: SqlStorage, session_factory) -> None:
        await sql_storage.create_check_result(result(1, Status.UP, 0, http_status_code=200))
        await sql_storage.create_check_result(
            result(1, Status.DOWN, 1, http_status_code=502, error_category="HTTP 502")
        )

        async with session_factory() as session:
            count = await session.scalar(select(func.count()).select_from(UptimeLog))
        assert count == 2

    async def test_latest_check_result(self, sql_storage: SqlStorage) -> None:
        await sql_storage.create_check_result(result(1, Status.UP, 0))
        await sql_storage.create_check_result(result(1, Status.DOWN, 5, error_category="timeout", response_time_ms=10000))
        await sql_storage.create_check_result(result(3, Status.UP, 9))

        latest = await sql_storage.get_latest_check_result(1)
        assert latest.id is not None
        assert latest.target_id == 1
        assert latest.status is Status.DOWN
        assert latest.error_category == "timeout"
        assert latest.response_time_ms == 10000
        assert latest.http_status_code is None

    async def test_latest_without_history(self, sql_storage: SqlStorage) -> None:
        assert await sql_storage.get_latest_check_result(3) is None

    async def test_checked_at_round_trips_as_utc(self, sql_storage: SqlStorage, session_factory) -> None:
        local = datetime(2025, 3, 1, 14, 30, 15, tzinfo=timezone(timedelta(hours=2)))
        await sql_storage.create_check_result(
            CheckResult(target_id=1, status=Status.UP, response_time_ms=20, checked_at=local)
        )

        async with session_factory() as session:
            stored = await session.scalar(select(UptimeLog.checked_at))
        assert stored == datetime(2025, 3, 1, 12, 30, 15)
        assert stored.tzinfo is None

        latest = await sql_storage.get_latest_check_result(1)
        assert latest.checked_at == local
        assert latest.checked_at.tzinfo == timezone.utc

    async def test_naive_timestamps_are_taken_as_utc(self, sql_storage: SqlStorage) -> None:
        await sql_storage.create_check_result(result(1, Status.UP, 0))
        latest = await sql_storage.get_latest_check_result(1)
        assert latest.checked_at == T0.replace(tzinfo=timezone.utc)
