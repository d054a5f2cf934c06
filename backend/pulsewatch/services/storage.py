"""Storage collaborator - contract and SQLAlchemy-backed implementation."""
import logging
from datetime import datetime, timezone
from typing import List, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..database import async_session
from ..models import UptimeLog, Website
from ..schemas import CheckResult, Target

logger = logging.getLogger(__name__)


class Storage(Protocol):
    """What the engine needs from persistence."""

    async def create_check_result(self, result: CheckResult) -> None: ...

    async def get_active_targets(self) -> List[Target]: ...

    async def get_latest_check_result(self, target_id: int) -> Optional[CheckResult]: ...


def _to_naive_utc(value: datetime) -> datetime:
    """uptime_logs stores naive UTC timestamps."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _to_check_result(log: UptimeLog) -> CheckResult:
    return CheckResult(
        id=log.id,
        target_id=log.website_id,
        status=log.status,
        response_time_ms=log.response_time_ms,
        http_status_code=log.http_status_code,
        error_category=log.error_category,
        checked_at=log.checked_at.replace(tzinfo=timezone.utc),
    )


class SqlStorage:
    """Storage backed by the websites / uptime_logs tables.

    Errors propagate to the caller; the scheduler decides to log and move on.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession] = async_session):
        self._session_factory = session_factory

    async def create_check_result(self, result: CheckResult) -> None:
        async with self._session_factory() as session:
            session.add(UptimeLog(
                website_id=result.target_id,
                checked_at=_to_naive_utc(result.checked_at),
                status=result.status.value,
                response_time_ms=result.response_time_ms,
                http_status_code=result.http_status_code,
                error_category=result.error_category,
            ))
            await session.commit()

    async def get_active_targets(self) -> List[Target]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(Website).where(Website.enabled == 1).order_by(Website.id)
            )
            return [Target.model_validate(row) for row in result.scalars().all()]

    async def get_latest_check_result(self, target_id: int) -> Optional[CheckResult]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(UptimeLog)
                .where(UptimeLog.website_id == target_id)
                .order_by(UptimeLog.checked_at.desc(), UptimeLog.id.desc())
                .limit(1)
            )
            log = result.scalar_one_or_none()
            return _to_check_result(log) if log else None
