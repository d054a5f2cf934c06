"""Shared test fixtures and collaborator fakes."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest

from pulsewatch.schemas import CheckResult, Status, Target
from pulsewatch.services.prober import CheckOutcome
from pulsewatch.services.scheduler import SchedulerService
from pulsewatch.services.status_tracker import StatusTracker


def make_outcome(
    status: Status,
    code: int | None = None,
    category: str | None = None,
    response_time_ms: int = 25,
) -> CheckOutcome:
    if status is Status.DOWN and code is not None and category is None:
        category = f"HTTP {code}"
    return CheckOutcome(
        status=status,
        response_time_ms=response_time_ms,
        checked_at=datetime.now(timezone.utc),
        http_status_code=code,
        error_category=category,
    )


UP = make_outcome(Status.UP, 200)


class FakeProber:
    """Returns queued outcomes (the last one repeats); optionally blocks on a gate."""

    def __init__(self, *outcomes: CheckOutcome) -> None:
        self.outcomes = list(outcomes) or [UP]
        self.calls: list[str] = []
        self.gate: asyncio.Event | None = None
        self.error: Exception | None = None

    async def probe(self, url: str) -> CheckOutcome:
        self.calls.append(url)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        if len(self.outcomes) > 1:
            return self.outcomes.pop(0)
        return self.outcomes[0]


class FakeStorage:
    def __init__(self, events: list | None = None) -> None:
        self.results: list[CheckResult] = []
        self.targets: list[Target] = []
        self.latest: dict[int, CheckResult] = {}
        self.events = events if events is not None else []
        self.fail = False
        self.fail_targets = False

    async def create_check_result(self, result: CheckResult) -> None:
        self.events.append(("store", result.target_id, result.status))
        if self.fail:
            raise RuntimeError("database is locked")
        self.results.append(result)

    async def get_active_targets(self) -> list[Target]:
        if self.fail_targets:
            raise RuntimeError("connection refused")
        return [t for t in self.targets if t.enabled]

    async def get_latest_check_result(self, target_id: int) -> CheckResult | None:
        return self.latest.get(target_id)


class FakeNotifier:
    def __init__(self, events: list | None = None) -> None:
        self.downtime: list[tuple[int, str]] = []
        self.recovery: list[int] = []
        self.events = events if events is not None else []
        self.fail = False

    async def send_downtime_alert(self, target: Target, error_category: str) -> None:
        self.events.append(("downtime", target.id, error_category))
        if self.fail:
            raise RuntimeError("smtp unavailable")
        self.downtime.append((target.id, error_category))

    async def send_recovery_alert(self, target: Target) -> None:
        self.events.append(("recovery", target.id))
        if self.fail:
            raise RuntimeError("smtp unavailable")
        self.recovery.append(target.id)


def make_target(target_id: int = 1, frequency: int = 5, enabled: bool = True, **kw) -> Target:
    return Target(
        id=target_id,
        url=kw.pop("url", f"http://site-{target_id}.test"),
        name=kw.pop("name", f"site-{target_id}"),
        frequency_minutes=frequency,
        enabled=enabled,
    )


@pytest.fixture
def events() -> list:
    return []


@pytest.fixture
def prober() -> FakeProber:
    return FakeProber()


@pytest.fixture
def storage(events: list) -> FakeStorage:
    return FakeStorage(events)


@pytest.fixture
def notifier(events: list) -> FakeNotifier:
    return FakeNotifier(events)


@pytest.fixture
def tracker() -> StatusTracker:
    return StatusTracker()


@pytest.fixture
def service(prober, tracker, storage, notifier):
    """A scheduler whose APScheduler is never started: jobs stay pending, ticks are driven by hand."""
    svc = SchedulerService(prober, tracker, storage, notifier)
    yield svc
    for target_id in svc.active_target_ids():
        svc.stop(target_id)
