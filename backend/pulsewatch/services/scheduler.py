"""Scheduler service - one periodic check job per monitored target.

Each enabled target gets its own APScheduler interval job (every N minutes,
N >= 1). Starting a target replaces any job it already has, so there is at
most one live job per target id. A check that is still running when the
next one comes due causes that next one to be skipped; different targets
never wait on each other. A target started while its previous check is
still running gets its immediate check as soon as that one finishes.
"""
import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Set

from apscheduler.job import Job
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from ..schemas import CheckResult, Target
from .notifier import Notifier
from .prober import Prober
from .status_tracker import AlertAction, AlertKind, StatusTracker
from .storage import Storage

logger = logging.getLogger(__name__)

MIN_INTERVAL_MINUTES = 1


@dataclass
class ScheduleEntry:
    """The live schedule of one target."""
    target_id: int
    job: Job
    interval_minutes: int


def job_id_for(target_id: int) -> str:
    return f"target-{target_id}"


class SchedulerService:
    """Runs probe -> store -> evaluate -> notify for every scheduled target."""

    def __init__(
        self,
        prober: Prober,
        tracker: StatusTracker,
        storage: Storage,
        notifier: Notifier,
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        self.prober = prober
        self.tracker = tracker
        self.storage = storage
        self.notifier = notifier
        self.scheduler = scheduler or AsyncIOScheduler(timezone=timezone.utc)
        self._entries: Dict[int, ScheduleEntry] = {}
        self._in_flight: Set[int] = set()
        self._deferred: Dict[int, Target] = {}
        self._tasks: Set[asyncio.Task] = set()

    # Lifecycle of the underlying scheduler

    def startup(self):
        """Start dispatching jobs."""
        if self.scheduler.running:
            return
        self.scheduler.start()
        logger.info("Scheduler started")

    def shutdown(self):
        """Stop dispatching jobs and drop every schedule."""
        for target_id in list(self._entries):
            self.stop(target_id)
        for task in list(self._tasks):
            task.cancel()
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")

    # Per-target schedules

    def start(self, target: Target):
        """Schedule periodic checks for a target and dispatch one right away.

        Any existing schedule for the target is cancelled first. Disabled
        targets end up stopped.
        """
        self.stop(target.id)

        if not target.enabled:
            return

        interval = max(MIN_INTERVAL_MINUTES, target.frequency_minutes)

        # A running check still holds this job id's instance slot; run_check
        # dispatches the immediate check when it finishes.
        deferred = target.id in self._in_flight
        first_run = datetime.now(timezone.utc)
        if deferred:
            first_run += timedelta(minutes=interval)

        try:
            job = self.scheduler.add_job(
                self._tick,
                trigger=IntervalTrigger(minutes=interval),
                args=[target],
                id=job_id_for(target.id),
                name=f"check {target.name}",
                replace_existing=True,
                max_instances=1,
                coalesce=True,
                misfire_grace_time=None,
                next_run_time=first_run,
            )
        except Exception as e:
            logger.error(f"Failed to schedule {target.name} ({target.url}): {e}")
            return

        self._entries[target.id] = ScheduleEntry(
            target_id=target.id,
            job=job,
            interval_minutes=interval,
        )
        logger.info(f"Started monitoring {target.name} ({target.url}) every {interval} minutes")
        if deferred:
            self._deferred[target.id] = target
            logger.info(f"First check for {target.name} waits for the running check to finish")

    def stop(self, target_id: int):
        """Cancel a target's schedule and forget its alert state.

        Unknown or already stopped ids are ignored. A check already in
        flight runs to completion and its result is still stored.
        """
        entry = self._entries.pop(target_id, None)
        self._deferred.pop(target_id, None)
        self.tracker.reset(target_id)
        if entry is None:
            return

        try:
            entry.job.remove()
        except JobLookupError:
            pass
        logger.info(f"Stopped monitoring target {target_id}")

    def restart(self, target: Target):
        self.stop(target.id)
        self.start(target)

    def is_scheduled(self, target_id: int) -> bool:
        return target_id in self._entries

    def get_entry(self, target_id: int) -> Optional[ScheduleEntry]:
        return self._entries.get(target_id)

    def active_target_ids(self) -> List[int]:
        return sorted(self._entries)

    # Checks

    async def run_check(self, target: Target) -> Optional[CheckResult]:
        """Run one check now, unless one is already running for this target."""
        if target.id in self._in_flight:
            logger.warning(f"Skipping check for {target.name}: previous check still running")
            return None

        self._in_flight.add(target.id)
        try:
            return await self._check_target(target)
        except Exception as e:
            logger.exception(f"Error checking {target.name}: {e}")
            return None
        finally:
            self._in_flight.discard(target.id)
            self._run_deferred(target.id)

    def _run_deferred(self, target_id: int):
        target = self._deferred.pop(target_id, None)
        if target is None:
            return
        task = asyncio.create_task(self.run_check(target))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _tick(self, target: Target):
        await self.run_check(target)

    async def _check_target(self, target: Target) -> CheckResult:
        entry = self._entries.get(target.id)
        outcome = await self.prober.probe(target.url)

        result = CheckResult(
            target_id=target.id,
            status=outcome.status,
            response_time_ms=outcome.response_time_ms,
            http_status_code=outcome.http_status_code,
            error_category=outcome.error_category,
            checked_at=outcome.checked_at,
        )

        try:
            await self.storage.create_check_result(result)
        except Exception as e:
            logger.error(f"Failed to record check result for {target.name}: {e}")

        logger.info(f"{target.name} ({target.url}): {outcome.status.value} - {outcome.response_time_ms}ms")

        # Unscheduled, or stopped or restarted while the probe was running
        if entry is None or self._entries.get(target.id) is not entry:
            return result

        action = self.tracker.evaluate(target.id, outcome)
        await self._dispatch(target, action)
        return result

    async def _dispatch(self, target: Target, action: AlertAction):
        if action.is_none:
            return

        try:
            if action.kind is AlertKind.SEND_DOWNTIME:
                await self.notifier.send_downtime_alert(target, action.error)
            elif action.kind is AlertKind.SEND_RECOVERY:
                await self.notifier.send_recovery_alert(target)
        except Exception as e:
            logger.error(f"Failed to send {action.kind.value} alert for {target.name}: {e}")
