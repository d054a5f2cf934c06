"""Monitoring engine - the entry points the API layer calls on target changes."""
import logging
from typing import Iterable, List, Optional

from ..config import Settings, settings as default_settings
from ..schemas import CheckResult, Target
from .notifier import AlertHistory, AlertRecord, Notifier, build_notifier
from .prober import Prober
from .scheduler import SchedulerService
from .status_tracker import StatusTracker
from .storage import SqlStorage, Storage

logger = logging.getLogger(__name__)


class MonitorEngine:
    """Owns the prober, status tracker and scheduler for one process.

    Call restart() whenever a target's enabled flag or frequency changes,
    and stop() before deleting a target from storage.
    """

    def __init__(
        self,
        storage: Storage,
        notifier: Notifier,
        prober: Optional[Prober] = None,
        tracker: Optional[StatusTracker] = None,
        scheduler: Optional[SchedulerService] = None,
        restore_alert_state: bool = True,
    ):
        self.storage = storage
        self.notifier = notifier
        self.prober = prober or Prober()
        self.tracker = tracker or StatusTracker()
        self.scheduler = scheduler or SchedulerService(self.prober, self.tracker, storage, notifier)
        self.restore_alert_state = restore_alert_state

    @classmethod
    def from_settings(cls, settings: Settings = default_settings) -> "MonitorEngine":
        """Build an engine wired to the SQL storage and configured alert channels."""
        prober = Prober(
            timeout=settings.probe_timeout_seconds,
            max_redirects=settings.probe_max_redirects,
            user_agent=settings.user_agent,
        )
        return cls(
            storage=SqlStorage(),
            notifier=build_notifier(settings),
            prober=prober,
            restore_alert_state=settings.restore_alert_state,
        )

    def startup(self):
        self.scheduler.startup()

    def shutdown(self):
        self.scheduler.shutdown()

    def start(self, target: Target):
        self.scheduler.start(target)

    def stop(self, target_id: int):
        self.scheduler.stop(target_id)

    def restart(self, target: Target):
        self.scheduler.restart(target)

    async def check_now(self, target: Target) -> Optional[CheckResult]:
        """Run a single check outside the schedule."""
        return await self.scheduler.run_check(target)

    def recent_alerts(self) -> List[AlertRecord]:
        """Alerts sent so far, newest first; empty if the notifier keeps no history."""
        if isinstance(self.notifier, AlertHistory):
            return self.notifier.recent_alerts()
        return []

    async def initialize_all(self, targets: Optional[Iterable[Target]] = None) -> int:
        """Start every enabled target; loads active targets from storage if none given.

        Returns the number of targets scheduled.
        """
        logger.info("Initializing monitoring engine...")

        if targets is None:
            try:
                targets = await self.storage.get_active_targets()
            except Exception as e:
                logger.error(f"Failed to load active targets: {e}")
                return 0

        enabled = [t for t in targets if t.enabled]
        latest = await self._latest_results(enabled) if self.restore_alert_state else {}

        # No awaits from here on, so no scheduled check can run before its state is seeded
        for target in enabled:
            self.start(target)
            previous = latest.get(target.id)
            if previous is not None and self.scheduler.is_scheduled(target.id):
                self.tracker.restore(target.id, previous.status)

        started = len(self.scheduler.active_target_ids())
        logger.info(f"Started monitoring {started} active targets")
        return started

    async def _latest_results(self, targets: List[Target]) -> dict:
        latest = {}
        for target in targets:
            try:
                result = await self.storage.get_latest_check_result(target.id)
            except Exception as e:
                logger.warning(f"Could not load last check for {target.name}: {e}")
                continue
            if result is not None:
                latest[target.id] = result
        return latest
