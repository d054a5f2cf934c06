"""Status tracker - decides when a check outcome warrants an alert."""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Dict, Optional

from ..schemas import Status
from .prober import CheckOutcome

logger = logging.getLogger(__name__)

# Minimum time between downtime alerts for the same target
ALERT_COOLDOWN = timedelta(minutes=5)

UNKNOWN = "UNKNOWN"


class AlertKind(str, Enum):
    NONE = "none"
    SEND_DOWNTIME = "send_downtime"
    SEND_RECOVERY = "send_recovery"


@dataclass(frozen=True)
class AlertAction:
    """What the scheduler should tell the notifier after a check."""
    kind: AlertKind
    error: Optional[str] = None

    @property
    def is_none(self) -> bool:
        return self.kind is AlertKind.NONE


NO_ACTION = AlertAction(AlertKind.NONE)


@dataclass
class AlertState:
    """Last observed status and last downtime alert time for one target."""
    last_status: str = UNKNOWN  # UP, DOWN or UNKNOWN
    last_alert_at: Optional[datetime] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StatusTracker:
    """Per-target transition detector with a downtime alert cooldown.

    State is created lazily on the first evaluated check and lives only in
    memory. The first check for a target (UNKNOWN) never alerts.
    """

    def __init__(self, clock: Callable[[], datetime] = _utcnow):
        self._clock = clock
        self._states: Dict[int, AlertState] = {}

    def get_state(self, target_id: int) -> Optional[AlertState]:
        return self._states.get(target_id)

    def reset(self, target_id: int) -> None:
        """Forget everything about a target."""
        self._states.pop(target_id, None)

    def restore(self, target_id: int, last_status: Status) -> None:
        """Seed the last known status, e.g. from the latest stored check."""
        self._states[target_id] = AlertState(last_status=Status(last_status).value)

    def evaluate(
        self,
        target_id: int,
        outcome: CheckOutcome,
        now: Optional[datetime] = None,
    ) -> AlertAction:
        """Record an outcome and return the alert to send, if any."""
        now = now or self._clock()
        state = self._states.setdefault(target_id, AlertState())
        previous = state.last_status
        state.last_status = outcome.status.value

        if previous == UNKNOWN:
            return NO_ACTION

        if outcome.status is Status.DOWN:
            if previous == Status.DOWN.value:
                return NO_ACTION

            if state.last_alert_at is not None and now - state.last_alert_at < ALERT_COOLDOWN:
                logger.info(f"Downtime alert for target {target_id} suppressed by cooldown")
                return NO_ACTION

            state.last_alert_at = now
            return AlertAction(AlertKind.SEND_DOWNTIME, error=outcome.error_category or "unknown")

        if previous == Status.DOWN.value:
            return AlertAction(AlertKind.SEND_RECOVERY)

        return NO_ACTION
