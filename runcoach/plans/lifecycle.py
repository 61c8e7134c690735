# runcoach/plans/lifecycle.py

"""
Per-day detail lifecycle:

    Unparsed -> Parsed -> DetailsRequested -> DetailsReady
                                          \\-> DetailsFailed -> DetailsRequested (retry)

Failures are counted per (plan, day). Once the cap is reached further
requests are refused until the day is dismissed.
"""
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from runcoach.config import Config
from runcoach.plans.errors import EnhancementLimitReached
from runcoach.plans.models import TrainingDay

logger = logging.getLogger(__name__)


class DayState(str, Enum):
    UNPARSED = "unparsed"
    PARSED = "parsed"
    DETAILS_REQUESTED = "details_requested"
    DETAILS_READY = "details_ready"
    DETAILS_FAILED = "details_failed"


@dataclass
class DayStatus:
    state: DayState
    attempts: int = 0
    last_error: Optional[str] = None

    def to_dict(self, max_attempts: int) -> Dict[str, object]:
        return {
            "state": self.state.value,
            "attempts": self.attempts,
            "retryable": self.state == DayState.DETAILS_FAILED and self.attempts < max_attempts,
            "last_error": self.last_error,
        }


class EnhancementTracker:
    """Thread-safe attempt bookkeeping keyed by (plan_id, day_index)."""

    def __init__(self, max_attempts: Optional[int] = None):
        self._max_attempts = max_attempts
        self._lock = threading.Lock()
        self._status: Dict[Tuple[str, int], DayStatus] = {}

    @property
    def max_attempts(self) -> int:
        if self._max_attempts is not None:
            return self._max_attempts
        return Config.ENHANCEMENT_MAX_ATTEMPTS

    def state_of(self, plan_id: str, day_index: int, day: Optional[TrainingDay] = None) -> DayStatus:
        with self._lock:
            status = self._status.get((str(plan_id), day_index))
        if status is not None:
            return DayStatus(status.state, status.attempts, status.last_error)
        if day is None:
            return DayStatus(DayState.UNPARSED)
        if day.has_details:
            return DayStatus(DayState.DETAILS_READY)
        return DayStatus(DayState.PARSED)

    def begin(self, plan_id: str, day_index: int) -> DayStatus:
        """Move a day to DetailsRequested, or refuse once the cap is hit."""
        key = (str(plan_id), day_index)
        with self._lock:
            status = self._status.get(key) or DayStatus(DayState.PARSED)
            if status.state == DayState.DETAILS_REQUESTED:
                logger.info(f"Enhancement already in flight for plan {plan_id}, day {day_index}")
            if status.attempts >= self.max_attempts:
                raise EnhancementLimitReached(
                    f"Plan {plan_id}, day {day_index}: {status.attempts} failed attempts"
                )
            status = DayStatus(DayState.DETAILS_REQUESTED, status.attempts, status.last_error)
            self._status[key] = status
            return status

    def succeed(self, plan_id: str, day_index: int) -> DayStatus:
        key = (str(plan_id), day_index)
        with self._lock:
            status = DayStatus(DayState.DETAILS_READY)
            self._status[key] = status
            return status

    def fail(self, plan_id: str, day_index: int, error: str) -> DayStatus:
        key = (str(plan_id), day_index)
        with self._lock:
            previous = self._status.get(key) or DayStatus(DayState.PARSED)
            status = DayStatus(DayState.DETAILS_FAILED, previous.attempts + 1, error)
            self._status[key] = status
        logger.warning(
            f"Enhancement failed for plan {plan_id}, day {day_index} "
            f"({status.attempts}/{self.max_attempts}): {error}"
        )
        return status

    def dismiss(self, plan_id: str, day_index: int) -> None:
        with self._lock:
            self._status.pop((str(plan_id), day_index), None)
        logger.info(f"Reset enhancement attempts for plan {plan_id}, day {day_index}")

    def forget_plan(self, plan_id: str) -> None:
        with self._lock:
            for key in [k for k in self._status if k[0] == str(plan_id)]:
                del self._status[key]


tracker = EnhancementTracker()
