"""Per-user credit ledger and quota counters.

The ledger is the only state shared between concurrent runs. Every read-check
and mutation happens under a single lock. A step does not merely check the
daily budget: it reserves a slice of it until the step finishes, so two runs
of the same user cannot both start a step that only one of them fits in.

Charging never raises: budget exhaustion is refused by the reservation before
a tool is invoked, not while a tool reports its usage. Reservations are held
per user rather than per day, since they never outlive the step that took them.
"""

from __future__ import annotations

import logging
import threading
from datetime import date, datetime, timezone
from typing import Callable, Dict, Optional, Tuple

from ..errors import QuotaExceededError
from ..pricing import PlanLimits, limits_for

logger = logging.getLogger(__name__)

# Credits held for the duration of a single step.
STEP_RESERVATION_CREDITS = 1


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


class CreditLedger:
    """
    In-process accounting of daily credits and active runs per user.

    Args:
        today: Clock returning the current billing day (UTC by default).
        limits: Resolver from plan tier to quotas.
    """

    def __init__(
        self,
        *,
        today: Callable[[], date] = _utc_today,
        limits: Callable[[Optional[str]], PlanLimits] = limits_for,
    ) -> None:
        self._today = today
        self._limits = limits
        self._lock = threading.Lock()
        self._daily: Dict[Tuple[str, date], int] = {}
        self._active: Dict[str, int] = {}
        self._reserved: Dict[str, int] = {}

    def limits(self, plan_tier: Optional[str]) -> PlanLimits:
        return self._limits(plan_tier)

    # -- concurrent runs -------------------------------------------------

    def acquire_run_slot(self, user_id: str, plan_tier: Optional[str]) -> None:
        """
        Reserve one concurrent-run slot for ``user_id``.

        Raises:
            QuotaExceededError: If the user already has ``max_concurrent_runs`` active runs.
        """
        limit = self._limits(plan_tier).max_concurrent_runs
        with self._lock:
            active = self._active.get(user_id, 0)
            if active >= limit:
                raise QuotaExceededError("max_concurrent_runs", limit=limit, actual=active + 1, plan_tier=plan_tier)
            self._active[user_id] = active + 1
        logger.debug(f"Run slot acquired: user={user_id} active={active + 1}/{limit}")

    def release_run_slot(self, user_id: str) -> None:
        with self._lock:
            active = self._active.get(user_id, 0)
            if active <= 1:
                self._active.pop(user_id, None)
            else:
                self._active[user_id] = active - 1
        logger.debug(f"Run slot released: user={user_id}")

    def active_runs(self, user_id: str) -> int:
        with self._lock:
            return self._active.get(user_id, 0)

    # -- daily credits ---------------------------------------------------

    def reserve_step_budget(
        self, user_id: str, plan_tier: Optional[str], credits: int = STEP_RESERVATION_CREDITS
    ) -> int:
        """
        Hold ``credits`` of today's budget for one step of ``user_id``.

        The hold counts against the quota together with today's charges and
        every other hold of the user, and stays until
        :meth:`release_step_budget` is called.

        Returns:
            The credits still free today after the hold.

        Raises:
            QuotaExceededError: If the hold does not fit in ``daily_credits``.
        """
        limit = self._limits(plan_tier).daily_credits
        credits = max(int(credits), 0)
        with self._lock:
            used = self._daily.get((user_id, self._today()), 0)
            held = self._reserved.get(user_id, 0)
            if used + held + credits > limit:
                raise QuotaExceededError(
                    "daily_credits", limit=limit, actual=used + held + credits, plan_tier=plan_tier
                )
            self._reserved[user_id] = held + credits
        return limit - used - held - credits

    def release_step_budget(self, user_id: str, credits: int = STEP_RESERVATION_CREDITS) -> None:
        credits = max(int(credits), 0)
        with self._lock:
            held = self._reserved.get(user_id, 0) - credits
            if held > 0:
                self._reserved[user_id] = held
            else:
                self._reserved.pop(user_id, None)

    def reserved(self, user_id: str) -> int:
        with self._lock:
            return self._reserved.get(user_id, 0)

    def charge(self, user_id: str, credits: int) -> int:
        """Add ``credits`` to today's total for ``user_id`` and return the new total.

        Totals of earlier days are dropped on the way, they can no longer be
        checked against.
        """
        credits = max(int(credits), 0)
        with self._lock:
            today = self._today()
            for stale in [k for k in self._daily if k[1] < today]:
                del self._daily[stale]
            key = (user_id, today)
            total = self._daily.get(key, 0) + credits
            self._daily[key] = total
        return total

    def used_today(self, user_id: str) -> int:
        with self._lock:
            return self._daily.get((user_id, self._today()), 0)
