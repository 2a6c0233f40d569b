"""
GamificationService: per-user serialized reward flows.

Every event runs as one unit of work:

    user lock → streak → XP → badges → notifications → single commit

Mutations for the same user never interleave: an in-process lock per user
serializes callers within the worker, and `SELECT ... FOR UPDATE` on the
streak / user_xp rows serializes across workers on PostgreSQL. Any failure
rolls the whole event back so streak, XP and badges stay consistent.
"""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import date
from typing import Any, Iterator, Mapping

from sqlalchemy.orm import Session

from kudipal.config import today_local
from kudipal.domain.rewards import XP_REWARDS, METRIC_CATEGORY_SPEND, badges_for_metric
from kudipal.application.badges import BadgeService
from kudipal.application.notifications import NotificationSink, DbNotificationSink
from kudipal.application.streaks import StreakService, StreakState
from kudipal.application.xp import XpAward, XpService

logger = logging.getLogger(__name__)


class UserLockRegistry:
    """
    One re-entrant lock per user id.

    A lock lives only while some thread holds or waits on it, so the registry
    stays as large as the set of users with an event in flight.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[int, threading.RLock] = {}
        self._waiters: dict[int, int] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, user_id: int) -> Iterator[None]:
        with self._guard:
            lock = self._locks.get(user_id)
            if lock is None:
                lock = self._locks[user_id] = threading.RLock()
            self._waiters[user_id] = self._waiters.get(user_id, 0) + 1
        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._waiters[user_id] -= 1
                if not self._waiters[user_id]:
                    del self._waiters[user_id]
                    del self._locks[user_id]


_user_locks = UserLockRegistry()


class GamificationService:
    def __init__(
        self,
        db: Session,
        notifier: NotificationSink | None = None,
        locks: UserLockRegistry | None = None,
    ):
        self.db = db
        self.locks = locks if locks is not None else _user_locks
        notifier = notifier or DbNotificationSink(db)
        self.xp = XpService(db, notifier)
        self.badges = BadgeService(db, self.xp, notifier)
        self.streaks = StreakService(db, self.xp, self.badges)

    @contextmanager
    def _unit_of_work(self, user_id: int, event: str) -> Iterator[None]:
        with self.locks.hold(user_id):
            try:
                yield
                self.db.commit()
            except Exception:
                self.db.rollback()
                logger.exception("Gamification event %s failed for user_id=%s", event, user_id)
                raise

    # ── Primitive operations ────────────────────────────────────────────────

    def record_activity(self, user_id: int, activity_date: date | None = None) -> StreakState:
        """Apply one logging event (default: today) to the streak; returns the new state."""
        activity_date = activity_date or today_local()
        with self._unit_of_work(user_id, "record_activity"):
            transition = self.streaks.record_activity(user_id, activity_date)
        return transition.state

    def award_xp(
        self,
        user_id: int,
        amount: int,
        reason: str,
        idempotency_key: str | None = None,
    ) -> XpAward:
        with self._unit_of_work(user_id, "award_xp"):
            award = self.xp.award_xp(user_id, amount, reason, idempotency_key=idempotency_key)
        return award

    def evaluate_badges(self, user_id: int, metric_context: Mapping[str, Any]) -> list[dict]:
        with self._unit_of_work(user_id, "evaluate_badges"):
            badges = self.badges.evaluate_badges(user_id, metric_context)
            awarded = [_badge_dict(b) for b in badges]
        return awarded

    # ── Domain flows ────────────────────────────────────────────────────────

    def record_expense_logged(
        self,
        user_id: int,
        category: str | None = None,
        expense_id: int | None = None,
    ) -> dict:
        """
        Expense logged: streak activity, logging XP and category ceiling badges.

        The streak counts the day the user logs, never the expense's own date,
        so backfilled or future-dated entries cannot build a streak.
        `expense_id` makes the logging XP idempotent per expense.
        """
        today = today_local()
        ceiling_categories = {b.category for b in badges_for_metric(METRIC_CATEGORY_SPEND)}

        with self._unit_of_work(user_id, "expense_logged"):
            transition = self.streaks.record_activity(user_id, today)
            award = self.xp.award_xp(
                user_id,
                XP_REWARDS["expense_log"],
                "Expense logged",
                idempotency_key=f"expense:{user_id}:{expense_id}" if expense_id is not None else None,
            )
            badges = []
            if category is None or category in ceiling_categories:
                badges = self.badges.check_category_badges(user_id, today)
            result = {
                "streak": transition.state.to_dict(),
                "xp": award.to_dict(),
                "badges": [_badge_dict(b) for b in badges],
            }
        return result

    def record_goal_completed(self, user_id: int, goal_id: int) -> dict:
        with self._unit_of_work(user_id, "goal_completed"):
            award = self.xp.award_xp(
                user_id,
                XP_REWARDS["goal_completed"],
                "Goal completed",
                idempotency_key=f"goal:{user_id}:{goal_id}",
            )
            badges = self.badges.check_goal_badges(user_id)
            result = {"xp": award.to_dict(), "badges": [_badge_dict(b) for b in badges]}
        return result

    def record_budget_closed(self, user_id: int, today: date | None = None) -> list[dict]:
        today = today or today_local()
        with self._unit_of_work(user_id, "budget_closed"):
            badges = self.badges.check_budget_badges(user_id, today)
            awarded = [_badge_dict(b) for b in badges]
        return awarded

    # ── Reads ───────────────────────────────────────────────────────────────

    def get_streak(self, user_id: int) -> StreakState:
        return self.streaks.get_streak_state(user_id)

    def get_xp_profile(self, user_id: int) -> dict:
        return self.xp.get_xp_profile(user_id)

    def list_badges(self, user_id: int) -> list[dict]:
        return [_badge_dict(b) for b in self.badges.list_badges(user_id)]


def _badge_dict(badge) -> dict:
    return {
        "id": badge.id,
        "badge_name": badge.badge_name,
        "badge_tier": badge.badge_tier,
        "description": badge.description,
        "earned_at": badge.earned_at.isoformat() if badge.earned_at else None,
    }
