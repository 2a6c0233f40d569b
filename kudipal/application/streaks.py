"""
Streak tracker: consecutive calendar days with at least one logged expense.

Transition on activity dated T (advance_streak):
  no record              → (1, 1, T)                        + streak-day XP
  last == T (or later)   → no-op
  last == T-1            → current+1, longest=max(...)      + streak-day XP
                           (milestone check at 7 / 30 / 90)
  last <  T-1            → current=1, longest unchanged     + streak-day XP
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from kudipal.domain.rewards import STREAK_MILESTONES, XP_REWARDS
from kudipal.infrastructure.db.models import Streak

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StreakState:
    current_streak: int
    longest_streak: int
    last_activity_date: Optional[date]

    def to_dict(self) -> dict:
        return {
            "current_streak": self.current_streak,
            "longest_streak": self.longest_streak,
            "last_activity_date": self.last_activity_date.isoformat() if self.last_activity_date else None,
        }


EMPTY_STREAK = StreakState(current_streak=0, longest_streak=0, last_activity_date=None)


@dataclass(frozen=True)
class StreakTransition:
    state: StreakState
    advanced: bool
    milestone: Optional[int] = None


def advance_streak(state: Optional[StreakState], today: date) -> StreakTransition:
    """Pure transition function of the streak state machine."""
    if state is None or state.last_activity_date is None:
        longest = max(state.longest_streak if state else 0, 1)
        return StreakTransition(StreakState(1, longest, today), advanced=True)

    last = state.last_activity_date
    if last >= today:
        return StreakTransition(state, advanced=False)

    if last == today - timedelta(days=1):
        current = state.current_streak + 1
        longest = max(state.longest_streak, current)
        milestone = current if current in STREAK_MILESTONES else None
        return StreakTransition(StreakState(current, longest, today), advanced=True, milestone=milestone)

    return StreakTransition(
        StreakState(1, max(state.longest_streak, 1), today),
        advanced=True,
    )


class StreakService:
    def __init__(self, db: Session, xp_service, badge_service):
        self.db = db
        self.xp = xp_service
        self.badges = badge_service

    def get_streak_state(self, user_id: int) -> StreakState:
        row = self.db.query(Streak).filter(Streak.user_id == user_id).first()
        if row is None:
            return EMPTY_STREAK
        return StreakState(row.current_streak, row.longest_streak, row.last_activity_date)

    def record_activity(self, user_id: int, activity_date: date) -> StreakTransition:
        """
        Apply one logging event to the user's streak.

        Awards the streak-day XP once per (user, day) and runs the
        consistency badge check when a milestone is reached.
        Flushes only; the caller owns the transaction.
        """
        row = (
            self.db.query(Streak)
            .filter(Streak.user_id == user_id)
            .with_for_update()
            .first()
        )
        before = None
        if row is not None:
            before = StreakState(row.current_streak, row.longest_streak, row.last_activity_date)

        transition = advance_streak(before, activity_date)
        if not transition.advanced:
            return transition

        if row is None:
            row = Streak(user_id=user_id)
            self.db.add(row)
        row.current_streak = transition.state.current_streak
        row.longest_streak = transition.state.longest_streak
        row.last_activity_date = transition.state.last_activity_date
        self.db.flush()

        self.xp.award_xp(
            user_id,
            XP_REWARDS["streak_day"],
            "Daily streak",
            idempotency_key=f"streak:{user_id}:{activity_date.isoformat()}",
        )

        if transition.milestone is not None:
            logger.info("user_id=%s hit a %s-day streak", user_id, transition.milestone)
            self.badges.check_streak_badge(user_id, transition.milestone)

        return transition
