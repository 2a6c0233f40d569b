"""
XpService: award experience points and derive the user's level.

Invariants:
  - total_xp only grows (awards must be positive)
  - level = highest threshold index satisfied by total_xp, never decreases
  - an award carrying an idempotency_key is applied at most once
"""
import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from kudipal.domain.rewards import NotificationType, compute_level, level_progress
from kudipal.infrastructure.db.models import UserXp, XpEvent
from kudipal.application.notifications import NotificationSink, DbNotificationSink

logger = logging.getLogger(__name__)


class XpValidationError(ValueError):
    """Invalid XP award"""
    pass


@dataclass(frozen=True)
class XpAward:
    new_xp: int
    new_level: int
    leveled_up: bool
    xp_gained: int

    def to_dict(self) -> dict:
        return {
            "new_xp": self.new_xp,
            "new_level": self.new_level,
            "leveled_up": self.leveled_up,
            "xp_gained": self.xp_gained,
        }


class XpService:
    def __init__(self, db: Session, notifier: NotificationSink | None = None):
        self.db = db
        self.notifier = notifier or DbNotificationSink(db)

    def award_xp(
        self,
        user_id: int,
        amount: int,
        reason: str,
        idempotency_key: str | None = None,
    ) -> XpAward:
        """
        Add `amount` XP to the user and recompute the level.

        Replaying an idempotency_key returns the current state with xp_gained=0.
        Flushes only; the caller owns the transaction.
        """
        if amount <= 0:
            raise XpValidationError("XP amount must be positive")

        state = self._lock_state(user_id)

        if idempotency_key is not None and self._already_awarded(idempotency_key):
            if state is None:
                return XpAward(new_xp=0, new_level=1, leveled_up=False, xp_gained=0)
            return XpAward(new_xp=state.total_xp, new_level=state.level, leveled_up=False, xp_gained=0)

        if state is None:
            state = UserXp(user_id=user_id, total_xp=0, level=1)
            self.db.add(state)
            self.db.flush()

        old_level = state.level
        state.total_xp += amount
        state.level = max(old_level, compute_level(state.total_xp))

        self.db.add(XpEvent(
            user_id=user_id,
            xp_amount=amount,
            reason=reason,
            idempotency_key=idempotency_key,
        ))
        self.db.flush()

        leveled_up = state.level > old_level
        if leveled_up:
            logger.info("user_id=%s reached level %s (%s XP)", user_id, state.level, state.total_xp)
            self.notifier.notify(
                user_id,
                NotificationType.LEVEL_UP,
                f"Level {state.level} Unlocked! 🎉",
                f"Congratulations! You've reached level {state.level}. Keep up the great work!",
            )

        return XpAward(
            new_xp=state.total_xp,
            new_level=state.level,
            leveled_up=leveled_up,
            xp_gained=amount,
        )

    def get_xp_profile(self, user_id: int) -> dict:
        """Return total XP, level and progress towards the next level."""
        state = self.db.query(UserXp).filter(UserXp.user_id == user_id).first()
        total_xp = state.total_xp if state else 0
        level = state.level if state else 1
        current_level_xp, next_level_xp, progress = level_progress(total_xp, level)
        return {
            "total_xp": total_xp,
            "level": level,
            "current_level_xp": current_level_xp,
            "next_level_xp": next_level_xp,
            "progress_percentage": progress,
        }

    def _lock_state(self, user_id: int) -> UserXp | None:
        return (
            self.db.query(UserXp)
            .filter(UserXp.user_id == user_id)
            .with_for_update()
            .first()
        )

    def _already_awarded(self, idempotency_key: str) -> bool:
        self.db.flush()
        return (
            self.db.query(XpEvent.id)
            .filter(XpEvent.idempotency_key == idempotency_key)
            .first()
            is not None
        )
