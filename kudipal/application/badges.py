"""
BadgeService: idempotent tiered achievement awards.

For each badge the user's metric value is mapped to the strongest satisfied
tier (BadgeDefinition.highest_tier). The (user, badge, tier) row is inserted
at most once; a new row awards the tier's bonus XP and a notification.

Metrics:
  streak_days      current streak length (checked at streak milestones)
  budget_months    consecutive most-recent closed monthly budgets kept
  category_spend   {category: spend} for the previous calendar month
  goals_completed  number of completed goals
"""
from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any, Mapping

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from kudipal.domain.categories import BUDGET_PERIOD_MONTHLY, GOAL_COMPLETED
from kudipal.domain.rewards import (
    BADGES,
    BadgeDefinition,
    NotificationType,
    METRIC_BUDGET_MONTHS,
    METRIC_CATEGORY_SPEND,
    METRIC_GOALS_COMPLETED,
    METRIC_STREAK_DAYS,
    badges_for_metric,
)
from kudipal.infrastructure.db.models import Badge
from kudipal.infrastructure.store import TransactionStore
from kudipal.application.notifications import NotificationSink, DbNotificationSink

logger = logging.getLogger(__name__)


def _month_index(d: date) -> int:
    return d.year * 12 + d.month - 1


class BadgeService:
    def __init__(self, db: Session, xp_service, notifier: NotificationSink | None = None):
        self.db = db
        self.xp = xp_service
        self.notifier = notifier or DbNotificationSink(db)
        self.store = TransactionStore(db)

    # ------------------------------------------------------------------
    # Generic evaluation
    # ------------------------------------------------------------------

    def evaluate_badges(self, user_id: int, metric_context: Mapping[str, Any]) -> list[Badge]:
        """
        Evaluate every badge whose metric is present in `metric_context`.

        `category_spend` is a mapping {category: spend}; the other metrics
        are plain numbers. Returns the newly inserted badges only.
        """
        awarded: list[Badge] = []
        for definition in BADGES.values():
            if definition.metric not in metric_context:
                continue
            value = metric_context[definition.metric]
            if definition.metric == METRIC_CATEGORY_SPEND:
                if definition.category not in value:
                    continue
                value = value[definition.category]
            badge = self.award_tier(user_id, definition, value)
            if badge is not None:
                awarded.append(badge)
        return awarded

    def award_tier(self, user_id: int, definition: BadgeDefinition, value) -> Badge | None:
        """Insert the highest satisfied tier if the user does not hold it yet."""
        tier = definition.highest_tier(value)
        if tier is None:
            return None
        if self._has_badge(user_id, definition.name, tier.name):
            return None

        badge = Badge(
            user_id=user_id,
            badge_name=definition.name,
            badge_tier=tier.name,
            description=definition.description,
        )
        try:
            with self.db.begin_nested():
                self.db.add(badge)
        except IntegrityError:
            # concurrent evaluation inserted the same tier first
            logger.info("Badge %s (%s) already held by user_id=%s", definition.name, tier.name, user_id)
            return None

        if tier.xp > 0:
            self.xp.award_xp(
                user_id,
                tier.xp,
                f"Badge earned: {definition.name}",
                idempotency_key=f"badge:{user_id}:{definition.code}:{tier.name}",
            )

        logger.info("user_id=%s earned %s (%s)", user_id, definition.name, tier.name)
        self.notifier.notify(
            user_id,
            NotificationType.BADGE_EARNED,
            "New Badge Earned! 🏆",
            f"You've earned the {definition.name} ({tier.name}) badge! {definition.description}",
        )
        return badge

    def list_badges(self, user_id: int) -> list[Badge]:
        return (
            self.db.query(Badge)
            .filter(Badge.user_id == user_id)
            .order_by(Badge.earned_at.desc(), Badge.id.desc())
            .all()
        )

    def _has_badge(self, user_id: int, badge_name: str, tier: str) -> bool:
        self.db.flush()
        return (
            self.db.query(Badge.id)
            .filter(
                Badge.user_id == user_id,
                Badge.badge_name == badge_name,
                Badge.badge_tier == tier,
            )
            .first()
            is not None
        )

    # ------------------------------------------------------------------
    # Metric-specific checks
    # ------------------------------------------------------------------

    def check_streak_badge(self, user_id: int, streak_days: int) -> list[Badge]:
        return self.evaluate_badges(user_id, {METRIC_STREAK_DAYS: streak_days})

    def check_budget_badges(self, user_id: int, today: date) -> list[Badge]:
        months = self.consecutive_budget_months(user_id, today)
        return self.evaluate_badges(user_id, {METRIC_BUDGET_MONTHS: months})

    def check_category_badges(self, user_id: int, today: date) -> list[Badge]:
        """Spend ceilings are judged on the previous, fully elapsed calendar month."""
        prev_end = today.replace(day=1) - timedelta(days=1)
        prev_start = prev_end.replace(day=1)

        spend: dict[str, Any] = {}
        for definition in badges_for_metric(METRIC_CATEGORY_SPEND):
            total = self.store.sum_expenses(user_id, prev_start, prev_end, category=definition.category)
            # A category never used that month earns nothing
            if total > 0:
                spend[definition.category] = total
        if not spend:
            return []
        return self.evaluate_badges(user_id, {METRIC_CATEGORY_SPEND: spend})

    def check_goal_badges(self, user_id: int) -> list[Badge]:
        completed = self.store.count_goals(user_id, GOAL_COMPLETED)
        return self.evaluate_badges(user_id, {METRIC_GOALS_COMPLETED: completed})

    def consecutive_budget_months(self, user_id: int, today: date) -> int:
        """
        Length of the run of most recent closed monthly budgets that were kept.

        Budgets are keyed by the calendar month of their start date (newest
        budget wins if a month has several). The run stops at the first month
        that went over budget or at a month with no budget.
        """
        by_month: dict[int, Any] = {}
        for budget in self.store.closed_budgets(user_id, BUDGET_PERIOD_MONTHLY, before=today):
            by_month.setdefault(_month_index(budget.start_date), budget)
        if not by_month:
            return 0

        expected = max(by_month)
        run = 0
        while expected in by_month:
            budget = by_month[expected]
            spent = self.store.sum_expenses(user_id, budget.start_date, budget.end_date)
            if spent > budget.amount:
                break
            run += 1
            expected -= 1
        return run
