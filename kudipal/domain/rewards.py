"""
Rewards tables: XP amounts, level thresholds and tiered badge definitions.

All tables are ordered data; the lookups below are generic so a new badge or
level is a table edit, not new code.

Level N is reached once total XP ≥ LEVEL_THRESHOLDS[N-1]:
  Level 1 → 0 XP, Level 2 → 100 XP, Level 3 → 250 XP, ...
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional, Sequence

XP_REWARDS: dict[str, int] = {
    "expense_log": 10,
    "budget_met": 100,
    "goal_completed": 250,
    "streak_day": 5,
    "monthly_summary": 20,
}

LEVEL_THRESHOLDS: tuple[int, ...] = (0, 100, 250, 500, 1000, 2000, 3500, 5500, 8000, 11000)

STREAK_MILESTONES: tuple[int, ...] = (7, 30, 90)


class NotificationType(str, Enum):
    BUDGET_ALERT = "budget_alert"
    GOAL_REMINDER = "goal_reminder"
    STREAK_MILESTONE = "streak_milestone"
    BADGE_EARNED = "badge_earned"
    WEEKLY_SUMMARY = "weekly_summary"
    LEVEL_UP = "level_up"


def compute_level(total_xp: int, thresholds: Sequence[int] = LEVEL_THRESHOLDS) -> int:
    """Highest 1-based index i such that total_xp ≥ thresholds[i-1]."""
    level = 1
    for i, threshold in enumerate(thresholds, start=1):
        if total_xp >= threshold:
            level = i
        else:
            break
    return level


def level_progress(total_xp: int, level: int, thresholds: Sequence[int] = LEVEL_THRESHOLDS) -> tuple[int, int, float]:
    """
    Returns:
        (current_level_xp, next_level_xp, progress_percentage)

    At the top level next_level_xp is total_xp itself and progress is 100.
    """
    current_level_xp = thresholds[level - 1] if level - 1 < len(thresholds) else 0
    next_level_xp = thresholds[level] if level < len(thresholds) else total_xp
    span = next_level_xp - current_level_xp
    if span <= 0:
        return current_level_xp, next_level_xp, 100.0
    pct = (total_xp - current_level_xp) / span * 100
    return current_level_xp, next_level_xp, round(min(100.0, max(0.0, pct)), 1)


# ── Badges ───────────────────────────────────────────────────────────────────

class MetricDirection(str, Enum):
    AT_LEAST = "at_least"   # streak days, months, goals: higher is better
    AT_MOST = "at_most"     # spend ceilings: lower is better


@dataclass(frozen=True)
class BadgeTier:
    name: str
    threshold: Decimal
    xp: int


@dataclass(frozen=True)
class BadgeDefinition:
    code: str
    name: str
    description: str
    metric: str
    direction: MetricDirection
    tiers: tuple[BadgeTier, ...]  # weakest first: bronze, silver, gold
    category: Optional[str] = None

    def highest_tier(self, value) -> Optional[BadgeTier]:
        """The strongest tier whose requirement `value` satisfies, or None."""
        value = Decimal(str(value))
        for tier in reversed(self.tiers):
            if self.direction is MetricDirection.AT_LEAST and value >= tier.threshold:
                return tier
            if self.direction is MetricDirection.AT_MOST and value <= tier.threshold:
                return tier
        return None


def _tiers(*rows: tuple[str, int, int]) -> tuple[BadgeTier, ...]:
    return tuple(BadgeTier(name, Decimal(threshold), xp) for name, threshold, xp in rows)


METRIC_STREAK_DAYS = "streak_days"
METRIC_BUDGET_MONTHS = "budget_months"
METRIC_CATEGORY_SPEND = "category_spend"
METRIC_GOALS_COMPLETED = "goals_completed"

BADGES: dict[str, BadgeDefinition] = {
    "consistency_champ": BadgeDefinition(
        code="consistency_champ",
        name="Consistency Champ",
        description="Log expenses daily for consecutive days",
        metric=METRIC_STREAK_DAYS,
        direction=MetricDirection.AT_LEAST,
        tiers=_tiers(("bronze", 7, 50), ("silver", 30, 150), ("gold", 90, 300)),
    ),
    "budget_boss": BadgeDefinition(
        code="budget_boss",
        name="Budget Boss",
        description="Finish consecutive months under budget",
        metric=METRIC_BUDGET_MONTHS,
        direction=MetricDirection.AT_LEAST,
        tiers=_tiers(("bronze", 1, 100), ("silver", 3, 200), ("gold", 6, 500)),
    ),
    "data_king": BadgeDefinition(
        code="data_king",
        name="Data King/Queen",
        description="Spend less than GHS 50 on data/airtime for a month",
        metric=METRIC_CATEGORY_SPEND,
        direction=MetricDirection.AT_MOST,
        tiers=_tiers(("bronze", 50, 50), ("silver", 30, 100), ("gold", 20, 200)),
        category="Data / Airtime",
    ),
    "transport_wise": BadgeDefinition(
        code="transport_wise",
        name="Transport Wise",
        description="Keep transport costs low for a month",
        metric=METRIC_CATEGORY_SPEND,
        direction=MetricDirection.AT_MOST,
        tiers=_tiers(("bronze", 100, 50), ("silver", 75, 100), ("gold", 50, 200)),
        category="Transport (Trotro / Bolt)",
    ),
    "goal_getter": BadgeDefinition(
        code="goal_getter",
        name="Goal Getter",
        description="Complete savings goals",
        metric=METRIC_GOALS_COMPLETED,
        direction=MetricDirection.AT_LEAST,
        tiers=_tiers(("bronze", 1, 100), ("silver", 3, 250), ("gold", 5, 500)),
    ),
}


def badges_for_metric(metric: str) -> list[BadgeDefinition]:
    return [b for b in BADGES.values() if b.metric == metric]
