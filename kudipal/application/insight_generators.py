"""
Insight generators: independent behavioural heuristics over a user's spending.

Each generator is a plain function ``(store, user_id, today) -> Insight | None``
registered with ``@insight_generator(name, source)``. Registration order is the
order the aggregator lists them in, which is also the tie-break for equal
priorities.

Thresholds are fixed module constants. Percentages are rounded to one decimal
place; money in display strings is rounded to whole cedis.

Calendar windows (all inclusive):
  week          Monday of the current week … today
  trailing N    today-N … today
  month         1st of the current month … today
"""
from __future__ import annotations

import calendar
import logging
import statistics
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Callable, Optional

from kudipal.domain.insight import Insight, InsightType
from kudipal.domain.categories import BUDGET_PERIOD_MONTHLY
from kudipal.infrastructure.store import TransactionStore
from kudipal.utils.money import format_money, pct_change, round_pct, share_pct

logger = logging.getLogger(__name__)

GeneratorFunc = Callable[[TransactionStore, int, date], Optional[Insight]]

WEEKLY_JUMP_PCT = 25
WEEKLY_DROP_PCT = -10
WEEKEND_SKEW_RATIO = Decimal("1.5")
NO_SPEND_DAYS_GOOD = 3
MIN_DAYS_FOR_NO_SPEND_NUDGE = 3
ANOMALY_STDDEV_FACTOR = Decimal("1.5")
CATEGORY_TREND_PCT = 30
BUDGET_OVER_PCT = 100
BUDGET_WARN_PCT = 80
BUDGET_RELAXED_PCT = 40
GOAL_CRUNCH_DAYS = 7
GOAL_NEAR_PCT = 90
STREAK_CELEBRATE_DAYS = 7
SAVINGS_RATE_GREAT_PCT = 30
SAVINGS_RATE_LOW_PCT = 10
PAYMENT_CONCENTRATION_PCT = 70
FORECAST_OVERSHOOT = Decimal("1.1")

TRAILING_DAYS = 30
BEST_DAY_WINDOW_DAYS = 60

_WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


@dataclass(frozen=True)
class InsightGenerator:
    """A registered heuristic plus the data-source label shown with its insight."""
    name: str
    source: str
    func: GeneratorFunc

    def __call__(self, store: TransactionStore, user_id: int, today: date) -> Optional[Insight]:
        try:
            insight = self.func(store, user_id, today)
        except (ArithmeticError, TypeError, ValueError) as exc:
            # statistics.StatisticsError is a ValueError
            logger.debug("Insight %s skipped for user_id=%s: %s", self.name, user_id, exc)
            return None
        if insight is None:
            return None
        return insight.with_source(self.source)


INSIGHT_GENERATORS: list[InsightGenerator] = []


def insight_generator(name: str, source: str):
    """Register a generator function; the function itself is returned unchanged."""
    def decorator(func: GeneratorFunc) -> GeneratorFunc:
        INSIGHT_GENERATORS.append(InsightGenerator(name=name, source=source, func=func))
        return func
    return decorator


# ── Calendar helpers ─────────────────────────────────────────────────────────

def week_start(today: date) -> date:
    return today - timedelta(days=today.weekday())


def month_start(today: date) -> date:
    return today.replace(day=1)


def previous_month(today: date) -> tuple[date, date]:
    end = month_start(today) - timedelta(days=1)
    return end.replace(day=1), end


def trailing(today: date, days: int = TRAILING_DAYS) -> date:
    return today - timedelta(days=days)


# ── Statistics helpers (pure) ────────────────────────────────────────────────

def anomaly_threshold(daily_totals: list[Decimal]) -> Optional[Decimal]:
    """
    mean + 1.5 × sample stddev of the daily totals.

    None when the window cannot define a spike: fewer than two days,
    zero mean or zero spread.
    """
    if len(daily_totals) < 2:
        return None
    mean = statistics.mean(daily_totals)
    stddev = statistics.stdev(daily_totals)
    if mean <= 0 or stddev <= 0:
        return None
    return mean + ANOMALY_STDDEV_FACTOR * stddev


def is_spending_anomaly(amount: Decimal, daily_totals: list[Decimal]) -> bool:
    threshold = anomaly_threshold(daily_totals)
    return threshold is not None and amount > threshold


# ── 1. Weekly change ─────────────────────────────────────────────────────────

@insight_generator("weekly_change", "Weekly Expenses")
def weekly_change_insight(store: TransactionStore, user_id: int, today: date) -> Optional[Insight]:
    start = week_start(today)
    current = store.sum_expenses(user_id, start, today)
    previous = store.sum_expenses(user_id, start - timedelta(days=7), start - timedelta(days=1))
    if current == 0 and previous == 0:
        return None

    change = pct_change(current, previous) if previous else 0.0

    if change > WEEKLY_JUMP_PCT:
        return Insight(
            type=InsightType.WARNING, icon="😅", priority=1,
            title="Wallet Says Ouch!",
            message=(
                f"Spending jumped {change}% from last week "
                f"({format_money(current)} vs {format_money(previous)})."
            ),
            tip="Check your recent expenses. Anything you can pause or cancel?",
        )
    if change < WEEKLY_DROP_PCT:
        return Insight(
            type=InsightType.POSITIVE, icon="🎉", priority=2,
            title="Money Saver Alert! 🏆",
            message=f"You spent {abs(change)}% less than last week. Serious willpower! 💪",
            tip="Why not slide those savings into a goal?",
        )
    if change > 0:
        return Insight(
            type=InsightType.INFO, icon="📊", priority=4,
            title="Slight Creep Up",
            message=f"Spending nudged up {change}% from last week. Nothing wild, but keep an eye on it.",
            tip="Small drips fill the bucket. Stay sharp this week! 👀",
        )
    return None


# ── 2. Top category ──────────────────────────────────────────────────────────

@insight_generator("top_category", "30-Day Categories")
def top_category_insight(store: TransactionStore, user_id: int, today: date) -> Optional[Insight]:
    rows = store.category_totals(user_id, trailing(today), today)
    if not rows:
        return None
    category, total, txn_count = rows[0]
    pct = share_pct(total, sum(amount for _, amount, _ in rows))

    heavy = pct > 40
    return Insight(
        type=InsightType.INFO, icon="🏷️", priority=3,
        title=f"#1 Spending: {category}",
        message=(
            f"{category} takes {pct}% of your spending over the last 30 days "
            f"({format_money(total)}, {txn_count} txns)."
        ),
        tip=(
            "Time to set a budget cap for this category."
            if heavy else "Nice balance! Keep spreading the love across categories 📊"
        ),
    )


# ── 3. Weekend vs weekday ────────────────────────────────────────────────────

@insight_generator("weekend_vs_weekday", "30-Day Patterns")
def weekend_vs_weekday_insight(store: TransactionStore, user_id: int, today: date) -> Optional[Insight]:
    start = trailing(today)
    totals = store.daily_totals(user_id, start, today)

    weekend_total = weekday_total = Decimal("0")
    weekend_days = weekday_days = 0
    day = start
    while day <= today:
        if day.weekday() >= 5:
            weekend_days += 1
            weekend_total += totals.get(day, Decimal("0"))
        else:
            weekday_days += 1
            weekday_total += totals.get(day, Decimal("0"))
        day += timedelta(days=1)

    weekend_avg = weekend_total / weekend_days
    weekday_avg = weekday_total / weekday_days
    if weekend_avg == 0 and weekday_avg == 0:
        return None

    if weekend_avg >= weekday_avg * WEEKEND_SKEW_RATIO:
        more = (
            f"{round_pct((weekend_avg / weekday_avg - 1) * 100)}% more than weekdays"
            if weekday_avg > 0 else "far more than weekdays"
        )
        return Insight(
            type=InsightType.WARNING, icon="🥳", priority=3,
            title="Weekend Warrior! 🎊",
            message=(
                f"Weekend spending runs {more} "
                f"({format_money(weekend_avg)}/day vs {format_money(weekday_avg)}/day)."
            ),
            tip="Plan your weekend fun in advance. Free activities exist too! 🌳",
        )
    if weekday_avg >= weekend_avg * WEEKEND_SKEW_RATIO:
        return Insight(
            type=InsightType.POSITIVE, icon="💼", priority=5,
            title="Chill Weekends 🧘",
            message=(
                f"You're a weekday spender ({format_money(weekday_avg)}/day) "
                f"but weekends stay calm ({format_money(weekend_avg)}/day)."
            ),
            tip="Weekday costs are often commute and food. Try meal-prepping on Sundays! 🍱",
        )
    return None


# ── 4. No-spend days ─────────────────────────────────────────────────────────

@insight_generator("no_spend_days", "This Week")
def no_spend_days_insight(store: TransactionStore, user_id: int, today: date) -> Optional[Insight]:
    start = week_start(today)
    total_days = (today - start).days + 1
    spend_days = len(store.daily_totals(user_id, start, today))
    no_spend_days = total_days - spend_days

    if no_spend_days >= NO_SPEND_DAYS_GOOD:
        return Insight(
            type=InsightType.POSITIVE, icon="✨", priority=2,
            title=f"{no_spend_days} Zero-Spend Days! 🤑",
            message=f"{no_spend_days} days of zero spending this week. You're built different! 🏅",
            tip="Can you beat this next week? 💪",
        )
    if no_spend_days == 0 and total_days >= MIN_DAYS_FOR_NO_SPEND_NUDGE:
        return Insight(
            type=InsightType.INFO, icon="🤔", priority=4,
            title="Money Goes Brrrr",
            message="You've spent money every single day this week. Your wallet hasn't had a day off! 😅",
            tip="Pick one day and spend absolutely nothing. Can you do it? 🎯",
        )
    return None


# ── 5. Unusual spending ──────────────────────────────────────────────────────

@insight_generator("unusual_spending", "Daily Spending")
def unusual_spending_insight(store: TransactionStore, user_id: int, today: date) -> Optional[Insight]:
    totals = store.daily_totals(user_id, trailing(today), today)
    yesterday = today - timedelta(days=1)

    today_total = totals.get(today, Decimal("0"))
    if today_total > 0:
        amount, label = today_total, "Today"
    else:
        amount, label = totals.get(yesterday, Decimal("0")), "Yesterday"

    values = list(totals.values())
    if not is_spending_anomaly(amount, values):
        return None

    return Insight(
        type=InsightType.ALERT, icon="🚨", priority=1,
        title="Whoa, Big Spender! 💸",
        message=(
            f"{label}'s spending ({format_money(amount)}) is way above "
            f"your usual {format_money(statistics.mean(values))}/day."
        ),
        tip="No judgment! Check whether it was a one-off or the start of a pattern 🔍",
    )


# ── 6. Category trend ────────────────────────────────────────────────────────

@insight_generator("category_trend", "Monthly Trends")
def category_trend_insight(store: TransactionStore, user_id: int, today: date) -> Optional[Insight]:
    prev_start, prev_end = previous_month(today)
    current = store.category_totals(user_id, month_start(today), today)
    previous = {cat: total for cat, total, _ in store.category_totals(user_id, prev_start, prev_end)}

    best: tuple[str, Decimal, Decimal, float] | None = None
    for category, total, _ in current:
        prev_total = previous.get(category, Decimal("0"))
        if prev_total <= 0:
            continue
        change = pct_change(total, prev_total)
        if best is None or abs(change) > abs(best[3]):
            best = (category, total, prev_total, change)

    if best is None:
        return None
    category, total, prev_total, change = best

    if change > CATEGORY_TREND_PCT:
        return Insight(
            type=InsightType.WARNING, icon="📈", priority=2,
            title=f"{category} Going Up! 🆙",
            message=(
                f"{category} spending shot up {change}% this month "
                f"({format_money(total)} vs {format_money(prev_total)} last month)."
            ),
            tip="Set a spending cap for this category before it gets wild 🎪",
        )
    if change < -CATEGORY_TREND_PCT:
        return Insight(
            type=InsightType.POSITIVE, icon="📉", priority=3,
            title=f"{category} Tamed! 🦁",
            message=f"{category} is down {abs(change)}% from last month. That's real progress!",
            tip="You're proving you can control your spending. Legend! 🌟",
        )
    return None


# ── 7. Budget proximity ──────────────────────────────────────────────────────

@insight_generator("budget_proximity", "Active Budget")
def budget_insight(store: TransactionStore, user_id: int, today: date) -> Optional[Insight]:
    budget = store.active_budget(user_id)
    if budget is None:
        return None
    spent = store.sum_expenses(user_id, budget.start_date, budget.end_date)
    usage = share_pct(spent, budget.amount)
    remaining = budget.amount - spent

    if usage >= BUDGET_OVER_PCT:
        return Insight(
            type=InsightType.ALERT, icon="🚨", priority=0,
            title="Budget: Game Over! 🎮",
            message=f"You went {format_money(abs(remaining))} over your {budget.period_type} budget.",
            tip="Review your expenses and tighten up for the rest of the period.",
        )
    if usage >= BUDGET_WARN_PCT:
        return Insight(
            type=InsightType.WARNING, icon="⏰", priority=1,
            title="Budget Getting Thin! 🫣",
            message=(
                f"{usage}% of your {budget.period_type} budget is gone. "
                f"Only {format_money(remaining)} left."
            ),
            tip="Skip the treat-yourself moments for now 🧘",
        )
    if usage <= BUDGET_RELAXED_PCT:
        return Insight(
            type=InsightType.POSITIVE, icon="💰", priority=5,
            title="Budget Boss! 😎",
            message=f"Only {usage}% used and {format_money(remaining)} still in the tank.",
            tip="Maybe slide some of that extra into a savings goal? 🎯",
        )
    return None


# ── 8. Goal pace ─────────────────────────────────────────────────────────────

@insight_generator("goal_pace", "Savings Goals")
def goal_pace_insight(store: TransactionStore, user_id: int, today: date) -> Optional[Insight]:
    goal = store.nearest_deadline_goal(user_id)
    if goal is None:
        return None
    progress = share_pct(goal.current_amount, goal.target_amount)
    days_left = (goal.deadline - today).days
    remaining = goal.target_amount - goal.current_amount

    if days_left <= 0 and progress < 100:
        return Insight(
            type=InsightType.WARNING, icon="⏳", priority=1,
            title="Goal Deadline Passed 😬",
            message=(
                f'"{goal.title}" deadline has passed at {progress}%. '
                f"Still {format_money(remaining)} to go, but it's not over!"
            ),
            tip="Extend the deadline. Progress beats perfection every time! 💪",
        )
    if 0 < days_left <= GOAL_CRUNCH_DAYS and progress < GOAL_NEAR_PCT:
        return Insight(
            type=InsightType.WARNING, icon="🎯", priority=1,
            title="Crunch Time! ⏱️",
            message=f'"{goal.title}" is due in {days_left} days and you\'re at {progress}%.',
            tip=f"Save {format_money(remaining / days_left)}/day and you'll make it 🏃",
        )
    if GOAL_NEAR_PCT <= progress < 100:
        return Insight(
            type=InsightType.POSITIVE, icon="🏁", priority=2,
            title="SO Close! 🤩",
            message=f'"{goal.title}" is {progress}% done! Just {format_money(remaining)} more.',
            tip="One more push and this goal is crushed! 💥",
        )
    return None


# ── 9. Best day ──────────────────────────────────────────────────────────────

@insight_generator("best_day", "60-Day History")
def best_day_insight(store: TransactionStore, user_id: int, today: date) -> Optional[Insight]:
    totals = store.daily_totals(user_id, trailing(today, BEST_DAY_WINDOW_DAYS), today)
    if not totals:
        return None

    by_weekday: dict[int, list[Decimal]] = {}
    for day, total in totals.items():
        by_weekday.setdefault(day.weekday(), []).append(total)

    averages = {wd: sum(vals) / len(vals) for wd, vals in by_weekday.items()}
    weekday = min(sorted(averages), key=lambda wd: averages[wd])
    name = _WEEKDAYS[weekday]

    return Insight(
        type=InsightType.INFO, icon="📅", priority=5,
        title=f"{name} = Chill Day 🧊",
        message=(
            f"{name} is when your wallet relaxes: only "
            f"{format_money(averages[weekday])} on average."
        ),
        tip="Schedule big purchases on your cheapest day of the week 🧠",
    )


# ── 10. Streak ───────────────────────────────────────────────────────────────

@insight_generator("streak", "Your Streak")
def streak_insight(store: TransactionStore, user_id: int, today: date) -> Optional[Insight]:
    streak = store.get_streak(user_id)
    if streak is None:
        return None

    # A streak not extended yesterday or today is already broken
    last = streak.last_activity_date
    alive = last is not None and last >= today - timedelta(days=1)
    current = streak.current_streak if alive else 0
    longest = streak.longest_streak

    if current >= STREAK_CELEBRATE_DAYS and current == longest:
        return Insight(
            type=InsightType.POSITIVE, icon="🔥", priority=2,
            title=f"{current}-Day RECORD! 🏅",
            message=f"{current} days straight: your longest streak ever! 🚀",
            tip="Log today's expenses and keep the fire burning! 🔥",
        )
    if current >= STREAK_CELEBRATE_DAYS:
        return Insight(
            type=InsightType.POSITIVE, icon="🔥", priority=3,
            title=f"{current}-Day Streak! 💪",
            message=f"{current} days of consistent tracking! Your record is {longest} days.",
            tip=f"Only {longest - current} more days to beat your record! 🎯",
        )
    if current == 0:
        return Insight(
            type=InsightType.INFO, icon="😴", priority=4,
            title="Streak: Sleeping 💤",
            message="Your tracking streak is taking a nap. Wake it up by logging an expense today.",
            tip="People who track daily save more. Let's go! 🚀",
        )
    return None


# ── 11. Savings rate ─────────────────────────────────────────────────────────

@insight_generator("savings_rate", "Income vs Expenses")
def savings_rate_insight(store: TransactionStore, user_id: int, today: date) -> Optional[Insight]:
    start = month_start(today)
    income = store.sum_income(user_id, start, today)
    expenses = store.sum_expenses(user_id, start, today)
    if income == 0:
        return None

    rate = round_pct((income - expenses) / income * 100)

    if rate >= SAVINGS_RATE_GREAT_PCT:
        return Insight(
            type=InsightType.POSITIVE, icon="🏆", priority=2,
            title=f"{rate}% Saved! 👑",
            message=f"You're keeping {rate}% of your income this month. Elite status! 💎",
            tip="Experts say save 20%. You're above that! 💸",
        )
    if rate < 0:
        return Insight(
            type=InsightType.ALERT, icon="🚩", priority=0,
            title="Houston, We Have a Problem! 🫠",
            message=f"Expenses beat income by {format_money(expenses - income)} this month.",
            tip="Cut one non-essential expense today. Every cedi counts! 💪",
        )
    if rate < SAVINGS_RATE_LOW_PCT:
        return Insight(
            type=InsightType.WARNING, icon="📉", priority=2,
            title="Savings on Life Support 🏥",
            message=f"Only {rate}% saved this month. Your savings account is looking lonely 😢",
            tip="Reduce your top spending category by 20%. Small moves, big results! 🎯",
        )
    return None


# ── 12. Payment method concentration ─────────────────────────────────────────

@insight_generator("payment_method", "Payment Methods")
def payment_method_insight(store: TransactionStore, user_id: int, today: date) -> Optional[Insight]:
    rows = store.payment_method_totals(user_id, trailing(today), today)
    if not rows:
        return None
    method, total, _ = rows[0]
    pct = share_pct(total, sum(amount for _, amount, _ in rows))
    if pct <= PAYMENT_CONCENTRATION_PCT:
        return None

    return Insight(
        type=InsightType.INFO, icon="💳", priority=5,
        title=f"{method} Fan! 📱",
        message=f"{pct}% of your money flows through {method}.",
        tip=(
            "Cash disappears without a trace! Try MoMo for better tracking 📲"
            if method == "Cash"
            else "Check your statement monthly. Stay vigilant! 🕵️"
        ),
    )


# ── 13. Month-end forecast ───────────────────────────────────────────────────

@insight_generator("forecast", "Monthly Forecast")
def forecast_insight(store: TransactionStore, user_id: int, today: date) -> Optional[Insight]:
    spent = store.sum_expenses(user_id, month_start(today), today)
    days_passed = today.day
    days_in_month = calendar.monthrange(today.year, today.month)[1]
    days_left = days_in_month - days_passed

    projected = spent / days_passed * days_in_month
    if projected == 0 or days_left <= 0:
        return None

    budget = store.active_budget(user_id, BUDGET_PERIOD_MONTHLY)
    if budget is not None and projected > budget.amount * FORECAST_OVERSHOOT:
        daily_allowance = max(budget.amount - spent, Decimal("0")) / days_left
        return Insight(
            type=InsightType.WARNING, icon="🔮", priority=1,
            title="Crystal Ball Says... 🔮",
            message=(
                f"At this pace you'll hit {format_money(projected)} this month, "
                f"{format_money(projected - budget.amount)} over budget."
            ),
            tip=f"Spend at most {format_money(daily_allowance)}/day for the rest of the month 💪",
        )

    return Insight(
        type=InsightType.INFO, icon="🔮", priority=4,
        title="Future Vision 🔮",
        message=(
            f"At this pace you'll spend about {format_money(projected)} this month "
            f"({format_money(projected / days_in_month)}/day)."
        ),
        tip="Knowledge is power! Now you can plan ahead 🧠",
    )
