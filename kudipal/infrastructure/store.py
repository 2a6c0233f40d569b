"""
TransactionStore: read-only aggregate queries over a user's finance records.

Every method is keyed by user and an inclusive date range. Sums are returned
as Decimal (0 when nothing matches), never None.
"""
from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import func
from sqlalchemy.orm import Session

from kudipal.domain.categories import GOAL_ACTIVE
from kudipal.infrastructure.db.models import Expense, Income, Budget, Goal, Streak


def _dec(value) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class TransactionStore:
    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Expenses
    # ------------------------------------------------------------------

    def sum_expenses(
        self, user_id: int, start: date, end: date, category: str | None = None,
    ) -> Decimal:
        q = self.db.query(func.sum(Expense.amount)).filter(
            Expense.user_id == user_id,
            Expense.expense_date >= start,
            Expense.expense_date <= end,
        )
        if category is not None:
            q = q.filter(Expense.category == category)
        return _dec(q.scalar())

    def daily_totals(self, user_id: int, start: date, end: date) -> dict[date, Decimal]:
        """Spend per calendar day; days without expenses are absent."""
        rows = (
            self.db.query(Expense.expense_date, func.sum(Expense.amount))
            .filter(
                Expense.user_id == user_id,
                Expense.expense_date >= start,
                Expense.expense_date <= end,
            )
            .group_by(Expense.expense_date)
            .order_by(Expense.expense_date)
            .all()
        )
        return {d: _dec(total) for d, total in rows}

    def category_totals(self, user_id: int, start: date, end: date) -> list[tuple[str, Decimal, int]]:
        """[(category, total, txn_count), ...] largest total first."""
        total = func.sum(Expense.amount)
        rows = (
            self.db.query(Expense.category, total, func.count(Expense.id))
            .filter(
                Expense.user_id == user_id,
                Expense.expense_date >= start,
                Expense.expense_date <= end,
            )
            .group_by(Expense.category)
            .order_by(total.desc(), Expense.category)
            .all()
        )
        return [(cat, _dec(amount), int(cnt)) for cat, amount, cnt in rows]

    def payment_method_totals(self, user_id: int, start: date, end: date) -> list[tuple[str, Decimal, int]]:
        """[(payment_method, total, txn_count), ...] largest total first."""
        total = func.sum(Expense.amount)
        rows = (
            self.db.query(Expense.payment_method, total, func.count(Expense.id))
            .filter(
                Expense.user_id == user_id,
                Expense.expense_date >= start,
                Expense.expense_date <= end,
            )
            .group_by(Expense.payment_method)
            .order_by(total.desc(), Expense.payment_method)
            .all()
        )
        return [(method, _dec(amount), int(cnt)) for method, amount, cnt in rows]

    # ------------------------------------------------------------------
    # Income
    # ------------------------------------------------------------------

    def sum_income(self, user_id: int, start: date, end: date) -> Decimal:
        value = (
            self.db.query(func.sum(Income.amount))
            .filter(
                Income.user_id == user_id,
                Income.income_date >= start,
                Income.income_date <= end,
            )
            .scalar()
        )
        return _dec(value)

    # ------------------------------------------------------------------
    # Budgets
    # ------------------------------------------------------------------

    def active_budget(self, user_id: int, period_type: str | None = None) -> Budget | None:
        """The active budget (optionally of one period type) ending soonest."""
        q = self.db.query(Budget).filter(Budget.user_id == user_id, Budget.is_active.is_(True))
        if period_type is not None:
            q = q.filter(Budget.period_type == period_type)
        return q.order_by(Budget.end_date, Budget.id).first()

    def closed_budgets(self, user_id: int, period_type: str, before: date) -> list[Budget]:
        """Inactive budgets of one period type that ended before `before`, newest first."""
        return (
            self.db.query(Budget)
            .filter(
                Budget.user_id == user_id,
                Budget.period_type == period_type,
                Budget.is_active.is_(False),
                Budget.end_date < before,
            )
            .order_by(Budget.start_date.desc(), Budget.id.desc())
            .all()
        )

    # ------------------------------------------------------------------
    # Goals
    # ------------------------------------------------------------------

    def nearest_deadline_goal(self, user_id: int) -> Goal | None:
        return (
            self.db.query(Goal)
            .filter(
                Goal.user_id == user_id,
                Goal.status == GOAL_ACTIVE,
                Goal.deadline.isnot(None),
            )
            .order_by(Goal.deadline, Goal.id)
            .first()
        )

    def count_goals(self, user_id: int, status: str) -> int:
        return (
            self.db.query(func.count(Goal.id))
            .filter(Goal.user_id == user_id, Goal.status == status)
            .scalar() or 0
        )

    # ------------------------------------------------------------------
    # Streak
    # ------------------------------------------------------------------

    def get_streak(self, user_id: int) -> Streak | None:
        return self.db.query(Streak).filter(Streak.user_id == user_id).first()
