"""
Tests for GamificationService: unit-of-work semantics and the domain flows.
"""
import threading
from datetime import date, timedelta

import pytest

from kudipal.application.gamification import GamificationService, UserLockRegistry
from kudipal.application.xp import XpValidationError
from kudipal.domain.rewards import METRIC_STREAK_DAYS
from kudipal.infrastructure.db.models import Badge, Streak, UserXp, XpEvent

TODAY = date(2026, 10, 14)
UID = 1


class ExplodingSink:
    def notify(self, user_id, type, title, message):
        raise RuntimeError("notification store unavailable")


def _xp(db) -> int:
    row = db.query(UserXp).filter(UserXp.user_id == UID).first()
    return row.total_xp if row else 0


class TestUnitOfWork:
    def test_record_activity_commits(self, db_session):
        state = GamificationService(db_session).record_activity(UID, TODAY)

        assert state.current_streak == 1
        assert db_session.in_transaction() is False
        assert db_session.query(Streak).filter(Streak.user_id == UID).one().current_streak == 1

    def test_failure_rolls_back_whole_event(self, db_session):
        service = GamificationService(db_session, notifier=ExplodingSink())

        # 100 XP crosses level 2, so the level-up notification fails mid-event
        with pytest.raises(RuntimeError):
            service.award_xp(UID, 100, "Manual award")

        assert db_session.query(UserXp).count() == 0
        assert db_session.query(XpEvent).count() == 0

    def test_streak_rolled_back_with_failed_badge(self, db_session):
        db_session.add(Streak(user_id=UID, current_streak=6, longest_streak=6,
                              last_activity_date=TODAY - timedelta(days=1)))
        db_session.commit()
        service = GamificationService(db_session, notifier=ExplodingSink())

        with pytest.raises(RuntimeError):
            service.record_activity(UID, TODAY)

        row = db_session.query(Streak).filter(Streak.user_id == UID).one()
        assert row.current_streak == 6
        assert db_session.query(Badge).count() == 0

    def test_validation_error_propagates(self, db_session):
        with pytest.raises(XpValidationError):
            GamificationService(db_session).award_xp(UID, 0, "nothing")


@pytest.fixture
def pinned_today(monkeypatch):
    monkeypatch.setattr("kudipal.application.gamification.today_local", lambda: TODAY)
    return TODAY


class TestFlows:
    def test_expense_logged(self, db_session, pinned_today):
        result = GamificationService(db_session).record_expense_logged(
            UID, category="Food / Chop Bar", expense_id=42,
        )

        assert result["streak"]["current_streak"] == 1
        assert result["xp"]["new_xp"] == 15  # streak day + expense log
        assert result["badges"] == []

    def test_expense_logged_idempotent_per_expense(self, db_session, pinned_today):
        service = GamificationService(db_session)
        service.record_expense_logged(UID, expense_id=42)
        again = service.record_expense_logged(UID, expense_id=42)

        assert again["xp"]["xp_gained"] == 0
        assert _xp(db_session) == 15

    def test_backfilled_week_counts_as_one_day(self, db_session, rows, pinned_today):
        expenses = [rows.expense(db_session, UID, 20, TODAY - timedelta(days=n)) for n in range(6, -1, -1)]
        db_session.commit()
        service = GamificationService(db_session)

        for expense in expenses:
            result = service.record_expense_logged(UID, category=expense.category, expense_id=expense.id)

        assert result["streak"] == {
            "current_streak": 1,
            "longest_streak": 1,
            "last_activity_date": TODAY.isoformat(),
        }
        assert service.list_badges(UID) == []
        assert _xp(db_session) == 5 + 7 * 10

    def test_future_dated_expense_does_not_move_streak(self, db_session, rows, monkeypatch, pinned_today):
        ahead = rows.expense(db_session, UID, 40, TODAY + timedelta(days=5))
        now = rows.expense(db_session, UID, 15, TODAY)
        db_session.commit()
        service = GamificationService(db_session)

        service.record_expense_logged(UID, expense_id=ahead.id)
        service.record_expense_logged(UID, expense_id=now.id)
        assert service.get_streak(UID).last_activity_date == TODAY

        tomorrow = TODAY + timedelta(days=1)
        monkeypatch.setattr("kudipal.application.gamification.today_local", lambda: tomorrow)
        nxt = rows.expense(db_session, UID, 10, tomorrow)
        db_session.commit()
        state = service.record_expense_logged(UID, expense_id=nxt.id)["streak"]

        assert state["current_streak"] == 2
        assert state["last_activity_date"] == tomorrow.isoformat()

    def test_goal_completed(self, db_session, rows):
        rows.goal(db_session, UID, 500, 500, None, status="completed")
        db_session.commit()

        result = GamificationService(db_session).record_goal_completed(UID, goal_id=1)

        # goal reward + Goal Getter bronze bonus
        assert result["xp"]["xp_gained"] == 250
        assert [b["badge_name"] for b in result["badges"]] == ["Goal Getter"]
        assert _xp(db_session) == 350

    def test_goal_completed_twice(self, db_session, rows):
        rows.goal(db_session, UID, 500, 500, None, status="completed")
        db_session.commit()
        service = GamificationService(db_session)

        service.record_goal_completed(UID, goal_id=1)
        again = service.record_goal_completed(UID, goal_id=1)

        assert again == {"xp": {"new_xp": 350, "new_level": 3, "leveled_up": False, "xp_gained": 0}, "badges": []}

    def test_budget_closed(self, db_session, rows):
        rows.budget(db_session, UID, 500, date(2026, 9, 1), date(2026, 9, 30), is_active=False)
        db_session.commit()

        awarded = GamificationService(db_session).record_budget_closed(UID, today=TODAY)

        assert [(b["badge_name"], b["badge_tier"]) for b in awarded] == [("Budget Boss", "bronze")]

    def test_evaluate_badges_returns_dicts(self, db_session):
        awarded = GamificationService(db_session).evaluate_badges(UID, {METRIC_STREAK_DAYS: 90})
        assert awarded[0]["badge_tier"] == "gold"
        assert awarded[0]["earned_at"] is not None

    def test_reads(self, db_session):
        service = GamificationService(db_session)
        service.record_activity(UID, TODAY)

        assert service.get_streak(UID).last_activity_date == TODAY
        assert service.get_xp_profile(UID)["total_xp"] == 5
        assert service.list_badges(UID) == []


class TestUserLockRegistry:
    def test_hold_is_reentrant(self):
        locks = UserLockRegistry()
        with locks.hold(1):
            with locks.hold(1):
                assert len(locks) == 1

    def test_released_locks_are_evicted(self):
        locks = UserLockRegistry()
        for user_id in range(100):
            with locks.hold(user_id):
                pass

        assert len(locks) == 0

    def test_eviction_after_failed_event(self, db_session):
        locks = UserLockRegistry()
        service = GamificationService(db_session, locks=locks)

        with pytest.raises(XpValidationError):
            service.award_xp(UID, -5, "nothing")

        assert len(locks) == 0

    def test_hold_excludes_other_threads(self):
        locks = UserLockRegistry()
        entered = threading.Event()

        def worker():
            with locks.hold(7):
                entered.set()

        with locks.hold(7):
            t = threading.Thread(target=worker)
            t.start()
            assert entered.wait(timeout=0.05) is False
        t.join(timeout=1)

        assert entered.is_set()
        assert len(locks) == 0

    def test_other_users_not_blocked(self):
        locks = UserLockRegistry()
        entered = threading.Event()

        def worker():
            with locks.hold(2):
                entered.set()

        with locks.hold(1):
            t = threading.Thread(target=worker)
            t.start()
            assert entered.wait(timeout=1) is True
        t.join(timeout=1)
