"""
Tests for InsightService: concurrent fan-out, ranking and truncation.
"""
from datetime import date

import pytest

from kudipal.application.insight_generators import InsightGenerator
from kudipal.application.insights import InsightService
from kudipal.domain.insight import Insight, InsightType

TODAY = date(2026, 10, 14)
UID = 1


def _fixed(name: str, priority: int) -> InsightGenerator:
    insight = Insight(InsightType.INFO, "📊", priority, name, f"{name} message", "tip")
    return InsightGenerator(name=name, source=f"{name} source", func=lambda store, user_id, today: insight)


def _absent(name: str) -> InsightGenerator:
    return InsightGenerator(name=name, source="none", func=lambda store, user_id, today: None)


def _failing(name: str) -> InsightGenerator:
    def func(store, user_id, today):
        raise RuntimeError("connection reset")
    return InsightGenerator(name=name, source="broken", func=func)


class TestRanking:
    def test_sorted_by_priority(self, session_factory):
        service = InsightService(session_factory, generators=[
            _fixed("c", 5), _fixed("a", 0), _fixed("b", 3),
        ])
        result = service.generate_insights(UID, today=TODAY)
        assert [i.priority for i in result] == [0, 3, 5]

    def test_ties_keep_registration_order(self, session_factory):
        service = InsightService(session_factory, generators=[
            _fixed("first", 2), _fixed("urgent", 1), _fixed("second", 2), _fixed("third", 2),
        ])
        result = service.generate_insights(UID, today=TODAY)
        assert [i.title for i in result] == ["urgent", "first", "second", "third"]

    def test_limit_truncates_after_sorting(self, session_factory):
        service = InsightService(session_factory, generators=[_fixed(str(p), p) for p in range(10, 0, -1)])
        result = service.generate_insights(UID, limit=3, today=TODAY)
        assert [i.priority for i in result] == [1, 2, 3]

    def test_default_limit_is_six(self, session_factory):
        service = InsightService(session_factory, generators=[_fixed(str(p), p) for p in range(9)])
        assert len(service.generate_insights(UID, today=TODAY)) == 6

    def test_include_all_ignores_limit(self, session_factory):
        service = InsightService(session_factory, generators=[_fixed(str(p), p) for p in range(9)])
        assert len(service.generate_insights(UID, limit=2, include_all=True, today=TODAY)) == 9

    def test_limit_zero(self, session_factory):
        service = InsightService(session_factory, generators=[_fixed("a", 1)])
        assert service.generate_insights(UID, limit=0, today=TODAY) == []

    def test_negative_limit_rejected(self, session_factory):
        service = InsightService(session_factory, generators=[_fixed("a", 1)])
        with pytest.raises(ValueError):
            service.generate_insights(UID, limit=-1, today=TODAY)

    def test_sources_attached(self, session_factory):
        service = InsightService(session_factory, generators=[_fixed("a", 1)])
        assert service.generate_insights(UID, today=TODAY)[0].source == "a source"


class TestFailureIsolation:
    def test_failing_generator_is_skipped(self, session_factory, caplog):
        service = InsightService(session_factory, generators=[
            _fixed("ok", 2), _failing("broken"), _absent("quiet"), _fixed("also ok", 4),
        ])

        result = service.generate_insights(UID, today=TODAY)

        assert [i.title for i in result] == ["ok", "also ok"]
        assert "broken" in caplog.text

    def test_all_absent(self, session_factory):
        service = InsightService(session_factory, generators=[_absent("a"), _failing("b")])
        assert service.generate_insights(UID, today=TODAY) == []

    def test_no_generators(self, session_factory):
        assert InsightService(session_factory, generators=[]).generate_insights(UID, today=TODAY) == []


class TestRegisteredGenerators:
    @pytest.fixture
    def seeded(self, session_factory, rows):
        db = session_factory()
        rows.budget(db, UID, 200, date(2026, 10, 1), date(2026, 10, 31))
        rows.expense(db, UID, 210, date(2026, 10, 13))
        db.commit()
        db.close()
        return session_factory

    def test_over_budget_alert_leads(self, seeded):
        result = InsightService(seeded).generate_insights(UID, today=TODAY)

        assert result[0].type is InsightType.ALERT
        assert result[0].source == "Active Budget"
        assert result[1].source == "Monthly Forecast"
        assert [i.priority for i in result] == sorted(i.priority for i in result)
        assert len(result) <= 6

    def test_unknown_user_gets_only_baseline_insights(self, seeded):
        result = InsightService(seeded).generate_insights(999, include_all=True, today=TODAY)
        # an empty week still counts as zero-spend days
        assert [i.source for i in result] == ["This Week"]
