"""
Tests for the Insight value object
"""
from kudipal.domain.insight import Insight, InsightType


def test_to_dict_serializes_type_value():
    insight = Insight(
        type=InsightType.ALERT, icon="🚨", priority=0,
        title="t", message="m", tip="tip",
    ).with_source("Active Budget")

    data = insight.to_dict()

    assert data == {
        "type": "alert",
        "icon": "🚨",
        "priority": 0,
        "title": "t",
        "message": "m",
        "tip": "tip",
        "source": "Active Budget",
    }


def test_with_source_returns_copy():
    insight = Insight(type=InsightType.INFO, icon="📊", priority=4, title="t", message="m", tip="x")
    tagged = insight.with_source("Weekly Expenses")
    assert insight.source is None
    assert tagged.source == "Weekly Expenses"
