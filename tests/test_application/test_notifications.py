"""
Tests for the notification sink and NotificationService
"""
from kudipal.application.notifications import DbNotificationSink, NotificationService
from kudipal.domain.rewards import NotificationType
from kudipal.infrastructure.db.models import NotificationModel

UID = 1


def _seed(db):
    sink = DbNotificationSink(db)
    sink.notify(UID, NotificationType.LEVEL_UP, "Level 2 Unlocked! 🎉", "Congrats")
    sink.notify(UID, NotificationType.BADGE_EARNED, "New Badge Earned! 🏆", "Consistency Champ")
    sink.notify(2, NotificationType.LEVEL_UP, "Level 2 Unlocked! 🎉", "Other user")
    db.commit()


def test_sink_does_not_commit(db_session):
    DbNotificationSink(db_session).notify(UID, NotificationType.LEVEL_UP, "t", "m")
    db_session.rollback()
    assert db_session.query(NotificationModel).count() == 0


def test_list_for_user(db_session):
    _seed(db_session)

    result = NotificationService(db_session).list_for_user(UID)

    assert result["total"] == 2
    assert result["unread"] == 2
    assert [n["type"] for n in result["notifications"]] == ["badge_earned", "level_up"]


def test_pagination(db_session):
    _seed(db_session)
    result = NotificationService(db_session).list_for_user(UID, limit=1, offset=1)
    assert [n["type"] for n in result["notifications"]] == ["level_up"]
    assert result["total"] == 2


def test_mark_all_read(db_session):
    _seed(db_session)
    service = NotificationService(db_session)

    assert service.mark_all_read(UID) == 2
    assert service.list_for_user(UID)["unread"] == 0
    assert service.list_for_user(2)["unread"] == 1
    assert service.mark_all_read(UID) == 0
