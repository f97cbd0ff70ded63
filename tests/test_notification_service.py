from datetime import timedelta
from unittest.mock import patch

from streala.models import Notification
from streala.services.notification_service import NotificationService
from streala.utils.timezone_utils import get_utc_now

from conftest import make_settings, make_streamer


def add_notification(db, streamer, age_days: int) -> Notification:
    row = Notification(
        streamer_id=streamer.id,
        type="sale",
        title="Nova venda!",
        message="...",
        created_at=get_utc_now() - timedelta(days=age_days),
    )
    db.add(row)
    db.commit()
    return row


def test_emit_sale_message(db_session):
    streamer = make_streamer(db_session)

    notification = NotificationService(db_session).emit_sale(streamer.id, "Buzina", 2500)

    assert notification.type == "sale"
    assert notification.title == "Nova venda!"
    assert notification.message == 'Você vendeu o alerta "Buzina" por R$ 25,00'
    assert notification.link == "/transactions"
    assert notification.is_read is False


def test_emit_sale_without_title(db_session):
    streamer = make_streamer(db_session)

    notification = NotificationService(db_session).emit_sale(streamer.id, None, 123456)

    assert notification.message == 'Você vendeu o alerta "Alerta" por R$ 1.234,56'


def test_cleanup_respects_each_streamers_retention(db_session):
    weekly = make_streamer(db_session, "weekly")
    monthly = make_streamer(db_session, "monthly")
    forever = make_streamer(db_session, "forever")
    make_settings(db_session, weekly, notification_retention_days=7)
    make_settings(db_session, monthly, notification_retention_days=30)
    make_settings(db_session, forever, notification_retention_days=None)

    for streamer in (weekly, monthly, forever):
        add_notification(db_session, streamer, age_days=1)
        add_notification(db_session, streamer, age_days=10)
        add_notification(db_session, streamer, age_days=40)

    result = NotificationService(db_session).cleanup_expired()

    assert result.deleted == 3
    assert result.processed_streamers == 2
    remaining = {
        streamer.handle: db_session.query(Notification)
        .filter(Notification.streamer_id == streamer.id)
        .count()
        for streamer in (weekly, monthly, forever)
    }
    assert remaining == {"weekly": 1, "monthly": 2, "forever": 3}


def test_cleanup_skips_non_positive_retention(db_session):
    streamer = make_streamer(db_session)
    make_settings(db_session, streamer, notification_retention_days=0)
    add_notification(db_session, streamer, age_days=400)

    result = NotificationService(db_session).cleanup_expired()

    assert result.deleted == 0
    assert result.processed_streamers == 0


def test_cleanup_failure_is_isolated(db_session):
    first = make_streamer(db_session, "first")
    second = make_streamer(db_session, "second")
    make_settings(db_session, first, notification_retention_days=7)
    make_settings(db_session, second, notification_retention_days=7)
    add_notification(db_session, first, age_days=10)
    add_notification(db_session, second, age_days=10)

    service = NotificationService(db_session)
    original = service.notification_repo.delete_older_than

    def flaky(streamer_id, cutoff):
        if streamer_id == first.id:
            raise RuntimeError("lock timeout")
        return original(streamer_id, cutoff)

    with patch.object(service.notification_repo, "delete_older_than", side_effect=flaky):
        result = service.cleanup_expired()

    assert result.deleted == 1
    assert result.processed_streamers == 1
