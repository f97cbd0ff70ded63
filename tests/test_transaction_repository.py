from streala.models.transaction import TransactionStatus
from streala.repositories.transaction_repository import TransactionRepository
from streala.utils.fees import calculate_fees

from conftest import make_alert, make_streamer, make_transaction


def test_mark_paid_is_conditional(db_session):
    alert = make_alert(db_session, make_streamer(db_session))
    make_transaction(db_session, alert, "tx-1")
    repo = TransactionRepository(db_session)
    fees = calculate_fees(2500, 0.0399, 0.05)

    assert repo.mark_paid("tx-1", "pay-1", fees) is True
    assert repo.mark_paid("tx-1", "pay-2", fees) is False

    transaction = repo.get_by_id("tx-1")
    assert transaction.status == TransactionStatus.PAID
    assert transaction.provider_payment_id == "pay-1"
    assert transaction.provider_fee_cents == 100
    assert transaction.platform_fee_cents == 125
    assert transaction.streamer_amount_cents == 2275


def test_paid_is_never_marked_failed(db_session):
    alert = make_alert(db_session, make_streamer(db_session))
    make_transaction(db_session, alert, "tx-1", status=TransactionStatus.PAID)
    repo = TransactionRepository(db_session)

    assert repo.mark_failed("tx-1") is False
    assert repo.get_by_id("tx-1").status == TransactionStatus.PAID


def test_pending_to_failed(db_session):
    alert = make_alert(db_session, make_streamer(db_session))
    make_transaction(db_session, alert, "tx-1")
    repo = TransactionRepository(db_session)

    assert repo.mark_failed("tx-1") is True
    assert repo.get_by_id("tx-1").status == TransactionStatus.FAILED
    # failed -> failed is a no-op
    assert repo.mark_failed("tx-1") is False


def test_failed_can_still_be_paid(db_session):
    alert = make_alert(db_session, make_streamer(db_session))
    make_transaction(db_session, alert, "tx-1", status=TransactionStatus.FAILED)
    repo = TransactionRepository(db_session)

    assert repo.mark_paid("tx-1", "pay-9", calculate_fees(2500, 0.0399, 0.05)) is True
    assert repo.get_by_id("tx-1").status == TransactionStatus.PAID


def test_status_transition_table():
    assert TransactionStatus.can_transition("pending", "paid")
    assert TransactionStatus.can_transition("pending", "failed")
    assert TransactionStatus.can_transition("failed", "paid")
    assert not TransactionStatus.can_transition("paid", "failed")
    assert not TransactionStatus.can_transition("paid", "pending")
