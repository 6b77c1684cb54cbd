from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

from sqlalchemy.exc import OperationalError

from app.core import scheduler
from app.models.account import Account, AccountStatus

PASSWORD = "correct horse battery"


def _idle_account(service, session_factory, account_profile, days=91):
    db = session_factory()
    try:
        account = service.register(db, account_profile, PASSWORD)
        account.last_active = datetime.now(timezone.utc) - timedelta(days=days)
        db.commit()
        return account.id
    finally:
        db.close()


def test_job_deactivates_idle_accounts_and_purges_expired_codes(service, session_factory, account_profile,
                                                                 code_store, clock):
    account_id = _idle_account(service, session_factory, account_profile)
    code_store.put("old@example.com", "aaaa")
    clock.advance(15 * 60)
    code_store.put("fresh@example.com", "bbbb")

    with patch.object(scheduler, "SessionLocal", session_factory), \
            patch.object(scheduler, "account_service", service):
        scheduler.deactivate_inactive_accounts_job()

    db = session_factory()
    try:
        assert db.get(Account, account_id).status == AccountStatus.DEACTIVATED
    finally:
        db.close()
    assert code_store.get("old@example.com") is None
    assert code_store.get("fresh@example.com") == "bbbb"
    assert len(code_store) == 1


def test_job_rolls_back_and_closes_session_on_database_error(service):
    session = MagicMock()
    failure = OperationalError("UPDATE user_regis", {}, Exception("connection lost"))

    with patch.object(scheduler, "SessionLocal", return_value=session), \
            patch.object(scheduler, "account_service", service), \
            patch.object(service, "deactivate_inactive", side_effect=failure):
        # Swallowed: the next scheduled run tries again
        scheduler.deactivate_inactive_accounts_job()

    session.rollback.assert_called_once()
    session.close.assert_called_once()


def test_start_and_stop_register_the_sweep_job():
    fake = MagicMock()
    fake.running = False

    with patch.object(scheduler, "scheduler", fake):
        scheduler.start_scheduler()
        fake.add_job.assert_called_once()
        assert fake.add_job.call_args.args[0] is scheduler.deactivate_inactive_accounts_job
        assert fake.add_job.call_args.kwargs["id"] == "deactivate_inactive_accounts"
        fake.start.assert_called_once()

        fake.running = True
        scheduler.stop_scheduler()
        fake.shutdown.assert_called_once()
