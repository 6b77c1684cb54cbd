import threading

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.database import Base
from app.core.exceptions import ValidationConflict
from app.models.account import Account


@pytest.fixture
def file_session_factory(tmp_path):
    # Separate connections per thread need a real file, not the shared in-memory db
    engine = create_engine(
        f"sqlite:///{tmp_path / 'race.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


def test_concurrent_registration_with_same_email_creates_one_row(service, account_profile, file_session_factory):
    workers = 4
    barrier = threading.Barrier(workers)
    successes = []
    conflicts = []
    errors = []

    def register(i):
        db = file_session_factory()
        try:
            barrier.wait()
            # Same email, distinct phone numbers: the email is the only contested field
            successes.append(service.register(db, {**account_profile, "phone_no": f"555-02{i:02d}"}, "pw-12345678"))
        except ValidationConflict as exc:
            conflicts.append(exc)
        except Exception as exc:  # noqa: BLE001
            errors.append(exc)
        finally:
            db.close()

    threads = [threading.Thread(target=register, args=(i,)) for i in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert len(successes) == 1
    assert len(conflicts) == workers - 1
    assert all(c.detail["code"] == "email_taken" for c in conflicts)

    db = file_session_factory()
    try:
        assert db.query(Account).filter(Account.email == account_profile["email"]).count() == 1
    finally:
        db.close()
