import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import (
    AccountDeleted,
    IncorrectPassword,
    InvalidCredentials,
    InvalidOrExpiredCode,
    NotDeactivated,
    NotFound,
    ValidationConflict,
)
from app.core.security import create_account_token, dummy_verify, get_password_hash, verify_password
from app.models.account import Account, AccountStatus
from app.services.email_service import EmailDeliveryError, EmailService, email_service
from app.services.state_machine import ensure_transition
from app.services.verification_store import VerificationCodeStore, generate_code, normalize_email

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class LoginResult:
    """Outcome of a login that did not fail.

    Either token is set (ACTIVE account) or reactivation_required is True
    (DEACTIVATED account, no token issued).
    """
    token: Optional[str] = None
    reactivation_required: bool = False


class AccountService:
    """
    Account lifecycle: registration, login, inactivity sweep, reactivation
    by emailed code and soft deletion.

    Every operation takes the caller's Session; commits happen here, rollback
    on unexpected database errors is left to the caller that owns the session.
    """

    def __init__(
        self,
        code_store: VerificationCodeStore,
        mailer: EmailService,
        inactivity_days: int = settings.INACTIVITY_DAYS,
        code_bytes: int = settings.VERIFICATION_CODE_BYTES,
    ):
        self.code_store = code_store
        self.mailer = mailer
        self.inactivity_days = inactivity_days
        self.code_bytes = code_bytes

    @staticmethod
    def get_by_email(db: Session, email: str) -> Account | None:
        # Emails are stored normalized, so the lookup stays an indexed equality
        return db.query(Account).filter(Account.email == normalize_email(email)).first()

    @staticmethod
    def _find_conflict(db: Session, email: str, phone_no: str) -> str | None:
        """Return the first field already taken by an existing account"""
        if db.query(Account.id).filter(Account.email == normalize_email(email)).first():
            return "email"
        if db.query(Account.id).filter(Account.phone_no == phone_no).first():
            return "phone"
        return None

    def register(self, db: Session, profile: Dict[str, Any], raw_password: str) -> Account:
        """Create an ACTIVE account; email and phone number must be unused"""
        profile = {**profile, "email": normalize_email(profile["email"])}
        email = profile["email"]
        phone_no = profile["phone_no"]
        # Hash outside the transaction so the check-then-insert window stays short
        hashed_password = get_password_hash(raw_password)

        try:
            conflict = self._find_conflict(db, email, phone_no)
            if conflict:
                raise ValidationConflict(conflict)

            account = Account(
                **profile,
                hashed_password=hashed_password,
                status=AccountStatus.ACTIVE,
                last_active=utcnow(),
            )
            db.add(account)
            db.commit()
            db.refresh(account)
        except ValidationConflict:
            db.rollback()
            raise
        except IntegrityError:
            # A concurrent registration inserted between our check and our insert;
            # the unique index rejected this one
            db.rollback()
            conflict = self._find_conflict(db, email, phone_no) or "email"
            db.rollback()
            logger.info(f"Registration for {email} lost a race on {conflict}")
            raise ValidationConflict(conflict)

        logger.info(f"Registered account {account.id}")
        return account

    def login(self, db: Session, email: str, raw_password: str) -> LoginResult:
        account = self.get_by_email(db, email)

        # Unknown email and wrong password are indistinguishable to the caller
        if account is None:
            dummy_verify()
            raise InvalidCredentials()
        if not verify_password(raw_password, account.hashed_password):
            raise InvalidCredentials()

        if account.status == AccountStatus.DELETED:
            raise AccountDeleted()
        if account.status == AccountStatus.DEACTIVATED:
            logger.info(f"Login for deactivated account {account.id}; reactivation required")
            return LoginResult(reactivation_required=True)

        account.last_active = utcnow()
        db.commit()

        return LoginResult(token=create_account_token(account.id))

    def deactivate_inactive(self, db: Session, now: Optional[datetime] = None) -> int:
        """
        Inactivity sweep: flip every ACTIVE account idle past the window to DEACTIVATED.

        One set-based UPDATE; a login that touches last_active concurrently
        simply wins on its own row.
        """
        cutoff = (now or utcnow()) - timedelta(days=self.inactivity_days)
        stmt = (
            update(Account)
            .where(
                Account.status == AccountStatus.ACTIVE,
                or_(Account.last_active < cutoff, Account.last_active.is_(None)),
            )
            .values(status=AccountStatus.DEACTIVATED)
            .execution_options(synchronize_session=False)
        )
        result = db.execute(stmt)
        db.commit()

        if result.rowcount:
            logger.info(f"Inactivity sweep deactivated {result.rowcount} account(s)")
        return result.rowcount

    def request_reactivation(self, db: Session, email: str, raw_password: str) -> None:
        """Email a fresh reactivation code to a DEACTIVATED account"""
        account = self.get_by_email(db, email)

        # Password check first so knowing an email is not enough to trigger mail
        if account is None:
            dummy_verify()
            raise InvalidCredentials()
        if not verify_password(raw_password, account.hashed_password):
            raise InvalidCredentials()

        if account.status == AccountStatus.DELETED:
            raise AccountDeleted()
        if account.status != AccountStatus.DEACTIVATED:
            raise NotDeactivated()

        code = generate_code(self.code_bytes)
        self.code_store.put(account.email, code)
        try:
            self.mailer.send_reactivation_code(
                account.email, code, settings.VERIFICATION_CODE_TTL_MINUTES
            )
        except EmailDeliveryError:
            # Nobody received this code; don't leave it pending
            self.code_store.discard(account.email, code)
            raise

        logger.info(f"Reactivation code issued for account {account.id}")

    def confirm_reactivation(self, db: Session, email: str, code: str) -> Account:
        """DEACTIVATED -> ACTIVE when code equals the last one issued for email"""
        # A wrong code leaves the pending one in place so the user can retry
        if not self.code_store.matches(email, code):
            raise InvalidOrExpiredCode()

        account = self.get_by_email(db, email)
        if account is None:
            raise InvalidOrExpiredCode()
        if account.status == AccountStatus.DELETED:
            raise AccountDeleted()
        if account.status != AccountStatus.DEACTIVATED:
            raise NotDeactivated()

        ensure_transition(account.status, AccountStatus.ACTIVE)
        account.status = AccountStatus.ACTIVE
        account.last_active = utcnow()
        db.commit()
        db.refresh(account)

        self.code_store.discard(email, code)
        logger.info(f"Account {account.id} reactivated")
        return account

    def delete_account(self, db: Session, email: str, raw_password: str) -> None:
        """Soft delete: ACTIVE -> DELETED, with no way back"""
        account = self.get_by_email(db, email)
        if account is None:
            dummy_verify()
            raise NotFound()
        if not verify_password(raw_password, account.hashed_password):
            raise IncorrectPassword()
        # A deleted account no longer exists as far as this route is concerned
        if account.status == AccountStatus.DELETED:
            raise NotFound()

        # Only ACTIVE -> DELETED exists; a DEACTIVATED account is refused with a 400
        ensure_transition(account.status, AccountStatus.DELETED)
        account.status = AccountStatus.DELETED
        db.commit()

        self.code_store.discard(account.email)
        logger.info(f"Account {account.id} deleted")

    @staticmethod
    def get_profile(db: Session, account_id: int) -> Account:
        account = db.query(Account).filter(Account.id == account_id).first()
        if account is None or account.status == AccountStatus.DELETED:
            raise NotFound()
        return account


account_service = AccountService(
    VerificationCodeStore(ttl_seconds=settings.get_code_ttl_seconds()),
    email_service,
)
