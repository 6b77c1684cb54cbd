import logging
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import InternalError, NotAuthenticated
from app.core.security import decode_access_token
from app.models.account import Account
from app.services.account_service import AccountService, account_service

logger = logging.getLogger(__name__)

# Extracts the token from "Authorization: Bearer <token>"
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="login", auto_error=False)


def get_account_service() -> AccountService:
    """Shared service instance; tests override this to inject fakes"""
    return account_service


def sweep_inactive_accounts(
    db: Session = Depends(get_db),
    service: AccountService = Depends(get_account_service),
) -> None:
    """Run the inactivity sweep before an account request is processed"""
    if not settings.SWEEP_ON_REQUEST:
        return
    try:
        service.deactivate_inactive(db)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Inactivity sweep failed")
        raise InternalError()


def get_current_account(
    token: str | None = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
    service: AccountService = Depends(get_account_service),
) -> Account:
    """
    Resolve the account behind a Bearer token.

    401 for a missing, expired or tampered token; 404 when the account no
    longer exists or has been deleted.
    """
    if token is None:
        raise NotAuthenticated()

    payload = decode_access_token(token)
    if payload is None:
        raise NotAuthenticated()

    try:
        account_id = int(payload.get("sub"))
    except (ValueError, TypeError):
        raise NotAuthenticated()

    try:
        return service.get_profile(db, account_id)
    except SQLAlchemyError:
        db.rollback()
        logger.exception(f"Failed to load account {account_id}")
        raise InternalError()
