import logging
from datetime import date
from fastapi import APIRouter, Depends, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from pydantic import BaseModel, EmailStr, Field
from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import InternalError
from app.api.dependencies import get_account_service, sweep_inactive_accounts
from app.services.account_service import AccountService
from app.services.email_service import EmailDeliveryError

logger = logging.getLogger(__name__)

# The inactivity sweep runs before every account request
router = APIRouter(tags=["accounts"], dependencies=[Depends(sweep_inactive_accounts)])


class AccountCreate(BaseModel):
    f_name: str = Field(min_length=1, max_length=100)
    l_name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    phone_no: str = Field(min_length=3, max_length=32)
    dob: date | None = None
    gender: str | None = Field(default=None, max_length=20)
    country: str | None = Field(default=None, max_length=100)
    address: str | None = Field(default=None, max_length=255)
    password: str = Field(min_length=8)


class Credentials(BaseModel):
    email: EmailStr
    password: str


class ReactivationConfirm(BaseModel):
    email: EmailStr
    code: str = Field(min_length=1, max_length=64)


class MessageResponse(BaseModel):
    message: str


class RegisterResponse(MessageResponse):
    id: int


class LoginResponse(MessageResponse):
    token: str | None = None
    token_type: str | None = None
    reactivation_required: bool = False
    redirect: str | None = None


def _internal_error(db: Session, action: str) -> InternalError:
    # Store and transport details are logged, never returned to the client
    db.rollback()
    logger.exception(f"Unexpected failure during {action}")
    return InternalError()


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(
    user_data: AccountCreate,
    db: Session = Depends(get_db),
    service: AccountService = Depends(get_account_service),
):
    """Register a new account"""
    profile = user_data.model_dump(exclude={"password"})
    try:
        account = service.register(db, profile, user_data.password)
    except SQLAlchemyError:
        raise _internal_error(db, "registration")

    return {"message": "User registered successfully", "id": account.id}


@router.post("/login", response_model=LoginResponse, response_model_exclude_none=True)
def login(
    credentials: Credentials,
    db: Session = Depends(get_db),
    service: AccountService = Depends(get_account_service),
):
    """Log in; deactivated accounts get a reactivation hint instead of a token"""
    try:
        result = service.login(db, credentials.email, credentials.password)
    except SQLAlchemyError:
        raise _internal_error(db, "login")

    if result.reactivation_required:
        return {
            "message": "Account is deactivated. Reactivate it to log in.",
            "reactivation_required": True,
            "redirect": settings.REACTIVATION_REDIRECT,
        }

    return {"message": "Login successful", "token": result.token, "token_type": "bearer"}


@router.post("/reactivate", response_model=MessageResponse)
def request_reactivation(
    credentials: Credentials,
    db: Session = Depends(get_db),
    service: AccountService = Depends(get_account_service),
):
    """Email a reactivation code to a deactivated account"""
    try:
        service.request_reactivation(db, credentials.email, credentials.password)
    except (SQLAlchemyError, EmailDeliveryError):
        raise _internal_error(db, "reactivation request")

    return {"message": "Verification code sent to your email"}


@router.post("/verify-reactivation", response_model=MessageResponse)
def verify_reactivation(
    confirmation: ReactivationConfirm,
    db: Session = Depends(get_db),
    service: AccountService = Depends(get_account_service),
):
    """Reactivate an account with the emailed code"""
    try:
        service.confirm_reactivation(db, confirmation.email, confirmation.code)
    except SQLAlchemyError:
        raise _internal_error(db, "reactivation")

    return {"message": "Account reactivated successfully"}


@router.post("/delete-account", response_model=MessageResponse)
def delete_account(
    credentials: Credentials,
    db: Session = Depends(get_db),
    service: AccountService = Depends(get_account_service),
):
    """Soft-delete an account after confirming its password"""
    try:
        service.delete_account(db, credentials.email, credentials.password)
    except SQLAlchemyError:
        raise _internal_error(db, "account deletion")

    return {"message": "Account deleted successfully"}
