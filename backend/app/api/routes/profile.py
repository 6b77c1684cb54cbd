from datetime import date
from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict
from app.api.dependencies import get_current_account
from app.models.account import Account

router = APIRouter(prefix="/profile", tags=["profile"])


class ProfileResponse(BaseModel):
    f_name: str
    l_name: str
    email: str
    dob: date | None
    gender: str | None
    phone_no: str
    country: str | None
    address: str | None

    model_config = ConfigDict(from_attributes=True)


@router.get("", response_model=ProfileResponse)
@router.get("/", response_model=ProfileResponse, include_in_schema=False)
def get_profile(current_account: Account = Depends(get_current_account)):
    """Profile fields of the account behind the Bearer token"""
    return current_account
