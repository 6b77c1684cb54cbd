import enum
from sqlalchemy import Column, Integer, String, Date, DateTime, Enum
from sqlalchemy.sql import func
from app.core.database import Base


class AccountStatus(str, enum.Enum):
    """Closed set of lifecycle states; DELETED is terminal"""
    ACTIVE = "ACTIVE"
    DEACTIVATED = "DEACTIVATED"
    DELETED = "DELETED"


class Account(Base):
    """
    A registered portfolio user.

    Stores credentials, lifecycle status and the opaque profile fields shown
    on the profile page. Deletion is soft: the row stays with status DELETED.
    """
    __tablename__ = "user_regis"

    id = Column(Integer, primary_key=True, index=True)
    f_name = Column(String(100), nullable=False)
    l_name = Column(String(100), nullable=False)
    # Unique indexes back the registration pre-check against concurrent inserts
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone_no = Column(String(32), unique=True, index=True, nullable=False)
    dob = Column(Date, nullable=True)
    gender = Column(String(20), nullable=True)
    country = Column(String(100), nullable=True)
    address = Column(String(255), nullable=True)
    # bcrypt hash - never plaintext
    hashed_password = Column(String(255), nullable=False)
    status = Column(
        Enum(AccountStatus, name="account_status"),
        nullable=False,
        default=AccountStatus.ACTIVE,
        index=True,
    )
    # Touched on registration, login and reactivation; read by the inactivity sweep
    last_active = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
