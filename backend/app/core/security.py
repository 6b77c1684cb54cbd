from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from passlib.context import CryptContext
from app.core.config import settings

# bcrypt generates and embeds a salt per hash; rounds sets the work factor
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hash using constant-time comparison"""
    # passlib reads the salt and rounds back out of the stored hash
    return pwd_context.verify(plain_password, hashed_password)


def dummy_verify() -> None:
    """Spend one hash verification's worth of time for an unknown account"""
    pwd_context.dummy_verify()


def get_password_hash(password: str) -> str:
    """Hash a password using bcrypt"""
    # bcrypt generates a fresh salt each call, so equal passwords hash differently
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token with expiration"""
    # Copy data to avoid mutating the caller's dict
    to_encode = data.copy()

    # Tokens must expire; login tokens use the configured default lifetime
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(
            timezone.utc) + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    # Standard JWT expiration claim, checked by jose on decode
    to_encode.update({"exp": expire})

    # Algorithm must match the one used in decode_access_token
    encoded_jwt = jwt.encode(
        to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return encoded_jwt


def create_account_token(account_id: int) -> str:
    """Issue the login token for an account; the account id goes in 'sub'"""
    # No expires_delta: the default ACCESS_TOKEN_EXPIRE_MINUTES lifetime applies
    return create_access_token(data={"sub": str(account_id)})


def decode_access_token(token: str) -> Optional[dict]:
    """Decode and verify a JWT token"""
    try:
        # Signature and expiration are verified by jose
        payload = jwt.decode(token, settings.SECRET_KEY,
                             algorithms=[settings.ALGORITHM])
        return payload
    except JWTError:
        # Expired, tampered with, or signed with another key
        return None
