"""
Canteen Service — JWT Security utilities
"""
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import jwt
from passlib.context import CryptContext

from canteen.core.config import get_settings

settings = get_settings()

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ACCESS_TOKEN = "access"
EMAIL_VERIFY_TOKEN = "email_verify"


# ─── Password Hashing ─────────────────────────────────────────────────────────

def hash_password(plain: str) -> str:
    return pwd_context.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


# ─── JWT Token Generation ──────────────────────────────────────────────────────

def _encode(data: dict[str, Any], token_type: str, lifetime: timedelta) -> str:
    payload = data.copy()
    expire = datetime.now(tz=timezone.utc) + lifetime
    payload.update({"exp": expire, "type": token_type, "jti": str(uuid.uuid4())})
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def create_access_token(data: dict[str, Any]) -> str:
    return _encode(data, ACCESS_TOKEN, timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES))


def create_email_verification_token(account_id: str, email: str) -> str:
    return _encode(
        {"sub": account_id, "email": email},
        EMAIL_VERIFY_TOKEN,
        timedelta(hours=settings.EMAIL_VERIFY_TOKEN_EXPIRE_HOURS),
    )


def decode_token(token: str) -> dict[str, Any]:
    """Decode and validate a JWT. Raises JWTError on failure."""
    return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
