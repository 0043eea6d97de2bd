"""
Security helpers: password hashing, JWT tokens, rate limiting, response headers
"""

from datetime import datetime, timedelta
from typing import Any
import re
import secrets

from fastapi import HTTPException, status
from jose import JWTError, jwt
from passlib.context import CryptContext
from slowapi import Limiter
from slowapi.util import get_remote_address

from snapscape.core.config import settings


pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.REDIS_URL or "memory://",
)

rate_limit_signup = limiter.limit(settings.RATE_LIMIT_SIGNUP)
rate_limit_auth = limiter.limit(settings.RATE_LIMIT_LOGIN)
rate_limit_rating = limiter.limit(settings.RATE_LIMIT_RATING)
rate_limit_contact = limiter.limit(settings.RATE_LIMIT_CONTACT)


# ============================================================================
# PASSWORDS
# ============================================================================

def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    if not hashed:
        return False
    return pwd_context.verify(password, hashed)


def validate_password_strength(password: str) -> tuple[bool, str | None]:
    """At least 8 characters with one letter and one digit."""
    if len(password) < 8:
        return False, "Password must be at least 8 characters long"
    if not re.search(r"[A-Za-z]", password):
        return False, "Password must contain at least one letter"
    if not re.search(r"\d", password):
        return False, "Password must contain at least one number"
    return True, None


# ============================================================================
# TOKENS
# ============================================================================

def _encode(data: dict[str, Any], token_type: str, expires_delta: timedelta) -> str:
    to_encode = data.copy()
    to_encode.update({
        "exp": datetime.utcnow() + expires_delta,
        "type": token_type,
    })
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.JWT_ALGORITHM)


def create_access_token(data: dict[str, Any]) -> str:
    return _encode(data, "access", timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))


def create_refresh_token(data: dict[str, Any]) -> str:
    # jti keeps two refresh tokens issued in the same second distinct
    payload = {**data, "jti": secrets.token_hex(8)}
    return _encode(payload, "refresh", timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS))


def decode_token(token: str) -> dict[str, Any]:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )


def generate_verification_token() -> str:
    return secrets.token_urlsafe(32)


# ============================================================================
# RESPONSE HEADERS
# ============================================================================

def get_security_headers() -> dict[str, str]:
    return {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Referrer-Policy": "strict-origin-when-cross-origin",
    }
