import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import ExpiredSignatureError, JWTError, jwt

from dompetku.core.config import settings
from dompetku.core.errors import AuthError

PBKDF2_ITERATIONS = 260_000

ACCESS_TOKEN = "access"
SIGNUP_TOKEN = "signup"
RECOVERY_TOKEN = "recovery"
EMAIL_CHANGE_TOKEN = "email_change"


def get_password_hash(password: str) -> str:
    """Salted PBKDF2-SHA256, stored as ``pbkdf2_sha256$<iterations>$<salt>$<hex digest>``."""
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), PBKDF2_ITERATIONS)
    return f"pbkdf2_sha256${PBKDF2_ITERATIONS}${salt}${digest.hex()}"


def verify_password(plain_password: str, password_hash: str) -> bool:
    try:
        algorithm, iterations, salt, expected = password_hash.split("$")
    except (AttributeError, ValueError):
        return False
    if algorithm != "pbkdf2_sha256":
        return False
    digest = hashlib.pbkdf2_hmac("sha256", plain_password.encode(), salt.encode(), int(iterations))
    return hmac.compare_digest(digest.hex(), expected)


def create_token(
    subject: str,
    token_type: str,
    version: int = 0,
    expires_delta: Optional[timedelta] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> str:
    if expires_delta is None:
        minutes = (
            settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES
            if token_type == ACCESS_TOKEN
            else settings.EMAIL_TOKEN_EXPIRE_MINUTES
        )
        expires_delta = timedelta(minutes=minutes)
    now = datetime.now(timezone.utc)
    to_encode = dict(extra or {})
    to_encode.update({
        "sub": subject,
        "typ": token_type,
        "ver": version,
        "iat": now,
        "exp": now + expires_delta,
    })
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def create_access_token(user_id: str, version: int = 0) -> str:
    return create_token(user_id, ACCESS_TOKEN, version)


def decode_token(token: str, token_type: str) -> Dict[str, Any]:
    """
    Decode and validate a token of the given type.

    Access tokens fail with 401; one-time email tokens fail with 400, since
    the caller cannot fix them by signing in again.
    """
    status_code = 401 if token_type == ACCESS_TOKEN else 400
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise AuthError("Token has expired", status_code=status_code)
    except JWTError:
        raise AuthError("Invalid token", status_code=status_code)

    if payload.get("typ") != token_type or not payload.get("sub"):
        raise AuthError("Invalid token", status_code=status_code)
    return payload


def decode_access_token(token: str) -> Dict[str, Any]:
    return decode_token(token, ACCESS_TOKEN)


def token_expires_in() -> int:
    return settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60
