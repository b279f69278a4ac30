"""
Local input checks.

These run before any remote call, on the client and again in the service,
and raise ``ValidationError`` with the message shown to the user.
"""
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional

from dompetku.core.errors import ValidationError

MIN_PASSWORD_LENGTH = 6


def check_credentials(email: Optional[str], password: Optional[str]) -> None:
    if not email or not password:
        raise ValidationError("Please fill in email and password")


def check_password_length(password: str, min_length: int = MIN_PASSWORD_LENGTH) -> None:
    if len(password) < min_length:
        raise ValidationError(f"Password must be at least {min_length} characters")


def check_new_password(
    password: Optional[str],
    confirmation: Optional[str],
    min_length: int = MIN_PASSWORD_LENGTH,
) -> None:
    if not password or not confirmation:
        raise ValidationError("Please fill in the new password and its confirmation")
    if password != confirmation:
        raise ValidationError("New password and confirmation do not match")
    check_password_length(password, min_length)


def parse_amount(raw) -> float:
    """Accept the tracker's free-text amount field; reject blanks, non-numbers and negatives."""
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raise ValidationError("Please fill in all fields")
    try:
        value = Decimal(str(raw).strip())
    except InvalidOperation:
        raise ValidationError("Amount must be a number")
    if not value.is_finite():
        raise ValidationError("Amount must be a number")
    if value < 0:
        raise ValidationError("Amount cannot be negative")
    return float(value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))
