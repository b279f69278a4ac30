from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

from pydantic import BaseModel, EmailStr, Field


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


class UserCreate(BaseModel):
    email: EmailStr
    password: str


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserInDB(BaseModel):
    user_id: str = Field(default_factory=lambda: str(uuid4()))
    email: EmailStr
    password_hash: str
    email_confirmed: bool = False
    pending_email: Optional[str] = None
    user_metadata: Dict[str, Any] = Field(default_factory=dict)
    token_version: int = 0
    created_at: str = Field(default_factory=_utcnow)
    updated_at: str = Field(default_factory=_utcnow)


class UserPublic(BaseModel):
    user_id: str
    email: EmailStr
    email_confirmed: bool = False
    pending_email: Optional[str] = None
    user_metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: str

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> "UserPublic":
        return cls(
            user_id=item["user_id"],
            email=item["email"],
            email_confirmed=item.get("email_confirmed", False),
            pending_email=item.get("pending_email"),
            user_metadata=item.get("user_metadata") or {},
            created_at=item.get("created_at", ""),
        )


class Session(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserPublic


class UserUpdate(BaseModel):
    """Any subset of email, password and metadata; each part is applied independently."""

    email: Optional[EmailStr] = None
    password: Optional[str] = None
    confirm_password: Optional[str] = None
    user_metadata: Optional[Dict[str, Any]] = None


class RecoverRequest(BaseModel):
    email: EmailStr
    redirect_to: Optional[str] = None


class PasswordReset(BaseModel):
    token: str
    password: str
    confirm_password: str


class SignUpResult(BaseModel):
    user: UserPublic
    session: Optional[Session] = None
    confirmation_sent: bool = False


class UserUpdateResult(BaseModel):
    user: UserPublic
    email_change_sent: bool = False


class Message(BaseModel):
    message: str
