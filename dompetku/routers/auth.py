import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from dompetku.core.config import settings
from dompetku.core.errors import AuthError
from dompetku.core.security import (
    EMAIL_CHANGE_TOKEN,
    RECOVERY_TOKEN,
    SIGNUP_TOKEN,
    create_access_token,
    create_token,
    decode_access_token,
    decode_token,
    get_password_hash,
    token_expires_in,
    verify_password,
)
from dompetku.db import dynamo
from dompetku.models.user import (
    Message,
    PasswordReset,
    RecoverRequest,
    Session,
    SignUpResult,
    UserCreate,
    UserInDB,
    UserLogin,
    UserPublic,
    UserUpdate,
    UserUpdateResult,
)
from dompetku.utils import email_service
from dompetku.utils.validation import check_credentials, check_new_password, check_password_length

router = APIRouter()
logger = logging.getLogger(__name__)


def get_current_user(authorization: Optional[str] = Header(None)) -> Dict[str, Any]:
    """Resolve the bearer token to the stored user, rejecting revoked tokens."""
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthError("Token required")

    token = authorization.replace("Bearer ", "", 1)
    payload = decode_access_token(token)
    user = dynamo.get_user_by_id(payload["sub"])
    if not user:
        raise AuthError("User not found")
    if payload.get("ver", 0) != user.get("token_version", 0):
        raise AuthError("Session has been revoked")
    return user


def get_current_user_id(user: Dict[str, Any] = Depends(get_current_user)) -> str:
    return user["user_id"]


def _session_for(user: Dict[str, Any]) -> Session:
    return Session(
        access_token=create_access_token(user["user_id"], user.get("token_version", 0)),
        expires_in=token_expires_in(),
        user=UserPublic.from_item(user),
    )


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _load_token_user(payload: Dict[str, Any]) -> Dict[str, Any]:
    user = dynamo.get_user_by_id(payload["sub"])
    if not user:
        raise AuthError("Link is no longer valid", status_code=status.HTTP_400_BAD_REQUEST)
    return user


@router.post("/register", response_model=SignUpResult, status_code=status.HTTP_201_CREATED)
def register(user: UserCreate, request: Request):
    check_credentials(user.email, user.password)
    check_password_length(user.password, settings.MIN_PASSWORD_LENGTH)

    if dynamo.get_user_by_email(user.email):
        raise HTTPException(status_code=400, detail="User already registered")

    user_db = UserInDB(
        email=user.email.lower(),
        password_hash=get_password_hash(user.password),
        email_confirmed=not settings.REQUIRE_EMAIL_CONFIRMATION,
    )
    item = user_db.model_dump()
    dynamo.put_user(item)
    logger.info(f"Registered user {user_db.user_id}")

    if user_db.email_confirmed:
        return SignUpResult(user=UserPublic.from_item(item), session=_session_for(item))

    token = create_token(user_db.user_id, SIGNUP_TOKEN, extra={"email": user_db.email})
    link = email_service.build_link(str(request.url_for("verify_signup")), token)
    sent = email_service.send_signup_confirmation(user_db.email, link)
    if not sent:
        logger.warning(f"Could not send confirmation email for user {user_db.user_id}")
    return SignUpResult(user=UserPublic.from_item(item), confirmation_sent=sent)


@router.get("/verify", response_model=Message, name="verify_signup")
def verify_signup(token: str):
    payload = decode_token(token, SIGNUP_TOKEN)
    user = _load_token_user(payload)
    if user["email"] != payload.get("email"):
        raise AuthError("Link is no longer valid", status_code=status.HTTP_400_BAD_REQUEST)
    if not user.get("email_confirmed"):
        dynamo.update_user(user["user_id"], {"email_confirmed": True, "updated_at": _now()})
    return Message(message="Email confirmed, you can now sign in")


@router.post("/login", response_model=Session)
def login(login_data: UserLogin):
    check_credentials(login_data.email, login_data.password)
    logger.info(f"Login attempt for email: {login_data.email}")

    user = dynamo.get_user_by_email(login_data.email)
    if not user or not verify_password(login_data.password, user.get("password_hash", "")):
        logger.warning(f"Invalid credentials for: {login_data.email}")
        raise AuthError("Invalid login credentials", status_code=status.HTTP_400_BAD_REQUEST)

    if settings.REQUIRE_EMAIL_CONFIRMATION and not user.get("email_confirmed"):
        raise AuthError("Email not confirmed", status_code=status.HTTP_400_BAD_REQUEST)

    logger.info(f"Login successful for user: {user['user_id']}")
    return _session_for(user)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(user: Dict[str, Any] = Depends(get_current_user)):
    # every token carries the version it was issued under
    dynamo.update_user(
        user["user_id"],
        {"token_version": user.get("token_version", 0) + 1, "updated_at": _now()},
    )
    logger.info(f"User {user['user_id']} signed out")
    return None


@router.get("/me", response_model=UserPublic)
def get_me(user: Dict[str, Any] = Depends(get_current_user)):
    return UserPublic.from_item(user)


@router.post("/recover", response_model=Message, status_code=status.HTTP_202_ACCEPTED)
def send_password_reset(body: RecoverRequest):
    user = dynamo.get_user_by_email(body.email)
    if user:
        token = create_token(user["user_id"], RECOVERY_TOKEN, version=user.get("token_version", 0))
        redirect_to = body.redirect_to or f"{settings.SITE_URL.rstrip('/')}/reset-password"
        if not email_service.send_password_recovery(user["email"], email_service.build_link(redirect_to, token)):
            logger.warning(f"Could not send recovery email for user {user['user_id']}")
    else:
        logger.info("Password recovery requested for unknown email")
    return Message(message="If the account exists, a password reset email has been sent")


@router.post("/reset-password", response_model=Message)
def reset_password(body: PasswordReset):
    check_new_password(body.password, body.confirm_password, settings.MIN_PASSWORD_LENGTH)

    payload = decode_token(body.token, RECOVERY_TOKEN)
    user = _load_token_user(payload)
    if payload.get("ver", 0) != user.get("token_version", 0):
        raise AuthError("Link is no longer valid", status_code=status.HTTP_400_BAD_REQUEST)

    dynamo.update_user(
        user["user_id"],
        {
            "password_hash": get_password_hash(body.password),
            "token_version": user.get("token_version", 0) + 1,
            # the link was delivered to this address
            "email_confirmed": True,
            "updated_at": _now(),
        },
    )
    logger.info(f"Password reset for user {user['user_id']}")
    return Message(message="Password updated, please sign in with your new password")


@router.put("/user", response_model=UserUpdateResult)
def update_user(body: UserUpdate, request: Request, user: Dict[str, Any] = Depends(get_current_user)):
    """
    Update any of password, metadata and email. The email only changes once
    the confirmation sent to the new address is redeemed.
    """
    if body.password is not None:
        confirmation = body.confirm_password if body.confirm_password is not None else body.password
        check_new_password(body.password, confirmation, settings.MIN_PASSWORD_LENGTH)

    new_email = body.email.lower() if body.email else None
    if new_email and new_email != user["email"]:
        if dynamo.get_user_by_email(new_email):
            raise HTTPException(status_code=400, detail="A user with this email address has already been registered")
    else:
        new_email = None

    updates: Dict[str, Any] = {}
    if body.password is not None:
        updates["password_hash"] = get_password_hash(body.password)
    if body.user_metadata is not None:
        updates["user_metadata"] = {**(user.get("user_metadata") or {}), **body.user_metadata}
    if new_email:
        updates["pending_email"] = new_email
    if updates:
        updates["updated_at"] = _now()
        user = dynamo.update_user(user["user_id"], updates) or user

    sent = False
    if new_email:
        token = create_token(user["user_id"], EMAIL_CHANGE_TOKEN, extra={"email": new_email})
        link = email_service.build_link(str(request.url_for("confirm_email_change")), token)
        sent = email_service.send_email_change_confirmation(new_email, link)
        if not sent:
            logger.warning(f"Could not send email change confirmation for user {user['user_id']}")

    return UserUpdateResult(user=UserPublic.from_item(user), email_change_sent=sent)


@router.get("/confirm-email", response_model=Message, name="confirm_email_change")
def confirm_email_change(token: str):
    payload = decode_token(token, EMAIL_CHANGE_TOKEN)
    user = _load_token_user(payload)
    new_email = payload.get("email")
    if not new_email or user.get("pending_email") != new_email:
        raise AuthError("Link is no longer valid", status_code=status.HTTP_400_BAD_REQUEST)

    owner = dynamo.get_user_by_email(new_email)
    if owner and owner["user_id"] != user["user_id"]:
        raise HTTPException(status_code=400, detail="A user with this email address has already been registered")

    dynamo.update_user(user["user_id"], {"email": new_email, "pending_email": None, "updated_at": _now()})
    logger.info(f"Email changed for user {user['user_id']}")
    return Message(message="Email address updated")
