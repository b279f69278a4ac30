"""
HTTP client for the DompetKu service.

Holds the current session, publishes session changes to a ``SessionBroker``
and turns every failed call into a ``DompetkuError`` whose message is the
service's own, verbatim.
"""
import datetime as dt
import logging
from typing import Any, Dict, List, Optional

import requests

from dompetku.client.session import SessionBroker, SessionEvent
from dompetku.core.errors import AuthError, DompetkuError, NotFoundError, StoreError, ValidationError
from dompetku.models.transaction import TransactionPublic
from dompetku.models.user import Session, UserPublic
from dompetku.utils.validation import check_credentials, check_new_password

logger = logging.getLogger(__name__)

API_PREFIX = "/api"


def _error_message(response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"Request failed with status {response.status_code}"
    detail = body.get("detail") if isinstance(body, dict) else None
    if isinstance(detail, list):
        # request validation errors
        return "; ".join(str(err.get("msg", err)) for err in detail)
    return str(detail or body)


def _error_for(response) -> DompetkuError:
    message = _error_message(response)
    code = response.status_code
    if code == 401:
        return AuthError(message)
    if code == 404:
        return NotFoundError(message)
    if code in (400, 422):
        return ValidationError(message, status_code=code)
    return StoreError(message, status_code=code)


class DompetkuClient:
    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        timeout: float = 10,
        http=None,
        broker: Optional[SessionBroker] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._http = http if http is not None else requests.Session()
        self.broker = broker if broker is not None else SessionBroker()
        self.session: Optional[Session] = None
        self.recovery_token: Optional[str] = None

    # ------------------------------------------------------------------
    # plumbing
    # ------------------------------------------------------------------

    @property
    def user(self) -> Optional[UserPublic]:
        return self.session.user if self.session else None

    def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        authenticated: bool = True,
        token: Optional[str] = None,
    ):
        headers = {}
        if authenticated:
            if token is None:
                if not self.session:
                    raise AuthError("Not signed in")
                token = self.session.access_token
            headers["Authorization"] = f"Bearer {token}"

        url = f"{self._base_url}{API_PREFIX}{path}"
        try:
            response = self._http.request(
                method, url, json=json, params=params, headers=headers, timeout=self._timeout
            )
        except requests.RequestException as e:
            logger.error(f"{method} {path} failed: {e}")
            raise StoreError(str(e))

        if response.status_code >= 400:
            error = _error_for(response)
            logger.warning(f"{method} {path} returned {response.status_code}: {error.message}")
            if isinstance(error, AuthError) and self.session and token == self.session.access_token:
                # the session token is no longer accepted
                self._set_session(SessionEvent.SIGNED_OUT, None)
            raise error
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    def _set_session(self, event: SessionEvent, session: Optional[Session]) -> None:
        self.session = session
        self.broker.publish(event, session)

    # ------------------------------------------------------------------
    # auth
    # ------------------------------------------------------------------

    def restore_session(self, access_token: Optional[str] = None) -> Optional[Session]:
        """Resolve a stored token (if any) and announce the initial session."""
        session = None
        if access_token:
            try:
                user = UserPublic(**self._request("GET", "/auth/me", token=access_token))
                session = Session(access_token=access_token, expires_in=0, user=user)
            except AuthError:
                logger.info("Stored session is no longer valid")
            except DompetkuError:
                # views waiting on the initial session must still leave LOADING
                self._set_session(SessionEvent.INITIAL_SESSION, None)
                raise
        self._set_session(SessionEvent.INITIAL_SESSION, session)
        return session

    def sign_in(self, email: str, password: str) -> Session:
        check_credentials(email, password)
        data = self._request(
            "POST", "/auth/login", json={"email": email, "password": password}, authenticated=False
        )
        session = Session(**data)
        self._set_session(SessionEvent.SIGNED_IN, session)
        return session

    def sign_up(self, email: str, password: str) -> Dict[str, Any]:
        """Register; signs in straight away only when the service skips email confirmation."""
        check_credentials(email, password)
        data = self._request(
            "POST", "/auth/register", json={"email": email, "password": password}, authenticated=False
        )
        if data.get("session"):
            self._set_session(SessionEvent.SIGNED_IN, Session(**data["session"]))
        return data

    def sign_out(self) -> None:
        self._request("POST", "/auth/logout")
        self._set_session(SessionEvent.SIGNED_OUT, None)

    def send_password_reset(self, email: str, redirect_url: Optional[str] = None) -> str:
        if not email:
            raise ValidationError("Please fill in email")
        data = self._request(
            "POST",
            "/auth/recover",
            json={"email": email, "redirect_to": redirect_url},
            authenticated=False,
        )
        return data["message"]

    def open_recovery_link(self, token: str) -> None:
        """Called when the user lands on the reset page from a recovery email."""
        self.recovery_token = token
        self.broker.publish(SessionEvent.PASSWORD_RECOVERY, self.session)

    def reset_password(self, password: str, confirmation: str, token: Optional[str] = None) -> str:
        check_new_password(password, confirmation)
        token = token or self.recovery_token
        if not token:
            raise ValidationError("Password reset link is missing")
        data = self._request(
            "POST",
            "/auth/reset-password",
            json={"token": token, "password": password, "confirm_password": confirmation},
            authenticated=False,
        )
        self.recovery_token = None
        # the reset revokes every earlier token, so the user signs in again
        self._set_session(SessionEvent.SIGNED_OUT, None)
        return data["message"]

    def update_user(
        self,
        email: Optional[str] = None,
        password: Optional[str] = None,
        confirm_password: Optional[str] = None,
        user_metadata: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {}
        if email is not None:
            body["email"] = email
        if password is not None:
            body["password"] = password
            body["confirm_password"] = confirm_password
        if user_metadata is not None:
            body["user_metadata"] = user_metadata
        data = self._request("PUT", "/auth/user", json=body)
        session = self.session.model_copy(update={"user": UserPublic(**data["user"])})
        self._set_session(SessionEvent.USER_UPDATED, session)
        return data

    # ------------------------------------------------------------------
    # transactions
    # ------------------------------------------------------------------

    @staticmethod
    def _transaction_body(type: str, amount: float, description: str, date: Optional[dt.date]) -> Dict[str, Any]:
        body = {"type": type, "amount": amount, "description": description}
        if date is not None:
            body["date"] = date.isoformat()
        return body

    def list_transactions(self) -> List[TransactionPublic]:
        return [TransactionPublic(**item) for item in self._request("GET", "/transactions/")]

    def create_transaction(
        self, type: str, amount: float, description: str, date: Optional[dt.date] = None
    ) -> TransactionPublic:
        data = self._request("POST", "/transactions/", json=self._transaction_body(type, amount, description, date))
        return TransactionPublic(**data)

    def update_transaction(
        self, transaction_id: str, type: str, amount: float, description: str, date: Optional[dt.date] = None
    ) -> TransactionPublic:
        data = self._request(
            "PUT", f"/transactions/{transaction_id}", json=self._transaction_body(type, amount, description, date)
        )
        return TransactionPublic(**data)

    def delete_transaction(self, transaction_id: str) -> None:
        self._request("DELETE", f"/transactions/{transaction_id}")

    def monthly_summary(self, month: str) -> Dict[str, Any]:
        return self._request("GET", f"/transactions/summary/{month}")
