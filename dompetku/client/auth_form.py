from typing import Optional

from dompetku.client.api import DompetkuClient
from dompetku.client.notifications import Notifier
from dompetku.core.errors import DompetkuError


class AuthForm(Notifier):
    """Login, registration and password recovery forms shown while signed out."""

    def __init__(self, client: DompetkuClient) -> None:
        super().__init__()
        self.client = client
        self.loading = False

    def _submit(self, call, success_message: Optional[str], error_title: str = "Error") -> bool:
        if self.loading:
            return False
        self.loading = True
        try:
            call()
        except DompetkuError as e:
            self.error(e.message, title=error_title)
            return False
        finally:
            self.loading = False
        if success_message:
            self.success(success_message)
        return True

    def login(self, email: str, password: str) -> bool:
        return self._submit(lambda: self.client.sign_in(email, password), "Signed in", "Login failed")

    def register(self, email: str, password: str) -> bool:
        result = {}

        def call():
            result.update(self.client.sign_up(email, password))

        if not self._submit(call, None, "Registration failed"):
            return False
        if result.get("session"):
            self.success("Account created")
        else:
            self.success("Account created, check your email to verify it")
        return True

    def request_password_reset(self, email: str, redirect_url: Optional[str] = None) -> bool:
        return self._submit(
            lambda: self.client.send_password_reset(email, redirect_url),
            "If the account exists, a reset link is on its way",
        )

    def reset_password(self, password: str, confirmation: str) -> bool:
        return self._submit(
            lambda: self.client.reset_password(password, confirmation),
            "Password changed, please sign in with your new password",
        )
