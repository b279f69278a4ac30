from typing import Dict

from dompetku.client.api import DompetkuClient
from dompetku.client.notifications import Notifier
from dompetku.core.errors import DompetkuError, ValidationError
from dompetku.utils.validation import check_new_password


class ProfileEditor(Notifier):
    """Display name, email and password forms. Each form fails on its own."""

    def __init__(self, client: DompetkuClient) -> None:
        super().__init__()
        self.client = client
        self.loading: Dict[str, bool] = {"name": False, "email": False, "password": False}

    @property
    def email(self) -> str:
        user = self.client.user
        return user.email if user else ""

    @property
    def full_name(self) -> str:
        user = self.client.user
        return (user.user_metadata or {}).get("full_name", "") if user else ""

    def _submit(self, form: str, call, success_message: str) -> bool:
        if self.loading[form]:
            return False
        self.loading[form] = True
        try:
            call()
        except DompetkuError as e:
            self.error(e.message)
            return False
        finally:
            self.loading[form] = False
        self.success(success_message)
        return True

    def update_display_name(self, full_name: str) -> bool:
        return self._submit(
            "name",
            lambda: self.client.update_user(user_metadata={"full_name": full_name.strip()}),
            "Profile updated",
        )

    def update_email(self, email: str) -> bool:
        if not email or not email.strip():
            self.error("Please fill in email")
            return False
        return self._submit(
            "email",
            lambda: self.client.update_user(email=email.strip()),
            "Check your new email address to confirm the change",
        )

    def update_password(self, new_password: str, confirmation: str) -> bool:
        try:
            check_new_password(new_password, confirmation)
        except ValidationError as e:
            self.error(e.message)
            return False
        return self._submit(
            "password",
            lambda: self.client.update_user(password=new_password, confirm_password=confirmation),
            "Password updated",
        )
