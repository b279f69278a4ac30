from dataclasses import dataclass
from typing import List

DEFAULT = "default"
DESTRUCTIVE = "destructive"


@dataclass
class Notification:
    """A transient toast shown to the user."""

    title: str
    message: str
    variant: str = DEFAULT


class Notifier:
    """Collects toasts until the view drains them."""

    def __init__(self) -> None:
        self.notifications: List[Notification] = []

    def success(self, message: str, title: str = "Success") -> None:
        self.notifications.append(Notification(title, message))

    def error(self, message: str, title: str = "Error") -> None:
        self.notifications.append(Notification(title, message, DESTRUCTIVE))

    def drain(self) -> List[Notification]:
        pending, self.notifications = self.notifications, []
        return pending
