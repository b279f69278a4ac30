"""
Observable session state.

The API client publishes every session change here; views subscribe while
they are mounted and unsubscribe on teardown.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from dompetku.models.user import Session

logger = logging.getLogger(__name__)


class SessionEvent(str, Enum):
    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    USER_UPDATED = "USER_UPDATED"
    PASSWORD_RECOVERY = "PASSWORD_RECOVERY"


@dataclass
class SessionChange:
    event: SessionEvent
    session: Optional[Session]


Listener = Callable[[SessionChange], None]


class SessionBroker:
    def __init__(self) -> None:
        self._listeners: List[Listener] = []
        self.last_change: Optional[SessionChange] = None

    @property
    def session(self) -> Optional[Session]:
        return self.last_change.session if self.last_change else None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; returns the callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, event: SessionEvent, session: Optional[Session]) -> None:
        change = SessionChange(event=event, session=session)
        self.last_change = change
        logger.debug(f"Session event {event.value}")
        for listener in list(self._listeners):
            listener(change)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)
