import logging
from enum import Enum
from typing import Callable, Optional

from dompetku.client.session import SessionBroker, SessionChange, SessionEvent
from dompetku.models.user import Session

logger = logging.getLogger(__name__)


class GateState(str, Enum):
    LOADING = "loading"
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


class AuthGate:
    """
    Decides between the login/register screen and the tracker.

    Starts in LOADING until the session is restored, then follows the session
    events pushed by the broker for as long as it is mounted.
    """

    def __init__(self, broker: SessionBroker, on_change: Optional[Callable[["AuthGate"], None]] = None) -> None:
        self._broker = broker
        self._on_change = on_change
        self._unsubscribe: Optional[Callable[[], None]] = None
        self.state = GateState.LOADING
        self.session: Optional[Session] = None
        self.recovering_password = False

    @property
    def mounted(self) -> bool:
        return self._unsubscribe is not None

    @property
    def view(self) -> str:
        if self.state is GateState.LOADING:
            return "loading"
        if self.state is GateState.AUTHENTICATED:
            return "tracker"
        return "reset_password" if self.recovering_password else "auth"

    def mount(self) -> None:
        if self.mounted:
            return
        self._unsubscribe = self._broker.subscribe(self.handle)
        # catch up with a session restored before we subscribed
        if self._broker.last_change is not None:
            self.handle(self._broker.last_change)

    def unmount(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def handle(self, change: SessionChange) -> None:
        previous = self.state
        event = change.event

        if event is SessionEvent.INITIAL_SESSION:
            if self.state is GateState.LOADING:
                self._enter(GateState.AUTHENTICATED if change.session else GateState.UNAUTHENTICATED, change.session)
        elif event is SessionEvent.SIGNED_IN:
            if change.session:
                self.recovering_password = False
                self._enter(GateState.AUTHENTICATED, change.session)
        elif event is SessionEvent.SIGNED_OUT:
            self.recovering_password = False
            self._enter(GateState.UNAUTHENTICATED, None)
        elif event is SessionEvent.USER_UPDATED:
            if self.state is GateState.AUTHENTICATED and change.session:
                self.session = change.session
        elif event is SessionEvent.PASSWORD_RECOVERY:
            self.recovering_password = True
            if self.state is GateState.LOADING:
                self._enter(GateState.UNAUTHENTICATED, None)

        if self.state is not previous:
            logger.debug(f"Auth gate {previous.value} -> {self.state.value}")
        if self._on_change is not None:
            self._on_change(self)

    def _enter(self, state: GateState, session: Optional[Session]) -> None:
        self.state = state
        self.session = session
