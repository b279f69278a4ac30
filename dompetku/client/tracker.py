import datetime as dt
import re
from contextlib import contextmanager
from typing import List, Optional

from dompetku.client.api import DompetkuClient
from dompetku.client.notifications import Notifier
from dompetku.core.errors import DompetkuError, ValidationError
from dompetku.models.transaction import TransactionPublic, TransactionType
from dompetku.utils.analyzer import CashflowAnalyzer, MonthlySummary, month_key
from dompetku.utils.validation import parse_amount


MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


class Tracker(Notifier):
    """
    The transaction form and the period view of one signed-in user.

    The local list only changes after the service confirms a write.
    """

    def __init__(
        self,
        client: DompetkuClient,
        analyzer: Optional[CashflowAnalyzer] = None,
        today: Optional[dt.date] = None,
    ) -> None:
        super().__init__()
        self.client = client
        self.analyzer = analyzer or CashflowAnalyzer()
        self.today = today or dt.date.today()
        self.transactions: List[TransactionPublic] = []
        self.selected_month = month_key(self.today)
        self.editing_id: Optional[str] = None
        self.loading = False

    @contextmanager
    def _in_flight(self):
        self.loading = True
        try:
            yield
        finally:
            self.loading = False

    # ------------------------------------------------------------------
    # period view
    # ------------------------------------------------------------------

    @property
    def visible_transactions(self) -> List[TransactionPublic]:
        return self.analyzer.filter_by_month(self.transactions, self.selected_month)

    @property
    def recent_transactions(self) -> List[TransactionPublic]:
        return self.analyzer.recent(self.visible_transactions)

    @property
    def summary(self) -> MonthlySummary:
        return self.analyzer.summarize_month(self.transactions, self.selected_month)

    @property
    def month_options(self):
        return self.analyzer.month_options(self.today)

    def select_month(self, month: str) -> None:
        if not MONTH_RE.match(month):
            raise ValidationError(f"Invalid month: {month}")
        self.selected_month = month

    # ------------------------------------------------------------------
    # remote actions
    # ------------------------------------------------------------------

    def load(self) -> bool:
        if self.loading:
            return False
        with self._in_flight():
            try:
                self.transactions = self.client.list_transactions()
            except DompetkuError as e:
                self.error(f"Failed to load transactions: {e.message}")
                return False
        return True

    def _validated(self, type: str, amount, description: str):
        if not description or not description.strip() or amount in (None, ""):
            raise ValidationError("Please fill in all fields")
        try:
            kind = TransactionType(type)
        except ValueError:
            raise ValidationError(f"Unknown transaction type: {type}")
        return kind.value, parse_amount(amount), description.strip()

    def add(self, type: str, amount, description: str, date: Optional[dt.date] = None) -> bool:
        if self.loading:
            return False
        try:
            kind, value, text = self._validated(type, amount, description)
        except ValidationError as e:
            self.error(e.message)
            return False

        with self._in_flight():
            try:
                created = self.client.create_transaction(kind, value, text, date or self.today)
            except DompetkuError as e:
                self.error(e.message)
                return False
            self.success("Transaction added")
            self._reload(stored=created)
        return True

    def _reload(self, stored: TransactionPublic) -> None:
        """Refresh the list after a confirmed write, keeping ``stored`` if the refresh fails."""
        try:
            self.transactions = self.client.list_transactions()
        except DompetkuError as e:
            others = [tx for tx in self.transactions if tx.id != stored.id]
            self.transactions = sorted(
                others + [stored], key=lambda tx: (tx.date, tx.created_at), reverse=True
            )
            self.error(e.message, title="Could not refresh transactions")

    def start_edit(self, transaction_id: str) -> Optional[TransactionPublic]:
        for transaction in self.transactions:
            if transaction.id == transaction_id:
                self.editing_id = transaction_id
                return transaction
        return None

    def cancel_edit(self) -> None:
        self.editing_id = None

    def save_edit(self, type: str, amount, description: str, date: Optional[dt.date] = None) -> bool:
        if self.loading or self.editing_id is None:
            return False
        try:
            kind, value, text = self._validated(type, amount, description)
        except ValidationError as e:
            self.error(e.message)
            return False

        if date is None:
            current = self.start_edit(self.editing_id)
            date = current.date if current else self.today

        with self._in_flight():
            try:
                updated = self.client.update_transaction(self.editing_id, kind, value, text, date)
            except DompetkuError as e:
                self.error(e.message)
                return False
            self.editing_id = None
            self.success("Transaction updated")
            self._reload(stored=updated)
        return True

    def delete(self, transaction_id: str) -> bool:
        if self.loading:
            return False
        with self._in_flight():
            try:
                self.client.delete_transaction(transaction_id)
            except DompetkuError as e:
                self.error(e.message)
                return False
        self.transactions = [tx for tx in self.transactions if tx.id != transaction_id]
        if self.editing_id == transaction_id:
            self.editing_id = None
        self.success("Transaction deleted")
        return True

    def sign_out(self) -> bool:
        try:
            self.client.sign_out()
        except DompetkuError as e:
            if self.client.session is None:
                # the service already dropped the session
                self._clear()
            self.error(e.message)
            return False
        self._clear()
        return True

    def _clear(self) -> None:
        self.transactions = []
        self.editing_id = None
