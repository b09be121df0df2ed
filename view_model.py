"""Client-side state for the transactions screen.

``TransactionViewModel`` owns the user's collection and the ephemeral view
state (draft, editing id, category filter, page). It talks to the remote API
through a ``TransactionsApi``-shaped object and never touches Streamlit, so
every handler can be exercised directly in tests.
"""

from __future__ import annotations

from typing import Callable, List, Optional

from api_client import ApiError
from dashboard import category_breakdown, summarize
from logging_setup import get_logger
from models import DraftError, Transaction, TransactionDraft, new_transaction_id

logger = get_logger("finance_tracker.view_model")

PAGE_SIZE = 5

LOAD_ERROR = "Failed to load transactions. Please try again later."
SAVE_ERROR = "Failed to save transaction."
DELETE_ERROR = "Failed to delete transaction."


def sort_by_date_desc(transactions: List[Transaction]) -> List[Transaction]:
    # sorted() is stable, so a just-prepended record stays ahead of same-day ones
    return sorted(transactions, key=lambda t: t.date, reverse=True)


def filter_by_category(transactions: List[Transaction], category: Optional[str]) -> List[Transaction]:
    if not category:
        return list(transactions)
    return [t for t in transactions if t.category == category]


def page_slice(transactions: List[Transaction], page: int, page_size: int = PAGE_SIZE) -> List[Transaction]:
    start = (page - 1) * page_size
    return transactions[start : start + page_size]


def has_prev_page(page: int) -> bool:
    return page > 1


def has_next_page(page: int, total: int, page_size: int = PAGE_SIZE) -> bool:
    return page * page_size < total


class TransactionViewModel:
    def __init__(self, api):
        self.api = api
        self.email: Optional[str] = None
        self.transactions: List[Transaction] = []
        self.draft = TransactionDraft()
        self.editing_id: Optional[str] = None
        self.category_filter: Optional[str] = None
        self.current_page = 1
        self.is_loading = False
        self.loaded = False
        # Full-screen fetch error
        self.error: Optional[str] = None
        # Transient mutation / validation message
        self.notice: Optional[str] = None
        self._load_generation = 0

    # --- Remote round-trips ---

    def load(self, email: str) -> bool:
        """
        Replaces the collection with the server's copy for ``email``.

        A response that lands after a newer ``load`` has started is dropped.
        """
        self._load_generation += 1
        generation = self._load_generation
        self.email = email
        self.is_loading = True
        self.error = None

        try:
            logger.info("Fetching transactions for %s", email)
            rows = self.api.list(email)
        except ApiError:
            if generation != self._load_generation:
                return False
            logger.exception("Error fetching transactions for %s", email)
            self.error = LOAD_ERROR
            self.is_loading = False
            return False

        if generation != self._load_generation:
            logger.info("Discarding stale transaction list for %s", email)
            return False

        self.transactions = sort_by_date_desc(rows)
        self.current_page = 1
        self.is_loading = False
        self.loaded = True
        logger.info("Received %d transactions", len(rows))
        return True

    def save(self, draft: TransactionDraft, editing_id: Optional[str] = None) -> bool:
        """
        Creates a transaction, or updates ``editing_id`` in place.
        Local state only changes after the API call succeeded.
        """
        self.notice = None
        if not self.email:
            return False

        try:
            tx = draft.to_transaction(editing_id or new_transaction_id())
        except DraftError as e:
            self.notice = str(e)
            return False

        try:
            if editing_id:
                saved = self.api.update(tx, self.email)
                self.transactions = sort_by_date_desc(
                    [saved if t.id == editing_id else t for t in self.transactions]
                )
            else:
                saved = self.api.create(tx, self.email)
                self.transactions = sort_by_date_desc([saved] + self.transactions)
        except ApiError:
            logger.exception("Failed to save transaction %s", tx.id)
            self.notice = SAVE_ERROR
            return False

        logger.info("Saved transaction %s (%s %.2f)", saved.id, saved.category, saved.amount)
        self.draft = TransactionDraft()
        self.editing_id = None
        self._step_back_from_empty_page()
        return True

    def remove(self, tx_id: str, confirm: Callable[[], bool]) -> bool:
        """
        Deletes after ``confirm()`` agrees. Declining issues no request.
        """
        self.notice = None
        if not self.email:
            return False
        if not confirm():
            return False

        try:
            self.api.delete(tx_id, self.email)
        except ApiError:
            logger.exception("Failed to delete transaction %s", tx_id)
            self.notice = DELETE_ERROR
            return False

        self.transactions = sort_by_date_desc([t for t in self.transactions if t.id != tx_id])
        if self.editing_id == tx_id:
            self.cancel_edit()
        self._step_back_from_empty_page()
        logger.info("Deleted transaction %s", tx_id)
        return True

    # --- View state ---

    def start_edit(self, tx_id: str) -> None:
        tx = self.find(tx_id)
        if tx is None:
            return
        self.draft = TransactionDraft.from_transaction(tx)
        self.editing_id = tx_id

    def cancel_edit(self) -> None:
        self.draft = TransactionDraft()
        self.editing_id = None

    def set_filter(self, category: Optional[str]) -> None:
        self.category_filter = category or None
        self.current_page = 1

    def next_page(self) -> None:
        if self.has_next:
            self.current_page += 1

    def prev_page(self) -> None:
        if self.has_prev:
            self.current_page -= 1

    def find(self, tx_id: str) -> Optional[Transaction]:
        return next((t for t in self.transactions if t.id == tx_id), None)

    def _step_back_from_empty_page(self) -> None:
        # A delete, or an edit that moves a row out of the filter, can empty the last page
        while self.current_page > 1 and not self.visible:
            self.current_page -= 1

    # --- Derived data, recomputed on every access ---

    @property
    def summary(self) -> dict:
        return summarize(self.transactions)

    @property
    def category_data(self) -> List[dict]:
        return category_breakdown(self.transactions)

    @property
    def filtered(self) -> List[Transaction]:
        return filter_by_category(self.transactions, self.category_filter)

    @property
    def filtered_count(self) -> int:
        return len(self.filtered)

    @property
    def visible(self) -> List[Transaction]:
        return page_slice(self.filtered, self.current_page)

    @property
    def has_prev(self) -> bool:
        return has_prev_page(self.current_page)

    @property
    def has_next(self) -> bool:
        return has_next_page(self.current_page, self.filtered_count)
