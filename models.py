"""Transaction records and the form draft they are created from."""

from __future__ import annotations

import datetime as dt
import math
import threading
import time
from typing import Optional, Union

from pydantic import BaseModel, field_validator

CATEGORIES = [
    "Food",
    "Rent",
    "Utilities",
    "Entertainment",
    "Travel",
    "Shopping",
    "Health",
    "Salary",
    "Other",
]

# The only category whose amounts count as income
INCOME_CATEGORY = "Salary"


class DraftError(ValueError):
    """Raised when form values cannot become a transaction."""


def signed_amount(amount: float, category: str) -> float:
    """
    Applies the sign convention: Salary is income (positive), anything else
    is an expense (negative). The typed sign is ignored.
    """
    magnitude = abs(amount)
    return magnitude if category == INCOME_CATEGORY else -magnitude


_last_id = 0
_id_lock = threading.Lock()


def new_transaction_id() -> str:
    """Millisecond timestamp, bumped so two saves in the same millisecond differ."""
    global _last_id
    with _id_lock:
        _last_id = max(int(time.time() * 1000), _last_id + 1)
        return str(_last_id)


class Transaction(BaseModel):
    id: str
    amount: float
    category: str = ""
    date: dt.date

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_text(cls, value):
        # Some backends hand back numeric ids
        if isinstance(value, (int, float)):
            return str(value)
        return value

    @field_validator("category", mode="before")
    @classmethod
    def _missing_category(cls, value):
        return value or ""

    @property
    def is_income(self) -> bool:
        return self.amount > 0

    def to_payload(self, email: str) -> dict:
        return {
            "id": self.id,
            "amount": self.amount,
            "category": self.category,
            "date": self.date.isoformat(),
            "email": email,
        }


class TransactionDraft(BaseModel):
    """Form values as the user typed them."""

    amount: Optional[Union[float, str]] = None
    category: Optional[str] = None
    date: Optional[Union[dt.date, str]] = None

    @classmethod
    def from_transaction(cls, tx: Transaction) -> "TransactionDraft":
        return cls(amount=abs(tx.amount), category=tx.category, date=tx.date)

    def _parse_amount(self) -> float:
        raw = self.amount
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            raise DraftError("Amount is required.")
        try:
            value = float(raw)
        except (TypeError, ValueError):
            raise DraftError(f"Amount must be a number, got {raw!r}.") from None
        if math.isnan(value) or math.isinf(value):
            raise DraftError("Amount must be a finite number.")
        # Whole cents only
        value = round(value, 2)
        if value == 0:
            raise DraftError("Amount must be greater than zero.")
        return value

    def _parse_date(self) -> dt.date:
        raw = self.date
        if isinstance(raw, dt.date):
            return raw
        if raw is None or not str(raw).strip():
            raise DraftError("Date is required.")
        try:
            return dt.date.fromisoformat(str(raw).strip())
        except ValueError:
            raise DraftError(f"Date must look like YYYY-MM-DD, got {raw!r}.") from None

    def to_transaction(self, tx_id: str) -> Transaction:
        """Validate the draft and build the signed record to send to the API."""
        amount = self._parse_amount()
        if not self.category:
            raise DraftError("Category is required.")
        if self.category not in CATEGORIES:
            raise DraftError(f"Unknown category {self.category!r}.")
        return Transaction(
            id=tx_id,
            amount=signed_amount(amount, self.category),
            category=self.category,
            date=self._parse_date(),
        )
