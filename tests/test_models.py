from __future__ import annotations

from datetime import date

import pytest

from models import CATEGORIES, DraftError, Transaction, TransactionDraft, new_transaction_id, signed_amount


@pytest.mark.parametrize(
    "typed, category, expected",
    [
        (30, "Food", -30),
        (-30, "Food", -30),
        (1500, "Salary", 1500),
        (-1500, "Salary", 1500),
        (12.5, "Other", -12.5),
    ],
)
def test_signed_amount_ignores_typed_sign(typed, category, expected) -> None:
    assert signed_amount(typed, category) == expected


def test_every_category_but_salary_is_an_expense() -> None:
    for category in CATEGORIES:
        value = signed_amount(10, category)
        if category == "Salary":
            assert value >= 0
        else:
            assert value <= 0


def test_draft_food_becomes_negative_record() -> None:
    tx = TransactionDraft(amount="30", category="Food", date="2024-02-01").to_transaction("t1")
    assert tx == Transaction(id="t1", amount=-30, category="Food", date=date(2024, 2, 1))


def test_draft_salary_stays_positive() -> None:
    tx = TransactionDraft(amount="1500", category="Salary", date="2024-02-01").to_transaction("t2")
    assert tx.amount == 1500
    assert tx.is_income


def test_draft_accepts_date_objects_and_floats() -> None:
    tx = TransactionDraft(amount=19.99, category="Health", date=date(2024, 3, 9)).to_transaction("t3")
    assert tx.amount == pytest.approx(-19.99)
    assert tx.date == date(2024, 3, 9)


@pytest.mark.parametrize(
    "fields, message",
    [
        ({"category": "Food", "date": "2024-02-01"}, "Amount is required"),
        ({"amount": "  ", "category": "Food", "date": "2024-02-01"}, "Amount is required"),
        ({"amount": "abc", "category": "Food", "date": "2024-02-01"}, "must be a number"),
        ({"amount": "0", "category": "Food", "date": "2024-02-01"}, "greater than zero"),
        ({"amount": "0.004", "category": "Food", "date": "2024-02-01"}, "greater than zero"),
        ({"amount": "10", "date": "2024-02-01"}, "Category is required"),
        ({"amount": "10", "category": "Bitcoin", "date": "2024-02-01"}, "Unknown category"),
        ({"amount": "10", "category": "Food"}, "Date is required"),
        ({"amount": "10", "category": "Food", "date": "02/01/2024"}, "YYYY-MM-DD"),
    ],
)
def test_invalid_drafts_raise(fields, message) -> None:
    with pytest.raises(DraftError, match=message):
        TransactionDraft(**fields).to_transaction("x")


def test_draft_error_is_a_value_error() -> None:
    assert issubclass(DraftError, ValueError)


def test_draft_from_transaction_uses_magnitude() -> None:
    tx = Transaction(id="1", amount=-42.5, category="Food", date=date(2024, 1, 1))
    draft = TransactionDraft.from_transaction(tx)
    assert draft.amount == 42.5
    assert draft.category == "Food"
    assert draft.date == date(2024, 1, 1)


def test_transaction_accepts_api_shapes() -> None:
    tx = Transaction.model_validate({"id": 1712, "amount": "-12.40", "category": None, "date": "2024-05-06"})
    assert tx.id == "1712"
    assert tx.amount == pytest.approx(-12.40)
    assert tx.category == ""
    assert tx.date == date(2024, 5, 6)


def test_transaction_payload_matches_wire_format() -> None:
    tx = Transaction(id="abc", amount=-30, category="Food", date=date(2024, 2, 1))
    assert tx.to_payload("me@example.com") == {
        "id": "abc",
        "amount": -30,
        "category": "Food",
        "date": "2024-02-01",
        "email": "me@example.com",
    }


def test_new_transaction_id_is_a_millisecond_timestamp() -> None:
    tx_id = new_transaction_id()
    assert tx_id.isdigit()
    assert len(tx_id) >= 13


def test_draft_amount_is_rounded_to_cents() -> None:
    tx = TransactionDraft(amount="12.345678", category="Food", date="2024-02-01").to_transaction("t4")
    assert tx.amount == -12.35

    tx = TransactionDraft(amount="0.006", category="Salary", date="2024-02-01").to_transaction("t5")
    assert tx.amount == 0.01
