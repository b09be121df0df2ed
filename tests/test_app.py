from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest
import streamlit as st
from streamlit.testing.v1 import AppTest

from auth import AUTHENTICATED, ERROR, LOADING, UNAUTHENTICATED, AuthSession
from conftest import FakeApi
from models import Transaction
from test_auth import METADATA, FakeFactory, _settings, _signed_in
from view_model import LOAD_ERROR, TransactionViewModel

APP = Path(__file__).resolve().parent.parent / "app.py"


@pytest.fixture(autouse=True)
def _fresh_pending_sign_ins():
    st.cache_resource.clear()
    yield
    st.cache_resource.clear()


def _rows() -> list[Transaction]:
    return [
        Transaction(id="1", amount=-50, category="Food", date=date(2024, 1, 1)),
        Transaction(id="2", amount=2000, category="Salary", date=date(2024, 1, 5)),
    ]


def _app(auth: AuthSession, api: FakeApi | None = None) -> AppTest:
    at = AppTest.from_file(str(APP), default_timeout=30)
    at.session_state["auth"] = auth
    if api is not None:
        at.session_state["ledger"] = TransactionViewModel(api)
    return at


def _text(at: AppTest) -> str:
    return "\n".join(m.value for m in at.markdown)


def _button(at: AppTest, label: str):
    return next(b for b in at.button if b.label == label)


def test_loading_screen() -> None:
    auth = AuthSession(_settings(), client_factory=FakeFactory())
    auth.status = LOADING

    at = _app(auth).run()

    assert not at.exception
    assert "Loading..." in _text(at)
    assert "Welcome Back" not in _text(at)


def test_unauthenticated_user_sees_sign_in() -> None:
    at = _app(AuthSession(_settings(), client_factory=FakeFactory())).run()

    assert not at.exception
    assert "Welcome Back" in _text(at)
    assert _button(at, "Sign in with Cognito")
    assert not at.title


def test_error_screen_offers_sign_in_again() -> None:
    auth = AuthSession(_settings(), client_factory=FakeFactory())
    auth.fail("access_denied")

    at = _app(auth).run()
    assert "Error: access_denied" in _text(at)

    _button(at, "Sign in again").click().run()
    assert auth.status == UNAUTHENTICATED
    assert "Welcome Back" in _text(at)


def test_provider_error_in_redirect_shows_error_screen() -> None:
    auth = AuthSession(_settings(), client_factory=FakeFactory())
    at = _app(auth)
    at.query_params["error"] = "access_denied"
    at.query_params["error_description"] = "User cancelled"

    at.run()

    assert auth.status == ERROR
    assert "Error: User cancelled" in _text(at)
    assert at.query_params == {}


def test_sign_in_round_trip_lands_on_dashboard() -> None:
    auth = AuthSession(_settings(), client_factory=FakeFactory())
    api = FakeApi(_rows())
    at = _app(auth, api).run()

    _button(at, "Sign in with Cognito").click().run()
    assert 'http-equiv="refresh"' in _text(at)
    assert METADATA["authorization_endpoint"] in _text(at)

    # The provider sends the browser back with the code and the state it was given
    at.query_params["code"] = "code-1"
    at.query_params["state"] = "state-1"
    at.run()

    assert not at.exception
    assert auth.status == AUTHENTICATED
    assert at.query_params == {}
    assert at.title[0].value == "💰 Dashboard"
    assert api.ops() == ["list"]


def test_unknown_state_is_rejected() -> None:
    auth = AuthSession(_settings(), client_factory=FakeFactory())
    at = _app(auth)
    at.query_params["code"] = "code-1"
    at.query_params["state"] = "never-issued"

    at.run()

    assert auth.status == ERROR
    assert "Error: Sign-in request expired" in _text(at)


def test_code_while_signed_in_only_clears_query_string() -> None:
    factory = FakeFactory()
    auth = _signed_in(factory)
    at = _app(auth, FakeApi(_rows()))
    at.query_params["code"] = "code-2"
    at.query_params["state"] = "state-2"

    at.run()

    assert at.query_params == {}
    assert auth.status == AUTHENTICATED
    assert len(factory.created[0].fetch_calls) == 1
    assert at.title[0].value == "💰 Dashboard"


def test_dashboard_shows_summary_cards() -> None:
    at = _app(_signed_in(), FakeApi(_rows())).run()

    assert not at.exception
    assert [m.value for m in at.metric] == ["$2,000.00", "$50.00", "$1,950.00"]
    assert at.caption[0].value == "Page 1 · 2 transactions"


def test_load_error_screen_and_retry() -> None:
    api = FakeApi(_rows())
    api.failing.add("list")
    at = _app(_signed_in(), api).run()

    assert LOAD_ERROR in _text(at)
    assert not at.title

    api.failing.clear()
    _button(at, "Try again").click().run()

    assert not at.exception
    assert at.title[0].value == "💰 Dashboard"


def test_cancelled_delete_dialog_issues_no_request() -> None:
    api = FakeApi(_rows())
    at = _app(_signed_in(), api).run()

    at.button(key="delete_1").click().run()
    assert "Are you sure you want to delete this transaction?" in _text(at)

    _button(at, "Cancel").click().run()

    assert "delete" not in api.ops()
    assert at.session_state["ledger"].find("1") is not None


def test_sign_out_returns_to_sign_in() -> None:
    auth = _signed_in()
    at = _app(auth, FakeApi(_rows())).run()

    at.sidebar.button[0].click().run()

    assert auth.status == UNAUTHENTICATED
    assert "ledger" not in at.session_state
    assert "Welcome Back" in _text(at)
