import html
import sys
from pathlib import Path

import streamlit as st

# Add current directory to path
sys.path.append(str(Path(__file__).parent))

from api_client import TransactionsApi
from auth import AuthError, AuthSession, PendingSignIns, ERROR, LOADING
from config import API_BASE_URL, LOG_LEVEL, load_oidc_settings
from dashboard import _kpis, cat_spend, format_money
from logging_setup import configure_logging, get_logger
from models import CATEGORIES, TransactionDraft
from view_model import TransactionViewModel

# --- Configuration ---
st.set_page_config(page_title="Finance Tracker", layout="wide", page_icon="💰")
configure_logging(LOG_LEVEL)
logger = get_logger("finance_tracker.app")

ALL_CATEGORIES = "All"

st.markdown("""
<style>
    .block-container {
        padding: 2rem 1rem 6rem !important;
        max-width: 1100px !important;
    }

    .full-screen {
        display: flex;
        align-items: center;
        justify-content: center;
        min-height: 60vh;
        font-size: 1.25rem;
    }

    .full-screen.error {
        color: #dc2626;
    }

    .login-card {
        text-align: center;
        margin: 15vh auto 24px auto;
    }

    @media (max-width: 768px) {
        [data-testid="stMetricValue"] {
            font-size: 1.2rem !important;
        }
    }
</style>
""", unsafe_allow_html=True)


@st.cache_resource
def pending_sign_ins() -> PendingSignIns:
    # Shared by every browser session of this server process
    return PendingSignIns()


def full_screen(message: str, error: bool = False):
    css = "full-screen error" if error else "full-screen"
    st.markdown(f'<div class="{css}">{html.escape(message)}</div>', unsafe_allow_html=True)


def redirect(url: str):
    st.markdown(f'<meta http-equiv="refresh" content="0; url={html.escape(url, quote=True)}">', unsafe_allow_html=True)
    st.link_button("Continue", url)


# --- Session ---
def get_auth() -> AuthSession:
    if "auth" not in st.session_state:
        try:
            st.session_state.auth = AuthSession(load_oidc_settings())
        except ValueError as e:
            full_screen(f"Error: {e}", error=True)
            st.stop()
    return st.session_state.auth


def get_view_model(auth: AuthSession) -> TransactionViewModel:
    if "ledger" not in st.session_state:
        api = TransactionsApi(API_BASE_URL, token_provider=lambda: auth.access_token)
        st.session_state.ledger = TransactionViewModel(api)
    return st.session_state.ledger


def handle_redirect_back(auth: AuthSession):
    """
    Finishes the authorization-code flow when the provider sends the browser
    back with ``?code=&state=`` (or ``?error=``).
    """
    params = st.query_params
    if "error" in params:
        message = params.get("error_description") or params.get("error")
        st.query_params.clear()
        auth.fail(message)
        return

    if "code" not in params:
        return

    code = params.get("code")
    state = params.get("state", "")
    st.query_params.clear()
    if auth.is_authenticated:
        return

    verifier = pending_sign_ins().pop(state)
    if verifier is None:
        auth.fail("Sign-in request expired. Please sign in again.")
        return

    with st.spinner("Loading..."):
        auth.complete_sign_in(code, verifier)
    st.rerun()


# --- Screens ---
def login_page(auth: AuthSession):
    st.markdown("""
    <div class="login-card">
        <h1>Welcome Back</h1>
        <p style="color: #6b7280;">Sign in to access your finance dashboard</p>
    </div>
    """, unsafe_allow_html=True)

    _, col, _ = st.columns([1, 2, 1])
    with col:
        if st.button("Sign in with Cognito", type="primary", use_container_width=True):
            with st.spinner("Redirecting..."):
                try:
                    url, state, verifier = auth.begin_sign_in()
                except AuthError as e:
                    st.error(f"Login failed: {e}")
                    return
            pending_sign_ins().put(state, verifier)
            redirect(url)


def auth_error_page(auth: AuthSession):
    full_screen(f"Error: {auth.error}", error=True)
    _, col, _ = st.columns([1, 2, 1])
    if col.button("Sign in again", use_container_width=True):
        auth.clear()
        st.rerun()


def sign_out(auth: AuthSession):
    logout_url = auth.sign_out()
    st.session_state.pop("ledger", None)
    for key in ("draft_amount", "draft_category", "draft_date", "category_filter"):
        st.session_state.pop(key, None)
    if logout_url:
        redirect(logout_url)
        st.stop()
    st.rerun()


# --- Form callbacks ---
def _reset_form_widgets():
    st.session_state["draft_amount"] = ""
    st.session_state["draft_category"] = None
    st.session_state["draft_date"] = None


def _submit(vm: TransactionViewModel):
    draft = TransactionDraft(
        amount=st.session_state.get("draft_amount"),
        category=st.session_state.get("draft_category"),
        date=st.session_state.get("draft_date"),
    )
    if vm.save(draft, vm.editing_id):
        _reset_form_widgets()
        st.toast("Transaction saved", icon="✅")


def _start_edit(vm: TransactionViewModel, tx_id: str):
    vm.start_edit(tx_id)
    if vm.editing_id != tx_id:
        return
    st.session_state["draft_amount"] = f"{float(vm.draft.amount):.2f}"
    st.session_state["draft_category"] = vm.draft.category
    st.session_state["draft_date"] = vm.draft.date


def _cancel_edit(vm: TransactionViewModel):
    vm.cancel_edit()
    _reset_form_widgets()


def _apply_filter(vm: TransactionViewModel):
    choice = st.session_state.get("category_filter")
    vm.set_filter(None if choice == ALL_CATEGORIES else choice)


@st.dialog("Delete transaction")
def confirm_delete(vm: TransactionViewModel, tx_id: str):
    st.write("Are you sure you want to delete this transaction?")
    col1, col2 = st.columns(2)
    if col1.button("Delete", type="primary", use_container_width=True):
        vm.remove(tx_id, confirm=lambda: True)
        st.rerun()
    if col2.button("Cancel", use_container_width=True):
        st.rerun()


def transaction_form(vm: TransactionViewModel):
    for key, default in (("draft_amount", ""), ("draft_category", None), ("draft_date", None)):
        st.session_state.setdefault(key, default)

    editing = vm.editing_id is not None
    with st.form("transaction_form"):
        col1, col2, col3 = st.columns(3)
        col1.text_input("Amount", value="", placeholder="Amount", key="draft_amount")
        col2.selectbox("Category", CATEGORIES, index=None, placeholder="Select Category", key="draft_category")
        col3.date_input("Date", value=None, key="draft_date")
        st.form_submit_button(
            "Update Transaction" if editing else "Add Transaction",
            type="primary",
            on_click=_submit,
            args=(vm,),
        )
    if editing:
        st.button("Cancel edit", on_click=_cancel_edit, args=(vm,))


def transactions_table(vm: TransactionViewModel):
    st.subheader("Recent Transactions")
    st.selectbox(
        "Category",
        [ALL_CATEGORIES] + CATEGORIES,
        key="category_filter",
        on_change=_apply_filter,
        args=(vm,),
    )

    if not vm.visible:
        st.info("No transactions.")

    header = st.columns([2, 2, 2, 1, 1])
    for col, label in zip(header, ["Category", "Amount", "Date", "", ""]):
        col.markdown(f"**{label}**")

    for t in vm.visible:
        col1, col2, col3, col4, col5 = st.columns([2, 2, 2, 1, 1])
        col1.write(t.category or "Other")
        color = "red" if t.amount < 0 else "green"
        # Escape "$" so Streamlit does not read it as LaTeX
        money = format_money(abs(t.amount)).replace("$", "\\$")
        col2.markdown(f":{color}[{money}]")
        col3.write(t.date.isoformat())
        col4.button("Edit", key=f"edit_{t.id}", on_click=_start_edit, args=(vm, t.id))
        if col5.button("Delete", key=f"delete_{t.id}"):
            confirm_delete(vm, t.id)

    prev_col, page_col, next_col = st.columns([1, 3, 1])
    prev_col.button("Prev", disabled=not vm.has_prev, on_click=vm.prev_page, use_container_width=True)
    page_col.caption(f"Page {vm.current_page} · {vm.filtered_count} transactions")
    next_col.button("Next", disabled=not vm.has_next, on_click=vm.next_page, use_container_width=True)


def dashboard_page(auth: AuthSession):
    email = auth.email
    if not email:
        full_screen("Please sign in to view your transactions.")
        return

    vm = get_view_model(auth)
    if not vm.loaded or vm.email != email:
        with st.spinner("Loading transactions..."):
            vm.load(email)

    if vm.error:
        full_screen(vm.error, error=True)
        _, col, _ = st.columns([1, 2, 1])
        if col.button("Try again", use_container_width=True):
            vm.load(email)
            st.rerun()
        return

    if vm.notice:
        st.toast(vm.notice, icon="⚠️")
        vm.notice = None

    st.title("💰 Dashboard")
    transaction_form(vm)

    _kpis(vm.summary)
    st.divider()

    category_data = vm.category_data
    if category_data:
        chart_col, table_col = st.columns(2)
        with chart_col:
            st.plotly_chart(cat_spend(category_data), use_container_width=True)
    else:
        table_col = st.container()

    with table_col:
        transactions_table(vm)


# --- Main App ---
auth = get_auth()
handle_redirect_back(auth)

if auth.status == LOADING:
    full_screen("Loading...")
    st.stop()

if auth.status == ERROR:
    auth_error_page(auth)
    st.stop()

if not auth.is_authenticated:
    login_page(auth)
    st.stop()

if not auth.ensure_fresh():
    st.rerun()

with st.sidebar:
    st.header("Account")
    st.markdown(f"Signed in as **{auth.display_name or auth.email}**")
    if st.button("🚪 Sign out", use_container_width=True):
        sign_out(auth)

dashboard_page(auth)
