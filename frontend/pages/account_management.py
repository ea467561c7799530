"""Account Management - open savings accounts and post transactions."""

import sys
from pathlib import Path

import pandas as pd
import streamlit as st

sys.path.insert(0, str(Path(__file__).parent.parent))
from streamlit_app import (
    cancel_button,
    get_controller,
    open_modal,
    pending_modal,
    render_list,
    require_session,
    run_async,
    submit_modal,
)

from backoffice.actions import (
    MIN_MONTHLY_AMOUNT,
    BulkDeposit,
    CreateAccount,
    DeactivateAccount,
    Deposit,
    ReactivateAccount,
    Withdraw,
)
from backoffice.api import ApiError
from backoffice.formatting import format_currency, format_date, format_datetime
from backoffice.forms import ActionModal
from backoffice.listings import ACCOUNT_TYPE_FILTER, STATUS_FILTER, accounts_controller
from backoffice.models import WORK_DOMAINS, AccountRow
from backoffice.roles import ACCOUNTS
from backoffice.table import ACCOUNT_COLUMNS, account_actions

MODAL_KEY = "accounts"
STATUS_OPTIONS = {"All": "", "Active": "active", "Inactive": "inactive"}
TYPE_OPTIONS = {"All types": "", "Formal": "FORMAL", "Informal": "INFORMAL"}


def render_details(row: AccountRow) -> None:
    try:
        account = run_async(api.accounts.get(row.account.id))
    except ApiError as exc:
        st.error(f"Failed to load account: {exc.message}")
        account = row.account

    st.subheader(f"Account {account.account_number}")
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Owner", row.owner_name)
    col2.metric("Type", account.account_type)
    col3.metric("Balance", format_currency(account.current_balance))
    col4.metric("Opened", format_date(account.opening_date))
    if account.monthly_amount:
        st.write(f"**Monthly contribution:** {format_currency(account.monthly_amount)}")
    if account.target_progress is not None:
        st.write(f"**Savings target:** {format_currency(account.target_amount)}")
        st.progress(account.target_progress / 100, text=f"{account.target_progress:.0f}% of target")
    if row.member_is_placeholder:
        st.caption("Owner details could not be loaded for this account.")

    if account.transactions:
        st.markdown("**Transactions**")
        st.dataframe(
            pd.DataFrame(
                [
                    {
                        "Date": format_datetime(item.transaction_date),
                        "Type": item.transaction_type,
                        "Amount": format_currency(item.amount),
                        "Description": item.description or "",
                        "Reference": item.reference_number or "",
                    }
                    for item in account.transactions
                ]
            ),
            hide_index=True,
            use_container_width=True,
        )
    else:
        st.caption("No transactions yet")
    cancel_button(MODAL_KEY)


def render_create() -> None:
    modal = ActionModal(CreateAccount, controller.submit)
    st.subheader(modal.title)
    account_type = st.radio("Account type", ["FORMAL", "INFORMAL"], horizontal=True)
    with st.form("account-create"):
        form = {
            "account_type": account_type,
            "member_id": st.number_input("Member ID", min_value=1, step=1),
        }
        if account_type == "FORMAL":
            form["monthly_amount"] = st.number_input(
                "Monthly amount (ETB)", min_value=0.0, value=float(MIN_MONTHLY_AMOUNT), step=100.0
            )
        else:
            target = st.number_input("Savings target (ETB, optional)", min_value=0.0, step=100.0)
            form["target_amount"] = target or None
        submitted = st.form_submit_button(modal.title, type="primary")
    if submitted:
        submit_modal(MODAL_KEY, modal, form)


def render_bulk_deposit() -> None:
    modal = ActionModal(BulkDeposit, controller.submit)
    st.subheader(modal.title)
    with st.form("account-bulk-deposit"):
        form = {
            "work_domain": st.selectbox(
                "Work domain",
                list(WORK_DOMAINS),
                format_func=lambda code: WORK_DOMAINS[code],
                index=None,
                placeholder="Select a work domain",
            ),
            "amount": st.number_input("Amount per account (ETB)", min_value=0.0, step=100.0),
            "description": st.text_input("Description"),
        }
        submitted = st.form_submit_button("Deposit to all accounts", type="primary")
    if submitted:
        submit_modal(MODAL_KEY, modal, form)


def render_row_action(action: str, row: AccountRow) -> None:
    account = row.account
    context = {"account_id": account.id, "account_number": account.account_number}
    if action == "deposit":
        modal = ActionModal(Deposit, controller.submit, context)
    elif action == "withdraw":
        modal = ActionModal(
            Withdraw, controller.submit, {**context, "available_balance": account.current_balance}
        )
    elif action == "deactivate":
        modal = ActionModal(DeactivateAccount, controller.submit, context)
    else:
        modal = ActionModal(ReactivateAccount, controller.submit, context)

    st.subheader(modal.title)
    st.write(
        f"Account **{account.account_number}** ({row.owner_name}), "
        f"balance {format_currency(account.current_balance)}"
    )
    with st.form(f"account-{action}"):
        if action in ("deposit", "withdraw"):
            form = {
                "amount": st.number_input("Amount (ETB)", min_value=0.0, step=50.0),
                "description": st.text_input("Description"),
            }
        else:
            form = {}
        submitted = st.form_submit_button(modal.title, type="primary")
    if submitted:
        submit_modal(MODAL_KEY, modal, form)


def render_modal(action: str, row: AccountRow | None) -> None:
    with st.container(border=True):
        if action == "view":
            render_details(row)
            return
        if action == "create":
            render_create()
        elif action == "bulk_deposit":
            render_bulk_deposit()
        else:
            render_row_action(action, row)
        cancel_button(MODAL_KEY)


def filter_select(label: str, options: dict, key: str) -> None:
    labels = list(options)
    current = controller.query.filters.get(key, "")
    selected = st.selectbox(
        label,
        labels,
        index=[options[name] for name in labels].index(current),
    )
    if options[selected] != current:
        run_async(controller.set_filter(key, options[selected]))
        st.rerun()


st.set_page_config(page_title="Account Management", layout="wide")
api = require_session(ACCOUNTS)
controller = get_controller("accounts", accounts_controller)

st.title("💳 Account Management")
st.caption("Open savings accounts, post deposits and withdrawals")

with st.sidebar:
    st.header("Filters")
    search = st.text_input("Search by account number or owner", value=controller.query.search_text or "")
    if st.button("Search", use_container_width=True):
        controller.set_search(search)
        run_async(controller.submit_search())
        st.rerun()

    filter_select("Status", STATUS_OPTIONS, STATUS_FILTER)
    filter_select("Account type", TYPE_OPTIONS, ACCOUNT_TYPE_FILTER)
    st.caption("Status and type are applied to the loaded page only.")

    st.divider()
    if st.button("🔄 Refresh", use_container_width=True):
        run_async(controller.refresh())
        st.rerun()
    if st.button("➕ Create Account", type="primary", use_container_width=True):
        open_modal(MODAL_KEY, "create")
    if st.button("💰 Bulk Deposit", use_container_width=True):
        open_modal(MODAL_KEY, "bulk_deposit")

pending = pending_modal(MODAL_KEY)
if pending:
    render_modal(*pending)

clicked = render_list(controller, ACCOUNT_COLUMNS, account_actions, noun="accounts", state_key="accounts")
if clicked:
    open_modal(MODAL_KEY, clicked.action, clicked.entity)
    st.rerun()
