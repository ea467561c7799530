"""Enforcement - deactivate and reactivate members and accounts (managers)."""

import sys
from pathlib import Path

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

from backoffice.actions import DeactivateAccount, DeactivateMember, ReactivateAccount, ReactivateMember
from backoffice.forms import ActionModal
from backoffice.listings import STATUS_FILTER, enforcement_controllers
from backoffice.roles import ENFORCEMENT
from backoffice.table import ACCOUNT_COLUMNS, DEACTIVATE, MEMBER_COLUMNS, REACTIVATE

MODAL_KEY = "enforcement"


def enforcement_actions(item) -> list[str]:
    return [DEACTIVATE] if item.is_active else [REACTIVATE]


def render_member_modal(action: str, member) -> None:
    context = {"member_id": member.id, "member_name": member.full_name}
    model = DeactivateMember if action == DEACTIVATE else ReactivateMember
    modal = ActionModal(model, members.submit, context)
    with st.container(border=True):
        st.subheader(modal.title)
        with st.form("enforcement-member"):
            st.write(f"Member **{member.full_name}** ({member.employee_id})")
            form = {"reason": st.text_area("Reason")} if action == DEACTIVATE else {}
            submitted = st.form_submit_button(modal.title, type="primary")
        if submitted:
            submit_modal(MODAL_KEY, modal, form)
        cancel_button(MODAL_KEY)


def render_account_modal(action: str, row) -> None:
    context = {"account_id": row.account.id, "account_number": row.account.account_number}
    model = DeactivateAccount if action == DEACTIVATE else ReactivateAccount
    modal = ActionModal(model, accounts.submit, context)
    with st.container(border=True):
        st.subheader(modal.title)
        with st.form("enforcement-account"):
            st.write(f"Account **{row.account.account_number}** owned by {row.owner_name}")
            submitted = st.form_submit_button(modal.title, type="primary")
        if submitted:
            submit_modal(MODAL_KEY, modal, {})
        cancel_button(MODAL_KEY)


def status_toggle(controller, key: str) -> None:
    inactive_only = st.toggle(
        "Inactive only",
        value=controller.query.filters.get(STATUS_FILTER) == "inactive",
        key=f"{key}.inactive",
    )
    wanted = "inactive" if inactive_only else ""
    if wanted != controller.query.filters.get(STATUS_FILTER, ""):
        run_async(controller.set_filter(STATUS_FILTER, wanted))
        st.rerun()


st.set_page_config(page_title="Enforcement", layout="wide")
api = require_session(ENFORCEMENT)
members = get_controller("enforcement.members", lambda api, sink: enforcement_controllers(api, sink)[0])
accounts = get_controller("enforcement.accounts", lambda api, sink: enforcement_controllers(api, sink)[1])

st.title("⚖️ Enforcement")
st.caption("Suspend or restore members and accounts")

pending = pending_modal(MODAL_KEY)
if pending:
    intent, entity = pending
    target, _, action = intent.partition(":")
    if target == "member":
        render_member_modal(action, entity)
    else:
        render_account_modal(action, entity)

member_tab, account_tab = st.tabs(["Members", "Accounts"])
with member_tab:
    status_toggle(members, "enforcement.members")
    clicked = render_list(members, MEMBER_COLUMNS, enforcement_actions, noun="members", state_key="enforcement.members")
    if clicked:
        open_modal(MODAL_KEY, f"member:{clicked.action}", clicked.entity)
        st.rerun()
with account_tab:
    status_toggle(accounts, "enforcement.accounts")
    clicked = render_list(accounts, ACCOUNT_COLUMNS, enforcement_actions, noun="accounts", state_key="enforcement.accounts")
    if clicked:
        open_modal(MODAL_KEY, f"account:{clicked.action}", clicked.entity)
        st.rerun()
