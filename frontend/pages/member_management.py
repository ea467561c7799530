"""Member Management - register, update and browse cooperative members."""

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
    CreateMember,
    DeactivateMember,
    PurchaseShares,
    ReactivateMember,
    UpdateMember,
)
from backoffice.api import ApiError
from backoffice.formatting import format_currency, format_date
from backoffice.forms import ActionModal
from backoffice.listings import DOMAIN_FILTER, STATUS_FILTER, members_controller
from backoffice.models import WORK_DOMAINS, Member
from backoffice.roles import MEMBERS
from backoffice.table import MEMBER_COLUMNS, member_actions

MODAL_KEY = "members"
STATUS_OPTIONS = {"All": "", "Active": "active", "Inactive": "inactive"}


def member_form(member: Member | None = None, with_identity: bool = True) -> dict:
    """Shared register/update fields; employee id and domain only when registering."""
    form = {}
    col1, col2 = st.columns(2)
    form["first_name"] = col1.text_input("First name", value=member.first_name if member else "")
    form["last_name"] = col2.text_input("Last name", value=member.last_name if member else "")
    if with_identity:
        form["employee_id"] = col1.text_input("Employee ID")
        domains = list(WORK_DOMAINS)
        form["work_domain"] = col2.selectbox(
            "Work domain",
            domains,
            format_func=lambda code: WORK_DOMAINS[code],
            index=None,
            placeholder="Select a work domain",
        )
    form["email"] = col1.text_input("Email", value=(member.email or "") if member else "")
    form["phone_number"] = col2.text_input(
        "Phone number", value=(member.phone_number or "") if member else ""
    )
    return form


def render_details(member: Member) -> None:
    try:
        full = run_async(api.members.get_full(member.id))
        eligible = run_async(api.members.eligibility(member.id))
    except ApiError as exc:
        st.error(f"Failed to load member details: {exc.message}")
        full, eligible = member, None

    st.subheader(full.full_name)
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Employee ID", full.employee_id)
    col2.metric("Work Domain", WORK_DOMAINS.get(full.work_domain, full.work_domain))
    col3.metric("Registered", format_date(full.registration_date))
    col4.metric("Registration Fee", format_currency(full.registration_fee))
    st.write(f"**Email:** {full.email or 'N/A'}  \n**Phone:** {full.phone_number or 'N/A'}")
    if eligible is not None:
        st.write(f"**Eligible for new accounts:** {'Yes' if eligible else 'No'}")
    if not full.is_active:
        st.warning(
            f"Deactivated {format_date(full.deactivation_date)}: {full.deactivation_reason or 'no reason recorded'}"
        )

    if full.shares:
        st.markdown("**Shares**")
        st.dataframe(
            pd.DataFrame(
                [
                    {
                        "Certificate": share.certificate_number,
                        "Value": format_currency(share.share_value),
                        "Purchased": format_date(share.purchase_date),
                    }
                    for share in full.shares
                ]
            ),
            hide_index=True,
        )
    if full.saving_accounts:
        st.markdown("**Savings accounts**")
        st.dataframe(
            pd.DataFrame(
                [
                    {
                        "Account": account.account_number,
                        "Type": account.account_type,
                        "Balance": format_currency(account.current_balance),
                        "Status": "Active" if account.is_active else "Inactive",
                    }
                    for account in full.saving_accounts
                ]
            ),
            hide_index=True,
        )
    cancel_button(MODAL_KEY)


def render_modal(action: str, member: Member | None) -> None:
    with st.container(border=True):
        if action == "view":
            render_details(member)
            return

        if action == "register":
            modal = ActionModal(CreateMember, controller.submit)
        elif action == "update":
            modal = ActionModal(UpdateMember, controller.submit, {"member_id": member.id})
        elif action == "purchase_shares":
            modal = ActionModal(PurchaseShares, controller.submit, {"member_id": member.id})
        elif action == "deactivate":
            modal = ActionModal(
                DeactivateMember,
                controller.submit,
                {"member_id": member.id, "member_name": member.full_name},
            )
        else:
            modal = ActionModal(
                ReactivateMember,
                controller.submit,
                {"member_id": member.id, "member_name": member.full_name},
            )

        st.subheader(modal.title)
        with st.form(f"member-{action}"):
            if action == "register":
                form = member_form()
            elif action == "update":
                form = member_form(member, with_identity=False)
            elif action == "purchase_shares":
                st.write(f"Purchasing shares for **{member.full_name}**")
                form = {"quantity": st.number_input("Quantity", min_value=1, value=1, step=1)}
            elif action == "deactivate":
                st.warning(f"{member.full_name} will no longer be able to transact.")
                form = {"reason": st.text_area("Reason for deactivation")}
            else:
                st.write(f"Reactivate **{member.full_name}**?")
                form = {}
            submitted = st.form_submit_button(modal.title, type="primary")
        if submitted:
            submit_modal(MODAL_KEY, modal, form)
        cancel_button(MODAL_KEY)


st.set_page_config(page_title="Member Management", layout="wide")
api = require_session(MEMBERS)
controller = get_controller("members", members_controller)

st.title("👥 Member Management")
st.caption("Register new members and manage existing member records")

with st.sidebar:
    st.header("Filters")
    search = st.text_input("Search by name, email or employee ID", value=controller.query.search_text or "")
    if st.button("Search", use_container_width=True):
        controller.set_search(search)
        run_async(controller.submit_search())
        st.rerun()

    statuses = list(STATUS_OPTIONS)
    current_status = next(
        label for label, value in STATUS_OPTIONS.items()
        if value == controller.query.filters.get(STATUS_FILTER, "")
    )
    status = st.selectbox("Status", statuses, index=statuses.index(current_status))
    if STATUS_OPTIONS[status] != controller.query.filters.get(STATUS_FILTER, ""):
        run_async(controller.set_filter(STATUS_FILTER, STATUS_OPTIONS[status]))
        st.rerun()

    domains = ["", *WORK_DOMAINS]
    current_domain = controller.query.filters.get(DOMAIN_FILTER, "")
    domain = st.selectbox(
        "Work domain",
        domains,
        index=domains.index(current_domain),
        format_func=lambda code: WORK_DOMAINS.get(code, "All domains"),
    )
    if domain != current_domain:
        run_async(controller.set_filter(DOMAIN_FILTER, domain))
        st.rerun()

    st.divider()
    if st.button("🔄 Refresh", use_container_width=True):
        run_async(controller.refresh())
        st.rerun()
    if st.button("➕ Register Member", type="primary", use_container_width=True):
        open_modal(MODAL_KEY, "register")

pending = pending_modal(MODAL_KEY)
if pending:
    render_modal(*pending)

clicked = render_list(controller, MEMBER_COLUMNS, member_actions, noun="members", state_key="members")
if clicked:
    open_modal(MODAL_KEY, clicked.action, clicked.entity)
    st.rerun()
