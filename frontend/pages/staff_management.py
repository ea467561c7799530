"""Staff Management - create staff users and change their roles (admin only)."""

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

from backoffice.actions import CreateStaff, DeleteStaff, UpdateStaffRole
from backoffice.forms import ActionModal
from backoffice.listings import staff_controller
from backoffice.models import ROLES, StaffUser
from backoffice.roles import ROLE_DESCRIPTIONS, STAFF
from backoffice.table import STAFF_COLUMNS, staff_actions_for

MODAL_KEY = "staff"


def render_modal(action: str, staff: StaffUser | None) -> None:
    with st.container(border=True):
        if action == "create":
            modal = ActionModal(CreateStaff, controller.submit)
        elif action == "change_role":
            modal = ActionModal(
                UpdateStaffRole,
                controller.submit,
                {"username": staff.username, "current_role": staff.role},
            )
        else:
            modal = ActionModal(
                DeleteStaff, controller.submit, {"username": staff.username, "role": staff.role}
            )

        st.subheader(modal.title)
        with st.form(f"staff-{action}"):
            if action == "create":
                form = {
                    "username": st.text_input("Username"),
                    "password": st.text_input("Password", type="password"),
                    "role": st.selectbox("Role", ROLES),
                }
            elif action == "change_role":
                st.write(f"**{staff.username}** is currently {staff.role}")
                form = {"role": st.selectbox("New role", ROLES, index=ROLES.index(staff.role))}
            else:
                st.warning(f"Delete {staff.role.lower()} **{staff.username}**? This cannot be undone.")
                form = {}
            submitted = st.form_submit_button(modal.title, type="primary")
        if submitted:
            submit_modal(MODAL_KEY, modal, form)
        cancel_button(MODAL_KEY)


st.set_page_config(page_title="Staff Management", layout="wide")
api = require_session(STAFF)
controller = get_controller("staff", staff_controller)

st.title("🛡️ Staff Management")
st.caption("Create staff accounts and manage their access level")

with st.sidebar:
    search = st.text_input("Search username", value=controller.query.search_text or "")
    if st.button("Search", use_container_width=True):
        controller.set_search(search)
        run_async(controller.submit_search())
        st.rerun()
    st.divider()
    if st.button("🔄 Refresh", use_container_width=True):
        run_async(controller.refresh())
        st.rerun()
    if st.button("➕ Create Staff", type="primary", use_container_width=True):
        open_modal(MODAL_KEY, "create")
    st.divider()
    for role in ROLES:
        st.markdown(f"**{role}**: {ROLE_DESCRIPTIONS[role]}")

pending = pending_modal(MODAL_KEY)
if pending:
    render_modal(*pending)

clicked = render_list(
    controller,
    STAFF_COLUMNS,
    staff_actions_for(api.session.user.username),
    key=lambda staff: staff.username,
    noun="staff members",
    state_key="staff",
)
if clicked:
    open_modal(MODAL_KEY, clicked.action, clicked.entity)
    st.rerun()
