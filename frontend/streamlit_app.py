"""Streamlit back-office console: login, dashboard and shared page helpers."""

from __future__ import annotations

import asyncio
import os
from collections.abc import Callable, Coroutine, Mapping, Sequence
from typing import Any, TypeVar

import streamlit as st

from backoffice.api import ApiClient, ApiError, BackOfficeAPI
from backoffice.config import DEFAULT_API_BASE, PAGE_SIZE_OPTIONS, ConsoleConfig
from backoffice.controller import ListController
from backoffice.formatting import format_currency
from backoffice.forms import FORM_ERROR_KEY, ActionModal
from backoffice.notifications import NotificationSink, QueueSink
from backoffice.roles import (
    ACCOUNTS,
    ENFORCEMENT,
    MEMBERS,
    ROLE_DESCRIPTIONS,
    STAFF,
    STATISTICS,
    can_access,
)
from backoffice.session import MappingSessionStore, SessionProvider, clear_view_state
from backoffice.statistics import load_statistics, recent_activity
from backoffice.table import (
    ACTION_LABELS,
    ActionClicked,
    Column,
    SortClicked,
    dispatch_intent,
    render_table,
    to_frame,
)

T = TypeVar("T")

API_KEY = "backoffice.api"
SINK_KEY = "backoffice.sink"
TOAST_ICONS = {"success": "✅", "error": "❌", "info": "ℹ️"}

PAGE_LINKS = {
    MEMBERS: ("pages/member_management.py", "Member Management", "👥"),
    ACCOUNTS: ("pages/account_management.py", "Account Management", "💳"),
    STAFF: ("pages/staff_management.py", "Staff Management", "🛡️"),
    ENFORCEMENT: ("pages/enforcement.py", "Enforcement", "⚖️"),
    STATISTICS: ("pages/statistics.py", "Statistics", "📊"),
}


def get_api_base() -> str:
    """Prefer Streamlit secrets/env var overrides for API base URL."""
    # Streamlit raises when no secrets file exists, so guard the lookup.
    secret_value: str | None = None
    try:
        secret_value = st.secrets["api_base"]
    except Exception:  # noqa: BLE001 - secrets module raises custom errors
        secret_value = None

    env_value = os.environ.get("BACKOFFICE_API_URL")
    return (secret_value or env_value or DEFAULT_API_BASE).rstrip("/")


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Drive one coroutine to completion; each rerun gets a fresh event loop."""
    return asyncio.run(coro)


def get_sink() -> QueueSink:
    if SINK_KEY not in st.session_state:
        st.session_state[SINK_KEY] = QueueSink()
    return st.session_state[SINK_KEY]


def clear_user_state() -> None:
    """Forget the signed-out user's lists, open modals and cached figures."""
    clear_view_state(st.session_state)


def get_api() -> BackOfficeAPI:
    """The browser session's API bundle, created and restored once."""
    if API_KEY not in st.session_state:
        config = ConsoleConfig.from_env()
        session = SessionProvider(MappingSessionStore(st.session_state))
        session.restore()
        session.on_teardown(clear_user_state)
        st.session_state[API_KEY] = BackOfficeAPI(
            ApiClient(get_api_base(), session, timeout=config.timeout)
        )
    return st.session_state[API_KEY]


def flush_notifications() -> None:
    for notification in get_sink().drain():
        st.toast(str(notification), icon=TOAST_ICONS.get(notification.level))


def require_session(page: str | None = None) -> BackOfficeAPI:
    """Stop the script unless a staff user is logged in and may open ``page``."""
    api = get_api()
    flush_notifications()
    session = api.session
    if not session.is_authenticated:
        if session.expired:
            st.warning("Your session has expired. Please log in again.")
        st.info("Please log in from the home page.")
        st.page_link("streamlit_app.py", label="Go to login", icon="🔑")
        st.stop()
    if page is not None and not can_access(session.role, page):
        st.error("You don't have permission to access this page.")
        st.stop()
    return api


def get_controller(
    key: str, factory: Callable[[BackOfficeAPI, NotificationSink], ListController[Any]]
) -> ListController[Any]:
    """One controller per list, kept across reruns; loads its first page on creation."""
    state_key = f"backoffice.controller.{key}"
    if state_key not in st.session_state:
        controller = factory(get_api(), get_sink())
        run_async(controller.refresh())
        st.session_state[state_key] = controller
    return st.session_state[state_key]


# Modals live in session state until submitted or cancelled.


def open_modal(key: str, action: str, entity: Any = None) -> None:
    st.session_state[f"backoffice.modal.{key}"] = (action, entity)


def pending_modal(key: str) -> tuple[str, Any] | None:
    return st.session_state.get(f"backoffice.modal.{key}")


def close_modal(key: str) -> None:
    st.session_state.pop(f"backoffice.modal.{key}", None)


def show_form_errors(errors: Mapping[str, str]) -> None:
    for field, message in errors.items():
        if field == FORM_ERROR_KEY:
            st.error(message)
        else:
            st.error(f"{field.replace('_', ' ').capitalize()}: {message}")


def submit_modal(key: str, modal: ActionModal, form: Mapping[str, Any]) -> None:
    """Run ``modal`` on ``form``; closes and reruns on success, shows errors otherwise."""
    if run_async(modal.submit(form)):
        close_modal(key)
        st.rerun()
    show_form_errors(modal.errors)


def cancel_button(key: str) -> None:
    if st.button("Cancel", key=f"backoffice.modal.{key}.cancel"):
        close_modal(key)
        st.rerun()


def render_list(
    controller: ListController[Any],
    columns: Sequence[Column],
    actions_for: Callable[[Any], Sequence[str]] | None = None,
    key: Callable[[Any], Any] | None = None,
    noun: str = "results",
    state_key: str = "list",
) -> ActionClicked | None:
    """Draw one list with sort buttons, row actions and paging controls.

    Sort clicks are applied here; a row action is returned for the page to
    open its modal.
    """

    view = render_table(controller.page, controller.query, columns, actions_for, key, noun)
    if controller.error:
        st.error(controller.error)

    intent: SortClicked | ActionClicked | None = None
    for column, header in zip(st.columns(len(view.headers)), view.headers):
        if header.sort_field is None:
            column.markdown(f"**{header.text}**")
        elif column.button(header.text, key=f"{state_key}.sort.{header.sort_field}", use_container_width=True):
            intent = SortClicked(header.sort_field)

    if view.empty:
        st.info(view.summary)
    else:
        st.dataframe(to_frame(view), use_container_width=True, hide_index=True)
        labels = [" | ".join(row.cells[:2]) for row in view.rows]
        choice = st.selectbox(
            "Selected row",
            range(len(view.rows)),
            format_func=lambda index: labels[index],
            key=f"{state_key}.row",
        )
        row = view.rows[choice if choice is not None and choice < len(view.rows) else 0]
        if row.actions:
            for column, action in zip(st.columns(len(row.actions)), row.actions):
                if column.button(ACTION_LABELS[action], key=f"{state_key}.action.{action}"):
                    intent = ActionClicked(action, row.entity)
        st.caption(view.summary)

    page = controller.page
    previous, position, following, size = st.columns([1, 2, 1, 1])
    if previous.button("◀ Previous", key=f"{state_key}.prev", disabled=page is None or page.is_first):
        run_async(controller.set_page(controller.query.page_index - 1))
        st.rerun()
    position.write(f"Page {controller.query.page_index + 1} of {max(controller.total_pages, 1)}")
    if following.button("Next ▶", key=f"{state_key}.next", disabled=page is None or page.is_last):
        run_async(controller.set_page(controller.query.page_index + 1))
        st.rerun()
    options = sorted({*PAGE_SIZE_OPTIONS, controller.query.page_size})
    new_size = size.selectbox(
        "Rows",
        options,
        index=options.index(controller.query.page_size),
        key=f"{state_key}.size",
        label_visibility="collapsed",
    )
    if new_size != controller.query.page_size:
        run_async(controller.set_page_size(new_size))
        st.rerun()

    if intent is None:
        return None
    result = run_async(dispatch_intent(controller, intent))
    if result is None:
        st.rerun()
    return result


@st.cache_data(ttl=30, show_spinner=False)
def load_dashboard(_api: BackOfficeAPI, token: str) -> dict[str, Any]:
    """Dashboard figures, cached briefly per token."""
    stats = run_async(load_statistics(_api))
    activity = run_async(recent_activity(_api))
    return {"stats": stats, "activity": [entry.describe() for entry in activity]}


def render_login(api: BackOfficeAPI) -> None:
    st.title("Cooperative Back Office")
    if api.session.expired:
        st.warning("Your session has expired. Please log in again.")

    with st.form("login"):
        username = st.text_input("Username")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Log in", use_container_width=True)

    if not submitted:
        return
    if not username or not password:
        st.error("Username and password are required.")
        return
    try:
        user = run_async(api.auth.login(username, password))
    except ApiError as exc:
        st.error(f"Login failed: {exc.message}")
        return
    api.session.login(user)
    st.rerun()


def render_dashboard(api: BackOfficeAPI) -> None:
    user = api.session.user
    st.title("Dashboard")
    st.caption(f"Welcome back, {user.username}")

    with st.sidebar:
        st.header(user.username)
        st.write(f"**{user.role}**")
        st.caption(ROLE_DESCRIPTIONS.get(user.role, ""))
        if st.button("Log out", use_container_width=True):
            api.session.logout()
            clear_user_state()
            st.rerun()

    try:
        dashboard = load_dashboard(api, api.session.token)
    except ApiError as exc:
        st.error(f"Could not load dashboard figures: {exc.message}")
        dashboard = None

    if dashboard:
        stats = dashboard["stats"]
        col1, col2, col3, col4 = st.columns(4)
        with col1:
            st.metric("Total Members", f"{stats.members.total_members:,}")
        with col2:
            st.metric("Active Members", f"{stats.members.active_members:,}")
        with col3:
            st.metric("Accounts", f"{stats.accounts.total_accounts:,}" if stats.accounts else "N/A")
        with col4:
            st.metric("New This Week", f"{stats.recent_registrations:,}")
        if stats.accounts:
            st.caption(f"Total savings: {format_currency(stats.accounts.total_balance)}")

    st.divider()
    left, right = st.columns(2)
    with left:
        st.subheader("Quick links")
        for page, (path, label, icon) in PAGE_LINKS.items():
            if can_access(user.role, page):
                st.page_link(path, label=label, icon=icon)
    with right:
        st.subheader("Recent activity")
        if dashboard and dashboard["activity"]:
            for line in dashboard["activity"]:
                st.write(line)
        else:
            st.caption("No recent activity")


def main() -> None:
    st.set_page_config(page_title="Cooperative Back Office", layout="wide")
    api = get_api()
    flush_notifications()
    if api.session.is_authenticated:
        render_dashboard(api)
    else:
        render_login(api)


if __name__ == "__main__":
    main()
