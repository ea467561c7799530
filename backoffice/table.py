"""Entity table renderer: pages in, rows and intents out.

Rendering is a pure function of a page and the owning controller's query.
User gestures come back as intent objects; applying them is the
controller's job (see ``dispatch_intent``).
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

import pandas as pd

from .formatting import format_currency, format_date
from .models import AccountRow, Member, StaffUser
from .pagination import ListQuery, Page

SORT_INDICATORS = {"asc": "▲", "desc": "▼"}


@dataclass(frozen=True)
class Column:
    key: str
    label: str
    sortable: bool = True
    formatter: Callable[[Any], str] | None = None
    sort_key: str | None = None

    @property
    def sort_field(self) -> str:
        return self.sort_key or self.key


@dataclass(frozen=True)
class Header:
    label: str
    sort_field: str | None
    indicator: str = ""

    @property
    def text(self) -> str:
        return f"{self.label} {self.indicator}".strip()


@dataclass(frozen=True)
class Row:
    key: Any
    cells: tuple[str, ...]
    actions: tuple[str, ...]
    entity: Any = field(compare=False, repr=False)


@dataclass(frozen=True)
class TableView:
    headers: tuple[Header, ...]
    rows: tuple[Row, ...]
    summary: str
    empty: bool


@dataclass(frozen=True)
class SortClicked:
    field: str


@dataclass(frozen=True)
class ActionClicked:
    action: str
    entity: Any


def _resolve(entity: Any, key: str) -> Any:
    value: Any = entity
    for part in key.split("."):
        if value is None:
            return None
        value = value.get(part) if isinstance(value, dict) else getattr(value, part, None)
    return value


def _cell(entity: Any, column: Column) -> str:
    value = _resolve(entity, column.key)
    if column.formatter is not None:
        return column.formatter(value)
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Active" if value else "Inactive"
    return str(value)


def page_summary(page: Page[Any] | None, noun: str = "results") -> str:
    if page is None or not page.items:
        return f"No {noun} found"
    return f"Showing {page.start_item}–{page.end_item} of {page.total_items} {noun}"


def render_table(
    page: Page[Any] | None,
    query: ListQuery,
    columns: Sequence[Column],
    actions_for: Callable[[Any], Sequence[str]] | None = None,
    key: Callable[[Any], Any] | None = None,
    noun: str = "results",
) -> TableView:
    headers = tuple(
        Header(
            label=column.label,
            sort_field=column.sort_field if column.sortable else None,
            indicator=(
                SORT_INDICATORS[query.sort_direction]
                if column.sortable and column.sort_field == query.sort_field
                else ""
            ),
        )
        for column in columns
    )

    items = page.items if page else []
    rows = tuple(
        Row(
            key=key(item) if key else _resolve(item, "id"),
            cells=tuple(_cell(item, column) for column in columns),
            actions=tuple(actions_for(item)) if actions_for else (),
            entity=item,
        )
        for item in items
    )
    return TableView(headers=headers, rows=rows, summary=page_summary(page, noun), empty=not rows)


def to_frame(view: TableView) -> pd.DataFrame:
    """Tabular projection of the rendered cells, headers as column names."""

    return pd.DataFrame(
        [row.cells for row in view.rows],
        columns=[header.text for header in view.headers],
    )


async def dispatch_intent(controller: Any, intent: SortClicked | ActionClicked) -> ActionClicked | None:
    """Apply a sort intent to ``controller``; action intents are handed back for a modal."""

    if isinstance(intent, SortClicked):
        await controller.toggle_sort(intent.field)
        return None
    return intent


# Row actions. These mirror what the API will accept for an entity in its
# current state; the API still has the final say.

VIEW = "view"
UPDATE = "update"
PURCHASE_SHARES = "purchase_shares"
DEACTIVATE = "deactivate"
REACTIVATE = "reactivate"
DEPOSIT = "deposit"
WITHDRAW = "withdraw"
CHANGE_ROLE = "change_role"
DELETE = "delete"

ACTION_LABELS = {
    VIEW: "View Details",
    UPDATE: "Update",
    PURCHASE_SHARES: "Purchase Shares",
    DEACTIVATE: "Deactivate",
    REACTIVATE: "Reactivate",
    DEPOSIT: "Deposit",
    WITHDRAW: "Withdraw",
    CHANGE_ROLE: "Change Role",
    DELETE: "Delete",
}


def member_actions(member: Member) -> list[str]:
    if member.is_active:
        return [VIEW, UPDATE, PURCHASE_SHARES, DEACTIVATE]
    return [VIEW, REACTIVATE]


def account_actions(row: AccountRow) -> list[str]:
    account = row.account
    if not account.is_active:
        return [VIEW, REACTIVATE]
    actions = [VIEW, DEPOSIT]
    if account.current_balance > 0:
        actions.append(WITHDRAW)
    actions.append(DEACTIVATE)
    return actions


def staff_actions_for(current_username: str | None) -> Callable[[StaffUser], list[str]]:
    def staff_actions(staff: StaffUser) -> list[str]:
        if staff.username == current_username:
            return []
        return [CHANGE_ROLE, DELETE]

    return staff_actions


def _status(active: bool | None) -> str:
    return "Active" if active else "Inactive"


MEMBER_COLUMNS = (
    Column("employee_id", "Employee ID", sort_key="employeeId"),
    Column("full_name", "Name", sort_key="firstName"),
    Column("work_domain", "Work Domain", sort_key="workDomain"),
    Column("email", "Email", sortable=False),
    Column("registration_date", "Registered", formatter=format_date, sort_key="registrationDate"),
    Column("is_active", "Status", formatter=_status, sort_key="isActive"),
)

ACCOUNT_COLUMNS = (
    Column("account.account_number", "Account Number", sort_key="accountNumber"),
    Column("account.account_type", "Type", sort_key="accountType"),
    Column("owner_name", "Owner", sortable=False),
    Column("account.current_balance", "Balance", formatter=format_currency, sort_key="currentBalance"),
    Column("account.is_active", "Status", formatter=_status, sort_key="isActive"),
    Column("account.opening_date", "Opened", formatter=format_date, sort_key="openingDate"),
)

STAFF_COLUMNS = (
    Column("username", "Username"),
    Column("role", "Role"),
)
