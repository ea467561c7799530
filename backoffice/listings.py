"""Controllers for the console's list screens, wired to their endpoints."""

from __future__ import annotations

import asyncio

from . import get_logger
from .api import ApiError, BackOfficeAPI
from .controller import ListController
from .models import AccountRow, Member, SavingAccount, StaffUser, placeholder_member
from .notifications import NotificationSink
from .operations import ActionDispatcher
from .pagination import ListQuery, Page

logger = get_logger(__name__)

STATUS_FILTER = "status"
DOMAIN_FILTER = "workDomain"
ACCOUNT_TYPE_FILTER = "accountType"


def matches_status(item: Member | AccountRow | SavingAccount, status: str) -> bool:
    if status == "active":
        return item.is_active
    if status == "inactive":
        return not item.is_active
    return True


def matches_account_type(account: SavingAccount, account_type: str) -> bool:
    return account.account_type == account_type


def excludes_inactive(query: ListQuery, key: str) -> bool:
    """``/members`` without ``includeInactive`` already drops inactive members.

    Search and work-domain results come back unfiltered and keep the
    client-side status check.
    """
    if key != STATUS_FILTER or query.filters.get(STATUS_FILTER) != "active":
        return False
    return not query.search_text and not query.filters.get(DOMAIN_FILTER)


def members_controller(
    api: BackOfficeAPI,
    sink: NotificationSink | None = None,
    page_size: int = 10,
) -> ListController[Member]:
    """Members list.

    Search and work domain each have their own endpoint, search taking
    precedence. The plain list includes inactive members unless the status
    filter asks for active ones; status itself is filtered client-side.
    """

    async def fetch(query: ListQuery) -> Page[Member]:
        if query.search_text:
            return await api.members.search(query.search_text, query)
        domain = query.filters.get(DOMAIN_FILTER)
        if domain:
            return await api.members.by_domain(domain, query)
        include_inactive = query.filters.get(STATUS_FILTER) != "active"
        return await api.members.get_all(query, include_inactive=include_inactive)

    return ListController(
        fetch,
        name="members",
        query=ListQuery(page_size=page_size),
        client_filters={STATUS_FILTER: matches_status},
        server_applied=excludes_inactive,
        executor=ActionDispatcher(api),
        sink=sink,
    )


async def attach_owners(api: BackOfficeAPI, page: Page[SavingAccount]) -> Page[AccountRow]:
    """Pair each account with its member, degrading to a placeholder owner.

    Accounts that carry no member id, or whose member cannot be fetched,
    get a synthesised owner so the list still renders.
    """

    async def owner(account: SavingAccount) -> AccountRow:
        if account.member_id is None:
            return AccountRow(account=account, member=placeholder_member(account), member_is_placeholder=True)
        try:
            member = await api.members.get(account.member_id)
        except (ApiError, ValueError) as exc:
            logger.warning("Could not resolve owner of account %s: %s", account.account_number, exc)
            return AccountRow(account=account, member=placeholder_member(account), member_is_placeholder=True)
        return AccountRow(account=account, member=member)

    rows = await asyncio.gather(*(owner(account) for account in page.items))
    return page.with_items(list(rows))


def accounts_controller(
    api: BackOfficeAPI,
    sink: NotificationSink | None = None,
    page_size: int = 5,
) -> ListController[AccountRow]:
    """Accounts list; account type and status are applied client-side."""

    async def fetch(query: ListQuery) -> Page[SavingAccount]:
        return await api.accounts.get_all(query)

    async def enrich(page: Page[SavingAccount]) -> Page[AccountRow]:
        return await attach_owners(api, page)

    return ListController(
        fetch,
        name="accounts",
        query=ListQuery(page_size=page_size),
        client_filters={
            STATUS_FILTER: matches_status,
            ACCOUNT_TYPE_FILTER: matches_account_type,
        },
        enrich=enrich,
        executor=ActionDispatcher(api),
        sink=sink,
    )


def staff_controller(
    api: BackOfficeAPI,
    sink: NotificationSink | None = None,
    page_size: int = 10,
) -> ListController[StaffUser]:
    async def fetch(query: ListQuery) -> Page[StaffUser]:
        return await api.auth.list_staff(query)

    return ListController(
        fetch,
        name="staff members",
        query=ListQuery(page_size=page_size, sort_field="username"),
        executor=ActionDispatcher(api),
        sink=sink,
    )


def enforcement_controllers(
    api: BackOfficeAPI,
    sink: NotificationSink | None = None,
    page_size: int = 10,
) -> tuple[ListController[Member], ListController[AccountRow]]:
    """Independent member and account queues for the enforcement screen."""

    async def fetch_members(query: ListQuery) -> Page[Member]:
        return await api.members.get_all(query, include_inactive=True)

    members = ListController(
        fetch_members,
        name="members",
        query=ListQuery(page_size=page_size),
        client_filters={STATUS_FILTER: matches_status},
        executor=ActionDispatcher(api),
        sink=sink,
    )
    accounts = accounts_controller(api, sink=sink, page_size=page_size)
    return members, accounts
