"""Aggregate figures for the dashboard and the statistics screen.

Counts that the API has no endpoint for are computed from one large page
of records, so they are only exact while the cooperative stays below
``LARGE_PAGE`` members or accounts.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from . import get_logger
from .api import ApiError, BackOfficeAPI
from .formatting import format_date
from .models import WORK_DOMAINS, AccountStats, Member, MemberCounts, SavingAccount
from .pagination import ListQuery

logger = get_logger(__name__)

LARGE_PAGE = 1000
RECENT_DAYS = 7


@dataclass(frozen=True)
class PieSlice:
    label: str
    value: int
    start_angle: float
    sweep: float
    percent: float

    @property
    def end_angle(self) -> float:
        return self.start_angle + self.sweep

    @property
    def large_arc(self) -> bool:
        return self.sweep > 180


def pie_slices(counts: Mapping[str, int]) -> list[PieSlice]:
    """Lay ``counts`` out around a circle, in mapping order, starting at 0°.

    Sweeps are in degrees and add up to 360. Zero counts keep their place
    with a zero sweep; an all-zero mapping yields no slices.
    """

    total = sum(counts.values())
    if total <= 0:
        return []

    slices = []
    start = 0.0
    for label, value in counts.items():
        percent = value / total * 100
        sweep = percent / 100 * 360
        slices.append(PieSlice(label, value, start, sweep, percent))
        start += sweep
    return slices


def domain_distribution(members: Iterable[Member]) -> dict[str, int]:
    counts = {domain: 0 for domain in WORK_DOMAINS}
    for member in members:
        counts[member.work_domain] = counts.get(member.work_domain, 0) + 1
    return counts


def stats_from_accounts(accounts: Iterable[SavingAccount]) -> AccountStats:
    accounts = list(accounts)
    return AccountStats(
        total_accounts=len(accounts),
        active_accounts=sum(1 for account in accounts if account.is_active),
        inactive_accounts=sum(1 for account in accounts if not account.is_active),
        formal_accounts=sum(1 for account in accounts if account.account_type == "FORMAL"),
        informal_accounts=sum(1 for account in accounts if account.account_type == "INFORMAL"),
        total_balance=sum(account.current_balance for account in accounts),
    )


def _now_for(when: datetime, now: datetime | None) -> datetime:
    if now is not None:
        return now
    return datetime.now(when.tzinfo)


def relative_time(when: datetime | None, now: datetime | None = None) -> str:
    """``Just now``, ``5 minutes ago`` ... ``3 days ago``, then the plain date."""

    if when is None:
        return "N/A"
    minutes = int((_now_for(when, now) - when).total_seconds() // 60)
    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes} minutes ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours} hours ago"
    days = hours // 24
    if days < 7:
        return f"{days} days ago"
    return format_date(when)


def recent_registrations(
    members: Iterable[Member], now: datetime | None = None, days: int = RECENT_DAYS
) -> int:
    count = 0
    for member in members:
        if member.registration_date is None:
            continue
        cutoff = _now_for(member.registration_date, now) - timedelta(days=days)
        if member.registration_date > cutoff:
            count += 1
    return count


@dataclass(frozen=True)
class Activity:
    kind: str
    label: str
    when: datetime | None

    def describe(self, now: datetime | None = None) -> str:
        verb = "registered" if self.kind == "member_registered" else "opened"
        return f"{self.label} {verb} {relative_time(self.when, now)}"


@dataclass
class SystemStats:
    members: MemberCounts
    accounts: AccountStats | None
    members_by_domain: dict[str, int] = field(default_factory=dict)
    recent_registrations: int = 0


async def _all_members(api: BackOfficeAPI) -> list[Member]:
    page = await api.members.get_all(ListQuery(page_size=LARGE_PAGE), include_inactive=True)
    return page.items


async def account_stats(api: BackOfficeAPI) -> AccountStats | None:
    """Server figures when the stats endpoint answers, else counted from a large page.

    Returns ``None`` when neither source is available.
    """

    try:
        return await api.accounts.stats()
    except ApiError as exc:
        logger.info("Account stats endpoint unavailable (%s), counting accounts", exc.message)

    try:
        page = await api.accounts.get_all(ListQuery(page_size=LARGE_PAGE))
    except (ApiError, ValueError) as exc:
        logger.error("Could not load accounts for statistics: %s", exc)
        return None
    return stats_from_accounts(page.items)


async def load_statistics(api: BackOfficeAPI, now: datetime | None = None) -> SystemStats:
    """Everything the statistics screen and the dashboard cards show.

    Member figures are required; a failure there propagates as ``ApiError``.
    """

    counts, members, accounts = await asyncio.gather(
        api.members.counts(),
        _all_members(api),
        account_stats(api),
    )
    return SystemStats(
        members=counts,
        accounts=accounts,
        members_by_domain=domain_distribution(members),
        recent_registrations=recent_registrations(members, now),
    )


async def recent_activity(api: BackOfficeAPI, limit: int = 4) -> list[Activity]:
    """Latest registrations followed by the latest account openings.

    Accounts are optional here: if they cannot be loaded only member
    activity is shown.
    """

    members = await api.members.get_all(
        ListQuery(page_size=10, sort_field="registrationDate", sort_direction="desc")
    )
    activities = [
        Activity("member_registered", member.full_name, member.registration_date)
        for member in members.items[:3]
    ]

    try:
        accounts = await api.accounts.get_all(
            ListQuery(page_size=10, sort_field="openingDate", sort_direction="desc")
        )
    except (ApiError, ValueError) as exc:
        logger.info("Could not load recent accounts: %s", exc)
    else:
        activities.extend(
            Activity("account_created", f"Account {account.account_number}", account.opening_date)
            for account in accounts.items[:2]
        )

    return activities[:limit]
