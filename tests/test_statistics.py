import asyncio
from datetime import datetime, timedelta

import httpx
import pytest

from backoffice.models import Member, SavingAccount
from backoffice.statistics import (
    domain_distribution,
    load_statistics,
    pie_slices,
    recent_activity,
    recent_registrations,
    relative_time,
    stats_from_accounts,
)

NOW = datetime(2024, 6, 15, 12, 0)


def _member(member_id, domain="ACADEMIC", registered=None):
    return Member(
        id=member_id,
        first_name="M",
        last_name=str(member_id),
        employee_id=f"E{member_id}",
        work_domain=domain,
        registration_date=registered,
    )


def test_pie_slices_cover_the_circle():
    slices = pie_slices({"ACADEMIC": 2, "ADMINISTRATION": 1, "CONTRACT": 0, "OTHER": 1})

    assert [piece.label for piece in slices] == ["ACADEMIC", "ADMINISTRATION", "CONTRACT", "OTHER"]
    assert [piece.start_angle for piece in slices] == [0, 180, 270, 270]
    assert [piece.sweep for piece in slices] == [180, 90, 0, 90]
    assert [piece.percent for piece in slices] == [50, 25, 0, 25]
    assert sum(piece.sweep for piece in slices) == pytest.approx(360)
    assert slices[-1].end_angle == pytest.approx(360)
    assert not any(piece.large_arc for piece in slices)


def test_single_category_takes_the_whole_pie():
    [piece] = pie_slices({"OTHER": 7})
    assert piece.sweep == 360
    assert piece.large_arc


def test_no_slices_for_zero_total():
    assert pie_slices({"ACADEMIC": 0, "OTHER": 0}) == []
    assert pie_slices({}) == []


def test_domain_distribution_lists_every_domain():
    counts = domain_distribution([_member(1), _member(2), _member(3, "CONTRACT")])
    assert counts == {"ACADEMIC": 2, "ADMINISTRATION": 0, "CONTRACT": 1, "OTHER": 0}


def test_account_stats_from_records():
    accounts = [
        SavingAccount(id=1, account_number="A1", account_type="FORMAL", current_balance=100, is_active=True),
        SavingAccount(id=2, account_number="A2", account_type="INFORMAL", current_balance=300, is_active=False),
    ]
    stats = stats_from_accounts(accounts)

    assert (stats.total_accounts, stats.active_accounts, stats.inactive_accounts) == (2, 1, 1)
    assert (stats.formal_accounts, stats.informal_accounts) == (1, 1)
    assert stats.total_balance == 400
    assert stats.average_balance == 200
    assert stats_from_accounts([]).average_balance == 0


@pytest.mark.parametrize(
    "delta, expected",
    [
        (timedelta(seconds=20), "Just now"),
        (timedelta(minutes=5), "5 minutes ago"),
        (timedelta(hours=3, minutes=10), "3 hours ago"),
        (timedelta(days=2), "2 days ago"),
        (timedelta(days=30), "May 16, 2024"),
    ],
)
def test_relative_time(delta, expected):
    assert relative_time(NOW - delta, now=NOW) == expected


def test_relative_time_without_a_date():
    assert relative_time(None) == "N/A"


def test_recent_registrations_counts_last_week():
    members = [
        _member(1, registered=NOW - timedelta(days=1)),
        _member(2, registered=NOW - timedelta(days=6, hours=23)),
        _member(3, registered=NOW - timedelta(days=8)),
        _member(4),
    ]
    assert recent_registrations(members, now=NOW) == 2


def _stats_handler(stats_status=404):
    member = {"id": 1, "firstName": "Abebe", "lastName": "K", "employeeId": "E1", "workDomain": "CONTRACT",
              "registrationDate": "2024-06-14T12:00:00"}
    account = {"id": 1, "accountNumber": "ACC001", "accountType": "FORMAL", "currentBalance": 900}

    def handler(request):
        path = request.url.path
        if path.endswith("/members/stats/count"):
            return httpx.Response(200, json={"totalMembers": 1, "activeMembers": 1, "inactiveMembers": 0})
        if path.endswith("/members"):
            return httpx.Response(200, json=[member])
        if path.endswith("/accounts/stats"):
            if stats_status == 200:
                return httpx.Response(200, json={"message": "ok", "data": {"totalAccounts": 40, "totalBalance": 8000}})
            return httpx.Response(stats_status, json={"message": "Not found"})
        if path.endswith("/accounts"):
            return httpx.Response(200, json={"content": [account], "totalElements": 1, "size": 1000, "number": 0})
        return httpx.Response(404)

    return handler


def test_load_statistics_falls_back_to_counting_accounts(mock_api):
    stats = asyncio.run(load_statistics(mock_api(_stats_handler()), now=NOW))

    assert stats.members.total_members == 1
    assert stats.members_by_domain["CONTRACT"] == 1
    assert stats.recent_registrations == 1
    assert stats.accounts.total_accounts == 1
    assert stats.accounts.total_balance == 900


def test_load_statistics_prefers_the_stats_endpoint(mock_api):
    stats = asyncio.run(load_statistics(mock_api(_stats_handler(200)), now=NOW))

    assert stats.accounts.total_accounts == 40
    assert stats.accounts.average_balance == 200


def test_account_stats_unavailable(mock_api):
    def handler(request):
        if "/accounts" in request.url.path:
            return httpx.Response(503)
        return _stats_handler()(request)

    stats = asyncio.run(load_statistics(mock_api(handler), now=NOW))
    assert stats.accounts is None
    assert stats.members.total_members == 1


def test_recent_activity_tolerates_missing_accounts(mock_api):
    def handler(request):
        if "/accounts" in request.url.path:
            return httpx.Response(500)
        return _stats_handler()(request)

    [entry] = asyncio.run(recent_activity(mock_api(handler)))
    assert entry.kind == "member_registered"
    assert entry.label == "Abebe K"
    assert entry.describe(now=datetime(2024, 6, 14, 12, 30)) == "Abebe K registered 30 minutes ago"
