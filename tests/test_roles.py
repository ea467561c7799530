import pytest

from backoffice.roles import (
    ACCOUNTS,
    DASHBOARD,
    ENFORCEMENT,
    MEMBERS,
    STAFF,
    STATISTICS,
    can_access,
    pages_for,
    role_change_verb,
)


def test_pages_per_role():
    assert pages_for("ASSISTANT") == [DASHBOARD, MEMBERS, ACCOUNTS]
    assert pages_for("MANAGER") == [DASHBOARD, MEMBERS, ACCOUNTS, STATISTICS, ENFORCEMENT]
    assert pages_for("ADMIN") == [DASHBOARD, MEMBERS, ACCOUNTS, STAFF, STATISTICS]
    assert pages_for(None) == []


@pytest.mark.parametrize(
    "role, page, allowed",
    [
        ("ASSISTANT", STATISTICS, False),
        ("MANAGER", STAFF, False),
        ("ADMIN", ENFORCEMENT, False),
        ("ADMIN", STAFF, True),
        ("MANAGER", "unknown", False),
    ],
)
def test_can_access(role, page, allowed):
    assert can_access(role, page) is allowed


def test_role_change_verb():
    assert role_change_verb("ASSISTANT", "MANAGER") == "promoted"
    assert role_change_verb("ADMIN", "ASSISTANT") == "demoted"
    assert role_change_verb("ADMIN", "ADMIN") == "changed"
