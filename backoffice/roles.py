"""Which console pages each staff role may open.

The checks are advisory: the API enforces the same rules on every call.
"""

from __future__ import annotations

DASHBOARD = "dashboard"
MEMBERS = "members"
ACCOUNTS = "accounts"
STAFF = "staff"
STATISTICS = "statistics"
ENFORCEMENT = "enforcement"

PAGE_ACCESS: dict[str, tuple[str, ...]] = {
    DASHBOARD: ("ASSISTANT", "MANAGER", "ADMIN"),
    MEMBERS: ("ASSISTANT", "MANAGER", "ADMIN"),
    ACCOUNTS: ("ASSISTANT", "MANAGER", "ADMIN"),
    STAFF: ("ADMIN",),
    STATISTICS: ("MANAGER", "ADMIN"),
    ENFORCEMENT: ("MANAGER",),
}

ROLE_LEVELS = {"ASSISTANT": 1, "MANAGER": 2, "ADMIN": 3}

ROLE_DESCRIPTIONS = {
    "ADMIN": "Full system access including staff management",
    "MANAGER": "Member/account management, statistics, and enforcement",
    "ASSISTANT": "Basic member registration and account operations",
}


def can_access(role: str | None, page: str) -> bool:
    if role is None:
        return False
    return role in PAGE_ACCESS.get(page, ())


def pages_for(role: str | None) -> list[str]:
    return [page for page in PAGE_ACCESS if can_access(role, page)]


def role_change_verb(old_role: str, new_role: str) -> str:
    old_level = ROLE_LEVELS.get(old_role, 0)
    new_level = ROLE_LEVELS.get(new_role, 0)
    if new_level > old_level:
        return "promoted"
    if new_level < old_level:
        return "demoted"
    return "changed"
