"""Pydantic models for the records served by the cooperative API.

The API speaks camelCase JSON; fields are snake_case here and aliased.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

WorkDomain = Literal["ACADEMIC", "ADMINISTRATION", "CONTRACT", "OTHER"]
AccountType = Literal["FORMAL", "INFORMAL"]
Role = Literal["ASSISTANT", "MANAGER", "ADMIN"]
TransactionType = Literal["DEPOSIT", "WITHDRAWAL", "INTEREST", "PENALTY", "FEE"]

WORK_DOMAINS: dict[str, str] = {
    "ACADEMIC": "Academic Staff",
    "ADMINISTRATION": "Administration",
    "CONTRACT": "Contract Workers",
    "OTHER": "Other",
}
ROLES: tuple[str, ...] = ("ASSISTANT", "MANAGER", "ADMIN")


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Share(ApiModel):
    id: int
    share_value: float
    purchase_date: datetime | None = None
    certificate_number: str | None = None
    is_active: bool = True


class Transaction(ApiModel):
    id: int
    amount: float
    transaction_type: TransactionType
    description: str | None = None
    transaction_date: datetime | None = None
    reference_number: str | None = None


class SavingAccount(ApiModel):
    id: int
    account_number: str
    account_type: AccountType
    current_balance: float = 0.0
    opening_date: datetime | None = None
    is_active: bool = True
    monthly_amount: float | None = None
    target_amount: float | None = None
    member_id: int | None = None
    transactions: list[Transaction] = Field(default_factory=list)

    @property
    def target_progress(self) -> float | None:
        """Percentage of the informal savings target reached, capped at 100."""
        if not self.target_amount:
            return None
        return min(self.current_balance / self.target_amount * 100, 100.0)


class Member(ApiModel):
    id: int
    first_name: str
    last_name: str
    employee_id: str
    work_domain: WorkDomain
    email: str | None = None
    phone_number: str | None = None
    registration_date: datetime | None = None
    registration_fee: float = 0.0
    is_active: bool = True
    deactivation_date: datetime | None = None
    deactivation_reason: str | None = None
    shares: list[Share] = Field(default_factory=list)
    saving_accounts: list[SavingAccount] = Field(default_factory=list)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class StaffUser(ApiModel):
    username: str
    role: Role


class AuthUser(StaffUser):
    token: str


class AccountRow(BaseModel):
    """An account paired with its owning member, when one could be resolved."""

    account: SavingAccount
    member: Member | None = None
    member_is_placeholder: bool = False

    @property
    def id(self) -> int:
        return self.account.id

    @property
    def is_active(self) -> bool:
        return self.account.is_active

    @property
    def owner_name(self) -> str:
        return self.member.full_name if self.member else "Unknown"


class MemberCounts(ApiModel):
    total_members: int = 0
    active_members: int = 0
    inactive_members: int = 0


class AccountStats(ApiModel):
    total_accounts: int = 0
    active_accounts: int = 0
    inactive_accounts: int = 0
    formal_accounts: int = 0
    informal_accounts: int = 0
    total_balance: float = 0.0

    @property
    def average_balance(self) -> float:
        if not self.total_accounts:
            return 0.0
        return self.total_balance / self.total_accounts


class BulkDepositResult(ApiModel):
    success_count: int = 0
    total_amount: float = 0.0


def placeholder_member(account: SavingAccount) -> Member:
    """Stand-in owner for an account whose member could not be resolved."""

    return Member(
        id=account.member_id or account.id,
        first_name="Member",
        last_name=str(account.id),
        employee_id=f"EMP{account.id:03d}",
        work_domain="OTHER",
        is_active=True,
    )
