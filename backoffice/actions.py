"""Validated mutation intents, one model per kind of action.

``ActionRequest`` is a discriminated union on ``kind``; a raw form mapping
with a ``kind`` key validates straight into the right model through
``ACTION_ADAPTER``.
"""

from __future__ import annotations

import re
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator, model_validator

from .models import Role, WorkDomain

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN = re.compile(r"^\+?[\d\s\-()]+$")
MIN_MONTHLY_AMOUNT = 500


def _required(value: str, label: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValueError(f"{label} is required")
    return value


def _optional(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


class Action(BaseModel):
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)


class MemberDetails(Action):
    first_name: str = Field("", validate_default=True)
    last_name: str = Field("", validate_default=True)
    email: str | None = None
    phone_number: str | None = None

    @field_validator("first_name")
    @classmethod
    def first_name_required(cls, value: str) -> str:
        return _required(value, "First name")

    @field_validator("last_name")
    @classmethod
    def last_name_required(cls, value: str) -> str:
        return _required(value, "Last name")

    @field_validator("email", mode="before")
    @classmethod
    def valid_email(cls, value: str | None) -> str | None:
        value = _optional(value)
        if value and not EMAIL_PATTERN.match(value):
            raise ValueError("Please enter a valid email address")
        return value

    @field_validator("phone_number", mode="before")
    @classmethod
    def valid_phone(cls, value: str | None) -> str | None:
        value = _optional(value)
        if value and not PHONE_PATTERN.match(value):
            raise ValueError("Please enter a valid phone number")
        return value

    def payload(self) -> dict[str, str]:
        """JSON body in the API's camelCase, without empty optionals."""
        body = {
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "phoneNumber": self.phone_number,
        }
        return {key: value for key, value in body.items() if value is not None}


class CreateMember(MemberDetails):
    kind: Literal["create_member"] = "create_member"
    employee_id: str = Field("", validate_default=True)
    work_domain: WorkDomain = Field(None, validate_default=True)

    @field_validator("employee_id")
    @classmethod
    def employee_id_required(cls, value: str) -> str:
        return _required(value, "Employee ID")

    @field_validator("work_domain", mode="before")
    @classmethod
    def work_domain_required(cls, value: str | None) -> str:
        return _required(value or "", "Work domain")

    def payload(self) -> dict[str, str]:
        body = super().payload()
        body["employeeId"] = self.employee_id
        body["workDomain"] = self.work_domain
        return body


class UpdateMember(MemberDetails):
    kind: Literal["update_member"] = "update_member"
    member_id: int


class CreateAccount(Action):
    kind: Literal["create_account"] = "create_account"
    member_id: int = Field(gt=0)
    account_type: Literal["FORMAL", "INFORMAL"] = "FORMAL"
    monthly_amount: float | None = None
    target_amount: float | None = None

    @field_validator("monthly_amount", "target_amount", mode="before")
    @classmethod
    def blank_amount_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @model_validator(mode="after")
    def amounts_match_type(self) -> "CreateAccount":
        if self.account_type == "FORMAL":
            if self.monthly_amount is None or self.monthly_amount < MIN_MONTHLY_AMOUNT:
                raise ValueError(f"Minimum monthly deposit is ETB {MIN_MONTHLY_AMOUNT}")
        elif self.target_amount is not None and self.target_amount < 1:
            raise ValueError("Target amount must be at least ETB 1")
        return self


class AccountTransaction(Action):
    account_id: int
    account_number: str
    amount: float = Field(gt=0)
    description: str | None = None

    @field_validator("description", mode="before")
    @classmethod
    def blank_description_is_none(cls, value: str | None) -> str | None:
        return _optional(value)


class Deposit(AccountTransaction):
    kind: Literal["deposit"] = "deposit"


class Withdraw(AccountTransaction):
    kind: Literal["withdraw"] = "withdraw"
    available_balance: float | None = None

    @model_validator(mode="after")
    def within_balance(self) -> "Withdraw":
        if self.available_balance is not None and self.amount > self.available_balance:
            raise ValueError("Amount exceeds the available balance")
        return self


class DeactivateMember(Action):
    kind: Literal["deactivate_member"] = "deactivate_member"
    member_id: int
    member_name: str = ""
    reason: str = Field("", validate_default=True)

    @field_validator("reason")
    @classmethod
    def reason_required(cls, value: str) -> str:
        return _required(value, "Reason")


class ReactivateMember(Action):
    kind: Literal["reactivate_member"] = "reactivate_member"
    member_id: int
    member_name: str = ""


class DeactivateAccount(Action):
    kind: Literal["deactivate_account"] = "deactivate_account"
    account_id: int
    account_number: str


class ReactivateAccount(Action):
    kind: Literal["reactivate_account"] = "reactivate_account"
    account_id: int
    account_number: str


class BulkDeposit(Action):
    kind: Literal["bulk_deposit"] = "bulk_deposit"
    work_domain: WorkDomain = Field(None, validate_default=True)
    amount: float = Field(gt=0)
    description: str | None = None

    @field_validator("work_domain", mode="before")
    @classmethod
    def work_domain_required(cls, value: str | None) -> str:
        return _required(value or "", "Work domain")

    @field_validator("description", mode="before")
    @classmethod
    def blank_description_is_none(cls, value: str | None) -> str | None:
        return _optional(value)


class PurchaseShares(Action):
    kind: Literal["purchase_shares"] = "purchase_shares"
    member_id: int
    quantity: int = Field(ge=1)


class CreateStaff(Action):
    kind: Literal["create_staff"] = "create_staff"
    username: str = Field("", validate_default=True)
    password: str = Field("", validate_default=True)
    role: Role = "ASSISTANT"

    @field_validator("username")
    @classmethod
    def username_required(cls, value: str) -> str:
        return _required(value, "Username")

    @field_validator("password")
    @classmethod
    def password_required(cls, value: str) -> str:
        return _required(value, "Password")


class UpdateStaffRole(Action):
    kind: Literal["update_staff_role"] = "update_staff_role"
    username: str
    current_role: Role
    role: Role

    @model_validator(mode="after")
    def role_changes(self) -> "UpdateStaffRole":
        if self.role == self.current_role:
            raise ValueError(f"{self.username} already has the {self.role} role")
        return self


class DeleteStaff(Action):
    kind: Literal["delete_staff"] = "delete_staff"
    username: str
    role: Role


ActionRequest = Annotated[
    Union[
        CreateMember,
        UpdateMember,
        CreateAccount,
        Deposit,
        Withdraw,
        DeactivateMember,
        ReactivateMember,
        DeactivateAccount,
        ReactivateAccount,
        BulkDeposit,
        PurchaseShares,
        CreateStaff,
        UpdateStaffRole,
        DeleteStaff,
    ],
    Field(discriminator="kind"),
]

ACTION_ADAPTER: TypeAdapter[ActionRequest] = TypeAdapter(ActionRequest)
