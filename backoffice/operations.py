"""Turns validated actions into API calls and user-facing outcomes."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel

from . import get_logger
from .actions import (
    BulkDeposit,
    CreateAccount,
    CreateMember,
    CreateStaff,
    DeactivateAccount,
    DeactivateMember,
    Deposit,
    DeleteStaff,
    PurchaseShares,
    ReactivateAccount,
    ReactivateMember,
    UpdateMember,
    UpdateStaffRole,
    Withdraw,
)
from .api import BackOfficeAPI
from .formatting import format_currency
from .roles import role_change_verb

logger = get_logger(__name__)


@dataclass(frozen=True)
class Outcome:
    title: str
    message: str


FAILURE_TITLES: dict[type[BaseModel], str] = {
    CreateMember: "Registration Failed",
    UpdateMember: "Update Failed",
    CreateAccount: "Creation Failed",
    Deposit: "Transaction Failed",
    Withdraw: "Transaction Failed",
    DeactivateMember: "Deactivation Failed",
    ReactivateMember: "Reactivation Failed",
    DeactivateAccount: "Deactivation Failed",
    ReactivateAccount: "Reactivation Failed",
    BulkDeposit: "Bulk Deposit Failed",
    PurchaseShares: "Purchase Failed",
    CreateStaff: "Creation Failed",
    UpdateStaffRole: "Update Failed",
    DeleteStaff: "Deletion Failed",
}


def failure_title(action: BaseModel) -> str:
    return FAILURE_TITLES.get(type(action), "Action Failed")


class ActionDispatcher:
    """Callable executor for ``ListController.submit``."""

    def __init__(self, api: BackOfficeAPI):
        self.api = api

    async def __call__(self, action: BaseModel) -> Outcome:
        logger.info("Submitting %s", getattr(action, "kind", type(action).__name__))

        if isinstance(action, CreateMember):
            await self.api.members.create(action.payload())
            return Outcome(
                "Member Registered",
                f"{action.first_name} {action.last_name} has been successfully registered.",
            )

        if isinstance(action, UpdateMember):
            await self.api.members.update(action.member_id, action.payload())
            return Outcome(
                "Member Updated",
                f"{action.first_name} {action.last_name}'s information has been updated.",
            )

        if isinstance(action, CreateAccount):
            if action.account_type == "FORMAL":
                await self.api.accounts.create_formal(action.member_id, action.monthly_amount)
            else:
                await self.api.accounts.create_informal(action.member_id, action.target_amount)
            return Outcome(
                "Account Created",
                f"{action.account_type} account has been successfully created.",
            )

        if isinstance(action, Deposit):
            await self.api.accounts.deposit(action.account_id, action.amount, action.description)
            return Outcome(
                "Deposit Successful",
                f"{format_currency(action.amount)} has been deposited to account "
                f"{action.account_number}",
            )

        if isinstance(action, Withdraw):
            await self.api.accounts.withdraw(action.account_id, action.amount, action.description)
            return Outcome(
                "Withdrawal Successful",
                f"{format_currency(action.amount)} has been withdrawn from account "
                f"{action.account_number}",
            )

        if isinstance(action, DeactivateMember):
            await self.api.members.deactivate(action.member_id, action.reason)
            return Outcome(
                "Member Deactivated",
                f"{action.member_name or f'Member {action.member_id}'} has been deactivated",
            )

        if isinstance(action, ReactivateMember):
            await self.api.members.reactivate(action.member_id)
            return Outcome(
                "Member Reactivated",
                f"{action.member_name or f'Member {action.member_id}'} has been reactivated",
            )

        if isinstance(action, DeactivateAccount):
            await self.api.accounts.deactivate(action.account_id)
            return Outcome(
                "Account Deactivated",
                f"Account {action.account_number} has been deactivated",
            )

        if isinstance(action, ReactivateAccount):
            await self.api.accounts.reactivate(action.account_id)
            return Outcome(
                "Account Reactivated",
                f"Account {action.account_number} has been reactivated",
            )

        if isinstance(action, BulkDeposit):
            result = await self.api.accounts.bulk_deposit(
                action.work_domain, action.amount, action.description
            )
            return Outcome(
                "Bulk Deposit Completed",
                f"Successfully deposited to {result.success_count} accounts. "
                f"Total: {format_currency(result.total_amount)}",
            )

        if isinstance(action, PurchaseShares):
            await self.api.members.purchase_shares(action.member_id, action.quantity)
            return Outcome("Shares Purchased", f"Successfully purchased {action.quantity} shares.")

        if isinstance(action, CreateStaff):
            await self.api.auth.register(action.username, action.password, action.role)
            return Outcome("Staff Created", f"{action.username} was created as {action.role}")

        if isinstance(action, UpdateStaffRole):
            await self.api.auth.update_staff_role(action.username, action.role)
            verb = role_change_verb(action.current_role, action.role)
            return Outcome("Role Updated", f"{action.username} has been {verb} to {action.role}")

        if isinstance(action, DeleteStaff):
            await self.api.auth.delete_staff(action.username)
            return Outcome("Staff Deleted", f"{action.role.lower()} {action.username} was deleted")

        raise TypeError(f"No handler for {type(action).__name__}")
