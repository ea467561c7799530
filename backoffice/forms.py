"""Action modals: collect one form, validate it, hand it to a submit path.

A modal never talks to the API. It turns raw widget values into an
``ActionRequest`` and passes that to whatever submit callable it was given,
normally ``ListController.submit``, so refresh and notification ordering
stays in one place.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from pydantic import BaseModel, ValidationError

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

FORM_ERROR_KEY = "form"

MODAL_TITLES: dict[type[BaseModel], str] = {
    CreateMember: "Register New Member",
    UpdateMember: "Update Member",
    CreateAccount: "Create New Account",
    Deposit: "Deposit Money",
    Withdraw: "Withdraw Money",
    DeactivateMember: "Deactivate Member",
    ReactivateMember: "Reactivate Member",
    DeactivateAccount: "Deactivate Account",
    ReactivateAccount: "Reactivate Account",
    BulkDeposit: "Bulk Deposit",
    PurchaseShares: "Purchase Shares",
    CreateStaff: "Create Staff Member",
    UpdateStaffRole: "Update Staff Role",
    DeleteStaff: "Delete Staff Member",
}


class FormErrors(Exception):
    """Client-side validation failed; maps field name to message."""

    def __init__(self, errors: dict[str, str]):
        super().__init__("; ".join(f"{field}: {message}" for field, message in errors.items()))
        self.errors = errors

    @classmethod
    def from_validation_error(cls, exc: ValidationError) -> "FormErrors":
        errors: dict[str, str] = {}
        for error in exc.errors():
            field = str(error["loc"][-1]) if error["loc"] else FORM_ERROR_KEY
            if error["type"] == "value_error":
                message = str(error["ctx"]["error"])
            else:
                message = error["msg"]
            errors.setdefault(field, message)
        return cls(errors)


class ActionModal:
    """One open modal: the action model it builds plus fixed context fields.

    ``context`` carries values the user does not type, such as the target
    account id, and overrides anything with the same key in the form.
    """

    def __init__(
        self,
        model: type[BaseModel],
        submit: Callable[[BaseModel], Awaitable[bool]],
        context: Mapping[str, Any] | None = None,
    ):
        self.model = model
        self.submit_action = submit
        self.context = dict(context or {})
        self.errors: dict[str, str] = {}

    @property
    def title(self) -> str:
        return MODAL_TITLES.get(self.model, self.model.__name__)

    def validate(self, form: Mapping[str, Any]) -> BaseModel:
        """Build the action from ``form``; raises ``FormErrors`` on bad input."""
        try:
            action = self.model.model_validate({**form, **self.context})
        except ValidationError as exc:
            failure = FormErrors.from_validation_error(exc)
            self.errors = failure.errors
            raise failure from exc
        self.errors = {}
        return action

    async def submit(self, form: Mapping[str, Any]) -> bool:
        """Validate and submit. Returns ``True`` when the modal may close.

        Validation failures are kept on ``errors`` and never reach the network.
        """
        try:
            action = self.validate(form)
        except FormErrors:
            return False
        return await self.submit_action(action)
