"""HTTP client for the cooperative back-office API.

Every request gets the bearer token of the injected ``SessionProvider``;
a ``401`` from any endpoint tears that session down before the error
reaches the caller. List endpoints return ``Page`` objects, whichever of
the two shapes (bare array or page envelope) the server sent.
"""

from __future__ import annotations

from typing import Any

import httpx

from . import get_logger
from .models import (
    AccountStats,
    AuthUser,
    BulkDepositResult,
    Member,
    MemberCounts,
    SavingAccount,
    StaffUser,
)
from .pagination import ListQuery, Page, normalize_page
from .session import SessionProvider

logger = get_logger(__name__)

GENERIC_ERROR_MESSAGE = "The server could not complete the request"


class ApiError(Exception):
    """A request failed at the transport level or was rejected by the API."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.message = message
        self.status = status


class SessionExpiredError(ApiError):
    """The API answered ``401``; the session has already been torn down."""


def server_message(response: httpx.Response) -> str | None:
    """Pull the human-readable message out of an error body, if there is one."""

    try:
        body = response.json()
    except ValueError:
        return response.text.strip() or None
    if isinstance(body, dict):
        for key in ("message", "detail", "error"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return None


def unwrap(payload: Any) -> Any:
    """Strip the ``{"message": ..., "data": ...}`` wrapper some endpoints use."""

    if isinstance(payload, dict) and "data" in payload and set(payload) <= {"message", "data"}:
        return payload["data"]
    return payload


class ApiClient:
    def __init__(
        self,
        base_url: str,
        session: SessionProvider,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self.transport,
            headers={"Content-Type": "application/json"},
            event_hooks={
                "request": [self._attach_token],
                "response": [self._watch_for_expiry],
            },
        )

    async def _attach_token(self, request: httpx.Request) -> None:
        token = self.session.token
        if token:
            request.headers["Authorization"] = f"Bearer {token}"

    async def _watch_for_expiry(self, response: httpx.Response) -> None:
        if response.status_code == 401:
            self.session.expire()

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> Any:
        """Send one request and return the decoded JSON body (``None`` when empty)."""

        try:
            async with self._client() as client:
                response = await client.request(method, path, params=params, json=json)
        except httpx.HTTPError as exc:
            logger.error("%s %s failed: %s", method, path, exc)
            raise ApiError(f"Could not reach the server: {exc}") from exc

        if response.status_code == 401:
            raise SessionExpiredError(
                server_message(response) or "Your session has expired, please log in again",
                status=401,
            )
        if response.is_error:
            message = server_message(response) or GENERIC_ERROR_MESSAGE
            logger.error("%s %s -> %s: %s", method, path, response.status_code, message)
            raise ApiError(message, status=response.status_code)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, params: dict[str, Any] | None = None, json: Any = None) -> Any:
        return await self.request("POST", path, params=params, json=json)

    async def put(self, path: str, params: dict[str, Any] | None = None, json: Any = None) -> Any:
        return await self.request("PUT", path, params=params, json=json)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)


class AuthAPI:
    def __init__(self, client: ApiClient):
        self.client = client

    async def login(self, username: str, password: str) -> AuthUser:
        payload = await self.client.post(
            "/auth/login", json={"username": username, "password": password}
        )
        return AuthUser.model_validate(unwrap(payload))

    async def register(self, username: str, password: str, role: str) -> Any:
        return await self.client.post(
            "/auth/register",
            json={"username": username, "password": password, "role": role},
        )

    async def list_staff(self, query: ListQuery) -> Page[StaffUser]:
        # The staff endpoint takes sort and direction as separate parameters.
        params = query.to_params()
        params["sort"] = query.sort_field
        params["direction"] = query.sort_direction
        payload = await self.client.get("/auth/staff", params=params)
        return normalize_page(unwrap(payload), query, StaffUser.model_validate)

    async def delete_staff(self, username: str) -> Any:
        return await self.client.delete(f"/auth/staff/{username}")

    async def update_staff_role(self, username: str, role: str) -> Any:
        return await self.client.put(f"/auth/staff/{username}/role", json={"role": role})


class MembersAPI:
    def __init__(self, client: ApiClient):
        self.client = client

    async def get_all(self, query: ListQuery, include_inactive: bool = False) -> Page[Member]:
        params = query.to_params(server_filters=())
        if include_inactive:
            params["includeInactive"] = True
        payload = await self.client.get("/members", params=params)
        return normalize_page(payload, query, Member.model_validate)

    async def search(self, text: str, query: ListQuery) -> Page[Member]:
        params = query.to_params(server_filters=())
        params.pop("search", None)
        params["q"] = text
        payload = await self.client.get("/members/search", params=params)
        return normalize_page(payload, query, Member.model_validate)

    async def by_domain(self, domain: str, query: ListQuery) -> Page[Member]:
        payload = await self.client.get(
            f"/members/domain/{domain}", params=query.to_params(server_filters=())
        )
        return normalize_page(payload, query, Member.model_validate)

    async def get(self, member_id: int) -> Member:
        return Member.model_validate(unwrap(await self.client.get(f"/members/{member_id}")))

    async def get_full(self, member_id: int) -> Member:
        return Member.model_validate(unwrap(await self.client.get(f"/members/{member_id}/full")))

    async def create(self, data: dict[str, Any]) -> Member:
        return Member.model_validate(unwrap(await self.client.post("/members", json=data)))

    async def update(self, member_id: int, data: dict[str, Any]) -> Member:
        payload = await self.client.put(f"/members/{member_id}", json=data)
        return Member.model_validate(unwrap(payload))

    async def deactivate(self, member_id: int, reason: str) -> Any:
        return await self.client.put(f"/members/{member_id}/deactivate", params={"reason": reason})

    async def reactivate(self, member_id: int) -> Any:
        return await self.client.put(f"/members/{member_id}/reactivate")

    async def eligibility(self, member_id: int) -> bool:
        return bool(unwrap(await self.client.get(f"/members/{member_id}/eligibility")))

    async def shares_value(self, member_id: int) -> float:
        return float(unwrap(await self.client.get(f"/members/{member_id}/shares/value")) or 0)

    async def counts(self) -> MemberCounts:
        return MemberCounts.model_validate(unwrap(await self.client.get("/members/stats/count")))

    async def purchase_shares(self, member_id: int, quantity: int) -> Any:
        return await self.client.post(f"/members/{member_id}/shares", params={"quantity": quantity})


class AccountsAPI:
    def __init__(self, client: ApiClient):
        self.client = client

    async def get_all(self, query: ListQuery) -> Page[SavingAccount]:
        payload = await self.client.get("/accounts", params=query.to_params(server_filters=()))
        return normalize_page(unwrap(payload), query, SavingAccount.model_validate)

    async def get(self, account_id: int) -> SavingAccount:
        payload = await self.client.get(f"/accounts/{account_id}")
        return SavingAccount.model_validate(unwrap(payload))

    async def by_number(self, account_number: str) -> SavingAccount:
        payload = await self.client.get(f"/accounts/number/{account_number}")
        return SavingAccount.model_validate(unwrap(payload))

    async def by_member(self, member_id: int, active_only: bool = False) -> list[SavingAccount]:
        path = f"/accounts/member/{member_id}" + ("/active" if active_only else "")
        payload = unwrap(await self.client.get(path)) or []
        return [SavingAccount.model_validate(item) for item in payload]

    async def member_balance(self, member_id: int) -> float:
        return float(unwrap(await self.client.get(f"/accounts/member/{member_id}/balance")) or 0)

    async def create_formal(self, member_id: int, monthly_amount: float) -> Any:
        return await self.client.post(
            "/accounts/formal",
            params={"memberId": member_id, "monthlyAmount": monthly_amount},
        )

    async def create_informal(self, member_id: int, target_amount: float | None = None) -> Any:
        params: dict[str, Any] = {"memberId": member_id}
        if target_amount:
            params["targetAmount"] = target_amount
        return await self.client.post("/accounts/informal", params=params)

    async def deposit(self, account_id: int, amount: float, description: str | None = None) -> Any:
        params: dict[str, Any] = {"amount": amount}
        if description:
            params["description"] = description
        return await self.client.post(f"/accounts/{account_id}/deposit", params=params)

    async def monthly_deposit(self, account_id: int) -> Any:
        return await self.client.post(f"/accounts/{account_id}/deposit/monthly")

    async def withdraw(self, account_id: int, amount: float, description: str | None = None) -> Any:
        params: dict[str, Any] = {"amount": amount}
        if description:
            params["description"] = description
        return await self.client.post(f"/accounts/{account_id}/withdraw", params=params)

    async def close(self, account_id: int) -> Any:
        return await self.client.put(f"/accounts/{account_id}/close")

    async def deactivate(self, account_id: int) -> Any:
        return await self.client.put(f"/accounts/{account_id}/deactivate")

    async def reactivate(self, account_id: int) -> Any:
        return await self.client.put(f"/accounts/{account_id}/reactivate")

    async def bulk_deposit(
        self, work_domain: str, amount: float, description: str | None = None
    ) -> BulkDepositResult:
        params: dict[str, Any] = {"workDomain": work_domain, "amount": amount}
        if description:
            params["description"] = description
        payload = await self.client.post("/accounts/bulk-deposit", params=params)
        return BulkDepositResult.model_validate(unwrap(payload) or {})

    async def stats(self) -> AccountStats:
        return AccountStats.model_validate(unwrap(await self.client.get("/accounts/stats")))


class BackOfficeAPI:
    """The resource clients bundled around one ``ApiClient``."""

    def __init__(self, client: ApiClient):
        self.client = client
        self.auth = AuthAPI(client)
        self.members = MembersAPI(client)
        self.accounts = AccountsAPI(client)

    @property
    def session(self) -> SessionProvider:
        return self.client.session
