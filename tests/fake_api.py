"""In-memory stand-in for the cooperative API, served over httpx.ASGITransport.

Only the endpoints the console exercises are implemented. Members come back
as page envelopes, member search as a bare array, accounts as envelopes and
transactions wrapped in ``{message, data}``, so both response shapes and the
wrapper are covered.
"""

import secrets
from dataclasses import dataclass, field
from typing import Any

from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Query, status
from fastapi.responses import JSONResponse


@dataclass
class FakeStore:
    members: dict[int, dict[str, Any]] = field(default_factory=dict)
    accounts: dict[int, dict[str, Any]] = field(default_factory=dict)
    staff: dict[str, dict[str, str]] = field(default_factory=dict)
    tokens: dict[str, str] = field(default_factory=dict)

    @classmethod
    def seeded(cls) -> "FakeStore":
        store = cls()
        names = [
            ("Abebe", "Kebede", "ACADEMIC"),
            ("Sara", "Tesfaye", "ADMINISTRATION"),
            ("Dawit", "Haile", "CONTRACT"),
            ("Hana", "Girma", "ACADEMIC"),
            ("Yonas", "Bekele", "OTHER"),
        ]
        for index, (first, last, domain) in enumerate(names, start=1):
            store.members[index] = {
                "id": index,
                "firstName": first,
                "lastName": last,
                "employeeId": f"EMP{index:03d}",
                "workDomain": domain,
                "email": f"{first.lower()}@coop.example",
                "isActive": index != 5,
                "registrationDate": f"2024-0{index}-01T09:00:00",
            }
        balances = [1500.0, 0.0, 250.0]
        for index, balance in enumerate(balances, start=1):
            store.accounts[index] = {
                "id": index,
                "accountNumber": f"ACC{index:03d}",
                "accountType": "FORMAL" if index != 2 else "INFORMAL",
                "currentBalance": balance,
                "isActive": True,
                "memberId": index,
                "monthlyAmount": 500.0 if index != 2 else None,
            }
        store.staff = {
            "admin": {"username": "admin", "password": "admin123", "role": "ADMIN"},
            "manager": {"username": "manager", "password": "manager123", "role": "MANAGER"},
            "clerk": {"username": "clerk", "password": "clerk123", "role": "ASSISTANT"},
        }
        return store


def envelope(records: list[dict[str, Any]], page: int, size: int) -> dict[str, Any]:
    start = page * size
    content = records[start : start + size]
    total_pages = -(-len(records) // size) if size else 0
    return {
        "content": content,
        "totalElements": len(records),
        "totalPages": total_pages,
        "size": size,
        "number": page,
        "first": page == 0,
        "last": page >= total_pages - 1,
        "numberOfElements": len(content),
    }


def sort_records(records: list[dict[str, Any]], sort: str) -> list[dict[str, Any]]:
    field_name, _, direction = sort.partition(",")
    return sorted(
        records,
        key=lambda record: (record.get(field_name) is None, record.get(field_name)),
        reverse=direction == "desc",
    )


def create_app(store: FakeStore) -> FastAPI:
    def get_store() -> FakeStore:
        return store

    def current_role(
        authorization: str | None = Header(None), store: FakeStore = Depends(get_store)
    ) -> str:
        token = (authorization or "").removeprefix("Bearer ").strip()
        if token not in store.tokens:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired")
        return store.tokens[token]

    auth = APIRouter(prefix="/api/auth")
    members = APIRouter(prefix="/api/members", dependencies=[Depends(current_role)])
    accounts = APIRouter(prefix="/api/accounts", dependencies=[Depends(current_role)])

    @auth.post("/login")
    def login(body: dict[str, str], store: FakeStore = Depends(get_store)) -> Any:
        user = store.staff.get(body.get("username", ""))
        if user is None or user["password"] != body.get("password"):
            return JSONResponse({"message": "Invalid username or password"}, status_code=400)
        token = secrets.token_hex(8)
        store.tokens[token] = user["role"]
        return {"username": user["username"], "role": user["role"], "token": token}

    @auth.get("/staff")
    def list_staff(
        page: int = Query(0, ge=0),
        size: int = Query(10, ge=1),
        sort: str = "username",
        direction: str = "asc",
        role: str = Depends(current_role),
        store: FakeStore = Depends(get_store),
    ) -> Any:
        if role != "ADMIN":
            return JSONResponse({"message": "Admin access required"}, status_code=403)
        records = [{"username": user["username"], "role": user["role"]} for user in store.staff.values()]
        return envelope(sort_records(records, f"{sort},{direction}"), page, size)

    @members.get("")
    def list_members(
        page: int = Query(0, ge=0),
        size: int = Query(10, ge=1),
        sort: str = "id,asc",
        includeInactive: bool = False,
        store: FakeStore = Depends(get_store),
    ) -> dict[str, Any]:
        records = [m for m in store.members.values() if includeInactive or m["isActive"]]
        return envelope(sort_records(records, sort), page, size)

    @members.get("/search")
    def search_members(q: str, store: FakeStore = Depends(get_store)) -> list[dict[str, Any]]:
        needle = q.lower()
        return [
            m
            for m in store.members.values()
            if needle in f"{m['firstName']} {m['lastName']} {m['employeeId']}".lower()
        ]

    @members.get("/stats/count")
    def count_members(store: FakeStore = Depends(get_store)) -> dict[str, int]:
        active = sum(1 for m in store.members.values() if m["isActive"])
        return {
            "totalMembers": len(store.members),
            "activeMembers": active,
            "inactiveMembers": len(store.members) - active,
        }

    @members.get("/{member_id}")
    def get_member(member_id: int, store: FakeStore = Depends(get_store)) -> dict[str, Any]:
        if member_id not in store.members:
            raise HTTPException(status_code=404, detail="Member not found")
        return store.members[member_id]

    @members.put("/{member_id}/deactivate")
    def deactivate_member(member_id: int, reason: str, store: FakeStore = Depends(get_store)) -> Any:
        member = store.members[member_id]
        member.update(isActive=False, deactivationReason=reason)
        return {"message": "Member deactivated", "data": member}

    @accounts.get("")
    def list_accounts(
        page: int = Query(0, ge=0),
        size: int = Query(10, ge=1),
        sort: str = "id,asc",
        search: str | None = None,
        store: FakeStore = Depends(get_store),
    ) -> dict[str, Any]:
        records = list(store.accounts.values())
        if search:
            records = [a for a in records if search.lower() in a["accountNumber"].lower()]
        return envelope(sort_records(records, sort), page, size)

    @accounts.get("/{account_id}")
    def get_account(account_id: int, store: FakeStore = Depends(get_store)) -> dict[str, Any]:
        if account_id not in store.accounts:
            raise HTTPException(status_code=404, detail="Account not found")
        return store.accounts[account_id]

    @accounts.post("/{account_id}/deposit")
    def deposit(
        account_id: int,
        amount: float = Query(gt=0),
        description: str | None = None,
        store: FakeStore = Depends(get_store),
    ) -> dict[str, Any]:
        account = store.accounts[account_id]
        account["currentBalance"] += amount
        return {"message": "Deposit successful", "data": account}

    @accounts.post("/{account_id}/withdraw")
    def withdraw(
        account_id: int,
        amount: float = Query(gt=0),
        description: str | None = None,
        store: FakeStore = Depends(get_store),
    ) -> Any:
        account = store.accounts[account_id]
        if amount > account["currentBalance"]:
            return JSONResponse({"message": "Insufficient balance"}, status_code=400)
        account["currentBalance"] -= amount
        return {"message": "Withdrawal successful", "data": account}

    app = FastAPI(title="Fake Cooperative API")
    app.include_router(auth)
    app.include_router(members)
    app.include_router(accounts)
    return app
