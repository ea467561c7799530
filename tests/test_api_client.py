import asyncio

import httpx
import pytest

from backoffice.api import ApiClient, ApiError, BackOfficeAPI, SessionExpiredError, unwrap
from backoffice.pagination import ListQuery


def test_bearer_token_is_attached(mock_api):
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"totalMembers": 3, "activeMembers": 2, "inactiveMembers": 1})

    counts = asyncio.run(mock_api(handler).members.counts())

    assert seen[0].headers["Authorization"] == "Bearer tok-123"
    assert seen[0].url.path == "/api/members/stats/count"
    assert counts.active_members == 2


def test_no_header_without_a_session(session):
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"username": "admin", "role": "ADMIN", "token": "t"})

    api = BackOfficeAPI(ApiClient("http://testserver/api", session, transport=httpx.MockTransport(handler)))
    user = asyncio.run(api.auth.login("admin", "secret"))

    assert "Authorization" not in seen[0].headers
    assert user.token == "t"


def test_unauthorized_response_tears_session_down(mock_api, logged_in, session_file):
    teardowns = []
    logged_in.on_teardown(lambda: teardowns.append(True))
    assert session_file.exists()

    api = mock_api(lambda request: httpx.Response(401, json={"message": "Token expired"}))
    with pytest.raises(SessionExpiredError) as excinfo:
        asyncio.run(api.accounts.get(1))

    assert excinfo.value.status == 401
    assert excinfo.value.message == "Token expired"
    assert logged_in.is_authenticated is False
    assert logged_in.expired is True
    assert not session_file.exists()
    assert teardowns == [True]


def test_error_message_comes_from_the_body(mock_api):
    api = mock_api(lambda request: httpx.Response(409, json={"detail": "Employee ID already registered"}))
    with pytest.raises(ApiError) as excinfo:
        asyncio.run(api.members.create({"firstName": "A"}))

    assert excinfo.value.status == 409
    assert excinfo.value.message == "Employee ID already registered"


def test_transport_failure_becomes_api_error(mock_api, logged_in):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ApiError) as excinfo:
        asyncio.run(mock_api(handler).members.counts())

    assert excinfo.value.status is None
    assert "connection refused" in excinfo.value.message
    assert logged_in.is_authenticated


def test_envelope_and_array_lists_both_become_pages(mock_api):
    member = {"id": 1, "firstName": "Abebe", "lastName": "Kebede", "employeeId": "EMP001", "workDomain": "ACADEMIC"}

    def handler(request):
        if request.url.path.endswith("/search"):
            return httpx.Response(200, json=[member] * 7)
        return httpx.Response(
            200,
            json={"content": [member], "totalElements": 23, "totalPages": 3, "size": 10, "number": 2},
        )

    api = mock_api(handler)
    listed = asyncio.run(api.members.get_all(ListQuery(page_index=2)))
    found = asyncio.run(api.members.search("abebe", ListQuery(page_size=5)))

    assert listed.total_items == 23
    assert listed.is_last is True
    assert listed.items[0].full_name == "Abebe Kebede"
    assert found.total_items == 7
    assert len(found.items) == 5
    assert found.total_pages == 2


def test_list_params(mock_api):
    seen = []

    def handler(request):
        seen.append(request.url.params)
        return httpx.Response(200, json=[])

    api = mock_api(handler)
    query = ListQuery(page_index=1, page_size=20, sort_field="username", sort_direction="desc", filters={"status": "active"})
    asyncio.run(api.members.get_all(query, include_inactive=True))
    asyncio.run(api.members.search("sara", query))
    asyncio.run(api.auth.list_staff(query))

    members, search, staff = seen
    assert members["sort"] == "username,desc"
    assert members["includeInactive"] == "true"
    assert "status" not in members
    assert search["q"] == "sara"
    assert "search" not in search
    assert staff["sort"] == "username"
    assert staff["direction"] == "desc"


def test_wrapped_responses_are_unwrapped(mock_api):
    account = {"id": 7, "accountNumber": "ACC007", "accountType": "INFORMAL", "currentBalance": 20}
    api = mock_api(lambda request: httpx.Response(200, json={"message": "ok", "data": account}))

    fetched = asyncio.run(api.accounts.get(7))

    assert fetched.account_number == "ACC007"
    assert unwrap({"message": "only a message"}) == {"message": "only a message"}
    assert unwrap([1, 2]) == [1, 2]


def test_bulk_deposit_reports_aggregates(mock_api):
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"message": "done", "data": {"successCount": 12, "totalAmount": 6000}})

    result = asyncio.run(mock_api(handler).accounts.bulk_deposit("ACADEMIC", 500, "March"))

    assert seen[0].url.params["workDomain"] == "ACADEMIC"
    assert seen[0].url.params["description"] == "March"
    assert result.success_count == 12
    assert result.total_amount == 6000


def test_empty_body_returns_none(mock_api):
    api = mock_api(lambda request: httpx.Response(204))
    assert asyncio.run(api.accounts.close(3)) is None
