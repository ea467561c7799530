"""End-to-end flows against the in-memory API in ``fake_api``."""

import asyncio

import pytest

from backoffice.actions import DeactivateMember, Deposit, Withdraw
from backoffice.api import ApiError, SessionExpiredError
from backoffice.listings import STATUS_FILTER, accounts_controller, members_controller, staff_controller
from backoffice.models import AuthUser
from backoffice.notifications import QueueSink


def login(api, username="manager", password="manager123"):
    user = asyncio.run(api.auth.login(username, password))
    api.session.login(user)
    return user


def test_login_stores_the_session(fake_api, session_file):
    user = login(fake_api)

    assert user.role == "MANAGER"
    assert fake_api.session.is_authenticated
    assert session_file.exists()


def test_bad_credentials_are_rejected(fake_api):
    with pytest.raises(ApiError) as excinfo:
        asyncio.run(fake_api.auth.login("manager", "wrong"))

    assert excinfo.value.status == 400
    assert excinfo.value.message == "Invalid username or password"
    assert not fake_api.session.is_authenticated


def test_members_list_from_page_envelope(fake_api):
    login(fake_api)
    controller = members_controller(fake_api, page_size=2)

    asyncio.run(controller.refresh())
    assert controller.page.total_items == 5
    assert controller.total_pages == 3
    assert [member.first_name for member in controller.items] == ["Abebe", "Sara"]

    asyncio.run(controller.set_filter(STATUS_FILTER, "active"))
    asyncio.run(controller.set_page(1))
    assert [member.first_name for member in controller.items] == ["Dawit", "Hana"]

    asyncio.run(controller.toggle_sort("firstName"))
    assert controller.query.page_index == 0
    assert controller.items[0].first_name == "Abebe"


def test_member_search_from_bare_array(fake_api):
    login(fake_api)
    controller = members_controller(fake_api)

    controller.set_search("girma")
    asyncio.run(controller.submit_search())

    assert [member.full_name for member in controller.items] == ["Hana Girma"]
    assert controller.page.total_pages == 1


def test_deposit_refreshes_then_notifies(fake_api, store):
    login(fake_api)
    sink = QueueSink()
    controller = accounts_controller(fake_api, sink)
    asyncio.run(controller.refresh())
    assert controller.items[0].owner_name == "Abebe Kebede"

    ok = asyncio.run(controller.submit(Deposit(account_id=1, account_number="ACC001", amount=500)))

    assert ok is True
    assert store.accounts[1]["currentBalance"] == 2000
    assert controller.items[0].account.current_balance == 2000
    [notification] = sink.drain()
    assert notification.level == "success"
    assert notification.message == "ETB 500.00 has been deposited to account ACC001"


def test_rejected_withdrawal_keeps_the_page(fake_api, store):
    login(fake_api)
    sink = QueueSink()
    controller = accounts_controller(fake_api, sink)
    asyncio.run(controller.refresh())
    before = controller.page

    ok = asyncio.run(controller.submit(Withdraw(account_id=3, account_number="ACC003", amount=300)))

    assert ok is False
    assert controller.page is before
    assert store.accounts[3]["currentBalance"] == 250
    [notification] = sink.drain()
    assert (notification.level, notification.title, notification.message) == (
        "error",
        "Transaction Failed",
        "Insufficient balance",
    )


def test_deactivated_member_drops_out_of_active_list(fake_api):
    login(fake_api)
    controller = members_controller(fake_api, QueueSink())
    asyncio.run(controller.set_filter(STATUS_FILTER, "active"))
    assert controller.page.total_items == 4

    asyncio.run(controller.submit(DeactivateMember(member_id=2, member_name="Sara Tesfaye", reason="Left")))

    assert [member.id for member in controller.items] == [1, 3, 4]


def test_rejected_token_tears_down_the_session(fake_api, session_file):
    torn_down = []
    fake_api.session.on_teardown(lambda: torn_down.append(True))
    fake_api.session.login(AuthUser(username="manager", role="MANAGER", token="stale"))

    with pytest.raises(SessionExpiredError) as excinfo:
        asyncio.run(fake_api.members.counts())

    assert excinfo.value.message == "Token expired"
    assert fake_api.session.expired
    assert not fake_api.session.is_authenticated
    assert not session_file.exists()
    assert torn_down == [True]


def test_staff_list_requires_admin(fake_api):
    login(fake_api)
    controller = staff_controller(fake_api)

    asyncio.run(controller.refresh())
    assert controller.status == "error"
    assert controller.error == "Failed to load staff members"

    login(fake_api, "admin", "admin123")
    asyncio.run(controller.refresh())
    assert [staff.username for staff in controller.items] == ["admin", "clerk", "manager"]
