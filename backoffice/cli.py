"""Command-line console for the back office.

Examples:
  backoffice login --username alice
  backoffice members --search abebe --status active
  backoffice accounts --type FORMAL --page 2
  backoffice accounts --search ACC012
  backoffice deposit 12 500 --description "March contribution"
  backoffice stats

The session is kept in ``BACKOFFICE_SESSION_FILE`` between invocations.
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import sys
from collections.abc import Sequence
from typing import Any

import httpx

from . import get_logger
from .actions import Deposit, Withdraw
from .api import ApiClient, ApiError, BackOfficeAPI
from .config import ConsoleConfig
from .controller import ListController
from .formatting import format_currency
from .forms import ActionModal, FormErrors
from .listings import (
    ACCOUNT_TYPE_FILTER,
    DOMAIN_FILTER,
    STATUS_FILTER,
    accounts_controller,
    members_controller,
    staff_controller,
)
from .models import WORK_DOMAINS
from .notifications import LoggingSink, NotificationSink, notify_error, notify_success
from .operations import ActionDispatcher, failure_title
from .roles import ROLE_DESCRIPTIONS, STAFF, STATISTICS, can_access
from .session import FileSessionStore, SessionProvider
from .statistics import load_statistics, pie_slices
from .table import (
    ACCOUNT_COLUMNS,
    MEMBER_COLUMNS,
    STAFF_COLUMNS,
    TableView,
    account_actions,
    member_actions,
    render_table,
    staff_actions_for,
    to_frame,
)

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_UNAUTHENTICATED = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="backoffice",
        description="Cooperative savings back-office console",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__.split("\n\n")[1],
    )
    commands = parser.add_subparsers(dest="command", required=True)

    login = commands.add_parser("login", help="Log in and keep the session")
    login.add_argument("--username", required=True)
    login.add_argument("--password", help="Prompted for when omitted")

    commands.add_parser("logout", help="Forget the stored session")
    commands.add_parser("whoami", help="Show the logged-in staff user")

    def add_paging(sub: argparse.ArgumentParser, default_sort: str) -> None:
        sub.add_argument("--page", type=int, default=1, help="1-based page number")
        sub.add_argument("--size", type=int, help="Rows per page")
        sub.add_argument("--sort", default=default_sort, help=f"Sort field (default: {default_sort})")
        sub.add_argument("--desc", action="store_true", help="Sort descending")

    members = commands.add_parser("members", help="List members")
    add_paging(members, "id")
    members.add_argument("--search")
    members.add_argument("--status", choices=("active", "inactive"))
    members.add_argument("--domain", choices=sorted(WORK_DOMAINS))

    accounts = commands.add_parser("accounts", help="List savings accounts")
    add_paging(accounts, "id")
    accounts.add_argument("--status", choices=("active", "inactive"))
    accounts.add_argument("--search")
    accounts.add_argument("--type", dest="account_type", choices=("FORMAL", "INFORMAL"))

    staff = commands.add_parser("staff", help="List staff users (admin)")
    add_paging(staff, "username")
    staff.add_argument("--search")

    for name, verb in (("deposit", "Deposit into"), ("withdraw", "Withdraw from")):
        sub = commands.add_parser(name, help=f"{verb} an account")
        sub.add_argument("account_id", type=int)
        sub.add_argument("amount")
        sub.add_argument("--description")

    commands.add_parser("stats", help="System statistics (manager, admin)")
    return parser


def build_api(
    config: ConsoleConfig, transport: httpx.AsyncBaseTransport | None = None
) -> BackOfficeAPI:
    session = SessionProvider(FileSessionStore(config.session_file))
    session.restore()
    session.on_teardown(lambda: print("Session expired. Run `backoffice login` again.", file=sys.stderr))
    return BackOfficeAPI(ApiClient(config.api_base, session, config.timeout, transport))


def print_table(view: TableView) -> None:
    if view.empty:
        print(view.summary)
        return
    frame = to_frame(view)
    frame["Actions"] = [", ".join(row.actions) for row in view.rows]
    print(frame.to_string(index=False))
    print(view.summary)


def _prepare(
    controller: ListController[Any], args: argparse.Namespace, filters: dict[str, str | None]
) -> None:
    """Apply the command-line query in one go; nothing is fetched yet."""
    controller.query = controller.query.replace(
        page_index=max(args.page - 1, 0),
        page_size=args.size or controller.query.page_size,
        sort_field=args.sort,
        sort_direction="desc" if args.desc else "asc",
        search_text=getattr(args, "search", None),
        filters={key: value for key, value in filters.items() if value},
    )


async def _show_list(controller: ListController[Any], args: argparse.Namespace) -> int:
    await controller.refresh()
    if controller.status == "error":
        print(controller.error, file=sys.stderr)
        return EXIT_FAILED
    if args.page > 1 and args.page > controller.total_pages:
        print(f"Page {args.page} is out of range ({controller.total_pages} pages)", file=sys.stderr)
        return EXIT_FAILED
    return EXIT_OK


async def _members(api: BackOfficeAPI, sink: NotificationSink, args: argparse.Namespace) -> int:
    controller = members_controller(api, sink)
    _prepare(controller, args, {STATUS_FILTER: args.status, DOMAIN_FILTER: args.domain})
    code = await _show_list(controller, args)
    if code == EXIT_OK:
        print_table(render_table(controller.page, controller.query, MEMBER_COLUMNS, member_actions, noun="members"))
    return code


async def _accounts(api: BackOfficeAPI, sink: NotificationSink, args: argparse.Namespace) -> int:
    controller = accounts_controller(api, sink)
    _prepare(
        controller, args, {STATUS_FILTER: args.status, ACCOUNT_TYPE_FILTER: args.account_type}
    )
    code = await _show_list(controller, args)
    if code == EXIT_OK:
        print_table(
            render_table(controller.page, controller.query, ACCOUNT_COLUMNS, account_actions, noun="accounts")
        )
    return code


async def _staff(api: BackOfficeAPI, sink: NotificationSink, args: argparse.Namespace) -> int:
    if not can_access(api.session.role, STAFF):
        print("Staff management is restricted to administrators.", file=sys.stderr)
        return EXIT_FAILED
    controller = staff_controller(api, sink)
    _prepare(controller, args, {})
    code = await _show_list(controller, args)
    if code == EXIT_OK:
        actions = staff_actions_for(api.session.user.username if api.session.user else None)
        print_table(
            render_table(
                controller.page,
                controller.query,
                STAFF_COLUMNS,
                actions,
                key=lambda staff: staff.username,
                noun="staff members",
            )
        )
    return code


async def _transaction(api: BackOfficeAPI, sink: NotificationSink, args: argparse.Namespace) -> int:
    account = await api.accounts.get(args.account_id)
    context: dict[str, Any] = {"account_id": account.id, "account_number": account.account_number}
    model = Deposit
    if args.command == "withdraw":
        model = Withdraw
        context["available_balance"] = account.current_balance

    dispatcher = ActionDispatcher(api)

    async def execute(action) -> bool:
        try:
            outcome = await dispatcher(action)
        except ApiError as exc:
            notify_error(sink, failure_title(action), exc.message)
            return False
        notify_success(sink, outcome.title, outcome.message)
        return True

    modal = ActionModal(model, execute, context=context)
    form = {"amount": args.amount, "description": args.description}
    try:
        modal.validate(form)
    except FormErrors as exc:
        for field, message in exc.errors.items():
            print(f"{field}: {message}", file=sys.stderr)
        return EXIT_FAILED
    return EXIT_OK if await modal.submit(form) else EXIT_FAILED


async def _stats(api: BackOfficeAPI, args: argparse.Namespace) -> int:
    if not can_access(api.session.role, STATISTICS):
        print("Statistics are available to managers and administrators.", file=sys.stderr)
        return EXIT_FAILED

    stats = await load_statistics(api)
    members = stats.members
    print(f"Members: {members.total_members} ({members.active_members} active, {members.inactive_members} inactive)")
    print(f"Registered in the last 7 days: {stats.recent_registrations}")
    print("Members by work domain:")
    for piece in pie_slices(stats.members_by_domain):
        print(f"  {WORK_DOMAINS[piece.label]:<20} {piece.value:>6} {piece.percent:5.1f}%")

    accounts = stats.accounts
    if accounts is None:
        print("Account statistics are unavailable.")
        return EXIT_OK
    print(f"Accounts: {accounts.total_accounts} ({accounts.active_accounts} active, {accounts.inactive_accounts} inactive)")
    print(f"  Formal: {accounts.formal_accounts}  Informal: {accounts.informal_accounts}")
    print(f"  Total balance: {format_currency(accounts.total_balance)}")
    print(f"  Average balance: {format_currency(accounts.average_balance)}")
    return EXIT_OK


async def run(args: argparse.Namespace, api: BackOfficeAPI, sink: NotificationSink | None = None) -> int:
    sink = sink if sink is not None else LoggingSink()
    session = api.session

    if args.command == "login":
        password = args.password or getpass.getpass("Password: ")
        user = await api.auth.login(args.username, password)
        session.login(user)
        print(f"Logged in as {user.username} ({user.role})")
        return EXIT_OK

    if args.command == "logout":
        session.logout()
        print("Logged out")
        return EXIT_OK

    if not session.is_authenticated:
        print("Not logged in. Run `backoffice login` first.", file=sys.stderr)
        return EXIT_UNAUTHENTICATED

    if args.command == "whoami":
        user = session.user
        print(f"{user.username} ({user.role}): {ROLE_DESCRIPTIONS.get(user.role, '')}")
        return EXIT_OK
    if args.command == "members":
        return await _members(api, sink, args)
    if args.command == "accounts":
        return await _accounts(api, sink, args)
    if args.command == "staff":
        return await _staff(api, sink, args)
    if args.command in ("deposit", "withdraw"):
        return await _transaction(api, sink, args)
    if args.command == "stats":
        return await _stats(api, args)
    raise ValueError(f"Unknown command {args.command}")


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = ConsoleConfig.from_env()
    except ValueError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return EXIT_FAILED

    api = build_api(config)
    try:
        code = asyncio.run(run(args, api))
    except ApiError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        code = EXIT_UNAUTHENTICATED if api.session.expired else EXIT_FAILED
    except KeyboardInterrupt:
        code = EXIT_FAILED
    return code


if __name__ == "__main__":
    sys.exit(main())
