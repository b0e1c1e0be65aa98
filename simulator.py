"""Interactive CLI contact board — drive the client layer without a browser."""

import asyncio
from datetime import date
from pathlib import Path

from contact_crm.client.api import CRMClient
from contact_crm.client.board import ContactBoard
from contact_crm.client.commands import (
    AddContact,
    RemoveContact,
    SetCalled,
    UpdateFollowUpDate,
    UpdateRemark,
    UpdateStatus,
)
from contact_crm.client.session import ClientSession
from contact_crm.config import settings
from contact_crm.errors import CRMError

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
BOLD = "\033[1m"
RESET = "\033[0m"

SESSION_FILE = Path.home() / ".contact_crm" / "session.json"

HELP = f"""{DIM}Commands:
  list                          show your contacts
  add <name> <phone>            add a contact
  call <id> | uncall <id>       tick / untick "called"
  status <id> <future|rejected|lead>
  remark <id> <text...>
  date <id> <YYYY-MM-DD|none>
  delete <id>
  profile                       your totals
  stats                         employee statistics (admins)
  logout | quit{RESET}
"""


def _print_contacts(board: ContactBoard) -> None:
    for c in board.contacts:
        mark = "☑" if c.called else "☐"
        follow_up = c.follow_up_date.isoformat() if c.follow_up_date else "-"
        print(f"  {mark} #{c.id:<4} {c.name:<20} {c.phone:<16} {c.status.value:<9} {follow_up:<11} {c.remark}")
    counts = board.status_counts()
    print(
        f"{DIM}  total {counts['total']} · future {counts['future']} · "
        f"leads {counts['lead']} · rejected {counts['rejected']}{RESET}"
    )


def _parse_command(words: list[str]):
    verb, args = words[0].lower(), words[1:]
    if verb == "add" and len(args) >= 2:
        return AddContact(name=" ".join(args[:-1]), phone=args[-1])
    if verb in ("call", "uncall") and len(args) == 1:
        return SetCalled(int(args[0]), verb == "call")
    if verb == "status" and len(args) == 2:
        return UpdateStatus(int(args[0]), args[1])
    if verb == "remark" and len(args) >= 1:
        return UpdateRemark(int(args[0]), " ".join(args[1:]))
    if verb == "date" and len(args) == 2:
        value = None if args[1].lower() == "none" else date.fromisoformat(args[1])
        return UpdateFollowUpDate(int(args[0]), value)
    if verb == "delete" and len(args) == 1:
        return RemoveContact(int(args[0]))
    return None


async def main() -> None:
    print(f"\n{BOLD}{'=' * 52}")
    print(f"  📇  {settings.app_name} — Contact Board")
    print(f"{'=' * 52}{RESET}\n")
    print(f"{DIM}Server: {settings.api_base_url} (run seed.py for demo accounts){RESET}\n")

    session = ClientSession(storage_path=SESSION_FILE)
    session.on_clear(lambda: print(f"{DIM}Session ended.{RESET}"))
    client = CRMClient(session)

    try:
        if session.restore() and await client.validate_session():
            print(f"{GREEN}Welcome back, {session.user.name}{RESET}\n")
    except CRMError as exc:
        print(f"{RED}{exc.message}{RESET}\n")

    while not session.is_authenticated:
        email = input(f"{YELLOW}Email: {RESET}").strip()
        password = input(f"{YELLOW}Password: {RESET}").strip()
        try:
            user = await client.login(email, password)
        except CRMError as exc:
            print(f"{RED}{exc.message}{RESET}\n")
            continue
        print(f"{GREEN}Welcome, {user.name} ({user.role.value}){RESET}\n")

    board = ContactBoard(client)
    await board.load()
    print(HELP)

    while session.is_authenticated:
        try:
            line = input(f"{BLUE}{BOLD}crm>{RESET} ").strip()
        except (KeyboardInterrupt, EOFError):
            print(f"\n{DIM}Goodbye!{RESET}")
            break

        if not line:
            continue
        words = line.split()
        verb = words[0].lower()

        if verb == "quit":
            print(f"{DIM}Goodbye!{RESET}")
            break
        if verb == "logout":
            client.logout()
            print(f"{DIM}👋 Logged out.{RESET}")
            break
        if verb == "list":
            _print_contacts(board)
            continue
        if verb == "profile":
            summary = board.profile_summary()
            print(
                f"  {session.user.name}: {summary['total']} contacts, "
                f"{summary['activeLeads']} active leads, {summary['converted']} converted"
            )
            continue
        if verb == "stats":
            if not session.is_admin:
                print(f"{RED}Statistics are for admins only.{RESET}")
                continue
            try:
                for row in await client.employee_stats():
                    print(
                        f"  {row.name:<20} called today {row.called_today:<3} "
                        f"leads {row.leads:<3} rejected {row.rejected:<3} later {row.later}"
                    )
            except CRMError as exc:
                print(f"{RED}{exc.message}{RESET}")
            continue

        try:
            command = _parse_command(words)
        except ValueError:
            command = None
        if command is None:
            print(HELP)
            continue

        try:
            result = await board.dispatch(command)
        except CRMError as exc:
            print(f"{RED}{exc.message}{RESET}")
            continue
        if result.error:
            print(f"{RED}{board.last_error}{RESET}")
            board.clear_errors()
        elif result.applied:
            _print_contacts(board)


if __name__ == "__main__":
    asyncio.run(main())
