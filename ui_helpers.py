import os
import json
from typing import List, Any
from rich.console import Console
from rich.table import Table

# Environment variable to control CLI output mode
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "LIB_CLI_OUTPUT"

_console = Console()


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()


def print_users_result(users: List[Any]) -> None:
    """Print users in the current output mode.
    - plain: 'id - name <email> [flags]' lines, or 'No users.'
    - json: JSON array of the public user fields
    - rich: Rich table
    """
    mode = get_output_mode()

    if not users:
        print("No users.")
        return

    if mode == "json":
        print(json.dumps([u.to_dict() for u in users], ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="Users", show_lines=True, header_style="bold cyan")
        table.add_column("ID", style="magenta", no_wrap=True)
        table.add_column("Name")
        table.add_column("Email")
        table.add_column("Approved")
        table.add_column("Admin")
        for u in users:
            table.add_row(u.id, u.name, u.email, "yes" if u.is_approved else "no", "yes" if u.is_admin else "no")
        _console.print(table)
    else:
        for u in users:
            flags = []
            if u.is_admin:
                flags.append("admin")
            if not u.is_approved:
                flags.append("pending")
            suffix = f" [{', '.join(flags)}]" if flags else ""
            print(f"{u.id} - {u.name} <{u.email}>{suffix}")


def print_reservations_result(reservations: List[Any]) -> None:
    """Print resolved reservations in the current output mode."""
    mode = get_output_mode()

    if not reservations:
        print("No reservations.")
        return

    if mode == "json":
        print(json.dumps([r.to_dict() for r in reservations], ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="Reservations", show_lines=True, header_style="bold cyan")
        table.add_column("ID", style="magenta", no_wrap=True)
        table.add_column("User")
        table.add_column("Book")
        table.add_column("Dates")
        table.add_column("Status")
        for r in reservations:
            table.add_row(
                r.id,
                r.user.name,
                r.book.title,
                f"{r.start_date.isoformat()} → {r.end_date.isoformat()}",
                r.status.value,
            )
        _console.print(table)
    else:
        for r in reservations:
            print(
                f"{r.id} - {r.user.name} / {r.book.title} "
                f"{r.start_date.isoformat()}..{r.end_date.isoformat()} ({r.status.value})"
            )
