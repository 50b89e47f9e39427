import logging
import os
import subprocess
import sys
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table
from rich import box

from config import settings
from context import AppContext, build_context
from errors import LibraryError
from security import MAX_PASSWORD_BYTES, password_fits
from ui_helpers import print_reservations_result, print_users_result, set_output_mode

console = Console()

app = typer.Typer(help="Library reservations admin CLI")


@app.callback()
def _global_options(
    ctx: typer.Context,
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Global CLI options."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)
    if output:
        set_output_mode(output)
    # Callers may hand in a prebuilt context through obj
    if ctx.obj is None:
        ctx.obj = build_context(db_file=os.environ.get("LIBRARY_DB_FILE") or None)
    ctx.obj.initialize()


def _check_password(value: str) -> str:
    if not password_fits(value):
        raise typer.BadParameter(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return value


@app.command("create-admin")
def cli_create_admin(
    ctx: typer.Context,
    name: str = typer.Option(..., "--name", "-n", help="Admin display name"),
    email: str = typer.Option(..., "--email", "-e", help="Admin email (login)"),
    phone: str = typer.Option("", "--phone", "-p", help="Phone number"),
    password: str = typer.Option(
        ..., prompt=True, hide_input=True, confirmation_prompt=True, callback=_check_password
    ),
):
    """Create an approved admin account."""
    context: AppContext = ctx.obj
    try:
        admin = context.accounts.create_admin(name, email.strip().lower(), phone, password)
    except LibraryError as e:
        print(f"Error: {e.message}")
        raise typer.Exit(code=1)
    print(f"Admin created: {admin.name} <{admin.email}> ({admin.id})")


@app.command("approve")
def cli_approve(ctx: typer.Context, user_id: str):
    """Approve a pending user account."""
    context: AppContext = ctx.obj
    try:
        user = context.accounts.approve_user(user_id)
    except LibraryError as e:
        print(f"Error: {e.message}")
        raise typer.Exit(code=1)
    print(f"User approved: {user.name} <{user.email}>")


@app.command("users")
def cli_users(
    ctx: typer.Context,
    pending: bool = typer.Option(False, "--pending", help="Only show users awaiting approval"),
):
    """List user accounts."""
    users = ctx.obj.accounts.get_all_users()
    if pending:
        users = [u for u in users if not u.is_approved]
    print_users_result(users)


@app.command("reservations")
def cli_reservations(
    ctx: typer.Context,
    status: Optional[str] = typer.Option(None, "--status", "-s", help="pending|approved|rejected"),
):
    """List reservations with their user and book."""
    reservations = ctx.obj.reservations.get_reservations(viewer_is_admin=True)
    if status:
        reservations = [r for r in reservations if r.status.value == status.lower()]
    print_reservations_result(reservations)


@app.command("stats")
def cli_stats(ctx: typer.Context):
    """Show counts of users and reservations by state."""
    context: AppContext = ctx.obj
    users = context.accounts.get_all_users()
    reservations = context.reservations.get_reservations(viewer_is_admin=True)

    table = Table(title="Library", box=box.SIMPLE, header_style="bold cyan")
    table.add_column("Metric")
    table.add_column("Count", justify="right")
    table.add_row("Users", str(len(users)))
    table.add_row("Pending users", str(sum(1 for u in users if not u.is_approved)))
    table.add_row("Books", str(len(context.books.list_all())))
    for state in ("pending", "approved", "rejected"):
        table.add_row(f"Reservations ({state})", str(sum(1 for r in reservations if r.status.value == state)))
    console.print(table)


@app.command("serve")
def cli_serve(
    host: str = typer.Option(settings.api_host, "--host"),
    port: int = typer.Option(settings.api_port, "--port"),
    reload: bool = typer.Option(False, "--reload"),
):
    """Run the HTTP API with uvicorn."""
    print(f"Starting API on http://{host}:{port}")
    cmd = [sys.executable, "-m", "uvicorn", "api:app", "--host", host, "--port", str(port)]
    if reload:
        cmd.append("--reload")
    subprocess.run(cmd)


if __name__ == "__main__":
    app()
