"""CLI for splitwise-import using Typer."""

import logging
import sys
from decimal import Decimal
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .cache import DEFAULT_CACHE_PATH, TokenCache
from .config import load_settings
from .exceptions import (
    AuthenticationFailedError,
    ExpenseCreationError,
)
from .models import CreateExpenseRequest, ExpenseEntry
from .service import ImportService

app = typer.Typer(
    name="splitwise-import",
    help="Import expenses from a CSV file into a Splitwise group",
)

console = Console()


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def format_amount(amount: Decimal) -> str:
    """Right-aligned amount with two decimals, e.g. '  50.00$'."""
    return f"{amount:7.2f}$"


def print_progress(row_number: int, entry: ExpenseEntry, request: CreateExpenseRequest):
    """Print one line per expense before it is sent."""
    console.print(
        f"Creating: [bold]{format_amount(entry.amount)}[/bold]   {escape(entry.description or '')}"
        f"  [dim](mine {request.users__0__owed_share}, "
        f"theirs {request.users__1__owed_share})[/dim]",
        highlight=False,
    )


def print_failure(error: ExpenseCreationError):
    """Print everything known about a rejected expense."""
    console.print("\n[bold red]Failed to create expense![/bold red]")
    table = Table(show_header=False, box=None)
    table.add_column("Field", style="bold")
    table.add_column("Value", overflow="fold")
    for key, value in error.details().items():
        if key == "payload":
            continue
        table.add_row(key, escape(str(value)))
    console.print(table)

    console.print("\n[bold]Request:[/bold]")
    for key, value in error.payload.items():
        console.print(f"  {key} = {escape(value)}", highlight=False)


@app.command("import")
def import_expenses(
    file: Path | None = typer.Option(
        None, "--file", "-f", help="CSV file to import (defaults to $FILENAME)"
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Show what would be created without calling Splitwise"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """
    Import every row of the CSV file as a Splitwise expense.

    Authenticates through the browser when the cached token is missing or
    expired. Stops at the first expense Splitwise rejects.
    """
    setup_logging(verbose)

    try:
        overrides = {"filename": file} if file else {}
        settings = load_settings(**overrides)
        service = ImportService(settings)

        if dry_run:
            console.print("[bold yellow]Dry run: nothing will be created[/bold yellow]")

        count = service.run(on_progress=print_progress, dry_run=dry_run)

        verb = "Would create" if dry_run else "Created"
        console.print(f"\n[bold green]✓ {verb} {count} expenses[/bold green]")

    except AuthenticationFailedError as e:
        console.print("\n[yellow]Authentication failed[/yellow]")
        console.print(f" {escape(e.reason)}")
        return
    except ExpenseCreationError as e:
        print_failure(e)
        if verbose:
            raise
        sys.exit(1)
    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {escape(str(e))}")
        if verbose:
            raise
        sys.exit(1)


@app.command()
def whoami(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show the Splitwise user the cached token belongs to."""
    setup_logging(verbose)

    try:
        service = ImportService(load_settings())
        with service.authenticated_client() as client:
            user_id = client.current_user_id()
            user = client.current_user()

        name = " ".join(filter(None, [user.get("first_name"), user.get("last_name")]))
        console.print(
            f"[bold]{escape(name)}[/bold] (id {user_id}, {escape(str(user.get('email')))})"
        )

    except AuthenticationFailedError as e:
        console.print("\n[yellow]Authentication failed[/yellow]")
        console.print(f" {escape(e.reason)}")
        return
    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {escape(str(e))}")
        if verbose:
            raise
        sys.exit(1)


@app.command()
def expenses(
    limit: int = typer.Option(20, "--limit", "-n", help="Number of expenses to show"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """List the most recent expenses in the configured group."""
    setup_logging(verbose)

    try:
        settings = load_settings()
        service = ImportService(settings)
        with service.authenticated_client() as client:
            response = client.get_expenses(
                {"group_id": settings.group_id, "limit": limit}
            )
            response.raise_for_status()
            items = response.json().get("expenses", [])

        table = Table(title=f"Recent expenses in group {settings.group_id}")
        table.add_column("Date", style="dim")
        table.add_column("Description")
        table.add_column("Cost", justify="right")
        table.add_column("Currency")

        for item in items:
            if item.get("deleted_at"):
                continue
            table.add_row(
                str(item.get("date", ""))[:10],
                escape(item.get("description", "")),
                item.get("cost", ""),
                item.get("currency_code", ""),
            )

        console.print(table)

    except AuthenticationFailedError as e:
        console.print("\n[yellow]Authentication failed[/yellow]")
        console.print(f" {escape(e.reason)}")
        return
    except Exception as e:
        console.print(f"\n[bold red]Error:[/bold red] {escape(str(e))}")
        if verbose:
            raise
        sys.exit(1)


@app.command()
def logout(
    token_cache_path: Path = typer.Option(
        DEFAULT_CACHE_PATH,
        "--token-cache",
        envvar="TOKEN_CACHE_PATH",
        help="Location of the cached bearer token",
    ),
):
    """Forget the cached bearer token."""
    if TokenCache(token_cache_path).clear():
        console.print(f"[green]Removed {token_cache_path}[/green]")
    else:
        console.print("[yellow]No cached token.[/yellow]")


if __name__ == "__main__":
    app()
