"""
Expedientes CLI.

Command-line interface for common operations.
"""

import sys
import time

import httpx
import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="expedientes",
    help="Expedientes document workflow CLI",
    add_completion=False,
)
console = Console()


# =============================================================================
# Database Commands
# =============================================================================

@app.command()
def init_db():
    """Create all tables."""
    from shared.infrastructure.db import engine
    from rest_api.models import Base

    Base.metadata.create_all(bind=engine)
    console.print("[green]✓ Tables created/verified[/green]")


@app.command()
def seed(
    force: bool = typer.Option(False, "--force", "-f", help="Allow seeding production"),
):
    """Seed roles, areas, base rules and the administrator."""
    from shared.config.settings import settings
    from shared.infrastructure.db import get_db_context
    from rest_api.seed import seed as run_seed

    if settings.environment == "production" and not force:
        console.print("[red]Cannot seed production without --force[/red]")
        raise typer.Exit(1)

    with get_db_context() as db:
        run_seed(db)
    console.print("[green]✓ Seed complete[/green]")


# =============================================================================
# Permission Commands
# =============================================================================

@app.command()
def bits():
    """Show the permission bit registry."""
    from rest_api.services.permissions import describe_bits

    table = Table(title="Permission Bits")
    table.add_column("Bit", style="cyan")
    table.add_column("Name", style="green")
    table.add_column("Value", style="yellow")
    table.add_column("Description")

    for row in describe_bits():
        table.add_row(str(row["bit"]), row["name"], str(row["value"]), row["description"])

    console.print(table)


@app.command()
def mask(
    value: int = typer.Argument(..., help="Permission mask 0..255"),
):
    """Decode a permission mask into its bits."""
    from rest_api.services.permissions import bits_from_mask, is_admin_mask
    from shared.utils.exceptions import InvalidMaskError

    try:
        granted = bits_from_mask(value)
    except InvalidMaskError as e:
        console.print(f"[red]✗ {e.detail}[/red]")
        raise typer.Exit(1)

    table = Table(title=f"Mask {value} ({value:08b})")
    table.add_column("Bit", style="cyan")
    table.add_column("Action", style="green")
    for bit in granted:
        table.add_row(str(int(bit)), bit.label)

    console.print(table)
    if is_admin_mask(value):
        console.print("[yellow]Administrator bypass[/yellow]")


@app.command()
def token(
    user_id: int = typer.Argument(..., help="User ID"),
    ttl: int = typer.Option(3600, help="Lifetime in seconds"),
):
    """Sign an access token for a user (development only)."""
    from sqlalchemy import select

    from shared.config.settings import settings
    from shared.infrastructure.db import get_db_context
    from shared.security.auth import sign_user_token
    from rest_api.models import User

    if settings.environment == "production":
        console.print("[red]Token signing is disabled in production[/red]")
        raise typer.Exit(1)

    with get_db_context() as db:
        user = db.scalar(select(User).where(User.id == user_id, User.is_active.is_(True)))
        if user is None:
            console.print(f"[red]✗ No active user with ID {user_id}[/red]")
            raise typer.Exit(1)
        console.print(sign_user_token(user.id, cip=user.cip, ttl_seconds=ttl))


@app.command()
def history(
    document_id: int = typer.Argument(..., help="Document ID"),
):
    """Show the trazabilidad ledger of a document."""
    from shared.infrastructure.db import get_db_context
    from rest_api.services.domain import TrazabilidadLedger

    with get_db_context() as db:
        entries = TrazabilidadLedger(db).history(document_id)

        if not entries:
            console.print(f"[yellow]No entries for document {document_id}[/yellow]")
            return

        table = Table(title=f"Trazabilidad {entries[0].document_code}")
        table.add_column("When", style="cyan")
        table.add_column("Action", style="green")
        table.add_column("Areas")
        table.add_column("State")
        table.add_column("Actor", style="yellow")
        table.add_column("Observations")

        for entry in entries:
            table.add_row(
                entry.created_at.isoformat(timespec="seconds"),
                entry.action,
                f"{entry.origin_area_id or '-'} → {entry.destination_area_id or '-'}",
                f"{entry.previous_state or '-'} → {entry.new_state or '-'}",
                str(entry.actor_id),
                entry.observations or "",
            )

    console.print(table)


# =============================================================================
# Health Commands
# =============================================================================

@app.command()
def health(
    url: str = typer.Option("http://localhost:8000/api/health/detailed", help="Health endpoint"),
):
    """Check REST API health."""
    table = Table(title="Service Health")
    table.add_column("Service", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Response Time", style="yellow")

    start = time.time()
    try:
        response = httpx.get(url, timeout=5.0)
    except httpx.HTTPError as e:
        table.add_row("REST API", f"✗ {type(e).__name__}", "-")
    else:
        elapsed = (time.time() - start) * 1000
        if response.status_code == 200:
            table.add_row("REST API", "✓ Healthy", f"{elapsed:.0f}ms")
        else:
            table.add_row("REST API", f"✗ Status {response.status_code}", f"{elapsed:.0f}ms")

    console.print(table)


@app.command()
def version():
    """Show version information."""
    table = Table(title="Expedientes Version")
    table.add_column("Component", style="cyan")
    table.add_column("Version", style="green")

    table.add_row("API", "0.1.0")
    table.add_row("Python", sys.version.split()[0])

    console.print(table)


if __name__ == "__main__":
    app()
