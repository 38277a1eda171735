"""memberships-rw CLI with Rich output.

Provides commands for:
- Running the HTTP service
- Applying schema constraints
- Database status and membership count
- Reading a single membership

Usage:
    memberships-rw serve                 # Run the service on APP_PORT
    memberships-rw init                  # Ensure uniqueness constraints
    memberships-rw status                # Show database status and count
    memberships-rw show <uuid>           # Print one membership as JSON
"""

import json

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from memberships_rw.backend.config import ServiceConfig, set_config
from memberships_rw.errors import MembershipsError

app = typer.Typer(
    name="memberships-rw",
    help="A RESTful API for managing Membership Roles in a graph database",
    rich_markup_mode="rich",
    no_args_is_help=True,
)
console = Console()

NeoUrlOption = typer.Option("bolt://localhost:7687", "--neo-url", envvar="NEO_URL", help="Bolt URL of the graph database")
UsernameOption = typer.Option("", "--neo-username", envvar="NEO_USERNAME", help="Database username")
PasswordOption = typer.Option("", "--neo-password", envvar="NEO_PASSWORD", help="Database password")
BackendOption = typer.Option("neo4j", "--backend", "-b", envvar="GRAPH_BACKEND", help="Graph backend: neo4j or memgraph")
BatchSizeOption = typer.Option(1024, "--batch-size", envvar="BATCH_SIZE", help="Maximum number of statements to execute per batch")


def print_banner():
    """Print memberships-rw banner."""
    banner = Text()
    banner.append("memberships", style="bold cyan")
    banner.append("-rw", style="cyan")
    console.print(Panel(banner, border_style="cyan", box=box.ROUNDED))


def _repository(neo_url: str, username: str, password: str, backend: str, batch_size: int, verify: bool = True):
    from memberships_rw.db import create_query_runner
    from memberships_rw.memberships import MembershipRepository

    runner = create_query_runner(
        backend=backend,
        uri=neo_url,
        username=username,
        password=password,
        max_batch_size=batch_size,
        verify=verify,
    )
    return MembershipRepository(runner)


@app.command()
def serve(
    neo_url: str = NeoUrlOption,
    neo_username: str = UsernameOption,
    neo_password: str = PasswordOption,
    backend: str = BackendOption,
    batch_size: int = BatchSizeOption,
    port: int = typer.Option(8080, "--port", "-p", envvar="APP_PORT", help="Port to listen on"),
    host: str = typer.Option("0.0.0.0", "--host", envvar="HOST", help="Interface to bind"),
    env: str = typer.Option("local", "--env", envvar="APP_ENV", help="Environment this app is running in"),
    wait: float = typer.Option(0.0, "--wait", help="Seconds to wait for the database before starting"),
):
    """Run the memberships read/write HTTP service."""
    import uvicorn

    from memberships_rw.backend.app import create_app
    from memberships_rw.backend.services import get_query_runner
    from memberships_rw.db.runner_factory import wait_for_ready

    config = ServiceConfig(
        neo_url=neo_url,
        neo_username=neo_username,
        neo_password=neo_password,
        graph_backend=backend.lower(),
        host=host,
        port=port,
        batch_size=batch_size,
        env=env,
    )
    set_config(config)

    if wait > 0:
        console.print(f"[cyan]Waiting up to {wait:.0f}s for {backend} at {neo_url}...[/cyan]")
        if not wait_for_ready(get_query_runner(), timeout=wait):
            console.print("[yellow]Database not ready, starting anyway.[/yellow]")

    uvicorn.run(create_app(config=config), host=config.host, port=config.port, log_level="info")


@app.command()
def init(
    neo_url: str = NeoUrlOption,
    neo_username: str = UsernameOption,
    neo_password: str = PasswordOption,
    backend: str = BackendOption,
):
    """Ensure the uniqueness constraints memberships rely on."""
    print_banner()
    repository = _repository(neo_url, neo_username, neo_password, backend, 1024)
    try:
        repository.initialise()
    except MembershipsError as e:
        console.print(f"[red]Failed to apply constraints:[/red] {e}")
        raise typer.Exit(code=1)
    finally:
        repository.runner.close()
    console.print("[green]✓ Constraints in place.[/green]")


@app.command()
def status(
    neo_url: str = NeoUrlOption,
    neo_username: str = UsernameOption,
    neo_password: str = PasswordOption,
    backend: str = BackendOption,
):
    """Show database connectivity and the number of memberships."""
    from memberships_rw.db.runner_factory import is_endpoint_open

    print_banner()

    table = Table(title="Graph Database Status", box=box.ROUNDED)
    table.add_column("Check", style="cyan")
    table.add_column("Result", justify="center")
    table.add_column("Detail", style="dim")

    port_open = is_endpoint_open(neo_url)
    table.add_row("Bolt port", "[green]Open[/green]" if port_open else "[red]Closed[/red]", neo_url)

    healthy = False
    count_detail = "-"
    if port_open:
        repository = _repository(neo_url, neo_username, neo_password, backend, 1024, verify=False)
        try:
            repository.check()
            healthy = True
            count_detail = str(repository.count())
        except MembershipsError as e:
            count_detail = str(e)[:60]
        finally:
            repository.runner.close()

    table.add_row(backend, "[green]Healthy[/green]" if healthy else "[yellow]Unavailable[/yellow]", "-")
    if healthy:
        table.add_row("Memberships", count_detail, "-")
    else:
        table.add_row("Memberships", "-", count_detail)
    console.print(table)

    if not healthy:
        raise typer.Exit(code=1)


@app.command()
def show(
    uuid: str = typer.Argument(..., help="Membership UUID"),
    neo_url: str = NeoUrlOption,
    neo_username: str = UsernameOption,
    neo_password: str = PasswordOption,
    backend: str = BackendOption,
):
    """Print one membership as JSON."""
    repository = _repository(neo_url, neo_username, neo_password, backend, 1024, verify=False)
    try:
        membership, found = repository.read(uuid)
    except MembershipsError as e:
        console.print(f"[red]Read failed:[/red] {e}")
        raise typer.Exit(code=1)
    finally:
        repository.runner.close()

    if not found:
        console.print(f"[yellow]Membership {uuid} not found.[/yellow]")
        raise typer.Exit(code=1)
    console.print_json(json.dumps(membership.to_wire()))


def main():
    """Entry point for the memberships-rw command."""
    app()


if __name__ == "__main__":
    main()
