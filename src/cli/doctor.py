"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from adapters.graph_client import GraphClient
from core.config import AppSettings, write_user_env_vars
from core.errors import DirectoryError
from core.services.user_lookup import UserLookupFacade

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


async def _check_me(settings: AppSettings) -> tuple[bool, str]:
    try:
        async with GraphClient.from_settings(settings) as graph:
            user = await UserLookupFacade(graph).get_current_user()
        return True, user.user_principal_name or user.id or "OK"
    except DirectoryError as exc:
        return False, str(exc)


@app.command()
def run() -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()

    table = Table(title="graph-people Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    table.add_row("Graph base_url", "OK", settings.graph_base_url)
    table.add_row("Batch size", "OK", str(settings.batch_max_requests))
    if settings.access_token:
        table.add_row("Access token", "OK", "configured")
        ok_me, detail_me = asyncio.run(_check_me(settings))
        table.add_row("GET /me", "OK" if ok_me else "FAIL", detail_me)
    else:
        table.add_row("Access token", "MISSING", "run `graph-people doctor set-token`")
        ok_me = False

    _console.print(table)

    if not ok_me:
        raise typer.Exit(code=1)


@app.command(name="set-token")
def set_token() -> None:
    """Store an access token in the user config .env."""

    token = typer.prompt("Access token", hide_input=True, confirmation_prompt=False).strip()
    if not token:
        raise typer.BadParameter("token is required")

    env_path = write_user_env_vars({"GRAPH_PEOPLE_ACCESS_TOKEN": token})
    _console.print(f"[green]Saved token to:[/green] {env_path}")
