"""CLI principal (Typer).

Cada comando abre un `GraphClient`, construye el facade y delega. La CLI
solo presenta resultados y traduce `DirectoryError` a un exit code.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Awaitable, Callable, List, Optional, TypeVar

import typer
from rich.console import Console

from adapters.graph_client import GraphClient
from adapters.json_exporter import export_users_json, users_to_payload
from cli import doctor
from cli.ui_components import build_user_panel, build_users_table, configure_logging
from core.config import AppSettings
from core.errors import DirectoryError
from core.services.user_lookup import UserLookupFacade

T = TypeVar("T")

app = typer.Typer(no_args_is_help=True, help="Directory user lookups over Microsoft Graph.")
app.add_typer(doctor.app, name="doctor")

_console = Console()


@app.callback()
def _main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
) -> None:
    settings = AppSettings()
    configure_logging("DEBUG" if verbose else settings.log_level)


def _run(action: Callable[[UserLookupFacade], Awaitable[T]]) -> T:
    settings = AppSettings()

    async def runner() -> T:
        async with GraphClient.from_settings(settings) as graph:
            return await action(UserLookupFacade(graph))

    try:
        return asyncio.run(runner())
    except (DirectoryError, LookupError) as exc:
        _console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from exc


def _print_json(payload: Any) -> None:
    _console.print_json(json.dumps(payload, ensure_ascii=False))


@app.command()
def me(as_json: bool = typer.Option(False, "--json", help="Raw JSON output.")) -> None:
    """Profile of the signed-in user."""

    user = _run(lambda facade: facade.get_current_user())
    if as_json:
        _print_json(user.to_api())
    else:
        _console.print(build_user_panel(user))


@app.command()
def user(
    principal_name: str = typer.Argument(..., help="UPN or object id."),
    as_json: bool = typer.Option(False, "--json", help="Raw JSON output."),
) -> None:
    """One user by principal name."""

    found = _run(lambda facade: facade.get_user_by_principal_name(principal_name))
    if as_json:
        _print_json(found.to_api())
    else:
        _console.print(build_user_panel(found))


@app.command()
def users(
    ids: List[str] = typer.Argument(..., help="User ids (order is preserved)."),
    as_json: bool = typer.Option(False, "--json", help="Raw JSON output."),
) -> None:
    """Many users by id in one batch."""

    found = _run(lambda facade: facade.get_users_by_ids(ids))
    if as_json:
        _print_json(users_to_payload(found))
        return
    _console.print(build_users_table(found))
    missing = len([i for i in ids if i]) - len(found)
    if missing > 0:
        _console.print(f"[yellow]{missing} id(s) not resolved.[/yellow]")


@app.command()
def photo(
    output: Path = typer.Option(..., "--output", "-o", help="Where to write the photo."),
    user_id: Optional[str] = typer.Option(None, "--user-id", help="Defaults to the signed-in user."),
) -> None:
    """Download a user's photo."""

    person = _run(lambda facade: facade.get_user_with_photo(user_id))
    name = person.display_name or person.user_principal_name or "user"
    if not person.person_image:
        _console.print(f"[yellow]{name} has no photo.[/yellow]")
        raise typer.Exit(code=2)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(person.person_image)
    _console.print(f"[green]Saved photo of {name} to:[/green] {output}")


@app.command()
def export(
    ids: List[str] = typer.Argument(..., help="User ids."),
    output: Path = typer.Option(Path("users.json"), "--output", "-o"),
) -> None:
    """Export users as JSON."""

    found = _run(lambda facade: facade.get_users_by_ids(ids))
    path = export_users_json(users=found, output_path=output)
    _console.print(f"[green]Exported {len(found)} user(s) to:[/green] {path}")


def run() -> None:
    app()
