"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- Permite reutilizar tablas/paneles en múltiples comandos.
"""

from __future__ import annotations

import logging
from typing import Sequence

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.models import DirectoryUser


def configure_logging(level: str, *, console: Console | None = None) -> None:
    """Logging de la CLI vía Rich (a stderr). La librería nunca lo llama."""

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console or Console(stderr=True), show_path=False)],
        force=True,
    )


def build_users_table(users: Sequence[DirectoryUser], *, title: str = "Directory users") -> Table:
    table = Table(title=title)
    table.add_column("Id", style="dim", no_wrap=True)
    table.add_column("Display name", style="cyan")
    table.add_column("UPN", style="white")
    table.add_column("Mail", style="magenta")
    for user in users:
        table.add_row(
            user.id or "-",
            user.display_name or "-",
            user.user_principal_name or "-",
            user.mail or "-",
        )
    return table


def build_user_panel(user: DirectoryUser) -> Panel:
    """Panel con el perfil de un único usuario."""

    body = Text()
    rows = (
        ("Id", user.id),
        ("UPN", user.user_principal_name),
        ("Mail", user.mail),
        ("Job title", user.job_title),
        ("Office", user.office_location),
        ("Mobile", user.mobile_phone),
    )
    for label, value in rows:
        if value:
            body.append(f"{label}: ", style="bold")
            body.append(f"{value}\n")
    title = Text(user.display_name or user.user_principal_name or "user", style="bold cyan")
    return Panel(body, title=title, border_style="cyan")
