"""Exportación JSON de usuarios.

Por qué JSON:
- Interoperabilidad con scripts y pipelines (jq, pandas...).
- Conserva los atributos tal como los devuelve el API (camelCase).
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Sequence

from core.domain.models import DirectoryUser


def users_to_payload(users: Sequence[DirectoryUser]) -> list[dict]:
    return [user.to_api() for user in users]


def export_users_json(*, users: Sequence[DirectoryUser], output_path: Path) -> Path:
    """Exporta usuarios a JSON UTF-8 con formato estable."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(
        json.dumps(users_to_payload(users), ensure_ascii=False, indent=2, sort_keys=True) + "\n",
        encoding="utf-8",
    )
    return output_path
