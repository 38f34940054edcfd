"""Wrapper de httpx.

Por qué un wrapper:
- Estandariza base URL, timeouts y headers para todas las llamadas a Graph.
- Facilita testeo: se puede inyectar un `httpx.MockTransport`.
"""

from __future__ import annotations

from urllib.parse import quote

import httpx

from core.config import AppSettings

BINARY_CONTENT_TYPES = ("image/", "application/octet-stream")

# `$` (`$value`, `$batch`), `@` (UPN), `%` (ya escapado) y el query string quedan literales.
_PATH_SAFE = "/@$%:=,;+!*'()~?&"


def build_async_client(
    settings: AppSettings | None = None,
    *,
    extra_headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Crea un `httpx.AsyncClient` apuntando al API de directorio.

    El token no va aquí: se resuelve por request según los scopes.
    """

    settings = settings or AppSettings()
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": "application/json",
    }
    if extra_headers:
        headers.update(extra_headers)
    return httpx.AsyncClient(
        base_url=settings.graph_base_url + "/",
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        follow_redirects=True,
        headers=headers,
        transport=transport,
    )


def is_binary_content_type(content_type: str | None) -> bool:
    if not content_type:
        return False
    ct = content_type.split(";", 1)[0].strip().lower()
    return any(ct.startswith(prefix) for prefix in BINARY_CONTENT_TYPES)


def normalize_path(path: str) -> str:
    """Ruta relativa a la base (`me`, `users/x`), o la URL absoluta tal cual.

    Notas:
    - httpx resuelve `base_url + path`; una barra inicial rompería el `/v1.0`.
    - Los UPN de invitados llevan `#EXT#`: sin escapar, httpx cortaría la
      ruta en el `#` (fragmento). Los `%xx` ya presentes se respetan.
    """

    if path.startswith("http://") or path.startswith("https://"):
        return path
    return quote(path.lstrip("/"), safe=_PATH_SAFE)
