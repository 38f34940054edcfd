"""Cliente Microsoft Graph (httpx) que implementa `DirectoryClient`.

Responsabilidad:
- Adjuntar el bearer token adecuado a cada request según sus scopes.
- Decodificar JSON o binario (`$value`, fotos) según el Content-Type.
- Agrupar sub-requests en POSTs a `$batch` (máx. 20 por POST) y devolver
  un único mapping `{label: payload}`.

No hay reintentos aquí: un fallo de transporte o un status no-2xx se
convierte en `DirectoryError` y sube al llamador.
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Any, Iterable, Sequence

import httpx

from adapters.http_client import build_async_client, is_binary_content_type, normalize_path
from core.config import AppSettings
from core.domain.models import BatchEntry
from core.errors import (
    DirectoryAuthError,
    DirectoryError,
    DirectoryRequestError,
    DirectoryTransportError,
)
from core.interfaces.directory import TokenProvider

logger = logging.getLogger(__name__)

BATCH_PATH = "$batch"


class StaticTokenProvider:
    """Sirve siempre el mismo token (ya adquirido fuera del proceso)."""

    def __init__(self, token: str | None) -> None:
        self._token = token.strip() if token else None

    async def get_token(self, scopes: Sequence[str]) -> str:
        if not self._token:
            raise DirectoryError(
                "No access token configured (set GRAPH_PEOPLE_ACCESS_TOKEN "
                "or run `graph-people doctor set-token`)."
            )
        return self._token


def merge_scopes(groups: Iterable[Sequence[str]]) -> list[str]:
    """Unión de scopes preservando el orden de aparición."""

    out: list[str] = []
    for scopes in groups:
        for scope in scopes:
            if scope not in out:
                out.append(scope)
    return out


def _error_from_response(response: httpx.Response, path: str) -> DirectoryRequestError:
    code = None
    message = None
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
        code = payload["error"].get("code")
        message = payload["error"].get("message")
    elif response.text:
        message = response.text[:500]

    error_cls = DirectoryAuthError if response.status_code in (401, 403) else DirectoryRequestError
    return error_cls(status_code=response.status_code, path=path, code=code, message=message)


def _decode_batch_body(item: dict[str, Any]) -> Any:
    body = item.get("body")
    headers = item.get("headers") if isinstance(item.get("headers"), dict) else {}
    content_type = next(
        (v for k, v in headers.items() if isinstance(k, str) and k.lower() == "content-type"),
        None,
    )
    # Graph entrega los cuerpos binarios del batch en base64.
    if isinstance(body, str) and is_binary_content_type(content_type):
        try:
            return base64.b64decode(body, validate=True)
        except (binascii.Error, ValueError):
            return body
    return body


class GraphClient:
    """Cliente asíncrono para Graph v1.0.

    Uso:
        async with GraphClient(token_provider=StaticTokenProvider(tok)) as graph:
            me = await graph.fetch_resource("me", ["user.read"])
    """

    def __init__(
        self,
        *,
        token_provider: TokenProvider,
        settings: AppSettings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._token_provider = token_provider
        self._owns_client = http_client is None
        self._http = http_client or build_async_client(self._settings)

    @classmethod
    def from_settings(cls, settings: AppSettings | None = None) -> GraphClient:
        settings = settings or AppSettings()
        return cls(token_provider=StaticTokenProvider(settings.access_token), settings=settings)

    async def __aenter__(self) -> GraphClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def _send(
        self,
        method: str,
        path: str,
        scopes: Sequence[str],
        *,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        token = await self._token_provider.get_token(list(scopes))
        url = normalize_path(path)
        logger.debug("%s %s scopes=%s", method, url, ",".join(scopes))
        try:
            response = await self._http.request(
                method,
                url,
                json=json,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.HTTPError as exc:
            raise DirectoryTransportError(str(exc) or exc.__class__.__name__, path=path) from exc

        if not response.is_success:
            raise _error_from_response(response, path)
        return response

    async def fetch_resource(self, path: str, scopes: Sequence[str]) -> Any:
        response = await self._send("GET", path, scopes)
        if is_binary_content_type(response.headers.get("content-type")):
            return response.content
        if not response.content:
            return None
        return response.json()

    def create_batch(self) -> GraphBatch:
        return GraphBatch(self, max_requests=self._settings.batch_max_requests)


class GraphBatch:
    """Batch de GETs etiquetados sobre `$batch`."""

    def __init__(self, client: GraphClient, *, max_requests: int = 20) -> None:
        self._client = client
        self._max_requests = max(1, max_requests)
        self._entries: list[BatchEntry] = []

    def add(self, label: str, path: str, scopes: Sequence[str]) -> None:
        if any(entry.label == label for entry in self._entries):
            raise ValueError(f"duplicate batch label: {label!r}")
        self._entries.append(BatchEntry(label=label, path=path, scopes=tuple(scopes)))

    def _chunks(self) -> list[list[BatchEntry]]:
        size = self._max_requests
        return [self._entries[i : i + size] for i in range(0, len(self._entries), size)]

    async def execute(self) -> dict[str, Any]:
        results: dict[str, Any] = {}
        for chunk in self._chunks():
            payload = {
                "requests": [
                    {"id": entry.label, "method": "GET", "url": "/" + normalize_path(entry.path)}
                    for entry in chunk
                ]
            }
            scopes = merge_scopes(entry.scopes for entry in chunk)
            response = await self._client._send("POST", BATCH_PATH, scopes, json=payload)

            data = response.json()
            responses = data.get("responses") if isinstance(data, dict) else None
            if not isinstance(responses, list):
                raise DirectoryError("Malformed $batch response (missing 'responses').")

            for item in responses:
                if not isinstance(item, dict):
                    continue
                label = item.get("id")
                status = item.get("status")
                if not isinstance(label, str):
                    continue
                if not isinstance(status, int) or not 200 <= status < 300:
                    logger.debug("batch entry %s failed with status %s", label, status)
                    continue
                results[label] = _decode_batch_body(item)
        return results
