"""Errores de los clientes de directorio.

Por qué un módulo propio:
- El Core y los adaptadores comparten la misma jerarquía sin depender de httpx.
- El facade de `core.services.user_lookup` nunca los traduce: el llamador
  los ve tal cual los lanzó el cliente.
"""

from __future__ import annotations


class DirectoryError(Exception):
    """Base de los fallos del cliente de directorio."""


class DirectoryTransportError(DirectoryError):
    """La request no obtuvo respuesta HTTP (DNS, timeout, TLS...)."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class DirectoryRequestError(DirectoryError):
    """El API respondió con un status no-2xx."""

    def __init__(
        self,
        *,
        status_code: int,
        path: str,
        code: str | None = None,
        message: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.path = path
        self.code = code
        self.message = message
        detail = ": ".join(part for part in (code, message) if part) or "no detail"
        super().__init__(f"HTTP {status_code} for {path} ({detail})")


class DirectoryAuthError(DirectoryRequestError):
    """401/403: credencial ausente, expirada o sin los scopes necesarios."""
