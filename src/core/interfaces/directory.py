"""Contratos del cliente de directorio.

Por qué Protocol:
- Define un contrato estructural (duck typing) sin herencia rígida.
- El facade funciona con cualquier cliente que cumpla la forma (Graph real,
  un doble de test, un SDK distinto) sin acoplar el Core al transporte.
"""

from __future__ import annotations

from typing import Any, Protocol, Sequence, runtime_checkable


@runtime_checkable
class BatchRequest(Protocol):
    """Builder mutable de sub-requests etiquetadas, ejecutadas en un round trip.

    Reglas:
    - Las etiquetas son únicas dentro de un batch.
    - `execute` falla como unidad si el transporte/auth rechaza el batch;
      si no, devuelve `{label: payload}`. Las sub-requests fallidas pueden
      faltar en el resultado.
    """

    def add(self, label: str, path: str, scopes: Sequence[str]) -> None:
        ...

    async def execute(self) -> dict[str, Any]:
        ...


@runtime_checkable
class DirectoryClient(Protocol):
    """Superficie mínima del cliente remoto que consume el facade."""

    async def fetch_resource(self, path: str, scopes: Sequence[str]) -> Any:
        """Una request autenticada. `scopes` es metadata advisory."""

        ...

    def create_batch(self) -> BatchRequest:
        ...


@runtime_checkable
class TokenProvider(Protocol):
    """Entrega un bearer token válido para los scopes pedidos."""

    async def get_token(self, scopes: Sequence[str]) -> str:
        ...
