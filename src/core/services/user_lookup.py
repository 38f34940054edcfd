"""Consultas de usuarios sobre un cliente de directorio.

Por qué un facade:
- Es pegamento fino sobre `DirectoryClient`: cada operación es un fetch
  directo o un batch etiquetado.
- La única lógica con ramas vive en `get_users_by_ids`, que degrada de un
  batch a requests individuales cuando el batch falla.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Sequence

from pydantic import ValidationError

from core.domain.models import DirectoryUser, DynamicPerson
from core.interfaces.directory import DirectoryClient

logger = logging.getLogger(__name__)

SCOPE_USER_READ = "user.read"
SCOPE_USER_READBASIC_ALL = "user.readbasic.all"


def _to_user(record: Any) -> DirectoryUser | None:
    """Registro del batch como `DirectoryUser`, o None si no es utilizable."""

    if not isinstance(record, dict) or not record.get("id"):
        return None
    try:
        return DirectoryUser.model_validate(record)
    except ValidationError as exc:
        logger.debug("skipping malformed user record %r: %s", record.get("id"), exc)
        return None


class UserLookupFacade:
    """Consultas del usuario logueado y de otros usuarios del directorio."""

    def __init__(self, client: DirectoryClient) -> None:
        self._client = client

    async def get_current_user(self) -> DirectoryUser:
        """Perfil de la identidad detrás de la credencial actual."""

        payload = await self._client.fetch_resource("me", [SCOPE_USER_READ])
        return DirectoryUser.model_validate(payload)

    async def get_user_with_photo(self, user_id: str | None = None) -> DynamicPerson:
        """Usuario + foto en un único batch.

        Sin `user_id` se usa el usuario logueado. Los fallos del batch suben
        sin tocar.
        """

        batch = self._client.create_batch()
        if user_id:
            batch.add("user", f"/users/{user_id}", [SCOPE_USER_READBASIC_ALL])
            batch.add("photo", f"users/{user_id}/photo/$value", [SCOPE_USER_READBASIC_ALL])
        else:
            batch.add("user", "me", [SCOPE_USER_READ])
            batch.add("photo", "me/photo/$value", [SCOPE_USER_READ])

        response = await batch.execute()
        user = response.get("user")
        if not isinstance(user, dict):
            raise LookupError(f"user {user_id or 'me'!r} missing from batch response")

        photo = response.get("photo")
        return DynamicPerson.model_validate(
            {**user, "personImage": photo if isinstance(photo, (bytes, bytearray)) else None}
        )

    async def get_user_by_principal_name(self, principal_name: str) -> DirectoryUser:
        payload = await self._client.fetch_resource(
            f"/users/{principal_name}", [SCOPE_USER_READBASIC_ALL]
        )
        return DirectoryUser.model_validate(payload)

    async def get_users_by_ids(self, ids: Sequence[str] | None) -> list[DirectoryUser]:
        """Usuarios de `ids`, en el mismo orden que `ids`.

        Reglas:
        - Los ids sin registro utilizable (ausente o malformado) se omiten.
        - Si el batch entero falla, se pide cada id por separado; si alguna
          de esas requests falla, el resultado es vacío.
        """

        if not ids:
            return []

        wanted = [user_id for user_id in ids if user_id]
        batch = self._client.create_batch()
        added: set[str] = set()
        for user_id in wanted:
            if user_id in added:
                continue
            batch.add(user_id, f"/users/{user_id}", [SCOPE_USER_READBASIC_ALL])
            added.add(user_id)

        try:
            response = await batch.execute()
        except Exception as exc:
            logger.warning(
                "batch lookup of %d users failed (%s); falling back to single requests",
                len(added),
                exc,
            )
            return await self._fetch_each(wanted)

        # se recorre el input, no el mapping: el resultado del batch no tiene orden
        people: list[DirectoryUser] = []
        for user_id in ids:
            user = _to_user(response.get(user_id)) if user_id else None
            if user is not None:
                people.append(user)
        return people

    async def _fetch_each(self, ids: list[str]) -> list[DirectoryUser]:
        results = await asyncio.gather(
            *(self.get_user_by_principal_name(user_id) for user_id in ids),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException) and not isinstance(result, Exception):
                raise result
        failures = [r for r in results if isinstance(r, Exception)]
        if failures:
            logger.warning(
                "fallback lookup failed for %d of %d users (%s); returning no users",
                len(failures),
                len(ids),
                failures[0],
            )
            return []
        return list(results)
