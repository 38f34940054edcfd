"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- El esquema de un usuario lo define el API remoto; aquí solo declaramos los
  atributos que usamos y conservamos el resto tal cual (`extra="allow"`).
- Los alias camelCase permiten volver a la forma original del API con
  `model_dump(by_alias=True)`.

Nota:
- Estos modelos describen *qué* es la información, no *cómo* se obtiene.
"""

from __future__ import annotations

import base64
from typing import Any

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict


class DirectoryUser(BaseModel):
    """Un principal del directorio (usuario).

    Todos los campos son opcionales: el API decide qué devuelve según el
    `$select` y los permisos concedidos.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str | None = Field(
        default=None,
        description="Identificador inmutable (objectId).",
    )
    display_name: str | None = Field(
        default=None,
        alias="displayName",
        description="Nombre para mostrar.",
    )
    user_principal_name: str | None = Field(
        default=None,
        alias="userPrincipalName",
        description="UPN (login), p.ej. `ana@contoso.com`.",
    )
    mail: str | None = Field(default=None, description="Correo principal.")
    given_name: str | None = Field(default=None, alias="givenName")
    surname: str | None = Field(default=None)
    job_title: str | None = Field(default=None, alias="jobTitle")
    office_location: str | None = Field(default=None, alias="officeLocation")
    mobile_phone: str | None = Field(default=None, alias="mobilePhone")
    business_phones: list[str] | None = Field(default=None, alias="businessPhones")
    preferred_language: str | None = Field(default=None, alias="preferredLanguage")

    def to_api(self) -> dict[str, Any]:
        """Forma original del API (camelCase, sin nulos)."""

        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


def _sniff_image_mime(data: bytes) -> str:
    if data.startswith(b"\x89PNG"):
        return "image/png"
    if data.startswith(b"GIF8"):
        return "image/gif"
    return "image/jpeg"


class DynamicPerson(DirectoryUser):
    """`DirectoryUser` + foto, construido por el facade (no por el API)."""

    model_config = ConfigDict(ser_json_bytes="base64")

    person_image: bytes | None = Field(
        default=None,
        alias="personImage",
        description="Foto binaria del usuario, si tiene.",
    )

    def photo_data_url(self) -> str | None:
        """Foto como `data:` URL (lo que consume un <img>), o None."""

        if not self.person_image:
            return None
        encoded = base64.b64encode(self.person_image).decode("ascii")
        return f"data:{_sniff_image_mime(self.person_image)};base64,{encoded}"


class BatchEntry(BaseModel):
    """Descriptor de una sub-request: etiqueta, ruta y scopes (advisory)."""

    model_config = ConfigDict(frozen=True)

    label: str = Field(..., min_length=1)
    path: str = Field(..., min_length=1)
    scopes: tuple[str, ...] = Field(default_factory=tuple)
