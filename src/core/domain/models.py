"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Nos da validación estricta y documentación autocontenida (Field) sin acoplar
  el Core a librerías de I/O.
- Candidatos, entradas de caché y respuestas viajan entre servicios, CLI y
  servidor web con el mismo contrato.

Nota:
- Estos modelos describen *qué* es la información, no *cómo* se obtiene.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict


class IconCandidate(BaseModel):
    """Una ubicación que se cree que apunta a un favicon (aún sin confirmar).

    Por qué existe:
    - Unifica los candidatos fijos de la raíz y los descubiertos en el HTML.
    - `payload` solo se adjunta una vez descargado; a partir de ahí no cambia.
    """

    model_config = ConfigDict(frozen=True)

    url: str = Field(
        ...,
        min_length=1,
        description="URL del icono (absoluta tras la corrección de raíz/protocolo).",
    )
    background_color: str | None = Field(
        default=None,
        description="Color de fondo sugerido (msapplication-TileColor), si existe.",
    )
    payload: bytes | None = Field(
        default=None,
        repr=False,
        description="Bytes crudos descargados; None mientras no se haya obtenido.",
    )

    def with_payload(self, payload: bytes) -> "IconCandidate":
        """Return a copy of this candidate carrying the downloaded bytes."""

        return self.model_copy(update={"payload": payload})


class CachedIconFile(BaseModel):
    """Un archivo convertido dentro del directorio de caché de un host."""

    model_config = ConfigDict(frozen=True)

    width: int = Field(
        ...,
        ge=0,
        description="Ancho en píxeles (leído del nombre `<indice>.<ancho>.png`).",
    )
    path: Path = Field(
        ...,
        description="Ruta absoluta del archivo en caché.",
    )


class FaviconResponse(BaseModel):
    """Lo que el shell HTTP devuelve al cliente.

    Nunca hay códigos de error: el peor caso es un cuerpo vacío o el icono por
    defecto.
    """

    body: bytes = Field(
        default=b"",
        repr=False,
        description="Bytes de la imagen (vacío si no hay icono).",
    )
    media_type: str = Field(
        default="image/png",
        description="Content-Type de la respuesta.",
    )
    source: Literal["cache", "default", "empty"] = Field(
        default="empty",
        description="De dónde salió el cuerpo (trazabilidad/CLI).",
    )
    width: int | None = Field(
        default=None,
        description="Ancho del archivo servido desde caché, si aplica.",
    )

    @property
    def is_empty(self) -> bool:
        return not self.body
