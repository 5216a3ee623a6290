"""Contrato del conversor de imágenes.

Por qué Protocol:
- Define un contrato estructural (duck typing) sin herencia rígida.
- El Core no sabe nada de ImageMagick: solo que un payload crudo entra y
  archivos `<indice>.<ancho>.png` aparecen en un directorio.
- Permite sustituir el conversor real por uno falso en tests.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable


@runtime_checkable
class IconConverter(Protocol):
    """Contrato mínimo para un conversor externo.

    Reglas de diseño:
    - `convert` es asíncrono porque típicamente espera a un proceso externo.
    - Nunca lanza: cualquier fallo se reporta como `False` para que el join
      de conversiones cuente cada intento exactamente una vez.
    """

    async def convert(
        self,
        source: Path,
        output_dir: Path,
        index: int,
        background_color: str | None = None,
    ) -> bool:
        """Convierte `source` en uno o más PNG `<index>.<ancho>.png` dentro de `output_dir`."""

        ...
