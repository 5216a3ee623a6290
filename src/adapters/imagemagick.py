"""Conversor externo: ImageMagick.

Por qué un proceso externo:
- Los favicons llegan como ICO multi-resolución, PNG, GIF, SVG... ImageMagick
  los entiende todos y separa cada frame en un PNG con su ancho en el nombre.
- El Core solo observa éxito/fallo por invocación (ver `IconConverter`).
"""

from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path
from typing import Sequence

from core.errors import ConversionError

logger = logging.getLogger(__name__)

# Colour names, #hex and rgb()/hsl() forms; anything else is dropped.
_COLOR_RE = re.compile(r"^#?[0-9A-Za-z(),.%\s]{1,64}$")


class ImageMagickConverter:
    """Implements `core.interfaces.converter.IconConverter`."""

    def __init__(self, command: Sequence[str] = ("convert",)) -> None:
        self._command = list(command)

    def build_arguments(
        self,
        source: Path,
        output_dir: Path,
        index: int,
        background_color: str | None = None,
    ) -> list[str]:
        output = str(output_dir / f"{index}.%[filename:area].png")
        if background_color and _COLOR_RE.match(background_color):
            orders = [
                str(source),
                "-background",
                background_color,
                "-alpha",
                "on",
                "-flatten",
                "-set",
                "filename:area",
                "%w",
                output,
            ]
        else:
            orders = [str(source), "-alpha", "on", "-set", "filename:area", "%w", output]
        return [*self._command, *orders]

    async def convert(
        self,
        source: Path,
        output_dir: Path,
        index: int,
        background_color: str | None = None,
    ) -> bool:
        args = self.build_arguments(source, output_dir, index, background_color)
        try:
            await self._run(args, source)
        except ConversionError as exc:
            logger.warning("%s", exc)
            return False
        logger.debug("Converted %s into %s", source, output_dir)
        return True

    async def _run(self, args: list[str], source: Path) -> None:
        try:
            proc = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise ConversionError(str(source), f"cannot start {args[0]}: {exc}") from exc

        _, stderr = await proc.communicate()
        if proc.returncode != 0:
            detail = stderr.decode("utf-8", errors="replace").strip()
            raise ConversionError(str(source), detail or f"exit status {proc.returncode}")
