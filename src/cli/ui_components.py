"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- Permite reutilizar tablas/paneles en múltiples comandos.
"""

from __future__ import annotations

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.models import FaviconResponse, IconCandidate


def print_banner(console: Console) -> None:
    """Imprime el banner de bienvenida.

    Por qué aquí:
    - Evita dependencias circulares (main <-> doctor).
    - Permite desactivar banner en modos no interactivos.
    """

    title = Text("favicon-d2", style="bold cyan")
    subtitle = Text("Resolución • Conversión • Caché de favicons", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def build_candidates_table(root_url: str, candidates: list[IconCandidate]) -> Table:
    """Tabla con los candidatos descubiertos en el HTML de `root_url`."""

    table = Table(title=f"Candidates for {root_url}")
    table.add_column("#", style="dim", no_wrap=True)
    table.add_column("URL", style="magenta")
    table.add_column("Background", style="cyan")
    for index, candidate in enumerate(candidates):
        table.add_row(str(index), candidate.url, candidate.background_color or "-")
    return table


def build_response_panel(target: str, size: int, response: FaviconResponse) -> Panel:
    body = Text()
    body.append(f"Target: {target}\n")
    body.append(f"Requested size: {size}px\n")
    body.append(f"Source: {response.source}\n")
    if response.width is not None:
        body.append(f"Served width: {response.width}px\n")
    body.append(f"Bytes: {len(response.body)}", style="bold" if response.body else "dim")

    style = "green" if response.source == "cache" else "yellow"
    return Panel(body, title=Text("Favicon", style=f"bold {style}"), border_style=style)
