"""favicon-d2 command line.

`serve` runs the HTTP service; `fetch` and `candidates` run the same pipeline
once from the terminal, which is handy when a host's favicon looks wrong.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import typer
import uvicorn
from rich.console import Console
from rich.logging import RichHandler

from adapters.http_client import build_async_client, fetch_html
from adapters.imagemagick import ImageMagickConverter
from adapters.web_app import create_app
from cli import doctor
from cli.ui_components import build_candidates_table, build_response_panel, print_banner
from core.config import AppSettings
from core.domain.models import FaviconResponse, IconCandidate
from core.services.candidate_resolver import resolve_candidates
from core.services.favicon_service import FaviconService, normalize_target, parse_size

app = typer.Typer(no_args_is_help=True, help="Favicon resolution and caching service.")
app.add_typer(doctor.app, name="doctor")

_console = Console()


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )
    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Trace every candidate (DEBUG logging)."),
) -> None:
    settings = AppSettings()
    configure_logging("DEBUG" if verbose else settings.log_level)


@app.command()
def serve(
    host: str | None = typer.Option(None, help="Bind address (default from settings)."),
    port: int | None = typer.Option(None, help="Bind port (default from settings)."),
) -> None:
    """Run the HTTP service."""

    settings = AppSettings()
    print_banner(_console)
    bind_host = host or settings.server_host
    bind_port = port or settings.server_port
    _console.print(f"Server running at http://{bind_host}:{bind_port}/")
    uvicorn.run(create_app(settings), host=bind_host, port=bind_port, log_config=None)


async def _fetch(settings: AppSettings, target: str, size: int) -> FaviconResponse:
    async with build_async_client(settings) as client:
        service = FaviconService.bootstrap(
            settings,
            client=client,
            converter=ImageMagickConverter(settings.convert_command),
        )
        return await service.handle(target, size)


@app.command()
def fetch(
    target: str = typer.Argument(..., help="Host or URL, e.g. www.aol.com"),
    size: int | None = typer.Option(None, "--size", "-s", help="Requested width in pixels."),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write the image here."),
) -> None:
    """Resolve one host's favicon (through the cache) and optionally save it."""

    settings = AppSettings()
    requested = parse_size(size, settings.default_size)
    response = asyncio.run(_fetch(settings, target, requested))
    _console.print(build_response_panel(target, requested, response))

    if output is not None:
        if response.is_empty:
            _console.print("[yellow]Nothing to write.[/yellow]")
            raise typer.Exit(code=1)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(response.body)
        _console.print(f"[green]Saved to:[/green] {output}")


async def _discover(settings: AppSettings, root_url: str, protocol: str) -> list[IconCandidate] | None:
    async with build_async_client(settings) as client:
        html = await fetch_html(client, root_url, max_redirects=settings.max_redirects)
    if html is None:
        return None
    return resolve_candidates(html, root_url, protocol)


@app.command()
def candidates(
    target: str = typer.Argument(..., help="Host or URL whose HTML is scanned."),
) -> None:
    """Show the favicon candidates declared in a host's HTML."""

    settings = AppSettings()
    parsed = normalize_target(target)
    if parsed is None:
        raise typer.BadParameter(f"not a usable host: {target}")

    found = asyncio.run(_discover(settings, parsed.root_url, parsed.protocol))
    if found is None:
        _console.print(f"[red]No HTML returned:[/red] {parsed.root_url}")
        raise typer.Exit(code=1)
    _console.print(build_candidates_table(parsed.root_url, found))


def run() -> None:
    app()


if __name__ == "__main__":
    run()
