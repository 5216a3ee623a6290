"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio
import shutil
import tempfile

import typer
from rich.console import Console
from rich.table import Table

from adapters.http_client import build_async_client
from core.config import AppSettings

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


async def _check_http(url: str, settings: AppSettings) -> tuple[bool, str]:
    try:
        async with build_async_client(settings) as client:
            response = await client.get(url)
        return True, f"HTTP {response.status_code}"
    except Exception as exc:
        return False, str(exc)


def _check_convert(settings: AppSettings) -> tuple[bool, str]:
    binary = settings.convert_command[0]
    found = shutil.which(binary)
    if found:
        return True, found
    return False, f"'{binary}' not on PATH (set FAVICON_D2_CONVERT_COMMAND)"


def _check_cache_dir(settings: AppSettings) -> tuple[bool, str]:
    """Create the cache layout and write a throwaway file into the scratch area."""

    try:
        settings.scratch_dir.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(dir=settings.scratch_dir):
            pass
        return True, str(settings.cache_dir)
    except OSError as exc:
        return False, str(exc)


@app.command()
def run(
    url: str = typer.Option("http://example.com", help="URL used for the connectivity check."),
) -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()

    table = Table(title="favicon-d2 Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    ok_convert, detail_convert = _check_convert(settings)
    table.add_row("ImageMagick", "OK" if ok_convert else "FAIL", detail_convert)

    ok_cache, detail_cache = _check_cache_dir(settings)
    table.add_row("Cache dir", "OK" if ok_cache else "FAIL", detail_cache)

    if settings.default_icon_path.is_file():
        table.add_row("Default icon", "OK", str(settings.default_icon_path))
    elif settings.return_default:
        table.add_row("Default icon", "FAIL", f"missing {settings.default_icon_path}")
    else:
        table.add_row("Default icon", "OPTIONAL", "return_default is off -> empty responses")

    table.add_row("Cache TTL", "OK", f"{settings.cache_ttl_seconds:.0f}s")
    table.add_row("Best-fit policy", "OK", settings.best_fit_policy.value)

    # Connectivity (best-effort)
    ok_http, detail_http = asyncio.run(_check_http(url, settings))
    table.add_row("HTTP connectivity", "OK" if ok_http else "FAIL", detail_http)

    _console.print(table)

    if not ok_convert:
        _console.print(
            "\n[yellow]Note:[/yellow] Without ImageMagick every cold resolution ends with an empty response."
        )
