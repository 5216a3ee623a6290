"""Shared fixtures: a scripted web, a fake converter and isolated settings."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Awaitable, Callable, Union

import httpx
import pytest

from adapters.http_client import build_async_client
from core.config import AppSettings

Route = Union[
    tuple[int, dict[str, str], bytes],
    Exception,
    Callable[[httpx.Request], Awaitable[httpx.Response]],
]


def url_key(url: httpx.URL | str) -> str:
    url = httpx.URL(url)
    return f"{url.scheme}://{url.netloc.decode('ascii')}{url.path or '/'}"


class FakeWeb:
    """Scripted responses keyed by URL; anything unknown is a 404."""

    def __init__(self, routes: dict[str, Route] | None = None) -> None:
        self.routes: dict[str, Route] = {url_key(k): v for k, v in (routes or {}).items()}
        self.requests: list[str] = []

    def add(self, url: str, route: Route) -> None:
        self.routes[url_key(url)] = route

    async def handler(self, request: httpx.Request) -> httpx.Response:
        key = url_key(request.url)
        self.requests.append(key)
        route = self.routes.get(key)
        if route is None:
            return httpx.Response(404)
        if isinstance(route, Exception):
            raise route
        if callable(route):
            return await route(request)
        status, headers, content = route
        return httpx.Response(status, headers=headers, content=content)

    def client(self, settings: AppSettings | None = None) -> httpx.AsyncClient:
        return build_async_client(settings, transport=httpx.MockTransport(self.handler))


class FakeConverter:
    """Writes `<index>.<width>.png` for each width instead of running ImageMagick."""

    def __init__(self, widths: tuple[int, ...] = (16, 32), fail_indexes: set[int] | None = None) -> None:
        self.widths = widths
        self.fail_indexes = fail_indexes or set()
        self.calls: list[tuple[bytes, int, str | None]] = []

    async def convert(
        self,
        source: Path,
        output_dir: Path,
        index: int,
        background_color: str | None = None,
    ) -> bool:
        self.calls.append((source.read_bytes(), index, background_color))
        await asyncio.sleep(0)
        if index in self.fail_indexes:
            return False
        payload = source.read_bytes()
        for width in self.widths:
            (output_dir / f"{index}.{width}.png").write_bytes(payload + f"@{width}".encode())
        return True


@pytest.fixture
def settings(tmp_path: Path) -> AppSettings:
    return AppSettings(
        data_dir=tmp_path / "data",
        default_icon_path=tmp_path / "default.ico",
        cache_ttl_seconds=3600,
        max_redirects=3,
    )


@pytest.fixture
def web() -> FakeWeb:
    return FakeWeb()


@pytest.fixture
def converter() -> FakeConverter:
    return FakeConverter()
