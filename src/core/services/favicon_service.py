"""Request handling: cache check, cold resolution, conversion, cache re-check.

`FaviconService.handle` is the only entry point used by the HTTP shell and the
CLI. It never raises for a bad target or a failed download; the worst outcome
is an empty body (or the default icon when configured).
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlsplit

import httpx

from core.config import AppSettings
from core.domain.models import CachedIconFile, FaviconResponse, IconCandidate
from core.interfaces.converter import IconConverter
from core.services.fetch_coordinator import FetchCoordinator
from core.services.host_cache import HostCache
from core.services.host_locks import HostLocks

logger = logging.getLogger(__name__)

SELF_ICON_NAME = "favicon.ico"

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)
_HOST_RE = re.compile(r"^(\[[0-9a-f:.]+\]|[a-z0-9_\-.]+)(:\d{1,5})?$")


@dataclass(frozen=True)
class Target:
    """A normalized request target: `http://example.com` -> host `example.com`."""

    root_url: str
    protocol: str
    host: str


def normalize_target(raw: str) -> Target | None:
    """Turn `example.com`, `https://example.com/some/page` etc. into a root URL.

    Returns None when no usable host can be extracted.
    """

    value = raw.strip()
    if not value:
        return None
    if not _SCHEME_RE.match(value):
        value = "http://" + value

    try:
        parts = urlsplit(value)
    except ValueError:
        return None

    host = parts.netloc.rsplit("@", 1)[-1].lower()
    if not host or not _HOST_RE.match(host) or host.startswith(".") or ".." in host:
        return None

    protocol = parts.scheme.lower()
    return Target(root_url=f"{protocol}://{host}", protocol=protocol, host=host)


def parse_size(value: int | str | None, default: int) -> int:
    if value is None:
        return default
    try:
        size = int(value)
    except (TypeError, ValueError):
        return default
    return size if size > 0 else default


def load_default_icon(path: Path) -> bytes | None:
    try:
        return path.read_bytes()
    except OSError:
        logger.warning("Could not find default favicon in %s", path)
        return None


class FaviconService:
    def __init__(
        self,
        settings: AppSettings,
        *,
        client: httpx.AsyncClient,
        converter: IconConverter,
        cache: HostCache | None = None,
        locks: HostLocks | None = None,
        default_icon: bytes | None = None,
    ) -> None:
        self._settings = settings
        self._converter = converter
        if cache is None:
            cache = HostCache(settings.cache_dir, settings.scratch_dir, policy=settings.best_fit_policy)
        self._cache = cache
        self._locks = locks if locks is not None else HostLocks()
        self._coordinator = FetchCoordinator(client, max_redirects=settings.max_redirects)
        self._default_icon = default_icon

    @classmethod
    def bootstrap(
        cls,
        settings: AppSettings,
        *,
        client: httpx.AsyncClient,
        converter: IconConverter,
        locks: HostLocks | None = None,
    ) -> "FaviconService":
        """Create the cache layout, load the default icon and build the service."""

        cache = HostCache(settings.cache_dir, settings.scratch_dir, policy=settings.best_fit_policy)
        cache.ensure_layout()
        default_icon = load_default_icon(settings.default_icon_path) if settings.return_default else None
        return cls(
            settings,
            client=client,
            converter=converter,
            cache=cache,
            locks=locks,
            default_icon=default_icon,
        )

    def empty(self) -> FaviconResponse:
        if self._settings.return_default and self._default_icon:
            return FaviconResponse(body=self._default_icon, media_type="image/x-icon", source="default")
        return FaviconResponse(media_type="image/x-icon", source="empty")

    async def handle(self, target: str, size: int | str | None = None) -> FaviconResponse:
        try:
            return await self._handle(target, size)
        except Exception:
            logger.exception("Unexpected error serving favicon for %s", target)
            return self.empty()

    async def _handle(self, target: str, size: int | str | None) -> FaviconResponse:
        name = target.strip().lstrip("/")
        if name == SELF_ICON_NAME:
            return self.empty()

        parsed = normalize_target(name)
        if parsed is None or not self._cache.accepts(parsed.host):
            logger.debug("Ignoring unusable target %r", target)
            return self.empty()

        requested = parse_size(size, self._settings.default_size)
        host = parsed.host
        ttl = self._settings.cache_ttl_seconds

        hit = await asyncio.to_thread(self._cache.lookup, host, requested, ttl)
        if hit is not None:
            return await self._serve(hit)

        async with self._locks.hold(host):
            # Another request for this host may have finished while we waited.
            hit = await asyncio.to_thread(self._cache.lookup, host, requested, ttl)
            if hit is not None:
                return await self._serve(hit)

            found = await self._resolve(parsed)
            if not found:
                return self.empty()

        hit = await asyncio.to_thread(self._cache.lookup, host, requested, None)
        if hit is None:
            return self.empty()
        return await self._serve(hit)

    async def _resolve(self, target: Target) -> int:
        """Fetch, deduplicate and convert; returns the number of unique payloads."""

        job = await self._coordinator.resolve(target.root_url, target.protocol)
        favicons = job.unique_payloads
        if not favicons:
            logger.info("No favicon found for %s", target.root_url)
            return 0

        staging = await asyncio.to_thread(self._cache.staging_dir, target.host)
        try:
            results = await asyncio.gather(
                *(
                    self._convert_one(target.host, index, favicon, staging)
                    for index, favicon in enumerate(favicons)
                ),
                return_exceptions=True,
            )
            stored = 0
            for favicon, result in zip(favicons, results):
                if isinstance(result, BaseException):
                    logger.error("Conversion of %s raised", favicon.url, exc_info=result)
                elif result:
                    stored += 1
            logger.info(
                "Resolved %s: %d unique favicon(s), %d converted",
                target.root_url,
                len(favicons),
                stored,
            )
            if stored:
                await asyncio.to_thread(self._cache.publish, target.host, staging)
        finally:
            if staging.exists():
                await asyncio.to_thread(self._cache.discard, staging)
        return len(favicons)

    async def _convert_one(
        self,
        host: str,
        index: int,
        favicon: IconCandidate,
        staging: Path,
    ) -> bool:
        scratch = self._cache.scratch_file(host, index)
        try:
            await asyncio.to_thread(scratch.write_bytes, favicon.payload or b"")
        except OSError as exc:
            logger.warning("Error saving favicon %s: %s", scratch, exc)
            return False
        try:
            return await self._converter.convert(scratch, staging, index, favicon.background_color)
        finally:
            await asyncio.to_thread(self._cache.discard, scratch)

    async def _serve(self, hit: CachedIconFile) -> FaviconResponse:
        try:
            body = await asyncio.to_thread(hit.path.read_bytes)
        except OSError as exc:
            logger.debug("Error reading %s: %s", hit.path, exc)
            return self.empty()
        return FaviconResponse(body=body, media_type="image/png", source="cache", width=hit.width)
