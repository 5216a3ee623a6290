"""Wrapper de httpx.

Por qué un wrapper:
- Estandariza timeouts, headers, límites de conexión y la política de
  redirecciones para todas las descargas de favicons.
- Facilita testeo: el cliente se inyecta, así que en tests basta con un
  `httpx.MockTransport`.

Las redirecciones se siguen a mano (no `follow_redirects=True`) para poder
corregir `Location` relativas igual que las URLs del HTML y cortar cadenas
demasiado largas.
"""

from __future__ import annotations

import logging
from urllib.parse import urlsplit

import httpx

from core.config import AppSettings
from core.services.candidate_resolver import fixup_url

logger = logging.getLogger(__name__)

_FETCHABLE_SCHEMES = ("http", "https")


def build_async_client(
    settings: AppSettings | None = None,
    *,
    extra_headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Crea un `httpx.AsyncClient` con defaults seguros.

    Por qué un builder:
    - Centraliza timeouts/headers para que todas las descargas se comporten igual.
    - El timeout de httpx se aplica por operación de socket, que es justo el
      "idle timeout" que aborta una descarga estancada.
    """

    settings = settings or AppSettings()
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": "*/*",
    }
    if extra_headers:
        headers.update(extra_headers)
    return httpx.AsyncClient(
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        limits=httpx.Limits(max_connections=settings.max_connections),
        follow_redirects=False,
        headers=headers,
        transport=transport,
    )


def _is_fetchable(url: str) -> bool:
    try:
        scheme = urlsplit(url).scheme
    except ValueError:
        return False
    return scheme.lower() in _FETCHABLE_SCHEMES


def _origin(url: str) -> tuple[str, str]:
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc}", parts.scheme


async def get_following_redirects(
    client: httpx.AsyncClient,
    url: str,
    *,
    max_redirects: int,
) -> httpx.Response | None:
    """GET `url`, following at most `max_redirects` hops.

    Returns the final 2xx response, or None for any other status, a transport
    error, a timeout, a chain longer than the cap, or a URL (or hop) that is not
    absolute http(s); such URLs are never requested.
    """

    current = url
    for _ in range(max_redirects + 1):
        if not _is_fetchable(current):
            logger.debug("Not an http(s) URL, skipping: %s", current)
            return None
        try:
            response = await client.get(current)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.debug("Error retrieving %s: %s", current, exc)
            return None

        if response.is_success:
            return response

        location = (response.headers.get("location") or "").strip()
        if 300 <= response.status_code < 400 and location:
            root_url, protocol = _origin(current)
            current = fixup_url(location, root_url, protocol)
            logger.debug("Redirecting to: %s", current)
            continue

        logger.debug("Not found: %s (HTTP %s)", current, response.status_code)
        return None

    logger.debug("Giving up on %s after %d redirects", url, max_redirects)
    return None


async def fetch_bytes(
    client: httpx.AsyncClient,
    url: str,
    *,
    max_redirects: int = 5,
) -> bytes | None:
    """Download the body at `url`; None when there is nothing usable."""

    response = await get_following_redirects(client, url, max_redirects=max_redirects)
    if response is None or not response.content:
        return None
    return response.content


async def fetch_html(
    client: httpx.AsyncClient,
    url: str,
    *,
    max_redirects: int = 5,
) -> str | None:
    """Download the page at `url` as text; None when it cannot be obtained."""

    response = await get_following_redirects(client, url, max_redirects=max_redirects)
    if response is None:
        return None
    try:
        return response.text
    except (UnicodeDecodeError, LookupError) as exc:
        logger.debug("Cannot decode HTML from %s: %s", url, exc)
        return None
