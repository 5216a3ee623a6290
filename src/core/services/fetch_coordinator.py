"""Fan-out/fan-in retrieval of every favicon candidate of one host.

Three well-known root locations are requested immediately. At the same time
the host's HTML is fetched and scanned; each icon it declares is added to the
same job and fetched as well. The job completes when every dispatched fetch
has reported back *and* the HTML branch has finished adding candidates.

All join-state mutation goes through `ResolutionJob`, which re-checks the
completion predicate after every change. The HTML branch grows
`expected_count` before dispatching each fetch and before marking itself
resolved, so the job cannot complete while HTML-derived fetches are pending.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Coroutine

import httpx

from adapters.http_client import fetch_bytes, fetch_html
from core.domain.models import IconCandidate
from core.errors import JoinStateError
from core.services.candidate_resolver import resolve_candidates

logger = logging.getLogger(__name__)

WELL_KNOWN_ICONS: tuple[str, ...] = (
    "favicon.ico",
    "apple-touch-icon.png",
    "apple-touch-icon-precomposed.png",
)


class JobState(str, Enum):
    COLLECTING = "collecting"
    COMPLETE = "complete"


@dataclass
class ResolutionJob:
    """Join state of one cold resolution.

    Invariants:
    - `expected_count` only grows, and only while the HTML branch is open.
    - complete iff `arrived_count >= expected_count and html_resolved`.
    - `unique_payloads` never holds two byte-identical payloads.
    """

    root_url: str
    expected_count: int = len(WELL_KNOWN_ICONS)
    arrived_count: int = 0
    html_resolved: bool = False
    unique_payloads: list[IconCandidate] = field(default_factory=list)
    candidates: list[IconCandidate] = field(default_factory=list)
    state: JobState = JobState.COLLECTING
    completed: asyncio.Event = field(default_factory=asyncio.Event, repr=False)

    @property
    def is_complete(self) -> bool:
        return self.state is JobState.COMPLETE

    def expect(self, count: int = 1) -> None:
        if count <= 0:
            raise JoinStateError(f"expected_count can only grow (got {count})")
        if self.html_resolved or self.is_complete:
            raise JoinStateError("cannot add candidates after the HTML branch resolved")
        self.expected_count += count
        self._check_complete()

    def arrive(self, candidate: IconCandidate | None) -> bool:
        """Record one finished fetch; returns True when its payload was new."""

        if self.is_complete:
            raise JoinStateError("arrival reported into a completed job")
        self.arrived_count += 1

        added = False
        if candidate is not None and candidate.payload:
            if any(known.payload == candidate.payload for known in self.unique_payloads):
                logger.debug("Favicon %s already known, skipping", candidate.url)
            else:
                self.unique_payloads.append(candidate)
                added = True

        self._check_complete()
        return added

    def mark_html_resolved(self) -> None:
        if self.html_resolved:
            raise JoinStateError("HTML branch resolved twice")
        self.html_resolved = True
        self._check_complete()

    def _check_complete(self) -> None:
        if self.is_complete:
            return
        if self.arrived_count >= self.expected_count and self.html_resolved:
            self.state = JobState.COMPLETE
            self.completed.set()
            logger.debug(
                "Resolution of %s complete: %d/%d arrived, %d unique",
                self.root_url,
                self.arrived_count,
                self.expected_count,
                len(self.unique_payloads),
            )
        else:
            logger.debug(
                "Resolution of %s: still expecting %d, html resolved %s",
                self.root_url,
                self.expected_count - self.arrived_count,
                self.html_resolved,
            )


Spawn = Callable[[Coroutine[None, None, None]], None]


class FetchCoordinator:
    """Runs a `ResolutionJob` for a host root until it completes."""

    def __init__(self, client: httpx.AsyncClient, *, max_redirects: int = 5) -> None:
        self._client = client
        self._max_redirects = max_redirects

    async def resolve(self, root_url: str, protocol: str) -> ResolutionJob:
        job = ResolutionJob(root_url=root_url)
        tasks: list[asyncio.Task[None]] = []

        def spawn(coro: Coroutine[None, None, None]) -> None:
            tasks.append(asyncio.create_task(coro))

        try:
            for name in WELL_KNOWN_ICONS:
                self._dispatch(job, IconCandidate(url=f"{root_url}/{name}"), spawn)
            spawn(self._resolve_html(job, root_url, protocol, spawn))

            await job.completed.wait()
            # Every task has reported by now; this only reaps them.
            await asyncio.gather(*tasks)
        finally:
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
        return job

    def _dispatch(self, job: ResolutionJob, candidate: IconCandidate, spawn: Spawn) -> None:
        job.candidates.append(candidate)
        spawn(self._fetch_candidate(job, candidate))

    async def _fetch_candidate(self, job: ResolutionJob, candidate: IconCandidate) -> None:
        fetched: IconCandidate | None = None
        try:
            payload = await fetch_bytes(self._client, candidate.url, max_redirects=self._max_redirects)
            if payload:
                logger.debug("Favicon %s found for %s", candidate.url, job.root_url)
                fetched = candidate.with_payload(payload)
            else:
                logger.debug("Favicon %s NOT found for %s", candidate.url, job.root_url)
        except Exception:  # pragma: no cover - fetch_bytes already absorbs I/O errors
            logger.exception("Unexpected error fetching %s", candidate.url)
        finally:
            job.arrive(fetched)

    async def _resolve_html(
        self,
        job: ResolutionJob,
        root_url: str,
        protocol: str,
        spawn: Spawn,
    ) -> None:
        try:
            html = await fetch_html(self._client, root_url, max_redirects=self._max_redirects)
            if html is None:
                logger.debug("No HTML returned: %s", root_url)
                return

            discovered = resolve_candidates(html, root_url, protocol)
            if not discovered:
                logger.debug("No favicon declared in HTML: %s", root_url)
                return

            logger.debug(
                "Found %d favicon(s) for %s in HTML: %s",
                len(discovered),
                root_url,
                [c.url for c in discovered],
            )
            for candidate in discovered:
                job.expect(1)
                self._dispatch(job, candidate, spawn)
        except Exception:  # pragma: no cover - resolver and fetch_html never raise
            logger.exception("Unexpected error scanning HTML of %s", root_url)
        finally:
            job.mark_html_resolved()
