"""On-disk favicon cache keyed by host.

Layout::

    <cache_dir>/<host>/<index>.<width>.png   converted variants
    <scratch_dir>/<host>-tmp-<index>.ico     raw payloads before conversion
    <scratch_dir>/<host>-<random>/           staging dir of a running resolution

The host directory's mtime is the freshness timestamp. A cold resolution
converts into a staging directory which `publish` renames over the host
directory, so readers see the previous entry or the new one, never a mix.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import time
import uuid
from pathlib import Path
from typing import Callable, Iterable

from core.config import BestFitPolicy
from core.domain.models import CachedIconFile

logger = logging.getLogger(__name__)


def parse_width(filename: str) -> int | None:
    """`0.32.png` -> 32; None when the name carries no integer width."""

    parts = filename.split(".")
    if len(parts) < 3:
        return None
    try:
        width = int(parts[1])
    except ValueError:
        return None
    return width if width >= 0 else None


def pick_closest(entries: Iterable[CachedIconFile], requested_size: int) -> CachedIconFile | None:
    """Smallest absolute difference; ties go to the larger image, then to name order."""

    best: CachedIconFile | None = None
    best_key: tuple[int, bool] | None = None
    for entry in entries:
        difference = entry.width - requested_size
        key = (abs(difference), difference < 0)
        if best_key is None or key < best_key:
            best, best_key = entry, key
    return best


def pick_legacy(entries: Iterable[CachedIconFile], requested_size: int) -> CachedIconFile | None:
    """Running-best comparison of the original service.

    A larger difference replaces the best, except that once the best is
    already oversized (positive difference) it is never replaced.
    """

    best: CachedIconFile | None = None
    best_difference = -100000
    for entry in entries:
        difference = entry.width - requested_size
        if difference > best_difference and best_difference > 0:
            continue
        if difference > best_difference:
            best_difference = difference
            best = entry
    return best


_PICKERS: dict[BestFitPolicy, Callable[[Iterable[CachedIconFile], int], CachedIconFile | None]] = {
    BestFitPolicy.CLOSEST: pick_closest,
    BestFitPolicy.LEGACY: pick_legacy,
}


class HostCache:
    def __init__(
        self,
        cache_dir: Path,
        scratch_dir: Path,
        *,
        policy: BestFitPolicy = BestFitPolicy.CLOSEST,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._cache_dir = cache_dir
        self._scratch_dir = scratch_dir
        self._pick = _PICKERS[policy]
        self._clock = clock

    def ensure_layout(self) -> None:
        self._cache_dir.mkdir(parents=True, exist_ok=True)
        self._scratch_dir.mkdir(parents=True, exist_ok=True)

    def host_dir(self, host: str) -> Path:
        return self._cache_dir / host

    def accepts(self, host: str) -> bool:
        """False for hosts whose directory would collide with the scratch area."""

        return self.host_dir(host) != self._scratch_dir

    def entries(self, host: str) -> list[CachedIconFile]:
        """Width-tagged files of `host`, sorted by name; raises OSError if unreadable."""

        folder = self.host_dir(host)
        found: list[CachedIconFile] = []
        for path in sorted(folder.iterdir(), key=lambda p: p.name):
            width = parse_width(path.name)
            if width is None or not path.is_file():
                continue
            found.append(CachedIconFile(width=width, path=path))
        return found

    def lookup(
        self,
        host: str,
        requested_size: int,
        max_age: float | None,
    ) -> CachedIconFile | None:
        """Best cached variant for `requested_size`, or None on a miss.

        With `max_age`, a directory last modified more than `max_age` seconds
        ago is a miss whatever it contains.
        """

        folder = self.host_dir(host)
        if max_age is not None:
            try:
                mtime = folder.stat().st_mtime
            except FileNotFoundError:
                return None
            except OSError as exc:
                logger.warning("Cannot stat cache folder %s: %s", folder, exc)
                return None
            if mtime < self._clock() - max_age:
                logger.debug("Expire check failed for folder %s", folder)
                return None

        try:
            entries = self.entries(host)
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.warning("Cannot read cache folder %s: %s", folder, exc)
            return None

        for entry in entries:
            if entry.width == requested_size:
                logger.debug("Perfect fit for host %s: %s", host, entry.path.name)
                return entry

        best = self._pick(entries, requested_size)
        if best is not None:
            logger.debug("Best fit for host %s at %d: %s", host, requested_size, best.path.name)
        return best

    def staging_dir(self, host: str) -> Path:
        """Fresh directory the converter writes one resolution's variants into."""

        self._scratch_dir.mkdir(parents=True, exist_ok=True)
        return Path(tempfile.mkdtemp(prefix=f"{host}-", dir=self._scratch_dir))

    def scratch_file(self, host: str, index: int) -> Path:
        return self._scratch_dir / f"{host}-tmp-{index}.ico"

    def publish(self, host: str, staging: Path) -> bool:
        """Replace the host's entry with `staging`; False when staging is empty."""

        if not any(path.is_file() for path in staging.iterdir()):
            shutil.rmtree(staging, ignore_errors=True)
            return False

        target = self.host_dir(host)
        retired: Path | None = None
        if target.exists():
            retired = self._scratch_dir / f"{host}-retired-{uuid.uuid4().hex}"
            target.rename(retired)
        try:
            staging.rename(target)
        except OSError:
            if retired is not None:
                retired.rename(target)
            raise
        os.utime(target)
        if retired is not None:
            shutil.rmtree(retired, ignore_errors=True)
        return True

    def discard(self, *paths: Path) -> None:
        for path in paths:
            try:
                if path.is_dir():
                    shutil.rmtree(path)
                else:
                    path.unlink(missing_ok=True)
            except OSError as exc:
                logger.debug("Cannot remove scratch %s: %s", path, exc)
