"""
Upload admission registry.

Tracks which upload claims have already been granted an upload. Each claim
record gets at most one admission for the lifetime of the process; the
check-and-mark step is atomic under a single lock so concurrent requests
carrying the same token cannot both pass.

Entries are evicted lazily once the claims' own expiry has passed: such a
token can no longer verify, so dropping it does not reopen a replay window.
"""
import threading
import time
from typing import Callable, Dict, Optional

import structlog

from ..schemas.upload import UploadClaims


logger = structlog.get_logger(__name__)


class AdmissionRegistry:
    def __init__(
        self,
        leeway: float = 0,
        sweep_interval: float = 60.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._entries: Dict[str, Optional[float]] = {}
        self._lock = threading.Lock()
        self._leeway = leeway
        self._sweep_interval = sweep_interval
        self._clock = clock
        self._last_sweep = clock()

    def has_been_admitted(self, claims: UploadClaims) -> bool:
        key = claims.admission_key()
        with self._lock:
            self._maybe_sweep()
            return key in self._entries

    def admit(self, claims: UploadClaims) -> None:
        key = claims.admission_key()
        with self._lock:
            self._maybe_sweep()
            self._entries[key] = claims.exp

    def try_admit(self, claims: UploadClaims) -> bool:
        """Atomically mark ``claims`` admitted. False if someone got there first."""
        key = claims.admission_key()
        with self._lock:
            self._maybe_sweep()
            if key in self._entries:
                return False
            self._entries[key] = claims.exp
            return True

    def sweep(self) -> int:
        with self._lock:
            return self._sweep()

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _maybe_sweep(self) -> None:
        if self._clock() - self._last_sweep >= self._sweep_interval:
            self._sweep()

    def _sweep(self) -> int:
        now = self._clock()
        self._last_sweep = now
        expired = [
            key for key, exp in self._entries.items()
            if exp is not None and exp + self._leeway < now
        ]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.info("admission_entries_evicted", count=len(expired), remaining=len(self._entries))
        return len(expired)
