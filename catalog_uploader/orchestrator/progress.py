"""Shared progress state for an upload run."""
from __future__ import annotations

import asyncio
import time
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Deque, Dict, List, Optional, Tuple

from ..models import OutcomeKind, UploadOutcome

RECENT_LOG_SIZE = 20


@dataclass(frozen=True)
class ProgressSnapshot:
    """Read-only copy of the tracker state for the status display."""
    uploaded: int
    corrupt: int
    failed: int
    skipped: int
    remaining: int
    retrieved_from_index: int
    recent: Tuple[Tuple[UploadOutcome, Path], ...]
    in_flight: Tuple[Tuple[Path, float], ...]
    corrupt_files: Tuple[Path, ...]
    failed_files: Tuple[Tuple[Path, Optional[int]], ...]

    @property
    def processed(self) -> int:
        return self.uploaded + self.corrupt + self.failed + self.skipped


class ProgressTracker:
    """
    Single owner of the run's mutable counters.

    Every mutation happens under one lock, so a snapshot never shows a
    counter updated without its log entry or the matching ``remaining``
    decrement. Rendering works on the snapshot after the lock is released.
    """

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._lock = asyncio.Lock()
        self._counts: Dict[OutcomeKind, int] = {kind: 0 for kind in OutcomeKind}
        self._remaining = 0
        self._retrieved_from_index = 0
        self._recent: Deque[Tuple[UploadOutcome, Path]] = deque(maxlen=RECENT_LOG_SIZE)
        self._in_flight: Dict[Path, float] = {}
        self._corrupt_files: List[Path] = []
        self._failed_files: List[Tuple[Path, Optional[int]]] = []

    async def set_total(self, total: int) -> None:
        async with self._lock:
            self._remaining = total

    async def set_retrieved_from_index(self, count: int) -> None:
        async with self._lock:
            self._retrieved_from_index = count

    async def record_outcome(self, path: Path, outcome: UploadOutcome) -> None:
        """Log the outcome, bump its counter and decrement remaining."""
        async with self._lock:
            self._recent.append((outcome, path))
            self._counts[outcome.kind] += 1
            if outcome.kind is OutcomeKind.CORRUPT:
                self._corrupt_files.append(path)
            elif outcome.kind is OutcomeKind.FAILED:
                self._failed_files.append((path, outcome.status_code))
            self._remaining -= 1

    async def add_in_flight(self, path: Path) -> None:
        """
        Raises:
            ValueError: if path is already in flight
        """
        async with self._lock:
            if path in self._in_flight:
                raise ValueError(f"already in flight: {path}")
            self._in_flight[path] = self._clock()

    async def remove_in_flight(self, path: Path) -> None:
        """
        Raises:
            KeyError: if path was never added
        """
        async with self._lock:
            del self._in_flight[path]

    async def snapshot(self) -> ProgressSnapshot:
        async with self._lock:
            return ProgressSnapshot(
                uploaded=self._counts[OutcomeKind.SUCCESS],
                corrupt=self._counts[OutcomeKind.CORRUPT],
                failed=self._counts[OutcomeKind.FAILED],
                skipped=self._counts[OutcomeKind.SKIPPED],
                remaining=self._remaining,
                retrieved_from_index=self._retrieved_from_index,
                recent=tuple(self._recent),
                in_flight=tuple(self._in_flight.items()),
                corrupt_files=tuple(self._corrupt_files),
                failed_files=tuple(self._failed_files),
            )
