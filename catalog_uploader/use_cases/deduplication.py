"""Deduplication against the remote index plus integrity gating."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from ..protocols import IIntegrityChecker
from ..services.fingerprint import ContentFingerprinter
from ..services.remote_index import RemoteIndex

logger = logging.getLogger(__name__)


class DedupVerdict(Enum):
    NEW = "new"
    DUPLICATE = "duplicate"
    CORRUPT = "corrupt"


@dataclass(frozen=True)
class DedupDecision:
    """Result of deciding what to do with a file after dedup checks."""

    verdict: DedupVerdict
    reason: str
    fingerprint: Optional[str] = None

    @property
    def should_upload(self) -> bool:
        return self.verdict is DedupVerdict.NEW


class ResolveDedupVerdictUseCase:
    """Resolve New/Duplicate from the index alone."""

    @staticmethod
    def execute(index: RemoteIndex, size: int, fingerprint: Optional[str]) -> DedupDecision:
        if not index.has_size(size):
            return DedupDecision(DedupVerdict.NEW, "no_size_match")
        if fingerprint is not None and index.contains(size, fingerprint):
            return DedupDecision(DedupVerdict.DUPLICATE, "fingerprint_match", fingerprint)
        return DedupDecision(DedupVerdict.NEW, "no_fingerprint_match", fingerprint)


class DedupClassifier:
    """
    Classifies a file as new, duplicate or corrupt.

    The fingerprint is only computed when the index knows a file of exactly
    the same size. New files go through the integrity checker; duplicates
    never do. I/O errors propagate to the caller.
    """

    def __init__(
        self,
        index: RemoteIndex,
        integrity_checker: IIntegrityChecker,
        fingerprinter: Optional[ContentFingerprinter] = None,
    ):
        self._index = index
        self._integrity = integrity_checker
        self._fingerprinter = fingerprinter or ContentFingerprinter()

    async def classify(self, path: Path, size: int) -> DedupDecision:
        fingerprint = None
        if self._index.has_size(size):
            fingerprint = await self._fingerprinter.fingerprint(path)

        decision = ResolveDedupVerdictUseCase.execute(self._index, size, fingerprint)
        logger.debug("Dedup %s: %s (%s)", path.name, decision.verdict.value, decision.reason)
        if not decision.should_upload:
            return decision

        if not await self._integrity.check(path):
            return DedupDecision(DedupVerdict.CORRUPT, "integrity_failed", fingerprint)
        return decision
