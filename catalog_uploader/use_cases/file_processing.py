"""Per-file upload pipeline."""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Iterable

from ..models import UploadOutcome
from ..protocols import IMediaUploader
from ..services.media_paths import classify_path, load_media_file
from .deduplication import DedupClassifier, DedupVerdict

logger = logging.getLogger(__name__)


class ProcessFileUseCase:
    """
    Classify one file and upload it when it is new and intact.

    Flow:
    1. stat the file for its size
    2. dedup against the remote index (fingerprint only on size match)
    3. integrity check for new files
    4. read the file into memory and upload it

    The in-memory content lives only for the duration of this call.
    """

    def __init__(
        self,
        root: Path,
        accepted_users: Iterable[str],
        classifier: DedupClassifier,
        uploader: IMediaUploader,
    ):
        self._root = Path(root)
        self._accepted_users = frozenset(accepted_users)
        self._classifier = classifier
        self._uploader = uploader

    async def execute(self, path: Path) -> UploadOutcome:
        size = (await asyncio.to_thread(path.stat)).st_size
        decision = await self._classifier.classify(path, size)

        if decision.verdict is DedupVerdict.DUPLICATE:
            logger.info("Skipping %s (already in catalog)", path)
            return UploadOutcome.skipped()
        if decision.verdict is DedupVerdict.CORRUPT:
            logger.warning("Corrupt file %s, not uploading", path)
            return UploadOutcome.corrupt()

        info = classify_path(path, self._root, self._accepted_users)
        media = await asyncio.to_thread(load_media_file, info)
        logger.info("Uploading %s as %s (%d bytes)", info.relative_path, info.owner, media.size)
        return await self._uploader.upload(media)
