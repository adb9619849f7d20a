from pathlib import Path
from typing import Awaitable, Callable, Dict, Iterable, List
import asyncio
import logging
from catalog_uploader.models import UploadOutcome
from catalog_uploader.orchestrator.progress import ProgressTracker
logger = logging.getLogger(__name__)

FileHandler = Callable[[Path], Awaitable[UploadOutcome]]


def order_candidates(priority: Iterable[Path], scanned: Iterable[Path]) -> List[Path]:
    """
    Dispatch order: priority files first, then the rest in scan order.

    Priority paths the scan did not find are dropped, and no path appears
    twice.
    """
    scanned = list(scanned)
    known = set(scanned)
    ordered: List[Path] = []
    seen = set()
    for path in priority:
        if path in known and path not in seen:
            ordered.append(path)
            seen.add(path)
    for path in scanned:
        if path not in seen:
            ordered.append(path)
            seen.add(path)
    return ordered


class UploadCoordinator:
    """
    Runs one task per file, at most ``max_parallel`` at a time.

    A task holds its slot from the moment it starts reading the file until
    its outcome is recorded, so the tracker's in-flight set is exactly the
    set of slot holders. A failing task is recorded as Failed and never
    stops the others.
    """

    def __init__(self, handler: FileHandler, tracker: ProgressTracker, max_parallel: int = 1):
        if max_parallel < 1:
            raise ValueError(f"max_parallel must be at least 1, got {max_parallel}")
        self._handler = handler
        self._tracker = tracker
        self._max_parallel = max_parallel

    async def run(self, candidates: List[Path]) -> Dict[Path, UploadOutcome]:
        """
        Process every candidate and wait for all of them.

        Completion order is arbitrary; the returned mapping follows the
        dispatch order.
        """
        semaphore = asyncio.Semaphore(self._max_parallel)
        total = len(candidates)
        logger.info(f"Starting run: {total} files, max {self._max_parallel} parallel")

        tasks = [
            asyncio.create_task(self._process_single_file(semaphore, path, index, total))
            for index, path in enumerate(candidates, 1)
        ]
        outcomes = await asyncio.gather(*tasks)

        results = dict(zip(candidates, outcomes))
        uploaded = sum(1 for outcome in outcomes if outcome.is_success)
        logger.info(f"Run complete: {uploaded}/{total} uploaded")
        return results

    async def _process_single_file(
        self,
        semaphore: asyncio.Semaphore,
        path: Path,
        index: int,
        total: int,
    ) -> UploadOutcome:
        async with semaphore:
            await self._tracker.add_in_flight(path)
            try:
                outcome = await self._handler(path)
            except Exception as e:
                error_msg = str(e) or f"{type(e).__name__}"
                logger.error(f"[{index}/{total}] Error processing {path}: {error_msg}", exc_info=True)
                outcome = UploadOutcome.failed()

            logger.info(f"[{index}/{total}] {outcome.label}: {path}")
            await self._tracker.record_outcome(path, outcome)
            await self._tracker.remove_in_flight(path)
            return outcome
