"""Tests for candidate ordering and the bounded upload coordinator."""
import asyncio
from pathlib import Path

import pytest

from catalog_uploader.models import OutcomeKind, UploadOutcome
from catalog_uploader.orchestrator.parallel_upload import UploadCoordinator, order_candidates
from catalog_uploader.orchestrator.progress import ProgressTracker


def _paths(*names):
    return [Path(name) for name in names]


class TestOrderCandidates:
    def test_priority_first_then_scan_order(self):
        scanned = _paths("a", "b", "c", "d")
        assert order_candidates(_paths("c", "a"), scanned) == _paths("c", "a", "b", "d")

    def test_unknown_priority_paths_are_dropped(self):
        assert order_candidates(_paths("x", "b"), _paths("a", "b")) == _paths("b", "a")

    def test_no_duplicates(self):
        assert order_candidates(_paths("a", "a"), _paths("a", "b", "b")) == _paths("a", "b")

    def test_no_priority(self):
        assert order_candidates([], _paths("a", "b")) == _paths("a", "b")


class TestUploadCoordinator:
    def test_rejects_zero_parallelism(self):
        with pytest.raises(ValueError):
            UploadCoordinator(lambda path: None, ProgressTracker(), max_parallel=0)

    @pytest.mark.asyncio
    async def test_bounded_concurrency(self):
        tracker = ProgressTracker()
        candidates = [Path(f"{i}.mp4") for i in range(12)]
        await tracker.set_total(len(candidates))
        observed = []
        active = 0
        peak = 0

        async def handler(path):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            observed.append(len((await tracker.snapshot()).in_flight))
            await asyncio.sleep(0.01)
            active -= 1
            return UploadOutcome.success()

        results = await UploadCoordinator(handler, tracker, max_parallel=3).run(candidates)

        assert peak == 3
        assert max(observed) <= 3
        assert list(results) == candidates
        snapshot = await tracker.snapshot()
        assert snapshot.remaining == 0
        assert snapshot.uploaded == 12
        assert snapshot.in_flight == ()

    @pytest.mark.asyncio
    async def test_single_slot_processes_in_dispatch_order(self):
        tracker = ProgressTracker()
        order = []

        async def handler(path):
            order.append(path)
            await asyncio.sleep(0)
            return UploadOutcome.skipped()

        candidates = _paths("c.mp4", "a.mp4", "b.mp4")
        await UploadCoordinator(handler, tracker).run(candidates)

        assert order == candidates

    @pytest.mark.asyncio
    async def test_failing_task_does_not_stop_others(self):
        tracker = ProgressTracker()
        candidates = _paths("ok1.mp4", "boom.mp4", "ok2.mp4")
        await tracker.set_total(len(candidates))

        async def handler(path):
            if path.name == "boom.mp4":
                raise OSError("disk vanished")
            return UploadOutcome.success()

        results = await UploadCoordinator(handler, tracker, max_parallel=2).run(candidates)

        assert results[Path("boom.mp4")] == UploadOutcome.failed()
        assert results[Path("ok1.mp4")].kind is OutcomeKind.SUCCESS
        assert results[Path("ok2.mp4")].kind is OutcomeKind.SUCCESS
        snapshot = await tracker.snapshot()
        assert snapshot.failed == 1
        assert snapshot.failed_files == ((Path("boom.mp4"), None),)
        assert snapshot.remaining == 0
        assert snapshot.in_flight == ()

    @pytest.mark.asyncio
    async def test_every_candidate_recorded_once(self):
        tracker = ProgressTracker()
        candidates = [Path(f"{i}.mp4") for i in range(7)]
        await tracker.set_total(len(candidates))
        outcomes = [
            UploadOutcome.success(),
            UploadOutcome.skipped(),
            UploadOutcome.corrupt(),
            UploadOutcome.failed(500),
        ]

        async def handler(path):
            return outcomes[int(path.stem) % len(outcomes)]

        await UploadCoordinator(handler, tracker, max_parallel=4).run(candidates)

        snapshot = await tracker.snapshot()
        assert snapshot.processed == 7
        assert (snapshot.uploaded, snapshot.skipped, snapshot.corrupt, snapshot.failed) == (2, 2, 2, 1)
        assert snapshot.remaining == 0

    @pytest.mark.asyncio
    async def test_empty_run(self):
        assert await UploadCoordinator(lambda path: None, ProgressTracker()).run([]) == {}
