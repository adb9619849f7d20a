"""Tests for deduplication and the per-file pipeline."""
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest

from catalog_uploader.models import DEFAULT_OWNER, OutcomeKind, UploadOutcome
from catalog_uploader.services.fingerprint import fingerprint_file
from catalog_uploader.services.remote_index import RemoteIndex
from catalog_uploader.use_cases.deduplication import (
    DedupClassifier,
    DedupVerdict,
    ResolveDedupVerdictUseCase,
)
from catalog_uploader.use_cases.file_processing import ProcessFileUseCase


@pytest.fixture
def passing_checker():
    checker = Mock()
    checker.check = AsyncMock(return_value=True)
    return checker


def test_resolve_verdict_no_size_match():
    decision = ResolveDedupVerdictUseCase.execute(RemoteIndex({1: ["a"]}), 2, None)
    assert decision.verdict is DedupVerdict.NEW
    assert decision.reason == "no_size_match"


def test_resolve_verdict_fingerprint_match():
    decision = ResolveDedupVerdictUseCase.execute(RemoteIndex({1: ["a"]}), 1, "a")
    assert decision.verdict is DedupVerdict.DUPLICATE
    assert decision.reason == "fingerprint_match"


def test_resolve_verdict_no_fingerprint_match():
    decision = ResolveDedupVerdictUseCase.execute(RemoteIndex({1: ["a"]}), 1, "b")
    assert decision.verdict is DedupVerdict.NEW
    assert decision.reason == "no_fingerprint_match"


class TestDedupClassifier:
    @pytest.mark.asyncio
    async def test_no_size_match_is_new_without_fingerprinting(self, tmp_path, passing_checker):
        clip = tmp_path / "clip.mp4"
        clip.write_bytes(b"content")
        fingerprinter = Mock()
        fingerprinter.fingerprint = AsyncMock()
        classifier = DedupClassifier(RemoteIndex({999: ["x"]}), passing_checker, fingerprinter)

        decision = await classifier.classify(clip, 7)

        assert decision.verdict is DedupVerdict.NEW
        fingerprinter.fingerprint.assert_not_awaited()
        passing_checker.check.assert_awaited_once_with(clip)

    @pytest.mark.asyncio
    async def test_new_regardless_of_content(self, tmp_path, passing_checker):
        index = RemoteIndex({3: ["whatever"]})
        classifier = DedupClassifier(index, passing_checker)
        for i, content in enumerate([b"", b"a" * 10, b"\x00" * 5000]):
            clip = tmp_path / f"clip{i}.mp4"
            clip.write_bytes(content)
            decision = await classifier.classify(clip, len(content))
            assert decision.verdict is DedupVerdict.NEW

    @pytest.mark.asyncio
    async def test_matching_fingerprint_is_duplicate(self, tmp_path, passing_checker):
        clip = tmp_path / "clip.mp4"
        clip.write_bytes(b"already uploaded")
        size = clip.stat().st_size
        index = RemoteIndex({size: [fingerprint_file(clip), "other"]})

        decision = await DedupClassifier(index, passing_checker).classify(clip, size)

        assert decision.verdict is DedupVerdict.DUPLICATE
        assert decision.fingerprint == fingerprint_file(clip)
        passing_checker.check.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_same_size_other_fingerprint_is_new(self, tmp_path, passing_checker):
        clip = tmp_path / "clip.mp4"
        clip.write_bytes(b"brand new bytes")
        size = clip.stat().st_size
        index = RemoteIndex({size: ["0" * 32]})

        decision = await DedupClassifier(index, passing_checker).classify(clip, size)

        assert decision.verdict is DedupVerdict.NEW
        assert decision.reason == "no_fingerprint_match"

    @pytest.mark.asyncio
    async def test_integrity_failure_is_corrupt(self, tmp_path):
        clip = tmp_path / "clip.mp4"
        clip.write_bytes(b"broken")
        checker = Mock()
        checker.check = AsyncMock(return_value=False)

        decision = await DedupClassifier(RemoteIndex(), checker).classify(clip, 6)

        assert decision.verdict is DedupVerdict.CORRUPT
        assert decision.reason == "integrity_failed"

    @pytest.mark.asyncio
    async def test_fingerprint_io_error_propagates(self, tmp_path, passing_checker):
        index = RemoteIndex({10: ["x"]})
        with pytest.raises(OSError):
            await DedupClassifier(index, passing_checker).classify(tmp_path / "gone.mp4", 10)


class TestProcessFileUseCase:
    @pytest.fixture
    def uploader(self):
        uploader = Mock()
        uploader.upload = AsyncMock(return_value=UploadOutcome.success())
        return uploader

    @pytest.mark.asyncio
    async def test_uploads_new_file_with_path_metadata(self, tmp_path, passing_checker, uploader):
        clip = tmp_path / "Alice" / "action" / "clip1.mp4"
        clip.parent.mkdir(parents=True)
        clip.write_bytes(b"clip-one")
        use_case = ProcessFileUseCase(tmp_path, ["Alice"], DedupClassifier(RemoteIndex(), passing_checker), uploader)

        outcome = await use_case.execute(clip)

        assert outcome == UploadOutcome.success()
        media = uploader.upload.await_args.args[0]
        assert media.owner == "Alice"
        assert media.tags == ("action",)
        assert media.filename == "clip1.mp4"
        assert media.content == b"clip-one"

    @pytest.mark.asyncio
    async def test_duplicate_is_skipped(self, tmp_path, passing_checker, uploader):
        clip = tmp_path / "clip.mp4"
        clip.write_bytes(b"dup")
        index = RemoteIndex({3: [fingerprint_file(clip)]})
        use_case = ProcessFileUseCase(tmp_path, [], DedupClassifier(index, passing_checker), uploader)

        outcome = await use_case.execute(clip)

        assert outcome.kind is OutcomeKind.SKIPPED
        uploader.upload.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_corrupt_is_not_uploaded(self, tmp_path, uploader):
        clip = tmp_path / "Bob" / "clip.mp4"
        clip.parent.mkdir()
        clip.write_bytes(b"bad")
        checker = Mock()
        checker.check = AsyncMock(return_value=False)
        use_case = ProcessFileUseCase(tmp_path, [], DedupClassifier(RemoteIndex(), checker), uploader)

        outcome = await use_case.execute(clip)

        assert outcome.kind is OutcomeKind.CORRUPT
        uploader.upload.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_upload_failure_is_returned(self, tmp_path, passing_checker, uploader):
        clip = tmp_path / "clip.mp4"
        clip.write_bytes(b"x")
        uploader.upload.return_value = UploadOutcome.failed(500)
        use_case = ProcessFileUseCase(tmp_path, [], DedupClassifier(RemoteIndex(), passing_checker), uploader)

        outcome = await use_case.execute(clip)

        assert outcome == UploadOutcome.failed(500)
        assert uploader.upload.await_args.args[0].owner == DEFAULT_OWNER

    @pytest.mark.asyncio
    async def test_missing_file_raises(self, tmp_path, passing_checker, uploader):
        use_case = ProcessFileUseCase(tmp_path, [], DedupClassifier(RemoteIndex(), passing_checker), uploader)
        with pytest.raises(OSError):
            await use_case.execute(Path(tmp_path / "gone.mp4"))
