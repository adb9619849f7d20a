"""
Models for catalog_uploader.

Immutable dataclasses following Single Responsibility Principle.
"""
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple


DEFAULT_OWNER = "Default_Uploader"


class OutcomeKind(Enum):
    """Terminal state of a processed file."""
    SUCCESS = "success"
    SKIPPED = "skipped"
    CORRUPT = "corrupt"
    FAILED = "failed"


@dataclass(frozen=True)
class UploadOutcome:
    """
    Tagged result of processing one file.

    Only FAILED carries a status code; ``None`` there means the request never
    produced a response (transport error, local I/O error).
    """
    kind: OutcomeKind
    status_code: Optional[int] = None

    def __post_init__(self):
        if self.status_code is not None and self.kind is not OutcomeKind.FAILED:
            raise ValueError(f"status_code is only valid for failed outcomes, got {self.kind}")

    @classmethod
    def success(cls) -> "UploadOutcome":
        return cls(OutcomeKind.SUCCESS)

    @classmethod
    def skipped(cls) -> "UploadOutcome":
        return cls(OutcomeKind.SKIPPED)

    @classmethod
    def corrupt(cls) -> "UploadOutcome":
        return cls(OutcomeKind.CORRUPT)

    @classmethod
    def failed(cls, status_code: Optional[int] = None) -> "UploadOutcome":
        return cls(OutcomeKind.FAILED, status_code)

    @property
    def is_success(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS

    @property
    def label(self) -> str:
        """Short label used by the status display."""
        if self.kind is OutcomeKind.FAILED:
            return str(self.status_code) if self.status_code is not None else "NO RESPONSE"
        if self.kind is OutcomeKind.CORRUPT:
            return "CORRUPTED"
        return self.kind.name


@dataclass(frozen=True)
class PathInfo:
    """Metadata derived from a file path relative to the scan root."""
    absolute_path: Path
    relative_path: Path
    filename: str
    owner: str
    tags: Tuple[str, ...]
    mime_type: str

    @property
    def description(self) -> str:
        return ",".join(self.tags)


@dataclass(frozen=True)
class MediaFile:
    """A media file loaded into memory, ready to be uploaded."""
    info: PathInfo
    content: bytes = field(repr=False)

    @property
    def filename(self) -> str:
        return self.info.filename

    @property
    def owner(self) -> str:
        return self.info.owner

    @property
    def tags(self) -> Tuple[str, ...]:
        return self.info.tags

    @property
    def mime_type(self) -> str:
        return self.info.mime_type

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class RunSummary:
    """Result of a full upload run."""
    total_files: int
    priority_files: int
    uploaded: int
    skipped: int
    corrupt: int
    failed: int
    scan_errors: Tuple[Tuple[Path, str], ...] = ()

    @property
    def all_success(self) -> bool:
        return self.failed == 0 and self.corrupt == 0
