"""
Protocols (Interfaces) for Dependency Inversion.

Following Interface Segregation Principle - small, focused interfaces.
"""
from pathlib import Path
from typing import Iterable, Protocol, Tuple, runtime_checkable

from .models import MediaFile, UploadOutcome


@runtime_checkable
class IIndexSource(Protocol):
    """Interface for the remote catalog index."""

    async def fetch(self) -> Iterable[Tuple[int, str]]:
        """Return every known (file size, fingerprint) pair."""
        ...


@runtime_checkable
class IIntegrityChecker(Protocol):
    """Interface for media validation."""

    async def check(self, path: Path) -> bool:
        """Return True when the file is a readable media file."""
        ...


@runtime_checkable
class ICredentialStore(Protocol):
    """Interface for per-owner upload credentials."""

    def secret_for(self, owner: str) -> str:
        """Return the secret for owner or raise ConfigurationError."""
        ...

    def require(self, owners: Iterable[str]) -> None:
        """Raise ConfigurationError unless every owner has a secret."""
        ...


@runtime_checkable
class IMediaUploader(Protocol):
    """Interface for sending a loaded media file to the catalog."""

    async def upload(self, media: MediaFile) -> UploadOutcome:
        """Upload media and interpret the response."""
        ...
