"""
Content fingerprints for duplicate detection.

A fingerprint is the MD5 of the first 128 KiB of a file followed by the
decimal file size in ASCII. Files shorter than 128 KiB are hashed whole. The
scheme matches the one the catalog stores, so local and remote values
compare directly.
"""
import asyncio
import hashlib
import os
from pathlib import Path

PREFIX_SIZE = 128 * 1024  # 128 KiB


def fingerprint_bytes(prefix: bytes, size: int) -> str:
    """Fingerprint from an already-read prefix and the exact file size."""
    hasher = hashlib.md5(prefix[:PREFIX_SIZE])
    hasher.update(str(size).encode("ascii"))
    return hasher.hexdigest()


def fingerprint_file(path: Path) -> str:
    """Calculate the fingerprint of a file (blocking)."""
    with open(path, "rb") as f:
        size = os.fstat(f.fileno()).st_size
        prefix = f.read(PREFIX_SIZE)
    return fingerprint_bytes(prefix, size)


class ContentFingerprinter:
    """Computes fingerprints off the event loop."""

    async def fingerprint(self, path: Path) -> str:
        return await asyncio.to_thread(fingerprint_file, Path(path))
