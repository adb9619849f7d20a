"""Media integrity checks backed by an external validation tool."""
from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path
from typing import Optional, Sequence

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_INTEGRITY_COMMAND = ("ffprobe", "-v", "error")


class FFprobeIntegrityChecker:
    """
    Runs ``command + [path]``; exit status 0 means the file is intact.

    Implements IIntegrityChecker protocol. Any other exit status, or failure
    to start the process, counts as corrupt.
    """

    def __init__(self, command: Sequence[str] = DEFAULT_INTEGRITY_COMMAND):
        if not command:
            raise ConfigurationError("integrity command must not be empty")
        self._command = list(command)

    def ensure_available(self) -> None:
        """Raise ConfigurationError when the tool cannot be found."""
        if shutil.which(self._command[0]) is None:
            raise ConfigurationError(f"integrity tool not found: {self._command[0]}")

    async def check(self, path: Path) -> bool:
        try:
            proc = await asyncio.create_subprocess_exec(
                *self._command,
                str(path),
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.error("Integrity check could not start for %s: %s", path, e)
            return False

        _, stderr = await proc.communicate()
        if proc.returncode != 0:
            detail = _first_line(stderr) or f"exit status {proc.returncode}"
            logger.warning("Integrity check failed for %s: %s", path, detail)
            return False
        return True


def _first_line(data: Optional[bytes]) -> str:
    if not data:
        return ""
    text = data.decode("utf-8", errors="replace").strip()
    return text.splitlines()[0] if text else ""
