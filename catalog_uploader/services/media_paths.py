"""
Media path classification.

Directory convention below the scan root::

    <root>/<owner-or-ignored>/<tag>/<tag>/.../<filename>

The first segment below the root becomes the owner when it is an accepted
user and is dropped otherwise; it is never used as a tag. Remaining directory
segments become lowercased tags. Files directly in the root belong to the
default owner and have no tags.
"""
from pathlib import Path
from typing import Iterable, Optional

from ..models import DEFAULT_OWNER, MediaFile, PathInfo


VIDEO_MIME_TYPES = {
    ".mp4": "video/mp4",
    ".avi": "video/x-msvideo",
    ".mpeg": "video/mpeg",
    ".ogv": "video/ogg",
    ".webm": "video/webm",
    ".mov": "video/quicktime",
    ".wmv": "video/x-ms-wmv",
}
VIDEO_EXTENSIONS = frozenset(VIDEO_MIME_TYPES)
FALLBACK_MIME_TYPE = "video/mp4"


def is_video(path) -> bool:
    return Path(path).suffix.lower() in VIDEO_EXTENSIONS


def mime_type_for(path) -> Optional[str]:
    """Return the MIME type for a recognized extension, None otherwise."""
    return VIDEO_MIME_TYPES.get(Path(path).suffix.lower())


def classify_path(path: Path, root: Path, accepted_users: Iterable[str]) -> PathInfo:
    """
    Derive owner, tags and MIME type from a file path.

    Args:
        path: Absolute path of the media file
        root: Scan root the path lives under
        accepted_users: Names allowed to own uploads

    Returns:
        PathInfo for the file

    Raises:
        ValueError: if path is not below root
    """
    path = Path(path)
    relative = path.relative_to(root)
    directories = list(relative.parts[:-1])

    owner = DEFAULT_OWNER
    if directories:
        first = directories.pop(0)
        if first in set(accepted_users):
            owner = first

    return PathInfo(
        absolute_path=path,
        relative_path=relative,
        filename=relative.name,
        owner=owner,
        tags=tuple(segment.lower() for segment in directories),
        mime_type=mime_type_for(path) or FALLBACK_MIME_TYPE,
    )


def load_media_file(info: PathInfo) -> MediaFile:
    """Read the whole file into memory (blocking, run in a thread)."""
    return MediaFile(info=info, content=info.absolute_path.read_bytes())
