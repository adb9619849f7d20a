"""Services for catalog_uploader."""
from .api_client import HTTPMediaUploader
from .credentials import EnvCredentialStore
from .fingerprint import ContentFingerprinter
from .integrity import FFprobeIntegrityChecker
from .remote_index import HTTPIndexSource, RemoteIndex, StaticIndexSource

__all__ = [
    "HTTPMediaUploader",
    "EnvCredentialStore",
    "ContentFingerprinter",
    "FFprobeIntegrityChecker",
    "HTTPIndexSource",
    "RemoteIndex",
    "StaticIndexSource",
]
