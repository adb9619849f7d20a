"""
catalog_uploader - incremental media upload to a remote catalog.

Discovers media files below a root folder, skips the ones the catalog
already holds (size + partial-content fingerprint), rejects corrupt files
and uploads the rest with bounded concurrency.

Usage:
    from catalog_uploader import UploadOrchestrator, load_config

    config = load_config(Path("config.yml"))
    async with UploadOrchestrator(config) as orchestrator:
        summary = await orchestrator.run()
"""
from .config import UploaderConfig, load_config
from .errors import ConfigurationError, UploaderError
from .models import MediaFile, OutcomeKind, PathInfo, RunSummary, UploadOutcome
from .orchestrator import ProgressTracker, UploadCoordinator, UploadOrchestrator

__version__ = "0.1.0"
__all__ = [
    # Main
    "UploadOrchestrator",
    "UploadCoordinator",
    "ProgressTracker",
    # Config
    "UploaderConfig",
    "load_config",
    # Models
    "MediaFile",
    "OutcomeKind",
    "PathInfo",
    "RunSummary",
    "UploadOutcome",
    # Errors
    "ConfigurationError",
    "UploaderError",
]
