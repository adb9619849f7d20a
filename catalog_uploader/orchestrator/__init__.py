"""Orchestrator package - coordinates upload runs."""
from .core import UploadOrchestrator
from .parallel_upload import UploadCoordinator, order_candidates
from .progress import ProgressSnapshot, ProgressTracker

__all__ = [
    "UploadOrchestrator",
    "UploadCoordinator",
    "order_candidates",
    "ProgressSnapshot",
    "ProgressTracker",
]
