"""Application use cases for upload runs."""

from .deduplication import (
    DedupClassifier,
    DedupDecision,
    DedupVerdict,
    ResolveDedupVerdictUseCase,
)
from .file_processing import ProcessFileUseCase

__all__ = [
    "DedupClassifier",
    "DedupDecision",
    "DedupVerdict",
    "ResolveDedupVerdictUseCase",
    "ProcessFileUseCase",
]
