"""Data models for extracted metadata and synchronization reports."""

from metasync.models.metadata import Metadata, validate_geolocation
from metasync.models.report import DocumentOutcome, FailureStage, OutcomeStatus, SyncReport

__all__ = [
    "DocumentOutcome",
    "FailureStage",
    "Metadata",
    "OutcomeStatus",
    "SyncReport",
    "validate_geolocation",
]
