"""Synchronization report models: per-document outcomes of a run."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class OutcomeStatus(str, Enum):
    """Terminal state of one document within a run."""

    UNCHANGED = "unchanged"
    NO_HEADER = "no_header"
    WRITTEN = "written"
    FAILED = "failed"


class FailureStage(str, Enum):
    """Step at which a failed document was abandoned."""

    READ = "read"
    EXTRACT = "extract"
    WRITE = "write"
    UNEXPECTED = "unexpected"


class DocumentOutcome(BaseModel):
    """Outcome of synchronizing a single document."""

    handle: str = Field(description="Document path relative to the storage prefix")
    status: OutcomeStatus = Field(description="Terminal state reached by the document")
    stage: FailureStage | None = Field(default=None, description="Step that failed (failed outcomes only)")
    error: str | None = Field(default=None, description="Failure cause (failed outcomes only)")


class SyncReport(BaseModel):
    """Result of one synchronization run.

    Partial success is the normal terminal state: failed documents are
    reported alongside the ones that were written or skipped.
    """

    storage_type: str = Field(description="Storage backend the run was executed against")
    total_documents: int = Field(default=0, description="Number of documents returned by listing")
    outcomes: list[DocumentOutcome] = Field(default_factory=list, description="One outcome per listed document")
    processing_time_ms: int = Field(default=0, description="Wall-clock duration of the run in ms")

    def count(self, status: OutcomeStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == status)

    @property
    def written_count(self) -> int:
        return self.count(OutcomeStatus.WRITTEN)

    @property
    def unchanged_count(self) -> int:
        return self.count(OutcomeStatus.UNCHANGED)

    @property
    def no_header_count(self) -> int:
        return self.count(OutcomeStatus.NO_HEADER)

    @property
    def failed(self) -> list[DocumentOutcome]:
        return [outcome for outcome in self.outcomes if outcome.status == OutcomeStatus.FAILED]

    @property
    def failed_count(self) -> int:
        return len(self.failed)
