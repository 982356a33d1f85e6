"""Synchronization engine: publishes frontmatter of changed documents as metadata.

A run goes through the following steps:
  1. Listing: enumerate documents once (a failure aborts the run)
  2. Change check: skip documents whose fingerprint matches the recorded one
  3. Read + Extract: download the document and decode its frontmatter
  4. Write: publish the metadata together with the content fingerprint

Steps 2-4 run per document in independent tasks, at most
``max_concurrent_jobs`` at a time. Every document ends in exactly one of
the ``OutcomeStatus`` states, and one document's failure never affects
another.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any

import structlog

from metasync.core.frontmatter import FrontmatterDecodeError, extract_frontmatter
from metasync.models.report import DocumentOutcome, FailureStage, OutcomeStatus, SyncReport
from metasync.storage.base.exceptions import StorageError
from metasync.storage.base.storage import DocumentStorage

logger = structlog.get_logger(__name__)


class SyncEngine:
    """Orchestrates one synchronization run against a storage backend.

    Pipeline per document:
      handle → [has_changed] → unchanged
             → [open_document / read_all] → failed (read)
             → [extract_frontmatter] → failed (extract) | no_header
             → [write_metadata] → failed (write) | written

    Attributes:
        storage: Initialized storage backend.
        max_concurrent_jobs: Upper bound on documents in flight.
    """

    def __init__(self, storage: DocumentStorage, max_concurrent_jobs: int = 4) -> None:
        if max_concurrent_jobs < 1:
            raise ValueError("max_concurrent_jobs must be at least 1")
        self.storage = storage
        self.max_concurrent_jobs = max_concurrent_jobs
        self._log = logger.bind(storage_type=storage.name)

    async def run(self) -> SyncReport:
        """Synchronize every eligible document once.

        Returns:
            A report with one outcome per listed document.

        Raises:
            StorageError: If listing the documents fails. Per-document
                failures are recorded in the report instead.
        """
        start_time = time.monotonic()

        self._log.info("scan_started")
        try:
            handles = await self.storage.list_documents()
        except Exception as e:
            self._log.error("scan_failed", error=str(e))
            raise
        self._log.info("scan_completed", file_count=len(handles))

        semaphore = asyncio.Semaphore(self.max_concurrent_jobs)

        async def _guarded(handle: str) -> DocumentOutcome:
            async with semaphore:
                return await self.sync_document(handle)

        results: list[Any] = await asyncio.gather(*(_guarded(h) for h in handles), return_exceptions=True)

        outcomes: list[DocumentOutcome] = []
        for handle, result in zip(handles, results, strict=True):
            if isinstance(result, Exception):
                self._log.error(
                    "document_failed",
                    file=handle,
                    stage=FailureStage.UNEXPECTED.value,
                    error=str(result),
                    exc_info=result,
                )
                outcomes.append(
                    DocumentOutcome(
                        handle=handle,
                        status=OutcomeStatus.FAILED,
                        stage=FailureStage.UNEXPECTED,
                        error=str(result),
                    )
                )
            elif isinstance(result, BaseException):
                raise result
            else:
                outcomes.append(result)

        report = SyncReport(
            storage_type=self.storage.name,
            total_documents=len(handles),
            outcomes=outcomes,
            processing_time_ms=int((time.monotonic() - start_time) * 1000),
        )

        self._log.info(
            "sync_completed",
            written=report.written_count,
            unchanged=report.unchanged_count,
            no_header=report.no_header_count,
            failed=report.failed_count,
            processing_time_ms=report.processing_time_ms,
        )
        return report

    async def sync_document(self, handle: str) -> DocumentOutcome:
        """Synchronize a single document.

        Storage and decode errors are logged and returned as a failed
        outcome; they never propagate.

        Args:
            handle: Document handle from listing.

        Returns:
            The document's outcome for this run.
        """
        log = self._log.bind(file=handle)

        if not await self.storage.has_changed(handle):
            log.debug("document_unchanged")
            return DocumentOutcome(handle=handle, status=OutcomeStatus.UNCHANGED)
        log.debug("document_processing")

        try:
            async with await self.storage.open_document(handle) as reader:
                content = await reader.read_all()
        except StorageError as e:
            return self._failed(log, handle, FailureStage.READ, e)
        log.debug("document_read", expected_size=reader.length, output_size=len(content))

        try:
            metadata, _ = extract_frontmatter(content, source=handle)
        except FrontmatterDecodeError as e:
            return self._failed(log, handle, FailureStage.EXTRACT, e)

        if metadata is None:
            log.info("document_without_header")
            return DocumentOutcome(handle=handle, status=OutcomeStatus.NO_HEADER)

        try:
            await self.storage.write_metadata(handle, metadata, content)
        except StorageError as e:
            return self._failed(log, handle, FailureStage.WRITE, e)

        log.info("document_written")
        return DocumentOutcome(handle=handle, status=OutcomeStatus.WRITTEN)

    @staticmethod
    def _failed(log: Any, handle: str, stage: FailureStage, error: Exception) -> DocumentOutcome:
        log.warning("document_failed", stage=stage.value, error=str(error))
        return DocumentOutcome(
            handle=handle,
            status=OutcomeStatus.FAILED,
            stage=stage,
            error=str(error),
        )
