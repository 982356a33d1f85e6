"""Base document storage: abstract interface for all storage backends.

Every storage backend must implement this interface to be synchronized by
the engine. The backend is responsible for:
  1. Enumerating eligible documents under its configured scope
  2. Reporting the current and last-synchronized content fingerprints
  3. Opening documents for streaming reads
  4. Attaching metadata attributes to stored objects

Change detection and metadata validation are implemented here once, on top
of the backend primitives, so every backend shares the same semantics.
"""

from __future__ import annotations

import hashlib
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from types import TracebackType

from metasync.models.metadata import Metadata, validate_geolocation
from metasync.storage.base.exceptions import InvalidMetadataError, ReadError

logger = logging.getLogger(__name__)


def content_fingerprint(content: bytes) -> str:
    """SHA-1 hex digest used to detect content changes between runs."""
    return hashlib.sha1(content).hexdigest()  # noqa: S324


class DocumentReader(ABC):
    """Streaming reader over a single document.

    Readers are async context managers; the owner must release them on
    every exit path::

        async with await storage.open_document(handle) as reader:
            content = await reader.read_all()

    Args:
        length: Declared content length, or ``None`` if the backend does not
            report one.
    """

    def __init__(self, length: int | None = None) -> None:
        self.length = length

    @abstractmethod
    def iter_chunks(self) -> AsyncIterator[bytes]:
        """Yield the document content in chunks until EOF."""

    @abstractmethod
    async def aclose(self) -> None:
        """Release the underlying stream or connection."""

    async def read_all(self) -> bytes:
        """Read the whole document, looping until EOF.

        Raises:
            ReadError: If the stream ends before the declared length.
        """
        buffer = bytearray()
        async for chunk in self.iter_chunks():
            buffer.extend(chunk)

        if self.length is not None and len(buffer) < self.length:
            raise ReadError(f"truncated read: expected {self.length} bytes, got {len(buffer)}")
        return bytes(buffer)

    async def __aenter__(self) -> DocumentReader:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()


class DocumentStorage(ABC):
    """Abstract base class for document storage backends.

    All backends must implement:
      - list_documents(): Enumerate eligible document handles
      - fetch_fingerprints(): Current and recorded content fingerprints
      - open_document(): Open a document for reading
      - put_attributes(): Attach attributes to a document

    Handles are paths relative to the backend's configured prefix. Every
    operation must be safe to call concurrently for different handles.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique storage type name (e.g., 'b2')."""

    @abstractmethod
    async def initialize(self) -> None:
        """Connect and authorize against the backend.

        Called once before the first synchronization run.
        """

    @abstractmethod
    async def shutdown(self) -> None:
        """Close connections and release resources."""

    @abstractmethod
    async def list_documents(self) -> list[str]:
        """Enumerate eligible documents.

        Returns:
            Document handles relative to the configured prefix.

        Raises:
            ListingError: If the documents cannot be enumerated.
        """

    @abstractmethod
    async def fetch_fingerprints(self, handle: str) -> tuple[str | None, str | None]:
        """Return ``(current, recorded)`` fingerprints for a document.

        ``current`` is the content hash maintained by the backend and
        ``recorded`` the one written by the last successful metadata write.
        Either may be ``None`` when unknown.
        """

    @abstractmethod
    async def open_document(self, handle: str) -> DocumentReader:
        """Open a document for reading.

        Raises:
            ReadError: If the document cannot be opened.
        """

    @abstractmethod
    async def put_attributes(self, handle: str, content: bytes, attributes: dict[str, str]) -> None:
        """Replace the document's attributes, keeping ``content`` as its body.

        Backends whose attributes are immutable must rewrite the object
        with the same content.

        Raises:
            WriteError: If the write fails.
        """

    async def has_changed(self, handle: str) -> bool:
        """Check whether a document changed since its last metadata write.

        Errors while checking are logged and reported as a change, so an
        uncertain document is reprocessed rather than skipped.
        """
        try:
            current, recorded = await self.fetch_fingerprints(handle)
        except Exception:
            logger.warning("Change check failed for '%s', treating it as changed", handle, exc_info=True)
            return True

        if current is None or recorded is None:
            return True
        return current != recorded

    async def write_metadata(self, handle: str, metadata: Metadata, content: bytes) -> None:
        """Publish metadata as attributes on a document.

        The fingerprint of ``content`` is recorded alongside the metadata so
        the next run can skip the document if it is left untouched.

        Args:
            handle: Document handle.
            metadata: Metadata extracted from ``content``.
            content: The document bytes the metadata was derived from.

        Raises:
            InvalidMetadataError: If the metadata is invalid. Nothing is sent
                to the backend in that case.
            WriteError: If the backend write fails.
        """
        try:
            validate_geolocation(metadata.geolocation)
        except ValueError as e:
            raise InvalidMetadataError(str(e)) from e

        attributes = metadata.to_attributes(content_fingerprint(content))
        await self.put_attributes(handle, content, attributes)
