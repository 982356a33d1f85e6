"""Shared test fixtures and configuration."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field

import pytest

from metasync.models.metadata import FINGERPRINT_ATTRIBUTE
from metasync.storage.base.exceptions import ListingError, ReadError, WriteError
from metasync.storage.base.storage import DocumentReader, DocumentStorage, content_fingerprint

HEADER_DOCUMENT = b'---\ntitle: "T"\ntags: [a, b]\ngeolocation: "10.0 20.0"\n---\nBody text\n'
PLAIN_DOCUMENT = b"# Just a heading\n\nNo frontmatter here.\n"
BROKEN_DOCUMENT = b"---\ntitle: [unterminated\n---\nBody\n"


# ── In-memory storage ────────────────────────────────────────────────────────


class BytesReader(DocumentReader):
    """Reader that yields in-memory content in small chunks."""

    def __init__(self, content: bytes, length: int | None = None, chunk_size: int = 7) -> None:
        super().__init__(len(content) if length is None else length)
        self._content = content
        self._chunk_size = chunk_size
        self.closed = False

    async def iter_chunks(self) -> AsyncIterator[bytes]:
        for offset in range(0, len(self._content), self._chunk_size):
            await asyncio.sleep(0)
            yield self._content[offset : offset + self._chunk_size]

    async def aclose(self) -> None:
        self.closed = True


@dataclass
class StoredDocument:
    content: bytes
    attributes: dict[str, str] = field(default_factory=dict)


class InMemoryStorage(DocumentStorage):
    """Storage backend holding documents in a dict, with failure injection."""

    def __init__(self, documents: dict[str, bytes] | None = None) -> None:
        self.documents = {handle: StoredDocument(content) for handle, content in (documents or {}).items()}
        self.list_error: Exception | None = None
        self.fail_check: set[str] = set()
        self.fail_read: set[str] = set()
        self.fail_write: set[str] = set()
        self.truncate: set[str] = set()
        self.write_calls: list[str] = []
        self.readers: list[BytesReader] = []

    @property
    def name(self) -> str:
        return "memory"

    async def initialize(self) -> None:
        pass

    async def shutdown(self) -> None:
        pass

    async def list_documents(self) -> list[str]:
        if self.list_error:
            raise self.list_error
        return sorted(self.documents)

    async def fetch_fingerprints(self, handle: str) -> tuple[str | None, str | None]:
        if handle in self.fail_check:
            raise ReadError(f"cannot stat {handle}")
        doc = self.documents[handle]
        return content_fingerprint(doc.content), doc.attributes.get(FINGERPRINT_ATTRIBUTE)

    async def open_document(self, handle: str) -> DocumentReader:
        if handle in self.fail_read:
            raise ReadError(f"cannot open {handle}")
        content = self.documents[handle].content
        length = len(content) + 10 if handle in self.truncate else None
        reader = BytesReader(content, length=length)
        self.readers.append(reader)
        return reader

    async def put_attributes(self, handle: str, content: bytes, attributes: dict[str, str]) -> None:
        self.write_calls.append(handle)
        if handle in self.fail_write:
            raise WriteError(f"cannot write {handle}")
        self.documents[handle] = StoredDocument(content, dict(attributes))

    def edit(self, handle: str, content: bytes) -> None:
        """Replace a document's content, keeping its attributes."""
        self.documents[handle].content = content


class BlockingStorage(InMemoryStorage):
    """In-memory storage whose operations wait on ``release`` and track documents in flight."""

    def __init__(self, documents: dict[str, bytes] | None = None) -> None:
        super().__init__(documents)
        self.release = asyncio.Event()
        self.in_flight: set[str] = set()
        self.peak_in_flight = 0

    async def fetch_fingerprints(self, handle: str) -> tuple[str | None, str | None]:
        self.in_flight.add(handle)
        self.peak_in_flight = max(self.peak_in_flight, len(self.in_flight))
        await self.release.wait()
        return await super().fetch_fingerprints(handle)

    async def open_document(self, handle: str) -> DocumentReader:
        await self.release.wait()
        return await super().open_document(handle)

    async def put_attributes(self, handle: str, content: bytes, attributes: dict[str, str]) -> None:
        await self.release.wait()
        await super().put_attributes(handle, content, attributes)
        self.in_flight.discard(handle)


# ── Fixtures ─────────────────────────────────────────────────────────────────


@pytest.fixture
def make_storage() -> Callable[..., InMemoryStorage]:
    """Factory for in-memory storages pre-filled with documents."""
    return InMemoryStorage


@pytest.fixture
def make_blocking_storage() -> Callable[..., BlockingStorage]:
    """Factory for blocking in-memory storages."""
    return BlockingStorage


@pytest.fixture
def header_document() -> bytes:
    return HEADER_DOCUMENT


@pytest.fixture
def plain_document() -> bytes:
    return PLAIN_DOCUMENT


@pytest.fixture
def storage() -> InMemoryStorage:
    """Storage with one document of each kind."""
    return InMemoryStorage(
        {
            "posts/with-header.md": HEADER_DOCUMENT,
            "posts/plain.md": PLAIN_DOCUMENT,
            "posts/broken.md": BROKEN_DOCUMENT,
        }
    )


@pytest.fixture
def listing_error() -> Exception:
    return ListingError("bucket unavailable")


@pytest.fixture
def b2_settings_data() -> dict:
    """Raw settings mapping with a B2 storage section."""
    return {
        "max_concurrent_jobs": 3,
        "storage": {
            "type": "b2",
            "config": {
                "bucket_name": "articles",
                "region": "us-west-004",
                "prefix": "blog/",
                "key_id": "key-id",
                "application_key": "app-key",
            },
        },
    }
