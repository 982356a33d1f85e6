"""Base storage interface: abstract classes for document storage backends."""

from metasync.storage.base.registry import StorageRegistry
from metasync.storage.base.storage import DocumentReader, DocumentStorage

__all__ = ["DocumentReader", "DocumentStorage", "StorageRegistry"]
