"""Backblaze B2 storage backend."""

from metasync.storage.b2.storage import B2Storage

__all__ = ["B2Storage"]
