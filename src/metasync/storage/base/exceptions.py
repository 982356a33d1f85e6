"""Storage-specific exceptions."""


class StorageError(Exception):
    """Base exception for storage backend errors."""


class StorageConnectionError(StorageError):
    """Raised when the backend cannot be reached or refuses authorization."""


class ListingError(StorageError):
    """Raised when documents cannot be enumerated."""


class ReadError(StorageError):
    """Raised when a document cannot be opened or read completely."""


class WriteError(StorageError):
    """Raised when metadata cannot be written back to a document."""


class InvalidMetadataError(StorageError):
    """Raised when metadata fails validation before any write is attempted."""


class ConfigurationError(StorageError):
    """Raised when backend configuration is invalid."""
