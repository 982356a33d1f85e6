"""Storage Registry: maps storage type names to backend classes.

The registry is the single place where backend classes are looked up by the
``type`` tag of the storage configuration. New backends are added by
registering a class, never by changing the engine.
"""

from __future__ import annotations

import importlib
import logging
from typing import Any

from metasync.storage.base.storage import DocumentStorage

logger = logging.getLogger(__name__)

# Built-in backends, imported lazily so unused ones cost nothing.
_BUILTIN_STORAGES: dict[str, tuple[str, str]] = {
    "b2": ("metasync.storage.b2.storage", "B2Storage"),
}


class StorageNotFoundError(Exception):
    """Raised when a requested storage type is not registered."""


class StorageRegistry:
    """Registry of storage backend classes.

    Example:
        >>> registry = StorageRegistry.with_builtins()
        >>> storage = await registry.initialize_storage("b2", config)
    """

    def __init__(self) -> None:
        self._classes: dict[str, type[DocumentStorage]] = {}

    @classmethod
    def with_builtins(cls) -> StorageRegistry:
        """Create a registry with every built-in backend registered."""
        registry = cls()
        for name, (module_path, class_name) in _BUILTIN_STORAGES.items():
            module = importlib.import_module(module_path)
            registry.register(name, getattr(module, class_name))
        return registry

    def register(self, name: str, storage_class: type[DocumentStorage]) -> None:
        """Register a storage class under a type name.

        Args:
            name: Storage type tag used in configuration.
            storage_class: The backend class to register.
        """
        if name in self._classes:
            logger.warning("Overwriting existing storage registration: %s", name)
        self._classes[name] = storage_class
        logger.debug("Registered storage: %s", name)

    def get_class(self, name: str) -> type[DocumentStorage]:
        """Look up a registered storage class.

        Raises:
            StorageNotFoundError: If no storage is registered under this name.
        """
        if name not in self._classes:
            raise StorageNotFoundError(
                f"No storage registered with type '{name}'. "
                f"Available storage types: {self.registered_storages}"
            )
        return self._classes[name]

    async def initialize_storage(self, name: str, config: Any) -> DocumentStorage:
        """Create and initialize a storage backend.

        Args:
            name: The registered storage type.
            config: Backend-specific configuration passed to the constructor.

        Returns:
            The initialized storage instance.

        Raises:
            StorageNotFoundError: If no storage is registered under this name.
        """
        storage_class = self.get_class(name)
        storage = storage_class(config)
        try:
            await storage.initialize()
        except Exception:
            await storage.shutdown()
            raise
        logger.info("Initialized storage: %s", name)
        return storage

    @property
    def registered_storages(self) -> list[str]:
        """List all registered storage type names."""
        return list(self._classes.keys())
