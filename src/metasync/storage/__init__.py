"""Storage layer: pluggable backends for document stores.

Built-in backends:
  - b2: Backblaze B2 (native API v2)

Implement ``DocumentStorage`` and register it with ``StorageRegistry`` to
synchronize documents held in another store.
"""
