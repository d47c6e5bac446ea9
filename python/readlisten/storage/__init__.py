"""Storage module for Supabase Storage operations.

Provides:
- StorageClient for interacting with Supabase Storage
- Path building for listening audio keys
- Test isolation support via configurable prefixes
"""

from readlisten.storage.client import (
    FakeStorageClient,
    StorageClient,
    StorageClientBase,
    StorageError,
    get_storage_client,
)
from readlisten.storage.paths import build_audio_path

__all__ = [
    "StorageClient",
    "StorageClientBase",
    "StorageError",
    "FakeStorageClient",
    "get_storage_client",
    "build_audio_path",
]
