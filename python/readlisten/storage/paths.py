"""Storage path building utilities.

This module is the single point of logic for building storage keys.
All key construction goes through build_audio_path() so the test prefix is
applied consistently.

Path Invariant:
    - Production: files/{uid}.{ext}
    - Test: test_runs/{run_id}/files/{uid}.{ext}

Rules:
    - No leading slash
    - No user identifiers in paths
    - Prefix applied exactly once in build_audio_path()
"""

import os
from uuid import UUID

# Environment variable for test run prefix
TEST_PREFIX_ENV_VAR = "STORAGE_TEST_PREFIX"


def _get_test_prefix() -> str:
    """Get the test prefix from environment, normalized to end with "/"."""
    prefix = os.environ.get(TEST_PREFIX_ENV_VAR, "").lstrip("/")
    if prefix and not prefix.endswith("/"):
        prefix = f"{prefix}/"
    return prefix


def build_audio_path(uid: UUID | str, ext: str) -> str:
    """Build the storage key for a listening audio file.

    Args:
        uid: The l_item UUID.
        ext: File extension (without leading dot).

    Returns:
        Full storage key, e.g. "files/{uid}.aac" with any test prefix.

    Example:
        >>> build_audio_path(UUID("3f1c2d4e-0000-4000-8000-000000000001"), "aac")
        'files/3f1c2d4e-0000-4000-8000-000000000001.aac'
    """
    ext = ext.lstrip(".")
    if not ext:
        raise ValueError("extension must not be empty")
    return f"{_get_test_prefix()}files/{uid}.{ext}"

