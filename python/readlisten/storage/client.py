"""Supabase Storage client abstraction.

Provides a clean interface for the storage operations the audio pipeline needs:
- Object upload (worker writes synthesized audio)
- Signed download URLs (private buckets)
- Stable public URLs (public buckets)
- Object deletion (cleanup of unlinked uploads)

All methods receive the full storage path directly; prefixes are applied by
readlisten.storage.paths only.
"""

from abc import ABC, abstractmethod
from uuid import uuid4

import httpx

from readlisten.config import Settings, get_settings
from readlisten.logging import get_logger

logger = get_logger(__name__)


class StorageError(Exception):
    """Storage operation error."""

    def __init__(self, message: str, code: str = "E_STORAGE_ERROR"):
        super().__init__(message)
        self.message = message
        self.code = code


class StorageClientBase(ABC):
    """Abstract base class for storage client implementations."""

    @abstractmethod
    def upload_object(self, path: str, data: bytes, *, content_type: str) -> None:
        """Upload bytes to the given path.

        Raises:
            StorageError: If the upload is rejected.
        """
        ...

    @abstractmethod
    def sign_download(self, path: str, *, expires_in: int = 3600) -> str:
        """Create a signed download URL valid for ``expires_in`` seconds.

        Raises:
            StorageError: If signing fails.
        """
        ...

    @abstractmethod
    def public_url(self, path: str) -> str:
        """Return the stable URL of an object in a public bucket."""
        ...

    @abstractmethod
    def delete_object(self, path: str) -> None:
        """Delete an object from storage.

        Best-effort operation - logs errors but doesn't raise.
        """
        ...


class StorageClient(StorageClientBase):
    """Production Supabase Storage client.

    Uses httpx for HTTP operations against Supabase Storage API.
    """

    def __init__(
        self,
        supabase_url: str,
        service_key: str,
        bucket: str = "listening-audio",
        timeout: float = 30.0,
    ):
        """Initialize the storage client.

        Args:
            supabase_url: Supabase project URL (e.g., https://xxx.supabase.co).
            service_key: Supabase service role key.
            bucket: Storage bucket name.
            timeout: Per-request timeout in seconds.
        """
        self._base_url = supabase_url.rstrip("/")
        self._bucket = bucket
        self._timeout = timeout
        self._storage_url = f"{self._base_url}/storage/v1"
        self._headers = {
            "Authorization": f"Bearer {service_key}",
            "apikey": service_key,
        }

    def upload_object(self, path: str, data: bytes, *, content_type: str) -> None:
        """Upload via POST /object/{bucket}/{path}."""
        url = f"{self._storage_url}/object/{self._bucket}/{path}"
        headers = {**self._headers, "Content-Type": content_type, "x-upsert": "false"}

        try:
            with httpx.Client() as client:
                response = client.post(url, headers=headers, content=data, timeout=self._timeout)
        except httpx.HTTPError as e:
            raise StorageError(f"Failed to upload object: {e}") from e

        if response.status_code not in (200, 201):
            raise StorageError(
                f"Failed to upload object: {response.status_code} {response.text}",
            )

    def sign_download(self, path: str, *, expires_in: int = 3600) -> str:
        """Create signed download URL via Supabase Storage API."""
        # Supabase uses POST /object/sign/{bucket}/{path}
        url = f"{self._storage_url}/object/sign/{self._bucket}/{path}"

        try:
            with httpx.Client() as client:
                response = client.post(
                    url,
                    headers=self._headers,
                    json={"expiresIn": expires_in},
                    timeout=self._timeout,
                )
        except httpx.HTTPError as e:
            raise StorageError(
                f"Failed to sign download: {e}", code="E_SIGN_DOWNLOAD_FAILED"
            ) from e

        if response.status_code != 200:
            raise StorageError(
                f"Failed to sign download: {response.status_code} {response.text}",
                code="E_SIGN_DOWNLOAD_FAILED",
            )

        data = response.json()
        signed_path = data.get("signedURL") or data.get("signedUrl") or ""
        if not signed_path:
            raise StorageError(
                "Failed to sign download: missing signed URL",
                code="E_SIGN_DOWNLOAD_FAILED",
            )

        # Supabase may return relative paths (with or without /storage/v1).
        if signed_path.startswith(("http://", "https://")):
            return signed_path
        if signed_path.lstrip("/").startswith("storage/"):
            return f"{self._base_url}/{signed_path.lstrip('/')}"
        return f"{self._storage_url}/{signed_path.lstrip('/')}"

    def public_url(self, path: str) -> str:
        return f"{self._storage_url}/object/public/{self._bucket}/{path}"

    def delete_object(self, path: str) -> None:
        """Delete object from storage (best-effort)."""
        url = f"{self._storage_url}/object/{self._bucket}/{path}"

        try:
            with httpx.Client() as client:
                response = client.delete(url, headers=self._headers, timeout=self._timeout)
        except httpx.HTTPError as e:
            logger.warning("storage_delete_error", path=path, error=str(e))
            return

        if response.status_code not in (200, 204, 404):
            logger.warning(
                "storage_delete_failed",
                path=path,
                status_code=response.status_code,
                body=response.text,
            )


class FakeStorageClient(StorageClientBase):
    """Fake storage client for testing without real Supabase.

    Stores files in memory and provides deterministic behavior for unit tests.
    Set ``fail_uploads`` or ``fail_signing`` to exercise error paths.
    """

    base_url = "https://fake-storage.test"

    def __init__(self):
        self._objects: dict[str, tuple[bytes, str]] = {}  # path -> (content, content_type)
        self.deleted: list[str] = []
        self.fail_uploads = False
        self.fail_signing = False

    def upload_object(self, path: str, data: bytes, *, content_type: str) -> None:
        if self.fail_uploads:
            raise StorageError(f"Failed to upload object: {path}")
        self._objects[path] = (data, content_type)

    def sign_download(self, path: str, *, expires_in: int = 3600) -> str:
        if self.fail_signing:
            raise StorageError("Failed to sign download", code="E_SIGN_DOWNLOAD_FAILED")
        return f"{self.base_url}/download/{path}?expires_in={expires_in}&token=fake-{uuid4()}"

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/public/{path}"

    def delete_object(self, path: str) -> None:
        self.deleted.append(path)
        self._objects.pop(path, None)

    # Test helper methods

    def get_object(self, path: str) -> bytes | None:
        """Get object content directly (test helper)."""
        if path not in self._objects:
            return None
        return self._objects[path][0]

    def content_type_of(self, path: str) -> str | None:
        """Get the stored content type (test helper)."""
        if path not in self._objects:
            return None
        return self._objects[path][1]

    def paths(self) -> list[str]:
        """List stored object paths (test helper)."""
        return sorted(self._objects)

    def clear(self) -> None:
        """Clear all stored objects (test helper)."""
        self._objects.clear()
        self.deleted.clear()


def get_storage_client(settings: Settings | None = None) -> StorageClientBase:
    """Get the configured storage client.

    Returns:
        StorageClient if SUPABASE_URL and SUPABASE_SERVICE_KEY are set,
        FakeStorageClient otherwise.
    """
    if settings is None:
        settings = get_settings()

    if settings.supabase_url and settings.supabase_service_key:
        return StorageClient(
            supabase_url=settings.supabase_url,
            service_key=settings.supabase_service_key,
            bucket=settings.storage_bucket,
        )

    # Return fake client for local dev / tests without Supabase
    return FakeStorageClient()
