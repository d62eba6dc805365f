"""
Object storage client for submitted photos and videos.

Supports Cloudflare R2 (S3-compatible) with mock mode for local development.
Every upload lands under a fresh key and the client returns the public URL
of the stored object, which is what ends up in the submission record.

Mock mode keeps objects in memory, enabling API testing without
provisioning actual object storage.
"""

import asyncio
import logging
import mimetypes
from dataclasses import dataclass
from typing import Optional, Protocol
from uuid import uuid4

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when storage operations fail."""
    pass


# Used when neither the part's content type nor its filename says anything
_DEFAULT_CONTENT_TYPES = {
    "image": "image/jpeg",
    "video": "video/mp4",
}


@dataclass
class StorageConfig:
    """
    Configuration for R2/S3-compatible storage.

    public_base_url is the bucket's public domain (an r2.dev subdomain or a
    custom domain). Without it, URLs are built from the endpoint.
    """
    access_key_id: str
    secret_access_key: str
    bucket_name: str
    endpoint_url: str
    public_base_url: Optional[str] = None
    region: str = "auto"  # R2 uses 'auto' for region


class StorageClient(Protocol):
    """Where submitted files go. Satisfies the core's ObjectStore."""

    async def upload(
        self,
        data: bytes,
        resource_type: str,
        filename: str = "",
        content_type: Optional[str] = None,
    ) -> str:
        """Upload a blob and return its public URL."""
        ...


def build_object_key(resource_type: str, filename: str = "") -> str:
    """
    Build a storage key for a new object.

    Key structure: {resource_type}/{random hex}{ext}. A fresh key per call
    means two uploads of the same file never overwrite each other.
    """
    ext = ""
    if "." in filename:
        ext = "." + filename.rsplit(".", 1)[-1].lower()
    return f"{resource_type}/{uuid4().hex}{ext}"


def resolve_content_type(
    resource_type: str,
    filename: str = "",
    content_type: Optional[str] = None,
) -> str:
    """Pick a Content-Type: the client's, then a guess from the name."""
    if content_type:
        return content_type
    guessed, _ = mimetypes.guess_type(filename) if filename else (None, None)
    if guessed:
        return guessed
    return _DEFAULT_CONTENT_TYPES.get(resource_type, "application/octet-stream")


class R2StorageClient:
    """
    Cloudflare R2 object storage client.

    Uses boto3 because R2 is S3-compatible. boto3 is synchronous, so each
    call runs in a worker thread; otherwise a batch of "concurrent" uploads
    would go out one after another and block the event loop meanwhile.
    """

    def __init__(self, config: StorageConfig) -> None:
        """
        Initialize R2 client with boto3.

        boto3 is imported here (not at module level) because mock mode
        doesn't need it.
        """
        import boto3
        from botocore.config import Config

        self._config = config

        # R2 requires v4 signatures and has specific endpoint patterns
        boto_config = Config(
            signature_version='s3v4',
            s3={'addressing_style': 'path'},
        )

        self._s3_client = boto3.client(
            's3',
            endpoint_url=config.endpoint_url,
            aws_access_key_id=config.access_key_id,
            aws_secret_access_key=config.secret_access_key,
            region_name=config.region,
            config=boto_config,
        )

        logger.info(
            "Initialized R2 storage client",
            extra={
                "bucket": config.bucket_name,
                "endpoint": config.endpoint_url,
            }
        )

    async def upload(
        self,
        data: bytes,
        resource_type: str,
        filename: str = "",
        content_type: Optional[str] = None,
    ) -> str:
        """Upload a blob to R2 and return its public URL."""
        key = build_object_key(resource_type, filename)
        metadata = {'resource-type': resource_type}
        if filename:
            metadata['original-filename'] = filename

        try:
            await asyncio.to_thread(
                self._s3_client.put_object,
                Bucket=self._config.bucket_name,
                Key=key,
                Body=data,
                ContentType=resolve_content_type(resource_type, filename, content_type),
                Metadata=metadata,
            )
        except Exception as e:
            logger.error(
                "Failed to upload object",
                extra={
                    "key": key,
                    "resource_type": resource_type,
                    "error": str(e),
                }
            )
            raise StorageError(f"Upload failed: {e}")

        logger.info(
            "Uploaded object",
            extra={
                "key": key,
                "resource_type": resource_type,
                "size_bytes": len(data),
            }
        )

        return self.url_for(key)

    def url_for(self, key: str) -> str:
        """Public URL of a stored key."""
        return f"{self._base_url()}/{key}"

    def _base_url(self) -> str:
        if self._config.public_base_url:
            return self._config.public_base_url.rstrip("/")
        return f"{self._config.endpoint_url.rstrip('/')}/{self._config.bucket_name}"


# ---------------------------------------------------------------------------
# Mock Storage for Local Development
# ---------------------------------------------------------------------------

class MockStorageClient:
    """In-memory object store; URLs look like mock://storage/image/<hex>.jpg."""

    URL_PREFIX = "mock://storage/"

    def __init__(self) -> None:
        # {key: (bytes, content_type)}
        self._objects: dict[str, tuple[bytes, str]] = {}
        logger.info("Initialized mock storage client (in-memory)")

    async def upload(
        self,
        data: bytes,
        resource_type: str,
        filename: str = "",
        content_type: Optional[str] = None,
    ) -> str:
        """Store object in memory."""
        key = build_object_key(resource_type, filename)
        self._objects[key] = (
            data,
            resolve_content_type(resource_type, filename, content_type),
        )

        logger.debug(
            "Stored object in mock storage",
            extra={"key": key, "size_bytes": len(data)}
        )

        return f"{self.URL_PREFIX}{key}"

    @property
    def uploads(self) -> int:
        return len(self._objects)


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_storage_client(
    config: Optional[StorageConfig] = None,
    mock_mode: bool = False,
) -> StorageClient:
    """
    Create storage client based on configuration.

    Args:
        config: Storage configuration (required if not mock_mode)
        mock_mode: If True, return mock client for testing

    Returns:
        StorageClient implementation (R2 or Mock)
    """
    if mock_mode:
        return MockStorageClient()

    if config is None:
        raise ValueError("config is required when not in mock mode")

    return R2StorageClient(config)
