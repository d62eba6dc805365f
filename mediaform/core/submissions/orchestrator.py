"""
Concurrent upload of attachments to object storage.

The orchestrator takes the attachments of one kind, sends each of them to
the object store at the same time, and hands back the resulting URLs in the
same order the attachments came in. Uploads finish in whatever order the
network allows; the output is built from each result's position in the
batch, never from completion order or from Attachment.index (which only
labels logs and errors).

A batch either succeeds completely or fails: the first failing upload fails
the whole batch. Sibling uploads that are still in flight are left to finish
on their own and anything they already stored stays in the bucket.
"""

import asyncio
import logging
from typing import Optional, Protocol, Sequence

from .models import Attachment, MediaKind, UploadOutcome

logger = logging.getLogger(__name__)


class UploadError(Exception):
    """Raised when an attachment could not be stored."""

    def __init__(self, kind: MediaKind, index: int, cause: BaseException) -> None:
        self.kind = kind
        self.index = index
        self.cause = cause
        super().__init__(f"Failed to upload {kind.value} #{index}: {cause}")


# ---------------------------------------------------------------------------
# Protocols (interfaces)
# ---------------------------------------------------------------------------

class ObjectStore(Protocol):
    """
    Anything that can store a blob and give back a public URL.

    The real implementation talks to R2; tests pass in fakes.
    """

    async def upload(
        self,
        data: bytes,
        resource_type: str,
        filename: str = "",
        content_type: Optional[str] = None,
    ) -> str:
        """Store the blob and return its URL. Raises on any failure."""
        ...


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

class UploadOrchestrator:
    """
    Fans attachments out to the object store and fans URLs back in input order.

    Holds no state between batches, so one instance can serve any number of
    submissions.
    """

    def __init__(
        self,
        storage: ObjectStore,
        max_concurrency: Optional[int] = None,
    ) -> None:
        """
        Args:
            storage: Object store client
            max_concurrency: Cap on in-flight uploads per batch. None means
                every attachment in a batch is dispatched at once.
        """
        if max_concurrency is not None and max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")

        self._storage = storage
        self._max_concurrency = max_concurrency

    async def upload_all(self, attachments: Sequence[Attachment]) -> list[str]:
        """
        Upload every attachment and return URLs in input order.

        Raises:
            UploadError: If any single upload fails. No partial list is
                returned in that case.
        """
        if not attachments:
            return []

        kind = attachments[0].kind
        semaphore = (
            asyncio.Semaphore(self._max_concurrency)
            if self._max_concurrency is not None
            else None
        )

        logger.info(
            "Starting upload batch",
            extra={
                "kind": kind.value,
                "count": len(attachments),
                "max_concurrency": self._max_concurrency,
            }
        )

        outcomes = await asyncio.gather(
            *(self._upload_one(attachment, semaphore) for attachment in attachments)
        )

        # gather returns results in argument order
        urls = [outcome.url for outcome in outcomes]

        logger.info(
            "Upload batch complete",
            extra={"kind": kind.value, "count": len(urls)}
        )

        return urls

    async def _upload_one(
        self,
        attachment: Attachment,
        semaphore: Optional[asyncio.Semaphore],
    ) -> UploadOutcome:
        """Upload a single attachment, waiting for a slot if capped."""
        if semaphore is None:
            return await self._send(attachment)

        async with semaphore:
            return await self._send(attachment)

    async def _send(self, attachment: Attachment) -> UploadOutcome:
        try:
            url = await self._storage.upload(
                attachment.data,
                attachment.kind.resource_type,
                filename=attachment.filename,
                content_type=attachment.content_type,
            )
        except Exception as e:
            logger.error(
                "Attachment upload failed",
                extra={
                    "kind": attachment.kind.value,
                    "index": attachment.index,
                    "size_bytes": attachment.size_bytes,
                    "error": str(e),
                }
            )
            raise UploadError(attachment.kind, attachment.index, e) from e

        logger.debug(
            "Attachment uploaded",
            extra={
                "kind": attachment.kind.value,
                "index": attachment.index,
                "url": url,
            }
        )

        return UploadOutcome(kind=attachment.kind, index=attachment.index, url=url)
