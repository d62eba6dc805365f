"""
Submission assembly.

Turns a raw submission (metadata plus photo and video attachments) into a
persisted record: check there is something to store, upload it, then save a
record pointing at the uploaded files. A record is only ever saved when
every attachment made it to object storage.
"""

import asyncio
import logging
from typing import Protocol, Sequence

from .models import (
    AggregatedUploads,
    Attachment,
    SubmissionMetadata,
    SubmissionRecord,
)
from .orchestrator import UploadOrchestrator

logger = logging.getLogger(__name__)


class ValidationError(Exception):
    """Raised when a submission is rejected before anything is uploaded."""
    pass


class PersistenceError(Exception):
    """Raised when the record store fails to save a record."""

    def __init__(self, cause: BaseException) -> None:
        self.cause = cause
        super().__init__(str(cause))


class RecordStore(Protocol):
    """Durable storage for submission records."""

    async def save(self, record: SubmissionRecord) -> SubmissionRecord:
        """Persist a record and return the stored version."""
        ...

    async def find_all(self) -> list[SubmissionRecord]:
        """Return every stored record."""
        ...


class SubmissionAssembler:
    """
    Validates submissions, drives the uploads and saves the record.

    Both collaborators are passed in, so tests can swap in fakes and the
    assembler never reaches for global clients.
    """

    def __init__(
        self,
        orchestrator: UploadOrchestrator,
        records: RecordStore,
    ) -> None:
        self._orchestrator = orchestrator
        self._records = records

    async def assemble(
        self,
        metadata: SubmissionMetadata,
        photo_attachments: Sequence[Attachment],
        video_attachments: Sequence[Attachment],
    ) -> SubmissionRecord:
        """
        Upload all attachments and persist the resulting record.

        Raises:
            ValidationError: No attachments of either kind.
            UploadError: An attachment failed to upload; nothing is saved.
            PersistenceError: Uploads succeeded but the save failed.
        """
        if not photo_attachments and not video_attachments:
            raise ValidationError("At least one attachment required")

        logger.info(
            "Assembling submission",
            extra={
                "photo_count": len(photo_attachments),
                "video_count": len(video_attachments),
            }
        )

        uploads = await self._upload(photo_attachments, video_attachments)

        record = SubmissionRecord(
            name=metadata.name,
            address=metadata.address,
            photo_urls=list(uploads.photo_urls),
            video_urls=list(uploads.video_urls),
        )

        try:
            saved = await self._records.save(record)
        except Exception as e:
            # The uploaded files stay in the bucket without a record.
            logger.error(
                "Failed to persist submission",
                extra={
                    "record_id": str(record.id),
                    "orphaned_urls": uploads.total,
                    "error": str(e),
                }
            )
            raise PersistenceError(e) from e

        logger.info(
            "Submission stored",
            extra={
                "record_id": str(saved.id),
                "attachment_count": saved.attachment_count,
            }
        )

        return saved

    async def _upload(
        self,
        photo_attachments: Sequence[Attachment],
        video_attachments: Sequence[Attachment],
    ) -> AggregatedUploads:
        """Run the photo and video batches side by side."""
        photo_urls, video_urls = await asyncio.gather(
            self._orchestrator.upload_all(photo_attachments),
            self._orchestrator.upload_all(video_attachments),
        )
        return AggregatedUploads(photo_urls=photo_urls, video_urls=video_urls)
