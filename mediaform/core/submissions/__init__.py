"""
Submission handling logic.

Contains the domain models, the upload orchestrator and the assembler that
turns a raw submission into a stored record.
"""

from .models import (
    AggregatedUploads,
    Attachment,
    MediaKind,
    SubmissionMetadata,
    SubmissionRecord,
    UploadOutcome,
    build_attachments,
)
from .orchestrator import ObjectStore, UploadError, UploadOrchestrator
from .assembler import (
    PersistenceError,
    RecordStore,
    SubmissionAssembler,
    ValidationError,
)

__all__ = [
    "AggregatedUploads",
    "Attachment",
    "MediaKind",
    "SubmissionMetadata",
    "SubmissionRecord",
    "UploadOutcome",
    "build_attachments",
    "ObjectStore",
    "UploadError",
    "UploadOrchestrator",
    "PersistenceError",
    "RecordStore",
    "SubmissionAssembler",
    "ValidationError",
]
