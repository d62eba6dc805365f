"""
Domain models for form submissions.

These models describe a submission as the business sees it: who sent it,
which photos and videos came with it, and where those files ended up.
Nothing here knows about HTTP, object storage SDKs or databases.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, Optional
from uuid import UUID, uuid4


class MediaKind(Enum):
    """The two kinds of attachment a submission can carry."""
    PHOTO = "photo"
    VIDEO = "video"

    @property
    def resource_type(self) -> str:
        """Kind tag understood by the object store ("image" or "video")."""
        if self is MediaKind.PHOTO:
            return "image"
        return "video"


@dataclass(frozen=True)
class Attachment:
    """
    One uploaded file, held in memory for the duration of a submission.

    Frozen because an attachment is owned by a single upload batch and
    nothing should change its bytes or position once the batch starts.
    """
    data: bytes
    kind: MediaKind
    index: int
    filename: str = ""
    content_type: Optional[str] = None

    def __post_init__(self) -> None:
        if self.index < 0:
            raise ValueError("Attachment index cannot be negative")

    @property
    def size_bytes(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class UploadOutcome:
    """Result of one successful object store call, tagged with its origin."""
    kind: MediaKind
    index: int
    url: str


@dataclass(frozen=True)
class AggregatedUploads:
    """
    Ordered URLs for every attachment of a submission.

    Only built when every upload succeeded, so the lists always line up
    one-to-one with the input attachments of each kind.
    """
    photo_urls: list[str] = field(default_factory=list)
    video_urls: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.photo_urls) + len(self.video_urls)


@dataclass(frozen=True)
class SubmissionMetadata:
    """Free-text fields sent alongside the files. Either may be absent."""
    name: Optional[str] = None
    address: Optional[str] = None


@dataclass
class SubmissionRecord:
    """
    A persisted submission.

    Records are append-only: once saved they are never updated.
    """
    id: UUID = field(default_factory=uuid4)
    name: Optional[str] = None
    address: Optional[str] = None
    photo_urls: list[str] = field(default_factory=list)
    video_urls: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def attachment_count(self) -> int:
        return len(self.photo_urls) + len(self.video_urls)


def build_attachments(
    kind: MediaKind,
    files: Iterable[tuple[bytes, str, Optional[str]]],
) -> list[Attachment]:
    """
    Turn ordered ``(data, filename, content_type)`` items into attachments.

    The position of each item becomes the attachment's index, which is what
    the orchestrator uses to put URLs back in input order.
    """
    return [
        Attachment(
            data=data,
            kind=kind,
            index=i,
            filename=filename,
            content_type=content_type,
        )
        for i, (data, filename, content_type) in enumerate(files)
    ]
