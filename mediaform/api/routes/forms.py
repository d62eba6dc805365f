"""
Form submission API endpoints.

Handles the whole client-facing workflow:
1. Client posts the form (POST /submit-form) with name, address and files
2. Server uploads every file to object storage
3. Server stores a record pointing at the uploaded files
4. Anyone can list stored submissions (GET /forms)

This module only translates between HTTP and the core: it reads the
multipart parts, hands them to the SubmissionAssembler and maps the
outcome (or its exceptions) onto the response shapes the form expects.
"""

import logging
from datetime import datetime
from typing import Annotated, Optional, Union
from uuid import UUID

from fastapi import APIRouter, File, Form, UploadFile, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ...core.submissions.assembler import PersistenceError, ValidationError
from ...core.submissions.models import (
    Attachment,
    MediaKind,
    SubmissionMetadata,
    SubmissionRecord,
    build_attachments,
)
from ...core.submissions.orchestrator import UploadError
from ..dependencies import FormRepositoryDep, SettingsDep, SubmissionAssemblerDep

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class SubmissionRecordResponse(BaseModel):
    """A stored submission as returned to clients (camelCase keys)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: UUID = Field(description="Submission identifier")
    name: Optional[str] = Field(default=None, description="Submitter name")
    address: Optional[str] = Field(default=None, description="Submitter address")
    photo_urls: list[str] = Field(default_factory=list, description="Photo URLs in upload order")
    video_urls: list[str] = Field(default_factory=list, description="Video URLs in upload order")
    created_at: datetime = Field(description="When the submission was stored")

    @classmethod
    def from_record(cls, record: SubmissionRecord) -> "SubmissionRecordResponse":
        return cls(
            id=record.id,
            name=record.name,
            address=record.address,
            photo_urls=record.photo_urls,
            video_urls=record.video_urls,
            created_at=record.created_at,
        )


class SubmitFormResponse(BaseModel):
    """Response after a successful submission."""
    message: str = Field(description="Status message")
    form: SubmissionRecordResponse = Field(description="The stored submission")


class MessageResponse(BaseModel):
    """Error body used by every failure response."""
    message: str
    error: Optional[str] = None


# ---------------------------------------------------------------------------
# Helper Functions
# ---------------------------------------------------------------------------

def _message(status_code: int, message: str, error: Optional[str] = None) -> JSONResponse:
    content = {"message": message}
    if error is not None:
        content["error"] = error
    return JSONResponse(status_code=status_code, content=content)


def _selected_files(files: Optional[list[UploadFile]]) -> list[UploadFile]:
    """
    Drop empty file parts.

    Browsers send a part with an empty filename for a file input the user
    left blank; that is "no file", not an empty file.
    """
    return [f for f in files or [] if f.filename]


async def _read_attachments(kind: MediaKind, files: list[UploadFile]) -> list[Attachment]:
    items = []
    for upload in files:
        data = await upload.read()
        items.append((data, upload.filename or "", upload.content_type))
    return build_attachments(kind, items)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/submit-form",
    response_model=SubmitFormResponse,
    status_code=status.HTTP_200_OK,
    summary="Submit the form",
    description="Upload photos and videos and store a submission record",
    responses={
        400: {"model": MessageResponse},
        413: {"model": MessageResponse},
        500: {"model": MessageResponse},
    },
)
async def submit_form(
    assembler: SubmissionAssemblerDep,
    settings: SettingsDep,
    name: Annotated[Optional[str], Form()] = None,
    address: Annotated[Optional[str], Form()] = None,
    photo: Annotated[Optional[list[UploadFile]], File(description="Photos")] = None,
    video: Annotated[Optional[list[UploadFile]], File(description="Videos")] = None,
) -> Union[SubmitFormResponse, JSONResponse]:
    """
    Accept a submission with up to max_files_per_kind photos and videos.

    Uploads run concurrently. The record is stored only if every file
    uploaded; otherwise nothing is stored and the cause is returned.
    """
    photos = _selected_files(photo)
    videos = _selected_files(video)

    logger.info(
        "Received submission",
        extra={"photo_count": len(photos), "video_count": len(videos)}
    )

    for kind, files in ((MediaKind.PHOTO, photos), (MediaKind.VIDEO, videos)):
        if len(files) > settings.max_files_per_kind:
            return _message(
                status.HTTP_400_BAD_REQUEST,
                f"At most {settings.max_files_per_kind} {kind.value} files are allowed",
            )

    photo_attachments = await _read_attachments(MediaKind.PHOTO, photos)
    video_attachments = await _read_attachments(MediaKind.VIDEO, videos)

    total_size = sum(a.size_bytes for a in photo_attachments + video_attachments)
    if total_size > settings.max_upload_size_bytes:
        return _message(
            status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            f"Total upload size exceeds {settings.max_upload_size_mb}MB",
        )

    try:
        record = await assembler.assemble(
            SubmissionMetadata(name=name, address=address),
            photo_attachments,
            video_attachments,
        )
    except ValidationError:
        return _message(
            status.HTTP_400_BAD_REQUEST,
            "At least one photo or video is required",
        )
    except UploadError as e:
        logger.error(
            "Submission failed during upload",
            extra={"kind": e.kind.value, "index": e.index, "error": str(e.cause)}
        )
        return _message(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Something went wrong",
            str(e.cause),
        )
    except PersistenceError as e:
        logger.error(
            "Submission failed during save",
            extra={"error": str(e.cause)}
        )
        return _message(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Something went wrong",
            str(e.cause),
        )

    return SubmitFormResponse(
        message="Form submitted successfully!",
        form=SubmissionRecordResponse.from_record(record),
    )


@router.get(
    "/forms",
    response_model=list[SubmissionRecordResponse],
    status_code=status.HTTP_200_OK,
    summary="List submissions",
    description="Return every stored submission in the record store's order",
    responses={500: {"model": MessageResponse}},
)
async def list_forms(
    repository: FormRepositoryDep,
) -> Union[list[SubmissionRecordResponse], JSONResponse]:
    """List all stored submissions."""
    try:
        records = await repository.find_all()
    except Exception as e:
        logger.error("Failed to fetch submissions", extra={"error": str(e)})
        return _message(status.HTTP_500_INTERNAL_SERVER_ERROR, "Error fetching forms")

    return [SubmissionRecordResponse.from_record(r) for r in records]
