"""
FastAPI dependency injection.

Dependencies provide instances of clients, services and configuration
to route handlers. Routes never build their own clients, and the core
services receive theirs explicitly, so tests can override any layer via
app.dependency_overrides.
"""

import logging
from contextlib import nullcontext
from typing import Annotated, Generator

from fastapi import Depends

from ..config.settings import Settings, get_settings
from ..core.submissions.assembler import SubmissionAssembler
from ..core.submissions.orchestrator import UploadOrchestrator
from ..infrastructure.snowflake.client import MockSnowflakeConnection, create_snowflake_connection
from ..infrastructure.snowflake.repositories.forms import (
    ConnectingFormRepository,
    FormRepository,
    SnowflakeConfig,
)
from ..infrastructure.storage.client import StorageClient, StorageConfig, create_storage_client

logger = logging.getLogger(__name__)

# Global mock instances (shared across requests so data persists in dev)
_mock_storage_client = None
_mock_snowflake_connection = None


# ---------------------------------------------------------------------------
# Infrastructure Dependencies
# ---------------------------------------------------------------------------

def _shared_mock_connection() -> MockSnowflakeConnection:
    global _mock_snowflake_connection

    if _mock_snowflake_connection is None:
        _mock_snowflake_connection = MockSnowflakeConnection()
        logger.info("Created shared mock Snowflake connection")
    return _mock_snowflake_connection


def snowflake_config_from(settings: Settings) -> SnowflakeConfig:
    return SnowflakeConfig(
        account=settings.snowflake_account,
        user=settings.snowflake_user,
        password=settings.snowflake_password or None,
        private_key_path=settings.snowflake_private_key_path,
        private_key_base64=settings.snowflake_private_key_base64,
        database=settings.snowflake_database,
        schema=settings.snowflake_schema,
        warehouse=settings.snowflake_warehouse,
        role=settings.snowflake_role,
    )


def get_form_repository(
    settings: Annotated[Settings, Depends(get_settings)],
) -> Generator[FormRepository, None, None]:
    """
    Provide FormRepository with a connection held for the whole request.

    A generator so the connection is closed after the request. In mock
    mode the same in-memory connection is reused across requests.
    """
    if settings.snowflake_mock_mode:
        yield FormRepository(_shared_mock_connection())
        return

    with create_snowflake_connection(config=snowflake_config_from(settings)) as conn:
        logger.debug("Created FormRepository with Snowflake connection")
        yield FormRepository(conn)


def get_record_store(
    settings: Annotated[Settings, Depends(get_settings)],
) -> ConnectingFormRepository:
    """
    Provide the submission path's record store.

    Nothing connects here: the connection opens only when the record is
    saved, after every upload has finished.
    """
    if settings.snowflake_mock_mode:
        conn = _shared_mock_connection()
        return ConnectingFormRepository(lambda: nullcontext(conn))

    config = snowflake_config_from(settings)
    return ConnectingFormRepository(lambda: create_snowflake_connection(config=config))


def get_storage_client(
    settings: Annotated[Settings, Depends(get_settings)],
) -> StorageClient:
    """
    Provide storage client for photo/video uploads.

    Returns either R2 client or mock client based on settings.
    """
    global _mock_storage_client

    if settings.r2_mock_mode:
        if _mock_storage_client is None:
            _mock_storage_client = create_storage_client(mock_mode=True)
            logger.info("Created shared mock storage client")
        return _mock_storage_client

    config = StorageConfig(
        access_key_id=settings.r2_access_key_id,
        secret_access_key=settings.r2_secret_access_key,
        bucket_name=settings.r2_bucket_name,
        endpoint_url=settings.r2_endpoint,
        public_base_url=settings.r2_public_url,
    )
    return create_storage_client(config=config)


# ---------------------------------------------------------------------------
# Service Dependencies
# ---------------------------------------------------------------------------

def get_upload_orchestrator(
    settings: Annotated[Settings, Depends(get_settings)],
    storage: Annotated[StorageClient, Depends(get_storage_client)],
) -> UploadOrchestrator:
    """Provide an orchestrator bound to the configured storage client."""
    return UploadOrchestrator(
        storage=storage,
        max_concurrency=settings.max_concurrent_uploads or None,
    )


def get_submission_assembler(
    orchestrator: Annotated[UploadOrchestrator, Depends(get_upload_orchestrator)],
    records: Annotated[ConnectingFormRepository, Depends(get_record_store)],
) -> SubmissionAssembler:
    """Provide the assembler. Stateless, so one per request is fine."""
    return SubmissionAssembler(orchestrator=orchestrator, records=records)


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

# These type aliases make route signatures cleaner
SettingsDep = Annotated[Settings, Depends(get_settings)]
FormRepositoryDep = Annotated[FormRepository, Depends(get_form_repository)]
SubmissionAssemblerDep = Annotated[SubmissionAssembler, Depends(get_submission_assembler)]
