"""
Snowflake repository for form submissions.

This module implements the repository pattern for submission records.
The repository:
1. Translates between SubmissionRecord and database rows
2. Encapsulates all SQL queries
3. Satisfies the RecordStore protocol the assembler depends on

The Snowflake connector is synchronous. The public methods are async and
push the cursor work to a worker thread, so awaiting the store yields to
the event loop like any other network call.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Callable, ContextManager, Optional, Protocol, TypeVar
from uuid import UUID

from mediaform.core.submissions.models import SubmissionRecord


logger = logging.getLogger(__name__)

T = TypeVar("T")


class SnowflakeConnection(Protocol):
    """What the repositories need from a connection (real or mock)."""

    def cursor(self): ...
    def commit(self) -> None: ...


@dataclass
class SnowflakeConfig:
    """Configuration for Snowflake connection."""
    account: str
    user: str
    password: Optional[str] = None
    private_key_path: Optional[str] = None
    private_key_base64: Optional[str] = None
    database: str = "MEDIAFORM"
    schema: str = "SUBMISSIONS"
    warehouse: str = "COMPUTE_WH"
    role: Optional[str] = None


CREATE_TABLE_SQL = """
    CREATE TABLE IF NOT EXISTS form_submissions (
        submission_id VARCHAR(36) PRIMARY KEY,
        name VARCHAR,
        address VARCHAR,
        photo_urls VARIANT,
        video_urls VARIANT,
        created_at TIMESTAMP_TZ NOT NULL
    )
"""


class FormRepository:
    """
    Repository for submission records.

    - save: Insert a new record (records are never updated)
    - find_all: Load every record, oldest first
    """

    def __init__(self, connection: SnowflakeConnection) -> None:
        self._conn = connection

    async def save(self, record: SubmissionRecord) -> SubmissionRecord:
        """Persist a new submission record and return it."""
        await asyncio.to_thread(self._insert, record)

        logger.debug(
            "Saved submission record",
            extra={"record_id": str(record.id)}
        )

        return record

    async def find_all(self) -> list[SubmissionRecord]:
        """Load all submission records."""
        return await asyncio.to_thread(self._select_all)

    def create_table(self) -> None:
        """Create the submissions table if it doesn't exist."""
        cursor = self._conn.cursor()
        try:
            cursor.execute(CREATE_TABLE_SQL)
            self._conn.commit()
        finally:
            cursor.close()

    def ping(self) -> None:
        """Run a trivial query; raises if the database is unreachable."""
        cursor = self._conn.cursor()
        try:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        finally:
            cursor.close()

    # -----------------------------------------------------------------------
    # Private Methods
    # -----------------------------------------------------------------------

    def _insert(self, record: SubmissionRecord) -> None:
        cursor = self._conn.cursor()

        try:
            # VALUES can't hold PARSE_JSON in Snowflake, hence INSERT ... SELECT
            cursor.execute("""
                INSERT INTO form_submissions (
                    submission_id, name, address, photo_urls, video_urls, created_at
                )
                SELECT %s, %s, %s, PARSE_JSON(%s), PARSE_JSON(%s), %s
            """, (
                str(record.id),
                record.name,
                record.address,
                json.dumps(record.photo_urls),
                json.dumps(record.video_urls),
                record.created_at,
            ))

            self._conn.commit()

        except Exception as e:
            logger.error(
                "Failed to save submission",
                extra={"record_id": str(record.id), "error": str(e)}
            )
            raise
        finally:
            cursor.close()

    def _select_all(self) -> list[SubmissionRecord]:
        cursor = self._conn.cursor()

        try:
            cursor.execute("""
                SELECT
                    submission_id,
                    name,
                    address,
                    photo_urls,
                    video_urls,
                    created_at
                FROM form_submissions
                ORDER BY created_at
            """)

            return [self._build_record(row) for row in cursor.fetchall()]

        finally:
            cursor.close()

    def _build_record(self, row) -> SubmissionRecord:
        """Construct a SubmissionRecord from a database row."""
        return SubmissionRecord(
            id=UUID(row[0]),
            name=row[1],
            address=row[2],
            photo_urls=self._parse_urls(row[3]),
            video_urls=self._parse_urls(row[4]),
            created_at=row[5],
        )

    def _parse_urls(self, value) -> list[str]:
        """VARIANT columns come back as JSON text."""
        if not value:
            return []
        if isinstance(value, str):
            return json.loads(value)
        return list(value)


class ConnectingFormRepository:
    """
    FormRepository that opens a connection per call.

    The submission path holds one of these while files upload, so no
    connection sits idle during uploads, and a submission rejected before
    anything is uploaded never connects at all. Connection errors surface
    from save/find_all like any other store failure.
    """

    def __init__(self, connect: Callable[[], ContextManager[SnowflakeConnection]]) -> None:
        self._connect = connect

    async def save(self, record: SubmissionRecord) -> SubmissionRecord:
        await asyncio.to_thread(self._run, lambda repo: repo._insert(record))
        return record

    async def find_all(self) -> list[SubmissionRecord]:
        return await asyncio.to_thread(self._run, lambda repo: repo._select_all())

    def _run(self, work: Callable[[FormRepository], T]) -> T:
        with self._connect() as conn:
            return work(FormRepository(conn))
