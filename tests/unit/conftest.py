"""
Shared fakes for unit tests.

The fakes stand in for the object store and the record store so the core
and the HTTP layer can be exercised without R2 or Snowflake.
"""

import asyncio
from typing import Optional

import pytest

from mediaform.core.submissions.models import SubmissionRecord


class FakeObjectStore:
    """
    Object store double with controllable latency and failures.

    URLs are derived from the blob contents, so a test can tell which
    attachment a URL belongs to without tracking keys.
    """

    def __init__(
        self,
        delays: Optional[dict[bytes, float]] = None,
        fail_on: Optional[set[bytes]] = None,
    ) -> None:
        self.delays = delays or {}
        self.fail_on = fail_on or set()
        self.calls: list[tuple[bytes, str]] = []
        self.completed: list[bytes] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def upload(
        self,
        data: bytes,
        resource_type: str,
        filename: str = "",
        content_type: Optional[str] = None,
    ) -> str:
        self.calls.append((data, resource_type))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(data, 0))
            if data in self.fail_on:
                raise RuntimeError(f"boom: {data.decode()}")
            self.completed.append(data)
            return self.url_for(data, resource_type)
        finally:
            self.in_flight -= 1

    @staticmethod
    def url_for(data: bytes, resource_type: str) -> str:
        return f"https://cdn.test/{resource_type}/{data.decode()}"


class FakeRecordStore:
    """Record store double that keeps records in a list."""

    def __init__(self, fail_save: bool = False, fail_find: bool = False) -> None:
        self.saved: list[SubmissionRecord] = []
        self.fail_save = fail_save
        self.fail_find = fail_find

    async def save(self, record: SubmissionRecord) -> SubmissionRecord:
        if self.fail_save:
            raise RuntimeError("record store unavailable")
        self.saved.append(record)
        return record

    async def find_all(self) -> list[SubmissionRecord]:
        if self.fail_find:
            raise RuntimeError("record store unavailable")
        return list(self.saved)


@pytest.fixture
def object_store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def record_store() -> FakeRecordStore:
    return FakeRecordStore()
