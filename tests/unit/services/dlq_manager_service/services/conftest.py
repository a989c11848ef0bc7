# tests/unit/services/dlq_manager_service/services/conftest.py
from contextlib import contextmanager
from typing import List, Optional

import pytest

from dlq_common.models import DlqMessage


class FakePartitionReader:
    """
    In-memory stand-in for a PartitionReader over one partition.
    Mirrors the broker: seeking outside the watermarks falls back to the earliest offset.
    """

    def __init__(self, messages: List[DlqMessage], low: int, high: int, max_batch: Optional[int]):
        self.messages = messages
        self.low = low
        self.high = high
        self.max_batch = max_batch
        self.position = low
        self.seeks = []
        self.polls = 0

    def watermarks(self):
        return self.low, self.high

    def seek(self, offset):
        self.seeks.append(offset)
        self.position = offset if self.low <= offset <= self.high else self.low

    def poll(self, max_messages, timeout):
        self.polls += 1
        limit = max_messages if self.max_batch is None else min(max_messages, self.max_batch)
        batch = [m for m in self.messages if m.offset >= self.position][:limit]
        if not batch:
            return None
        self.position = batch[-1].offset + 1
        return batch

    def read_at(self, offset, timeout):
        for message in self.messages:
            if message.offset == offset:
                return message
        return None


class FakePartition:
    """Reader factory over a fixed list of records; tracks every reader it opens."""

    def __init__(self, messages: List[DlqMessage], low: Optional[int] = None, max_batch: Optional[int] = None):
        self.messages = messages
        self.low = low if low is not None else (messages[0].offset if messages else 0)
        self.high = messages[-1].offset + 1 if messages else self.low
        self.max_batch = max_batch
        self.readers: List[FakePartitionReader] = []
        self.open_readers = 0
        self.opened_with = []

    @contextmanager
    def __call__(self, topic, partition, purpose="browser"):
        self.opened_with.append((topic, partition, purpose))
        reader = FakePartitionReader(self.messages, self.low, self.high, self.max_batch)
        self.readers.append(reader)
        self.open_readers += 1
        try:
            yield reader
        finally:
            self.open_readers -= 1


def make_message(offset: int, error: Optional[str] = None, key: Optional[str] = None, **headers) -> DlqMessage:
    all_headers = dict(headers)
    if error is not None:
        all_headers["X-Error-Message"] = error
    return DlqMessage(
        key=key if key is not None else f"key-{offset}",
        payload=f'{{"offset": {offset}}}'.encode("utf-8"),
        partition=0,
        offset=offset,
        timestamp_ms=1700000000000 + offset,
        headers=all_headers,
    )


@pytest.fixture
def fake_partition():
    """Builds a FakePartition from a list of records."""
    return FakePartition


@pytest.fixture
def message_factory():
    return make_message
