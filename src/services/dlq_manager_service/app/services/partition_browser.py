# src/services/dlq_manager_service/app/services/partition_browser.py
import logging
from typing import Callable, ContextManager, List, Optional

from dlq_common.config import (
    DLQ_BROWSE_MAX_POLLS,
    DLQ_BROWSE_PARTITION,
    DLQ_BROWSE_POLL_TIMEOUT_SECONDS,
    DLQ_MAX_PAGE_SIZE,
    DLQ_REPLAY_READ_TIMEOUT_SECONDS,
)
from dlq_common.kafka_reader import PartitionReader, open_partition_reader
from dlq_common.models import DlqMessage

logger = logging.getLogger(__name__)

ReaderFactory = Callable[..., ContextManager[PartitionReader]]


class PartitionBrowser:
    """
    Reads pages of DLQ records by seeking directly to an offset.

    Pagination treats the partition's offsets as dense: page N of size S
    starts at offset (N-1)*S. If records were removed from the partition
    (retention, compaction) the page boundaries shift instead of failing.

    Only one partition is ever browsed. All calls block on network I/O and
    open their own reader, which is closed before returning.
    """

    def __init__(
        self,
        reader_factory: ReaderFactory = open_partition_reader,
        partition: int = DLQ_BROWSE_PARTITION,
        poll_timeout: float = DLQ_BROWSE_POLL_TIMEOUT_SECONDS,
        max_polls: int = DLQ_BROWSE_MAX_POLLS,
        read_timeout: float = DLQ_REPLAY_READ_TIMEOUT_SECONDS,
    ):
        self._open_reader = reader_factory
        self.partition = partition
        self.poll_timeout = poll_timeout
        self.max_polls = max_polls
        self.read_timeout = read_timeout

    def fetch_page(self, topic: str, page: int, page_size: int) -> List[DlqMessage]:
        if page < 1:
            raise ValueError("Page number must be >= 1")
        if page_size < 1 or page_size > DLQ_MAX_PAGE_SIZE:
            raise ValueError(f"Page size must be between 1 and {DLQ_MAX_PAGE_SIZE}")

        start_offset = (page - 1) * page_size
        logger.info(f"Fetching page {page} of '{topic}'", extra={"start_offset": start_offset, "page_size": page_size})

        messages: List[DlqMessage] = []
        with self._open_reader(topic, self.partition, purpose="browser") as reader:
            _, high = reader.watermarks()
            if start_offset >= high:
                # Past the end. Seeking there would make the reader fall back to the earliest offset.
                return messages

            reader.seek(start_offset)
            polls = 0
            while len(messages) < page_size and polls < self.max_polls:
                batch = reader.poll(page_size - len(messages), self.poll_timeout)
                polls += 1
                if batch is None:
                    logger.info(f"No more messages available. Collected: {len(messages)}")
                    break
                messages.extend(batch[: page_size - len(messages)])

        logger.info(f"Fetched {len(messages)} messages from '{topic}'")
        return messages

    def count(self, topic: str) -> int:
        """
        Approximate number of records in the partition: the distance between
        its earliest and latest offsets.
        """
        with self._open_reader(topic, self.partition, purpose="browser") as reader:
            low, high = reader.watermarks()
        total = max(high - low, 0)
        logger.info(
            f"Topic: {topic}, Beginning offset: {low}, End offset: {high}, Total messages: {total}"
        )
        return total

    def read_message(self, topic: str, partition: int, offset: int) -> Optional[DlqMessage]:
        """Reads exactly the record at (partition, offset); None when there is none."""
        with self._open_reader(topic, partition, purpose="replay") as reader:
            return reader.read_at(offset, self.read_timeout)
