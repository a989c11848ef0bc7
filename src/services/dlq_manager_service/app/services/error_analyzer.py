# src/services/dlq_manager_service/app/services/error_analyzer.py
import logging
import time
from dataclasses import dataclass
from typing import Dict, List, Mapping

from dlq_common.config import (
    DLQ_BROWSE_PARTITION,
    DLQ_BROWSE_POLL_TIMEOUT_SECONDS,
    DLQ_ERROR_SCAN_BATCH_SIZE,
    DLQ_ERROR_SCAN_MAX_POLLS,
)
from dlq_common.headers import error_type_of
from dlq_common.kafka_reader import open_partition_reader
from dlq_common.monitoring import DLQ_ERROR_SCAN_DURATION_SECONDS

from .partition_browser import ReaderFactory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ErrorBreakdownEntry:
    error_type: str
    count: int
    percentage: float


@dataclass(frozen=True)
class ErrorBreakdown:
    total_messages: int
    entries: List[ErrorBreakdownEntry]


def build_breakdown(counts: Mapping[str, int]) -> List[ErrorBreakdownEntry]:
    """
    Turns error-type counts into entries sorted by count, most frequent first.
    The sort is stable, so equal counts keep the order in which their error
    type was first seen.
    """
    total = sum(counts.values())
    entries = [
        ErrorBreakdownEntry(
            error_type=error_type,
            count=count,
            percentage=(count * 100.0 / total) if total else 0.0,
        )
        for error_type, count in counts.items()
    ]
    return sorted(entries, key=lambda entry: entry.count, reverse=True)


class ErrorAnalyzer:
    """
    Scans a DLQ partition from its earliest offset and tallies records by the
    X-Error-Message header.

    Runtime is linear in the partition size and nothing is cached; the scan is
    bounded by the number of poll cycles, not by the number of records. Records
    appended after the scan starts are not counted.
    """

    def __init__(
        self,
        reader_factory: ReaderFactory = open_partition_reader,
        partition: int = DLQ_BROWSE_PARTITION,
        max_polls: int = DLQ_ERROR_SCAN_MAX_POLLS,
        batch_size: int = DLQ_ERROR_SCAN_BATCH_SIZE,
        poll_timeout: float = DLQ_BROWSE_POLL_TIMEOUT_SECONDS,
    ):
        self._open_reader = reader_factory
        self.partition = partition
        self.max_polls = max_polls
        self.batch_size = batch_size
        self.poll_timeout = poll_timeout

    def breakdown(self, topic: str) -> ErrorBreakdown:
        start = time.monotonic()
        counts: Dict[str, int] = {}
        scanned = 0

        with self._open_reader(topic, self.partition, purpose="analyzer") as reader:
            low, high = reader.watermarks()
            if high > low:
                reader.seek(low)
                polls = 0
                done = False
                while not done and polls < self.max_polls:
                    batch = reader.poll(self.batch_size, self.poll_timeout)
                    polls += 1
                    if batch is None:
                        break
                    for message in batch:
                        # Appended after the scan started.
                        if message.offset >= high:
                            break
                        error_type = error_type_of(message.headers)
                        counts[error_type] = counts.get(error_type, 0) + 1
                        scanned += 1
                    done = bool(batch) and batch[-1].offset >= high - 1
                if not done and polls >= self.max_polls:
                    logger.warning(
                        f"Error scan of '{topic}' stopped after {polls} polls; breakdown covers {scanned} messages."
                    )

        elapsed = time.monotonic() - start
        DLQ_ERROR_SCAN_DURATION_SECONDS.labels(dlq_topic=topic).observe(elapsed)
        entries = build_breakdown(counts)
        logger.info(
            f"Generated error breakdown for '{topic}'. Total messages: {scanned}, Distinct errors: {len(entries)}",
            extra={"duration_ms": round(elapsed * 1000, 2)},
        )
        return ErrorBreakdown(total_messages=scanned, entries=entries)
