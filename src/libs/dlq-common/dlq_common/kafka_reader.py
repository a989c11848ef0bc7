# src/libs/dlq-common/dlq_common/kafka_reader.py
import logging
import uuid
from contextlib import contextmanager
from typing import Iterator, List, Optional, Tuple

from confluent_kafka import Consumer, KafkaError, KafkaException, TopicPartition

from .config import KAFKA_BOOTSTRAP_SERVERS
from .exceptions import BrokerUnavailableError
from .models import DlqMessage

logger = logging.getLogger(__name__)

WATERMARK_TIMEOUT_SECONDS = 10.0


class PartitionReader:
    """
    A read-only view of a single topic partition.

    The reader is assigned (never subscribed) and never commits, so browsing
    leaves no trace on the broker. Instances are short-lived and owned by a
    single call; obtain one through ``open_partition_reader``.
    """

    def __init__(self, consumer: Consumer, topic: str, partition: int):
        self._consumer = consumer
        self.topic = topic
        self.partition = partition

    def watermarks(self) -> Tuple[int, int]:
        """Returns (earliest, next-to-be-written) offsets of the partition."""
        try:
            low, high = self._consumer.get_watermark_offsets(
                TopicPartition(self.topic, self.partition),
                timeout=WATERMARK_TIMEOUT_SECONDS,
                cached=False,
            )
        except KafkaException as e:
            raise BrokerUnavailableError(
                f"Could not read offsets of '{self.topic}' partition {self.partition}: {e}"
            ) from e
        return low, high

    def seek(self, offset: int) -> None:
        try:
            self._consumer.assign([TopicPartition(self.topic, self.partition, offset)])
        except KafkaException as e:
            raise BrokerUnavailableError(
                f"Could not assign '{self.topic}' partition {self.partition} at offset {offset}: {e}"
            ) from e

    def poll(self, max_messages: int, timeout: float) -> Optional[List[DlqMessage]]:
        """
        Fetches up to ``max_messages`` records from the current position.

        Returns None once the end of the partition is reached (an empty poll
        or a partition-EOF event), otherwise the records in offset order.
        """
        try:
            batch = self._consumer.consume(num_messages=max_messages, timeout=timeout)
        except KafkaException as e:
            raise BrokerUnavailableError(f"Failed to poll '{self.topic}': {e}") from e

        if not batch:
            return None

        messages: List[DlqMessage] = []
        reached_eof = False
        for msg in batch:
            err = msg.error()
            if err is None:
                messages.append(DlqMessage.from_kafka(msg))
            elif err.code() == KafkaError._PARTITION_EOF:
                reached_eof = True
            else:
                raise BrokerUnavailableError(f"Kafka consumer error on '{self.topic}': {err}")

        if reached_eof and not messages:
            return None
        return messages

    def read_at(self, offset: int, timeout: float) -> Optional[DlqMessage]:
        """Returns the record stored at exactly ``offset``, or None if there is none."""
        low, high = self.watermarks()
        if offset < low or offset >= high:
            return None

        self.seek(offset)
        batch = self.poll(max_messages=1, timeout=timeout)
        for message in batch or []:
            if message.offset == offset and message.partition == self.partition:
                return message
        return None


def _reader_config(bootstrap_servers: str, purpose: str) -> dict:
    return {
        "bootstrap.servers": bootstrap_servers,
        # Throwaway identity so browsing never joins or disturbs a real consumer group.
        "group.id": f"dlq-manager-{purpose}-{uuid.uuid4()}",
        "enable.auto.commit": False,
        "enable.auto.offset.store": False,
        "auto.offset.reset": "earliest",
        "enable.partition.eof": True,
    }


@contextmanager
def open_partition_reader(
    topic: str,
    partition: int,
    purpose: str = "browser",
    bootstrap_servers: str = KAFKA_BOOTSTRAP_SERVERS,
) -> Iterator[PartitionReader]:
    """
    Opens a disposable reader for one partition and closes it on every exit
    path, including exceptions raised by the caller.
    """
    try:
        consumer = Consumer(_reader_config(bootstrap_servers, purpose))
    except KafkaException as e:
        raise BrokerUnavailableError(f"Failed to create Kafka consumer: {e}") from e

    logger.debug("Opened partition reader.", extra={"topic": topic, "partition": partition, "purpose": purpose})
    try:
        yield PartitionReader(consumer, topic, partition)
    finally:
        try:
            consumer.close()
        except KafkaException:
            logger.warning("Error while closing partition reader.", extra={"topic": topic}, exc_info=True)
        logger.debug("Closed partition reader.", extra={"topic": topic, "partition": partition})
