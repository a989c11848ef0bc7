# src/libs/dlq-common/dlq_common/kafka_utils.py
import logging
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass
from typing import List, Optional, Tuple

from confluent_kafka import KafkaError, KafkaException, Producer

from .config import (
    DLQ_REPLAY_PRODUCER_RETRIES,
    DLQ_REPLAY_SEND_TIMEOUT_SECONDS,
    KAFKA_BOOTSTRAP_SERVERS,
)
from .exceptions import (
    BrokerUnavailableError,
    SendInterruptedError,
    SendRejectedError,
    SendTimeoutError,
)
from .monitoring import KAFKA_PUBLISH_LATENCY_SECONDS

logger = logging.getLogger(__name__)

POLL_INTERVAL_SECONDS = 0.1


@dataclass(frozen=True)
class DeliveryResult:
    topic: str
    partition: int
    offset: int


class ReplayProducer:
    """
    Process-wide writer used to resend DLQ records to their destination topics.

    Configured for maximum delivery safety:
      * Idempotence enabled, so broker-side retries after an ambiguous failure
        cannot duplicate a record
      * acks=all with a bounded retry count
    Each ``send`` blocks until the broker acknowledges the record or the send
    timeout elapses; it does not retry beyond the client's own retries.

    Thread-safety: the underlying confluent_kafka.Producer is safe for
    concurrent ``produce``/``poll`` calls from multiple threads, so one
    instance is shared by all replay requests without extra locking.
    """

    def __init__(
        self,
        bootstrap_servers: str = KAFKA_BOOTSTRAP_SERVERS,
        send_timeout: float = DLQ_REPLAY_SEND_TIMEOUT_SECONDS,
        retries: int = DLQ_REPLAY_PRODUCER_RETRIES,
    ):
        self.producer = None
        self.bootstrap_servers = bootstrap_servers
        self.send_timeout = send_timeout
        self.retries = retries
        self._closed = threading.Event()
        self._initialize_producer()

    def _initialize_producer(self):
        try:
            conf = {
                # Broker connectivity
                "bootstrap.servers": self.bootstrap_servers,
                "client.id": "dlq-manager-replay-producer",

                # Reliability
                "enable.idempotence": True,
                "acks": "all",
                "retries": self.retries,
                "max.in.flight.requests.per.connection": 5,  # safe with idempotence

                # Replays are low volume; favour latency over batching.
                "linger.ms": 0,
                "compression.type": "snappy",

                # Timeouts & keepalive
                "request.timeout.ms": int(self.send_timeout * 1000),
                "delivery.timeout.ms": int(self.send_timeout * 1000),
                "socket.keepalive.enable": True,
            }

            self.producer = Producer(conf)
            logger.info(f"Replay producer initialized for brokers: {self.bootstrap_servers}")
        except KafkaException as e:
            logger.error(f"Failed to initialize replay producer: {e}")
            self.producer = None
            raise BrokerUnavailableError(f"Failed to initialize replay producer: {e}") from e

    def send(
        self,
        topic: str,
        key: Optional[str],
        payload: bytes,
        headers: Optional[List[Tuple[str, bytes]]] = None,
    ) -> DeliveryResult:
        """
        Writes one record and waits for its acknowledgement.

        Raises:
            SendTimeoutError: no acknowledgement within ``send_timeout`` seconds.
            SendRejectedError: the client or broker refused the record.
            SendInterruptedError: the producer was closed while waiting.
        """
        if self._closed.is_set() or not self.producer:
            raise SendInterruptedError(topic)

        outcome: Future = Future()

        def delivery_report(err, msg):
            if err is not None:
                outcome.set_exception(self._delivery_error(topic, err))
            else:
                outcome.set_result(DeliveryResult(msg.topic(), msg.partition(), msg.offset()))

        start = time.monotonic()
        try:
            self.producer.produce(
                topic,
                key=key.encode("utf-8") if isinstance(key, str) else key,
                value=payload,
                headers=headers or [],
                callback=delivery_report,
            )
        except BufferError as e:
            raise SendRejectedError(topic, f"local producer queue is full: {e}") from e
        except KafkaException as e:
            raise SendRejectedError(topic, str(e)) from e

        deadline = start + self.send_timeout
        while not outcome.done():
            if self._closed.is_set():
                raise SendInterruptedError(topic)
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.error(f"Timeout sending message to topic: {topic}, key: {key}")
                raise SendTimeoutError(topic, self.send_timeout)
            self.producer.poll(min(remaining, POLL_INTERVAL_SECONDS))

        result = outcome.result()
        KAFKA_PUBLISH_LATENCY_SECONDS.labels(topic=topic).observe(time.monotonic() - start)
        logger.info(
            f"Message sent successfully to topic: {result.topic}",
            extra={"topic": result.topic, "partition": result.partition, "offset": result.offset},
        )
        return result

    def _delivery_error(self, topic: str, err) -> Exception:
        if err.code() == KafkaError._MSG_TIMED_OUT:
            return SendTimeoutError(topic, self.send_timeout)
        return SendRejectedError(topic, err.str())

    def list_topics(self, timeout: float = 5.0):
        """Cluster metadata fetched over the producer's own connection."""
        if self._closed.is_set() or not self.producer:
            raise BrokerUnavailableError("Replay producer is closed.")
        try:
            return self.producer.list_topics(timeout=timeout)
        except KafkaException as e:
            raise BrokerUnavailableError(f"Could not fetch cluster metadata: {e}") from e

    def flush(self, timeout: float = 10):
        if self.producer:
            return self.producer.flush(timeout)
        return 0

    def close(self, timeout: float = 10):
        """Flushes pending sends, then refuses any further ones."""
        logger.info("Closing replay producer...")
        remaining = self.flush(timeout)
        self._closed.set()
        if remaining:
            logger.warning(f"{remaining} replayed message(s) were still in flight at shutdown.")
        logger.info("Replay producer closed.")
