# src/libs/dlq-common/dlq_common/models.py
from dataclasses import dataclass, field
from typing import Dict, Optional
from uuid import UUID

from confluent_kafka import Message, TIMESTAMP_NOT_AVAILABLE

from .headers import decode_headers


@dataclass(frozen=True)
class TopicRef:
    """Registry view of a DLQ topic: where to read from and where to replay to."""
    id: UUID
    dlq_topic_name: str
    destination_topic_name: str


@dataclass
class DlqMessage:
    """
    A decoded DLQ record. (partition, offset) identifies it within its topic
    for as long as the topic retains it.
    """
    key: Optional[str]
    payload: bytes
    partition: int
    offset: int
    timestamp_ms: int
    headers: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_kafka(cls, msg: Message) -> "DlqMessage":
        raw_key = msg.key()
        if isinstance(raw_key, (bytes, bytearray)):
            key = bytes(raw_key).decode("utf-8", errors="replace")
        else:
            key = raw_key

        timestamp_type, timestamp_ms = msg.timestamp()
        if timestamp_type == TIMESTAMP_NOT_AVAILABLE:
            timestamp_ms = 0

        return cls(
            key=key,
            payload=msg.value() or b"",
            partition=msg.partition(),
            offset=msg.offset(),
            timestamp_ms=timestamp_ms,
            headers=decode_headers(msg.headers()),
        )
