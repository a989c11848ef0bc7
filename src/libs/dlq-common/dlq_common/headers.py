# src/libs/dlq-common/dlq_common/headers.py
"""
Well-known DLQ metadata headers.

A consumer that dead-letters a record stamps it with headers describing why
it failed. Those headers are surfaced when browsing and stripped again when
the record is replayed to its destination topic, where they are meaningless.
"""
import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, Mapping, Optional, Tuple, Union

logger = logging.getLogger(__name__)

ERROR_MESSAGE_HEADER = "X-Error-Message"
ORIGINAL_TOPIC_HEADER = "X-Original-Topic"
CONSUMER_GROUP_HEADER = "X-Consumer-Group"
RETRY_COUNT_HEADER = "X-Retry-Count"
FAILED_TIMESTAMP_HEADER = "X-Failed-Timestamp"
EXCEPTION_CLASS_HEADER = "X-Exception-Class"
REPLAYED_AT_HEADER = "X-Replayed-At"

# Describe the failure, not the message. X-Original-Topic is deliberately kept.
REPLAY_DENYLIST = frozenset({
    ERROR_MESSAGE_HEADER,
    RETRY_COUNT_HEADER,
    EXCEPTION_CLASS_HEADER,
    FAILED_TIMESTAMP_HEADER,
    CONSUMER_GROUP_HEADER,
})

RawHeaders = Optional[Iterable[Tuple[str, Union[bytes, str, None]]]]


def decode_headers(raw_headers: RawHeaders) -> Dict[str, str]:
    """
    Converts confluent-kafka's list of (key, bytes) header tuples into an
    ordered str -> str mapping. A repeated key keeps its last value.
    """
    headers: Dict[str, str] = {}
    for key, value in raw_headers or []:
        if value is None:
            headers[key] = ""
        elif isinstance(value, (bytes, bytearray)):
            headers[key] = bytes(value).decode("utf-8", errors="replace")
        else:
            headers[key] = str(value)
    return headers


def encode_headers(headers: Mapping[str, str]) -> list[Tuple[str, bytes]]:
    return [(key, value.encode("utf-8")) for key, value in headers.items()]


def sanitize_for_replay(headers: Mapping[str, str], now: Optional[datetime] = None) -> Dict[str, str]:
    """
    Returns a copy of ``headers`` ready to be written to the destination topic:
    DLQ failure metadata removed, everything else preserved in order, and a
    single ``X-Replayed-At`` marker (ISO-8601, UTC) appended.

    Call this immediately before sending; the marker records the send time.
    """
    sanitized = {key: value for key, value in headers.items() if key not in REPLAY_DENYLIST}
    # A record replayed for the second time gets a fresh marker, not two.
    sanitized.pop(REPLAYED_AT_HEADER, None)

    replayed_at = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    sanitized[REPLAYED_AT_HEADER] = replayed_at.isoformat()

    removed = [key for key in headers if key in REPLAY_DENYLIST]
    if removed:
        logger.debug("Stripped DLQ headers before replay.", extra={"removed_headers": removed})
    return sanitized


def error_type_of(headers: Mapping[str, str]) -> str:
    """Classifier used by the error breakdown; absent or blank means 'Unknown Error'."""
    value = headers.get(ERROR_MESSAGE_HEADER)
    if value is None or not value.strip():
        return "Unknown Error"
    return value


def parse_retry_count(headers: Mapping[str, str]) -> Optional[int]:
    raw = headers.get(RETRY_COUNT_HEADER)
    if raw is None:
        return None
    try:
        return int(raw.strip())
    except ValueError:
        return None


def parse_failed_timestamp(headers: Mapping[str, str]) -> Optional[str]:
    """The failure time is stamped as epoch millis; render it as ISO-8601 UTC."""
    raw = headers.get(FAILED_TIMESTAMP_HEADER)
    if raw is None:
        return None
    try:
        millis = int(raw.strip())
    except ValueError:
        return None
    return epoch_millis_to_iso(millis)


def epoch_millis_to_iso(millis: int) -> str:
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc).isoformat().replace("+00:00", "Z")
