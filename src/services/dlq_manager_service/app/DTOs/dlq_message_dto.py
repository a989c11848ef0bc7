# src/services/dlq_manager_service/app/DTOs/dlq_message_dto.py
import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from dlq_common.headers import (
    CONSUMER_GROUP_HEADER,
    ERROR_MESSAGE_HEADER,
    ORIGINAL_TOPIC_HEADER,
    epoch_millis_to_iso,
    parse_failed_timestamp,
    parse_retry_count,
)
from dlq_common.models import DlqMessage


def decode_payload(payload: bytes) -> Any:
    """JSON payloads are returned as JSON; anything else as text."""
    text = payload.decode("utf-8", errors="replace")
    try:
        return json.loads(text)
    except ValueError:
        return text


class DlqMessageResponse(BaseModel):
    """
    A single DLQ record as shown to operators, with the well-known failure
    headers lifted into top-level fields.
    """
    model_config = ConfigDict(populate_by_name=True)

    message_key: Optional[str] = Field(None, alias="messageKey")
    payload: Any = Field(None, description="JSON value if the payload parses as JSON, else the raw text.")
    partition: int
    offset: int
    timestamp: str = Field(..., description="Record timestamp, ISO-8601 UTC.")
    error_message: Optional[str] = Field(None, alias="errorMessage")
    original_topic: Optional[str] = Field(None, alias="originalTopic")
    retry_count: Optional[int] = Field(None, alias="retryCount")
    failed_timestamp: Optional[str] = Field(None, alias="failedTimestamp")
    consumer_group: Optional[str] = Field(None, alias="consumerGroup")
    headers: Dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_message(cls, message: DlqMessage) -> "DlqMessageResponse":
        headers = message.headers
        return cls(
            message_key=message.key,
            payload=decode_payload(message.payload),
            partition=message.partition,
            offset=message.offset,
            timestamp=epoch_millis_to_iso(message.timestamp_ms),
            error_message=headers.get(ERROR_MESSAGE_HEADER),
            original_topic=headers.get(ORIGINAL_TOPIC_HEADER),
            retry_count=parse_retry_count(headers),
            failed_timestamp=parse_failed_timestamp(headers),
            consumer_group=headers.get(CONSUMER_GROUP_HEADER),
            headers=dict(headers),
        )


class PaginationInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_page: int = Field(..., alias="currentPage")
    page_size: int = Field(..., alias="pageSize")
    total_messages: int = Field(..., alias="totalMessages")
    total_pages: int = Field(..., alias="totalPages")
    has_next_page: bool = Field(..., alias="hasNextPage")
    has_previous_page: bool = Field(..., alias="hasPreviousPage")

    @classmethod
    def build(cls, page: int, page_size: int, total_messages: int) -> "PaginationInfo":
        total_pages = -(-total_messages // page_size) if total_messages > 0 else 0
        return cls(
            current_page=page,
            page_size=page_size,
            total_messages=total_messages,
            total_pages=total_pages,
            has_next_page=page < total_pages,
            has_previous_page=page > 1,
        )


class DlqMessagePageResponse(BaseModel):
    success: bool = True
    messages: List[DlqMessageResponse]
    pagination: PaginationInfo


class MessageCountResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    total_messages: int = Field(..., alias="totalMessages")
