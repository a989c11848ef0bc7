# src/services/dlq_manager_service/app/routers/dlq_topics.py
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status

from dlq_common.config import DLQ_DEFAULT_PAGE_SIZE, DLQ_MAX_PAGE_SIZE
from dlq_common.exceptions import BrokerUnavailableError, TopicNotFoundError

from ..DTOs.dlq_message_dto import DlqMessagePageResponse, MessageCountResponse
from ..DTOs.error_breakdown_dto import ErrorBreakdownResponse
from ..dependencies import get_dlq_topic_service
from ..services.dlq_topic_service import DlqTopicService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/dlq-topics", tags=["DLQ Topics"])


@router.get(
    "/{dlq_topic_id}/messages",
    response_model=DlqMessagePageResponse,
    response_model_by_alias=True,
    responses={status.HTTP_404_NOT_FOUND: {"description": "DLQ topic not found."}},
    summary="Browse messages of a DLQ topic",
    description=(
        "Returns one page of dead-lettered records from partition 0 of the topic. "
        "Pages are computed from offsets, so page N starts at offset (N-1)*size."
    ),
)
async def get_dlq_messages(
    dlq_topic_id: UUID = Path(..., description="Registered DLQ topic identifier."),
    page: int = Query(1, ge=1, description="1-based page number."),
    size: int = Query(DLQ_DEFAULT_PAGE_SIZE, ge=1, le=DLQ_MAX_PAGE_SIZE, description="Page size."),
    service: DlqTopicService = Depends(get_dlq_topic_service),
):
    try:
        return await service.get_messages(dlq_topic_id, page, size)
    except TopicNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except BrokerUnavailableError as e:
        logger.error(f"Failed to fetch messages from DLQ topic {dlq_topic_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to fetch messages: {e}",
        )


@router.get(
    "/{dlq_topic_id}/message-count",
    response_model=MessageCountResponse,
    response_model_by_alias=True,
    summary="Approximate number of messages in a DLQ topic",
)
async def get_message_count(
    dlq_topic_id: UUID = Path(..., description="Registered DLQ topic identifier."),
    service: DlqTopicService = Depends(get_dlq_topic_service),
):
    try:
        return await service.get_message_count(dlq_topic_id)
    except TopicNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except BrokerUnavailableError as e:
        logger.error(f"Failed to count messages of DLQ topic {dlq_topic_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get message count: {e}",
        )


@router.get(
    "/{dlq_topic_id}/error-breakdown",
    response_model=ErrorBreakdownResponse,
    response_model_by_alias=True,
    summary="Group the messages of a DLQ topic by error",
    description=(
        "Scans the whole partition and counts records per X-Error-Message header. "
        "Runtime grows with the partition size; results are not cached."
    ),
)
async def get_error_breakdown(
    dlq_topic_id: UUID = Path(..., description="Registered DLQ topic identifier."),
    service: DlqTopicService = Depends(get_dlq_topic_service),
):
    try:
        return await service.get_error_breakdown(dlq_topic_id)
    except TopicNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except BrokerUnavailableError as e:
        logger.error(f"Failed to build error breakdown for DLQ topic {dlq_topic_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get error breakdown: {e}",
        )
