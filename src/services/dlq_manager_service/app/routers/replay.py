# src/services/dlq_manager_service/app/routers/replay.py
import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from fastapi.responses import JSONResponse

from dlq_common.exceptions import MessageNotFoundAtOffsetError, ReplayJobNotFoundError, TopicNotFoundError

from ..DTOs.replay_dto import (
    BulkReplayRequest,
    ReplayFailureEnvelope,
    ReplayHistoryResponse,
    ReplayJobEnvelope,
    ReplayJobMessagesResponse,
    ReplayJobResponse,
    ReplayRequest,
)
from ..dependencies import get_replay_history_reader, get_replay_orchestrator
from ..services.replay_service import ReplayOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/replay", tags=["Replay"])


@router.post(
    "/single",
    response_model=ReplayJobEnvelope,
    response_model_by_alias=True,
    responses={
        status.HTTP_404_NOT_FOUND: {"model": ReplayFailureEnvelope, "description": "Topic or offset not found."},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ReplayFailureEnvelope, "description": "Replay failed."},
    },
    summary="Replay one DLQ message to its destination topic",
)
async def replay_single(
    request: ReplayRequest,
    orchestrator: ReplayOrchestrator = Depends(get_replay_orchestrator),
):
    try:
        result = await orchestrator.replay_single(
            request.dlq_topic_id,
            request.message_offset,
            request.message_partition,
            request.initiated_by,
        )
    except TopicNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    job_view = ReplayJobResponse.from_job(result.job, result.topic_ref)
    if result.outcome.succeeded:
        return ReplayJobEnvelope(message="Message replayed successfully", replay_job=job_view)

    if isinstance(result.outcome.error, MessageNotFoundAtOffsetError):
        status_code = status.HTTP_404_NOT_FOUND
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    logger.warning(f"Single replay job {result.job.id} failed: {result.outcome.detail}")
    envelope = ReplayFailureEnvelope(error=result.outcome.detail, status=status_code, replay_job=job_view)
    return JSONResponse(status_code=status_code, content=envelope.model_dump(mode="json", by_alias=True))


@router.post(
    "/bulk",
    response_model=ReplayJobEnvelope,
    response_model_by_alias=True,
    responses={status.HTTP_404_NOT_FOUND: {"description": "DLQ topic not found."}},
    summary="Replay several DLQ messages in order",
    description=(
        "Messages are replayed sequentially. Individual failures are recorded and do not stop "
        "the job; inspect succeeded/failed to detect partial failure."
    ),
)
async def replay_bulk(
    request: BulkReplayRequest,
    orchestrator: ReplayOrchestrator = Depends(get_replay_orchestrator),
):
    try:
        result = await orchestrator.replay_bulk(
            request.dlq_topic_id,
            [(m.offset, m.partition) for m in request.messages],
            request.initiated_by,
        )
    except TopicNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return ReplayJobEnvelope(
        message=result.summary,
        replay_job=ReplayJobResponse.from_job(result.job, result.topic_ref),
    )


@router.get(
    "/jobs/{job_id}",
    response_model=ReplayJobEnvelope,
    response_model_by_alias=True,
    responses={status.HTTP_404_NOT_FOUND: {"description": "Replay job not found."}},
    summary="Get a replay job",
)
async def get_replay_job(
    job_id: UUID = Path(..., description="Replay job identifier."),
    orchestrator: ReplayOrchestrator = Depends(get_replay_history_reader),
):
    try:
        return ReplayJobEnvelope(replay_job=await orchestrator.get_job(job_id))
    except ReplayJobNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get(
    "/jobs/{job_id}/messages",
    response_model=ReplayJobMessagesResponse,
    response_model_by_alias=True,
    responses={status.HTTP_404_NOT_FOUND: {"description": "Replay job not found."}},
    summary="List the per-message audit records of a replay job",
)
async def get_replay_job_messages(
    job_id: UUID = Path(..., description="Replay job identifier."),
    orchestrator: ReplayOrchestrator = Depends(get_replay_history_reader),
):
    try:
        return await orchestrator.list_job_messages(job_id)
    except ReplayJobNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get(
    "/history",
    response_model=ReplayHistoryResponse,
    response_model_by_alias=True,
    summary="List replay jobs, newest first",
)
async def get_replay_history(
    dlq: Optional[UUID] = Query(None, description="Only jobs of this DLQ topic."),
    orchestrator: ReplayOrchestrator = Depends(get_replay_history_reader),
):
    try:
        return await orchestrator.list_jobs(dlq)
    except TopicNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get(
    "/history/dlq/{dlq_topic_id}",
    response_model=ReplayHistoryResponse,
    response_model_by_alias=True,
    summary="List replay jobs of one DLQ topic, newest first",
)
async def get_replay_history_for_topic(
    dlq_topic_id: UUID = Path(..., description="Registered DLQ topic identifier."),
    orchestrator: ReplayOrchestrator = Depends(get_replay_history_reader),
):
    try:
        return await orchestrator.list_jobs(dlq_topic_id)
    except TopicNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
