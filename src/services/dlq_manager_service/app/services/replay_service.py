# src/services/dlq_manager_service/app/services/replay_service.py
import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from dlq_common.config import DLQ_REPLAY_DEFAULT_INITIATOR
from dlq_common.database_models import JOB_COMPLETED, JOB_FAILED, ReplayJob
from dlq_common.dlq_topic_repository import DlqTopicRepository
from dlq_common.exceptions import DlqManagerError, MessageNotFoundAtOffsetError, SendInterruptedError
from dlq_common.headers import encode_headers, sanitize_for_replay
from dlq_common.kafka_utils import ReplayProducer
from dlq_common.logging_utils import current_correlation_id
from dlq_common.models import TopicRef
from dlq_common.monitoring import DLQ_REPLAY_JOBS_TOTAL, DLQ_REPLAYED_MESSAGES_TOTAL
from dlq_common.replay_job_repository import ReplayJobRepository

from ..DTOs.replay_dto import (
    ReplayHistoryResponse,
    ReplayJobMessagesResponse,
    ReplayJobResponse,
    ReplayMessageRecordResponse,
)
from .partition_browser import PartitionBrowser

logger = logging.getLogger(__name__)

CORRELATION_ID_HEADER = "correlation_id"


@dataclass
class MessageOutcome:
    """Result of one replay attempt. Failures carry the error instead of raising it."""
    succeeded: bool
    offset: int
    partition: int
    message_key: Optional[str] = None
    error: Optional[Exception] = None

    @property
    def detail(self) -> Optional[str]:
        if self.error is None:
            return None
        if isinstance(self.error, DlqManagerError):
            return str(self.error)
        return f"Unexpected error: {type(self.error).__name__}: {self.error}"


@dataclass
class SingleReplayResult:
    job: ReplayJob
    topic_ref: TopicRef
    outcome: MessageOutcome


@dataclass
class BulkReplayResult:
    job: ReplayJob
    topic_ref: TopicRef

    @property
    def summary(self) -> str:
        total, succeeded, failed = self.job.total_messages, self.job.succeeded, self.job.failed
        if failed == 0:
            return f"All {total} messages replayed successfully"
        if succeeded == 0:
            return f"All {total} messages failed to replay"
        return f"Bulk replay completed: {succeeded} succeeded, {failed} failed"


class ReplayOrchestrator:
    """
    Drives replay jobs through PENDING -> RUNNING -> COMPLETED | FAILED and
    writes one audit record per attempted message.

    Messages of a bulk job are replayed one after another in request order.
    A failed message never stops the loop; the job still completes and its
    counters tell the caller what happened. The audit ledger is committed at
    every step so it survives a crash mid-job.
    """

    def __init__(self, db: AsyncSession, browser: PartitionBrowser, producer: Optional[ReplayProducer]):
        self.registry = DlqTopicRepository(db)
        self.audit = ReplayJobRepository(db)
        self.browser = browser
        self.producer = producer

    async def replay_single(
        self,
        dlq_topic_id: UUID,
        offset: int,
        partition: int,
        initiated_by: Optional[str] = None,
    ) -> SingleReplayResult:
        topic_ref = await self.registry.get_topic_ref(dlq_topic_id)
        job = await self._start_job(topic_ref, initiated_by, total_messages=1)

        outcome = await self._attempt(topic_ref, offset, partition)
        await self._record(job, topic_ref, outcome)

        await self._finish(job, JOB_COMPLETED if outcome.succeeded else JOB_FAILED, mode="single")
        return SingleReplayResult(job=job, topic_ref=topic_ref, outcome=outcome)

    async def replay_bulk(
        self,
        dlq_topic_id: UUID,
        messages: Sequence[Tuple[int, int]],
        initiated_by: Optional[str] = None,
    ) -> BulkReplayResult:
        """Replays each (offset, partition) pair in order."""
        if not messages:
            raise ValueError("At least one message must be provided for bulk replay")

        topic_ref = await self.registry.get_topic_ref(dlq_topic_id)
        job = await self._start_job(topic_ref, initiated_by, total_messages=len(messages))

        for offset, partition in messages:
            outcome = await self._attempt(topic_ref, offset, partition)
            await self._record(job, topic_ref, outcome)

        await self._finish(job, JOB_COMPLETED, mode="bulk")
        logger.info(
            f"Bulk replay completed. Job: {job.id}, Succeeded: {job.succeeded}, Failed: {job.failed}"
        )
        return BulkReplayResult(job=job, topic_ref=topic_ref)

    async def get_job(self, job_id: UUID) -> ReplayJobResponse:
        job = await self.audit.get_job(job_id)
        return ReplayJobResponse.from_job(job)

    async def list_jobs(self, dlq_topic_id: Optional[UUID] = None) -> ReplayHistoryResponse:
        if dlq_topic_id is not None:
            await self.registry.get_topic_ref(dlq_topic_id)
        jobs = await self.audit.list_jobs(dlq_topic_id)
        return ReplayHistoryResponse(
            dlq_topic_id=dlq_topic_id,
            count=len(jobs),
            replay_jobs=[ReplayJobResponse.from_job(job) for job in jobs],
        )

    async def list_job_messages(self, job_id: UUID) -> ReplayJobMessagesResponse:
        await self.audit.get_job(job_id)
        records = await self.audit.list_job_messages(job_id)
        return ReplayJobMessagesResponse(
            job_id=job_id,
            count=len(records),
            messages=[ReplayMessageRecordResponse.from_record(r) for r in records],
        )

    async def _start_job(self, topic_ref: TopicRef, initiated_by: Optional[str], total_messages: int) -> ReplayJob:
        job = await self.audit.create_job(
            topic_ref, initiated_by or DLQ_REPLAY_DEFAULT_INITIATOR, total_messages
        )
        await self.audit.commit()
        await self.audit.mark_running(job)
        await self.audit.commit()
        return job

    async def _attempt(self, topic_ref: TopicRef, offset: int, partition: int) -> MessageOutcome:
        """Reads one DLQ record and resends it. Never raises for message-level failures."""
        outcome = MessageOutcome(succeeded=False, offset=offset, partition=partition)
        try:
            message = await asyncio.to_thread(
                self.browser.read_message, topic_ref.dlq_topic_name, partition, offset
            )
            if message is None:
                raise MessageNotFoundAtOffsetError(topic_ref.dlq_topic_name, partition, offset)
            outcome.message_key = message.key

            headers = dict(message.headers)
            correlation_id = current_correlation_id()
            if correlation_id and CORRELATION_ID_HEADER not in headers:
                headers[CORRELATION_ID_HEADER] = correlation_id

            if self.producer is None:
                raise SendInterruptedError(topic_ref.destination_topic_name)
            # Sanitized right before the send so the replay marker carries the send time.
            await asyncio.to_thread(
                self.producer.send,
                topic_ref.destination_topic_name,
                message.key,
                message.payload,
                encode_headers(sanitize_for_replay(headers)),
            )
        except DlqManagerError as e:
            logger.warning(
                f"Failed to replay message at offset {offset} of '{topic_ref.dlq_topic_name}': {e}",
                extra={"partition": partition, "offset": offset, "error_class": type(e).__name__},
            )
            outcome.error = e
            return outcome
        except Exception as e:
            logger.error(
                f"Unexpected error replaying message at offset {offset} of '{topic_ref.dlq_topic_name}'",
                extra={"partition": partition, "offset": offset, "error_class": type(e).__name__},
                exc_info=True,
            )
            outcome.error = e
            return outcome

        outcome.succeeded = True
        logger.info(
            f"Replayed message at offset {offset} to '{topic_ref.destination_topic_name}'",
            extra={"partition": partition, "offset": offset},
        )
        return outcome

    async def _record(self, job: ReplayJob, topic_ref: TopicRef, outcome: MessageOutcome) -> None:
        await self.audit.record_message(
            job,
            message_key=outcome.message_key,
            offset=outcome.offset,
            partition=outcome.partition,
            succeeded=outcome.succeeded,
            error_detail=outcome.detail,
        )
        await self.audit.commit()
        DLQ_REPLAYED_MESSAGES_TOTAL.labels(
            dlq_topic=topic_ref.dlq_topic_name,
            status="success" if outcome.succeeded else "failed",
        ).inc()

    async def _finish(self, job: ReplayJob, status: str, mode: str) -> None:
        await self.audit.finish_job(job, status)
        await self.audit.commit()
        DLQ_REPLAY_JOBS_TOTAL.labels(mode=mode, status=status).inc()
