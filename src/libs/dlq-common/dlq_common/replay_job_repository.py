# src/libs/dlq-common/dlq_common/replay_job_repository.py
import logging
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from .database_models import (
    JOB_PENDING,
    JOB_RUNNING,
    MESSAGE_FAILED,
    MESSAGE_SUCCESS,
    TERMINAL_JOB_STATUSES,
    ReplayJob,
    ReplayMessage,
)
from .exceptions import JobStateError, ReplayJobNotFoundError
from .models import TopicRef

logger = logging.getLogger(__name__)


class ReplayJobRepository:
    """
    Audit store for replay jobs and their per-message outcomes.

    Jobs are mutable only until they reach COMPLETED or FAILED; message
    records are insert-only.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_job(self, topic_ref: TopicRef, initiated_by: str, total_messages: int) -> ReplayJob:
        job = ReplayJob(
            dlq_topic_id=topic_ref.id,
            initiated_by=initiated_by,
            status=JOB_PENDING,
            total_messages=total_messages,
            succeeded=0,
            failed=0,
        )
        self.db.add(job)
        await self.db.flush()
        await self.db.refresh(job)
        logger.info(
            "Created replay job.",
            extra={"job_id": str(job.id), "dlq_topic": topic_ref.dlq_topic_name, "total_messages": total_messages},
        )
        return job

    async def mark_running(self, job: ReplayJob) -> ReplayJob:
        self._ensure_mutable(job)
        if job.status != JOB_PENDING:
            raise JobStateError(f"Replay job {job.id} cannot start from status {job.status}")
        job.status = JOB_RUNNING
        job.started_at = datetime.now(timezone.utc)
        await self.db.flush()
        return job

    async def record_message(
        self,
        job: ReplayJob,
        *,
        message_key: Optional[str],
        offset: int,
        partition: int,
        succeeded: bool,
        error_detail: Optional[str] = None,
    ) -> ReplayMessage:
        """Appends one audit record and bumps the job's running counters."""
        self._ensure_mutable(job)
        if job.succeeded + job.failed >= job.total_messages:
            raise JobStateError(f"Replay job {job.id} already has {job.total_messages} recorded message(s)")

        record = ReplayMessage(
            replay_job_id=job.id,
            message_key=message_key,
            dlq_offset=offset,
            dlq_partition=partition,
            status=MESSAGE_SUCCESS if succeeded else MESSAGE_FAILED,
            error_message=error_detail,
            replayed_at=datetime.now(timezone.utc),
        )
        self.db.add(record)
        if succeeded:
            job.succeeded += 1
        else:
            job.failed += 1
        await self.db.flush()
        return record

    async def finish_job(self, job: ReplayJob, status: str) -> ReplayJob:
        self._ensure_mutable(job)
        if status not in TERMINAL_JOB_STATUSES:
            raise JobStateError(f"'{status}' is not a terminal replay job status")
        job.status = status
        job.completed_at = datetime.now(timezone.utc)
        if job.started_at is None:
            job.started_at = job.completed_at
        await self.db.flush()
        logger.info(
            "Replay job finished.",
            extra={"job_id": str(job.id), "status": status, "succeeded": job.succeeded, "failed": job.failed},
        )
        return job

    async def commit(self) -> None:
        await self.db.commit()

    async def get_job(self, job_id: UUID) -> ReplayJob:
        result = await self.db.execute(select(ReplayJob).where(ReplayJob.id == job_id))
        job = result.scalars().first()
        if job is None:
            raise ReplayJobNotFoundError(job_id)
        return job

    async def list_jobs(self, dlq_topic_id: Optional[UUID] = None) -> List[ReplayJob]:
        stmt = select(ReplayJob)
        if dlq_topic_id is not None:
            stmt = stmt.where(ReplayJob.dlq_topic_id == dlq_topic_id)
        stmt = stmt.order_by(ReplayJob.created_at.desc())
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def list_job_messages(self, job_id: UUID) -> List[ReplayMessage]:
        stmt = (
            select(ReplayMessage)
            .where(ReplayMessage.replay_job_id == job_id)
            .order_by(ReplayMessage.replayed_at.asc(), ReplayMessage.created_at.asc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    def _ensure_mutable(job: ReplayJob) -> None:
        if job.status in TERMINAL_JOB_STATUSES:
            raise JobStateError(f"Replay job {job.id} is {job.status} and can no longer change")
