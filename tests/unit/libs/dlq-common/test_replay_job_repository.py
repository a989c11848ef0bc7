# tests/unit/libs/dlq-common/test_replay_job_repository.py
import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from dlq_common.database_models import (
    JOB_COMPLETED,
    JOB_FAILED,
    JOB_PENDING,
    JOB_RUNNING,
    ReplayJob,
    ReplayMessage,
)
from dlq_common.exceptions import JobStateError, ReplayJobNotFoundError
from dlq_common.models import TopicRef
from dlq_common.replay_job_repository import ReplayJobRepository

pytestmark = pytest.mark.asyncio

TOPIC = TopicRef(id=uuid.uuid4(), dlq_topic_name="orders.DLQ", destination_topic_name="orders")


@pytest.fixture
def mock_db_session() -> AsyncMock:
    """Provides a mock SQLAlchemy AsyncSession."""
    session = AsyncMock()
    session.execute = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def repository(mock_db_session: AsyncMock) -> ReplayJobRepository:
    return ReplayJobRepository(mock_db_session)


def _job(status=JOB_RUNNING, total=2, succeeded=0, failed=0) -> ReplayJob:
    return ReplayJob(
        id=uuid.uuid4(),
        dlq_topic_id=TOPIC.id,
        initiated_by="ops",
        status=status,
        total_messages=total,
        succeeded=succeeded,
        failed=failed,
    )


async def test_create_job_adds_pending_job(repository, mock_db_session):
    """
    GIVEN a resolved DLQ topic
    WHEN create_job is called
    THEN a PENDING job with zeroed counters is added and flushed.
    """
    # ACT
    job = await repository.create_job(TOPIC, "ops@example.com", total_messages=3)

    # ASSERT
    mock_db_session.add.assert_called_once_with(job)
    mock_db_session.flush.assert_awaited_once()
    mock_db_session.refresh.assert_awaited_once_with(job)
    assert job.dlq_topic_id == TOPIC.id
    assert job.status == JOB_PENDING
    assert job.total_messages == 3
    assert (job.succeeded, job.failed) == (0, 0)


async def test_mark_running_sets_started_at(repository):
    job = _job(status=JOB_PENDING)

    await repository.mark_running(job)

    assert job.status == JOB_RUNNING
    assert job.started_at is not None


async def test_mark_running_rejects_a_running_job(repository):
    with pytest.raises(JobStateError):
        await repository.mark_running(_job(status=JOB_RUNNING))


async def test_record_message_appends_audit_row_and_counts(repository, mock_db_session):
    """
    GIVEN a running job
    WHEN one success and one failure are recorded
    THEN two insert-only records are added and the counters follow.
    """
    job = _job(total=2)

    ok = await repository.record_message(job, message_key="k1", offset=0, partition=0, succeeded=True)
    ko = await repository.record_message(
        job, message_key=None, offset=9, partition=0, succeeded=False, error_detail="Message not found at offset: 9"
    )

    assert (job.succeeded, job.failed) == (1, 1)
    assert isinstance(ok, ReplayMessage) and ok.status == "SUCCESS" and ok.error_message is None
    assert ko.status == "FAILED"
    assert ko.error_message == "Message not found at offset: 9"
    assert ko.message_identifier == "offset:9,partition:0"
    assert mock_db_session.add.call_count == 2


async def test_record_message_never_exceeds_total(repository):
    job = _job(total=1, succeeded=1)

    with pytest.raises(JobStateError):
        await repository.record_message(job, message_key="k", offset=1, partition=0, succeeded=True)


async def test_finish_job_sets_completion(repository):
    job = _job(total=1, succeeded=1)
    job.started_at = datetime.now(timezone.utc) - timedelta(seconds=2)

    await repository.finish_job(job, JOB_COMPLETED)

    assert job.status == JOB_COMPLETED
    assert job.completed_at is not None
    assert job.success_rate == 100.0
    assert job.duration_seconds >= 2


async def test_finish_job_requires_terminal_status(repository):
    with pytest.raises(JobStateError):
        await repository.finish_job(_job(), JOB_RUNNING)


@pytest.mark.parametrize("terminal_status", [JOB_COMPLETED, JOB_FAILED])
async def test_terminal_jobs_are_immutable(repository, terminal_status):
    """
    GIVEN a job that already reached a terminal state
    WHEN any mutation is attempted
    THEN JobStateError is raised.
    """
    job = _job(status=terminal_status, total=2, succeeded=1)

    with pytest.raises(JobStateError):
        await repository.record_message(job, message_key="k", offset=1, partition=0, succeeded=True)
    with pytest.raises(JobStateError):
        await repository.finish_job(job, JOB_COMPLETED)


async def test_get_job_raises_when_missing(repository, mock_db_session):
    mock_result = MagicMock()
    mock_result.scalars.return_value.first.return_value = None
    mock_db_session.execute.return_value = mock_result

    with pytest.raises(ReplayJobNotFoundError):
        await repository.get_job(uuid.uuid4())


async def test_list_jobs_filters_by_topic_newest_first(repository, mock_db_session):
    """
    GIVEN a DLQ topic id
    WHEN list_jobs is called
    THEN the query filters on the topic and orders by creation time descending.
    """
    mock_result = MagicMock()
    mock_result.scalars.return_value.all.return_value = []
    mock_db_session.execute.return_value = mock_result

    await repository.list_jobs(TOPIC.id)

    executed_stmt = mock_db_session.execute.call_args[0][0]
    compiled_query = str(executed_stmt.compile())
    assert "replay_jobs.dlq_topic_id" in compiled_query
    assert "ORDER BY replay_jobs.created_at DESC" in compiled_query


async def test_list_job_messages_orders_by_insertion(repository, mock_db_session):
    mock_result = MagicMock()
    mock_result.scalars.return_value.all.return_value = []
    mock_db_session.execute.return_value = mock_result

    await repository.list_job_messages(uuid.uuid4())

    executed_stmt = mock_db_session.execute.call_args[0][0]
    compiled_query = str(executed_stmt.compile())
    assert "ORDER BY replay_messages.replayed_at ASC, replay_messages.created_at ASC" in compiled_query
