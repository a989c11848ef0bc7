# src/services/dlq_manager_service/app/dependencies.py
from fastapi import Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from dlq_common.db import get_async_db_session
from dlq_common.kafka_utils import ReplayProducer

from .services.dlq_topic_service import DlqTopicService
from .services.error_analyzer import ErrorAnalyzer
from .services.partition_browser import PartitionBrowser
from .services.replay_service import ReplayOrchestrator

# Process-wide resources, populated by the application lifespan.
app_state = {}


def get_replay_producer() -> ReplayProducer:
    producer = app_state.get("replay_producer")
    if producer is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Replay producer is not available.",
        )
    return producer


def get_partition_browser() -> PartitionBrowser:
    return PartitionBrowser()


def get_error_analyzer() -> ErrorAnalyzer:
    return ErrorAnalyzer()


def get_dlq_topic_service(
    db: AsyncSession = Depends(get_async_db_session),
    browser: PartitionBrowser = Depends(get_partition_browser),
    analyzer: ErrorAnalyzer = Depends(get_error_analyzer),
) -> DlqTopicService:
    return DlqTopicService(db, browser, analyzer)


def get_replay_orchestrator(
    db: AsyncSession = Depends(get_async_db_session),
    browser: PartitionBrowser = Depends(get_partition_browser),
    producer: ReplayProducer = Depends(get_replay_producer),
) -> ReplayOrchestrator:
    return ReplayOrchestrator(db, browser, producer)


def get_replay_history_reader(
    db: AsyncSession = Depends(get_async_db_session),
    browser: PartitionBrowser = Depends(get_partition_browser),
) -> ReplayOrchestrator:
    """Read-only access to replay jobs; does not need the replay producer."""
    return ReplayOrchestrator(db, browser, producer=None)
