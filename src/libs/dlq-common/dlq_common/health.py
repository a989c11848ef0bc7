# src/libs/dlq-common/dlq_common/health.py
import asyncio
import logging
from typing import Awaitable, Callable, Optional

from fastapi import APIRouter, HTTPException, status

from .db import ping_database
from .kafka_utils import ReplayProducer

logger = logging.getLogger(__name__)

KAFKA_HEALTH_TIMEOUT_SECONDS = 5.0

DependencyCheck = Callable[[], Awaitable[bool]]
ReplayProducerProvider = Callable[[], Optional[ReplayProducer]]


async def check_db_health() -> bool:
    """The audit store is reachable."""
    try:
        await ping_database()
        return True
    except Exception as e:
        logger.error(f"Health Check: Database connection failed: {e}", exc_info=False)
        return False


async def check_replay_producer_health(producer: Optional[ReplayProducer]) -> bool:
    """
    The process-wide replay producer exists and can reach the brokers.
    A producer that failed to start is reported as unavailable rather than
    being replaced by a throwaway client.
    """
    if producer is None:
        logger.error("Health Check: Replay producer was not initialized.")
        return False
    try:
        await asyncio.to_thread(producer.list_topics, KAFKA_HEALTH_TIMEOUT_SECONDS)
        return True
    except Exception as e:
        logger.error(f"Health Check: Replay producer cannot reach Kafka: {e}", exc_info=False)
        return False


def create_health_router(
    *dependencies: str,
    replay_producer_provider: Optional[ReplayProducerProvider] = None,
) -> APIRouter:
    """
    Creates the liveness and readiness router.

    Args:
        *dependencies: 'db' and/or 'kafka', the dependencies readiness must verify.
        replay_producer_provider: returns the current replay producer, or None
            when startup could not create it. Required for the 'kafka' check.
    """
    router = APIRouter(tags=["Health"])

    async def kafka_check() -> bool:
        producer = replay_producer_provider() if replay_producer_provider else None
        return await check_replay_producer_health(producer)

    dep_map: dict[str, tuple[str, DependencyCheck]] = {
        'db': ('database', check_db_health),
        'kafka': ('replay_producer', kafka_check),
    }
    selected = [dep for dep in dependencies if dep in dep_map]

    @router.get("/health/live", status_code=status.HTTP_200_OK)
    async def liveness():
        return {"status": "alive"}

    @router.get("/health/ready", status_code=status.HTTP_200_OK)
    async def readiness():
        results = await asyncio.gather(*[dep_map[dep][1]() for dep in selected])
        dep_status = {
            dep_map[dep][0]: "ok" if ok else "unavailable"
            for dep, ok in zip(selected, results)
        }

        if all(results):
            return {"status": "ready", "dependencies": dep_status}

        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"status": "not_ready", "dependencies": dep_status},
        )

    return router
