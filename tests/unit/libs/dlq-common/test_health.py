# tests/unit/libs/dlq-common/test_health.py
import pytest
import httpx
from fastapi import FastAPI
from unittest.mock import AsyncMock, MagicMock, patch

from dlq_common.exceptions import BrokerUnavailableError
from dlq_common.health import create_health_router

pytestmark = pytest.mark.asyncio


def _client(state: dict) -> httpx.AsyncClient:
    app = FastAPI()
    app.include_router(
        create_health_router("db", "kafka", replay_producer_provider=lambda: state.get("replay_producer"))
    )
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")


async def test_liveness_does_not_touch_dependencies():
    state = {"replay_producer": MagicMock()}

    async with _client(state) as client:
        response = await client.get("/health/live")

    assert response.status_code == 200
    assert response.json() == {"status": "alive"}
    state["replay_producer"].list_topics.assert_not_called()


@patch('dlq_common.health.ping_database', new_callable=AsyncMock)
async def test_ready_when_database_and_replay_producer_are_reachable(mock_ping):
    producer = MagicMock()
    state = {"replay_producer": producer}

    async with _client(state) as client:
        response = await client.get("/health/ready")

    assert response.status_code == 200
    assert response.json() == {
        "status": "ready",
        "dependencies": {"database": "ok", "replay_producer": "ok"},
    }
    mock_ping.assert_awaited_once()
    producer.list_topics.assert_called_once()


@patch('dlq_common.health.ping_database', new_callable=AsyncMock)
async def test_not_ready_when_startup_left_no_replay_producer(mock_ping):
    state = {"replay_producer": None}

    async with _client(state) as client:
        response = await client.get("/health/ready")

    assert response.status_code == 503
    assert response.json()["detail"] == {
        "status": "not_ready",
        "dependencies": {"database": "ok", "replay_producer": "unavailable"},
    }


@patch('dlq_common.health.ping_database', new_callable=AsyncMock)
async def test_not_ready_when_replay_producer_cannot_reach_kafka(mock_ping):
    producer = MagicMock()
    producer.list_topics.side_effect = BrokerUnavailableError("Could not fetch cluster metadata")

    async with _client({"replay_producer": producer}) as client:
        response = await client.get("/health/ready")

    assert response.status_code == 503
    assert response.json()["detail"]["dependencies"]["replay_producer"] == "unavailable"


@patch('dlq_common.health.ping_database', new_callable=AsyncMock)
async def test_not_ready_when_database_is_unreachable(mock_ping):
    mock_ping.side_effect = ConnectionRefusedError("connection refused")

    async with _client({"replay_producer": MagicMock()}) as client:
        response = await client.get("/health/ready")

    assert response.status_code == 503
    assert response.json()["detail"]["dependencies"] == {
        "database": "unavailable",
        "replay_producer": "ok",
    }
