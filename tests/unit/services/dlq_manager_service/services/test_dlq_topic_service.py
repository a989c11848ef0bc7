# tests/unit/services/dlq_manager_service/services/test_dlq_topic_service.py
import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest

from dlq_common.exceptions import TopicNotFoundError
from dlq_common.models import TopicRef
from src.services.dlq_manager_service.app.services.dlq_topic_service import DlqTopicService
from src.services.dlq_manager_service.app.services.error_analyzer import ErrorAnalyzer
from src.services.dlq_manager_service.app.services.partition_browser import PartitionBrowser

pytestmark = pytest.mark.asyncio

TOPIC = TopicRef(id=uuid.uuid4(), dlq_topic_name="orders.DLQ", destination_topic_name="orders")


@pytest.fixture
def partition(fake_partition, message_factory):
    return fake_partition([message_factory(i, error="Timeout" if i % 2 else None) for i in range(12)])


@pytest.fixture
def service(partition) -> DlqTopicService:
    service = DlqTopicService(
        AsyncMock(),
        PartitionBrowser(reader_factory=partition),
        ErrorAnalyzer(reader_factory=partition),
    )
    service.registry = AsyncMock()
    service.registry.get_topic_ref.return_value = TOPIC
    return service


async def test_get_messages_builds_page_and_pagination(service, partition):
    """
    GIVEN a topic of 12 records
    WHEN page 3 of size 5 is requested
    THEN the last two records are returned with pagination metadata.
    """
    response = await service.get_messages(TOPIC.id, page=3, page_size=5)

    assert [m.offset for m in response.messages] == [10, 11]
    assert response.messages[0].payload == {"offset": 10}
    assert response.pagination.total_messages == 12
    assert response.pagination.total_pages == 3
    assert response.pagination.has_next_page is False
    assert response.pagination.has_previous_page is True
    assert partition.open_readers == 0


async def test_get_message_count(service):
    response = await service.get_message_count(TOPIC.id)

    assert response.total_messages == 12


async def test_get_error_breakdown(service):
    response = await service.get_error_breakdown(TOPIC.id)

    assert response.total_messages == 12
    assert [(e.error_type, e.count, e.percentage) for e in response.error_breakdown] == [
        ("Unknown Error", 6, 50.0),
        ("Timeout", 6, 50.0),
    ]


async def test_unknown_topic_never_reaches_the_broker(service):
    reader_factory = MagicMock()
    service.browser = PartitionBrowser(reader_factory=reader_factory)
    service.registry.get_topic_ref.side_effect = TopicNotFoundError(TOPIC.id)

    with pytest.raises(TopicNotFoundError):
        await service.get_messages(TOPIC.id, page=1, page_size=10)
    reader_factory.assert_not_called()
