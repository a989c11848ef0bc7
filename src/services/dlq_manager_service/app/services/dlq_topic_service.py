# src/services/dlq_manager_service/app/services/dlq_topic_service.py
import asyncio
import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from dlq_common.dlq_topic_repository import DlqTopicRepository
from dlq_common.monitoring import DLQ_MESSAGES_BROWSED_TOTAL

from ..DTOs.dlq_message_dto import (
    DlqMessagePageResponse,
    DlqMessageResponse,
    MessageCountResponse,
    PaginationInfo,
)
from ..DTOs.error_breakdown_dto import ErrorBreakdownEntryResponse, ErrorBreakdownResponse
from .error_analyzer import ErrorAnalyzer
from .partition_browser import PartitionBrowser

logger = logging.getLogger(__name__)


class DlqTopicService:
    """
    Read-side operations on a registered DLQ topic. The topic is always
    resolved in the registry before the broker is touched; blocking broker
    work runs in a worker thread.
    """

    def __init__(self, db: AsyncSession, browser: PartitionBrowser, analyzer: ErrorAnalyzer):
        self.registry = DlqTopicRepository(db)
        self.browser = browser
        self.analyzer = analyzer

    async def get_messages(self, dlq_topic_id: UUID, page: int, page_size: int) -> DlqMessagePageResponse:
        topic_ref = await self.registry.get_topic_ref(dlq_topic_id)
        topic = topic_ref.dlq_topic_name

        messages = await asyncio.to_thread(self.browser.fetch_page, topic, page, page_size)
        total = await asyncio.to_thread(self.browser.count, topic)
        DLQ_MESSAGES_BROWSED_TOTAL.labels(dlq_topic=topic).inc(len(messages))

        return DlqMessagePageResponse(
            messages=[DlqMessageResponse.from_message(m) for m in messages],
            pagination=PaginationInfo.build(page, page_size, total),
        )

    async def get_message_count(self, dlq_topic_id: UUID) -> MessageCountResponse:
        topic_ref = await self.registry.get_topic_ref(dlq_topic_id)
        total = await asyncio.to_thread(self.browser.count, topic_ref.dlq_topic_name)
        return MessageCountResponse(total_messages=total)

    async def get_error_breakdown(self, dlq_topic_id: UUID) -> ErrorBreakdownResponse:
        topic_ref = await self.registry.get_topic_ref(dlq_topic_id)
        result = await asyncio.to_thread(self.analyzer.breakdown, topic_ref.dlq_topic_name)
        return ErrorBreakdownResponse(
            total_messages=result.total_messages,
            error_breakdown=[ErrorBreakdownEntryResponse.model_validate(e) for e in result.entries],
        )
