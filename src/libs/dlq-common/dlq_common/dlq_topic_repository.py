# src/libs/dlq-common/dlq_common/dlq_topic_repository.py
import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from .database_models import DlqTopic
from .exceptions import TopicNotFoundError
from .models import TopicRef

logger = logging.getLogger(__name__)


class DlqTopicRepository:
    """Read-only access to the DLQ topic registry."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_topic_ref(self, dlq_topic_id: UUID) -> TopicRef:
        topic = await self.db.get(DlqTopic, dlq_topic_id)
        if topic is None:
            logger.warning("DLQ topic not registered.", extra={"dlq_topic_id": str(dlq_topic_id)})
            raise TopicNotFoundError(dlq_topic_id)
        return TopicRef(
            id=topic.id,
            dlq_topic_name=topic.dlq_topic_name,
            destination_topic_name=topic.source_topic,
        )
