# src/libs/dlq-common/dlq_common/database_models.py
import uuid

from sqlalchemy import (
    Column, Integer, BigInteger,
    String, Text, DateTime,
    ForeignKey, Index, func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from .db_base import Base

# Replay job lifecycle
JOB_PENDING = "PENDING"
JOB_RUNNING = "RUNNING"
JOB_COMPLETED = "COMPLETED"
JOB_FAILED = "FAILED"
TERMINAL_JOB_STATUSES = frozenset({JOB_COMPLETED, JOB_FAILED})

# Per-message audit outcome
MESSAGE_SUCCESS = "SUCCESS"
MESSAGE_FAILED = "FAILED"


class DlqTopic(Base):
    """
    Registry entry mapping a DLQ topic to the topic its messages are replayed
    into. Owned by the registration API; read-only for browsing and replay.
    """
    __tablename__ = 'dlq_topics'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    dlq_topic_name = Column(String, unique=True, nullable=False)
    source_topic = Column(String, nullable=False)
    detection_type = Column(String, nullable=False, default='MANUAL')
    error_field_path = Column(String, nullable=True)
    status = Column(String, nullable=False, default='ACTIVE')
    created_at = Column(DateTime(timezone=True), default=func.now())
    updated_at = Column(DateTime(timezone=True), default=func.now(), onupdate=func.now())


class ReplayJob(Base):
    __tablename__ = 'replay_jobs'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    dlq_topic_id = Column(UUID(as_uuid=True), ForeignKey('dlq_topics.id'), nullable=False, index=True)
    initiated_by = Column(String, nullable=False)
    status = Column(String, nullable=False, default=JOB_PENDING, index=True)
    total_messages = Column(Integer, nullable=False)
    succeeded = Column(Integer, nullable=False, default=0)
    failed = Column(Integer, nullable=False, default=0)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=func.now(), index=True)

    dlq_topic = relationship("DlqTopic", lazy="joined")

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_JOB_STATUSES

    @property
    def success_rate(self):
        if not self.is_terminal or not self.total_messages:
            return None
        return (self.succeeded * 100.0) / self.total_messages

    @property
    def duration_seconds(self):
        if not self.is_terminal or self.started_at is None or self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()


class ReplayMessage(Base):
    """
    One audit record per attempted message. Insert-only.
    """
    __tablename__ = 'replay_messages'

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    replay_job_id = Column(UUID(as_uuid=True), ForeignKey('replay_jobs.id'), nullable=False)
    message_key = Column(String, nullable=True)
    dlq_offset = Column(BigInteger, nullable=False)
    dlq_partition = Column(Integer, nullable=False)
    status = Column(String, nullable=False)
    error_message = Column(Text, nullable=True)
    replayed_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=func.now())

    __table_args__ = (
        Index('ix_replay_messages_job_created', 'replay_job_id', 'created_at'),
    )

    @property
    def message_identifier(self) -> str:
        if self.message_key:
            return self.message_key
        return f"offset:{self.dlq_offset},partition:{self.dlq_partition}"
