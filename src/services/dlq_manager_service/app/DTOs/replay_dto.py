# src/services/dlq_manager_service/app/DTOs/replay_dto.py
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from dlq_common.database_models import ReplayJob, ReplayMessage
from dlq_common.models import TopicRef


class ReplayRequest(BaseModel):
    """
    Represents the request body for replaying one DLQ message.
    """
    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "dlqTopicId": "5b0e8a3c-2f1d-4c55-9a57-0b7c1f0e9e11",
                "messageOffset": 42,
                "messagePartition": 0,
                "initiatedBy": "admin@example.com",
            }
        },
    )

    dlq_topic_id: UUID = Field(..., alias="dlqTopicId")
    message_offset: int = Field(..., ge=0, alias="messageOffset")
    message_partition: int = Field(..., ge=0, alias="messagePartition")
    initiated_by: Optional[str] = Field(None, alias="initiatedBy")


class MessageIdentifier(BaseModel):
    offset: int = Field(..., ge=0)
    partition: int = Field(..., ge=0)


class BulkReplayRequest(BaseModel):
    """
    Represents the request body for replaying a list of DLQ messages in order.
    """
    model_config = ConfigDict(populate_by_name=True)

    dlq_topic_id: UUID = Field(..., alias="dlqTopicId")
    messages: List[MessageIdentifier] = Field(..., min_length=1)
    initiated_by: Optional[str] = Field(None, alias="initiatedBy")


class ReplayJobResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: UUID
    dlq_topic_id: UUID = Field(..., alias="dlqTopicId")
    dlq_topic_name: Optional[str] = Field(None, alias="dlqTopicName")
    source_topic: Optional[str] = Field(None, alias="sourceTopic")
    initiated_by: str = Field(..., alias="initiatedBy")
    status: str
    total_messages: int = Field(..., alias="totalMessages")
    succeeded: int
    failed: int
    success_rate: Optional[float] = Field(None, alias="successRate")
    duration_seconds: Optional[float] = Field(None, alias="durationSeconds")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    started_at: Optional[datetime] = Field(None, alias="startedAt")
    completed_at: Optional[datetime] = Field(None, alias="completedAt")

    @classmethod
    def from_job(cls, job: ReplayJob, topic_ref: Optional[TopicRef] = None) -> "ReplayJobResponse":
        if topic_ref is not None:
            dlq_topic_name, source_topic = topic_ref.dlq_topic_name, topic_ref.destination_topic_name
        elif job.dlq_topic is not None:
            dlq_topic_name, source_topic = job.dlq_topic.dlq_topic_name, job.dlq_topic.source_topic
        else:
            dlq_topic_name = source_topic = None
        return cls(
            id=job.id,
            dlq_topic_id=job.dlq_topic_id,
            dlq_topic_name=dlq_topic_name,
            source_topic=source_topic,
            initiated_by=job.initiated_by,
            status=job.status,
            total_messages=job.total_messages,
            succeeded=job.succeeded,
            failed=job.failed,
            success_rate=job.success_rate,
            duration_seconds=job.duration_seconds,
            created_at=job.created_at,
            started_at=job.started_at,
            completed_at=job.completed_at,
        )


class ReplayJobEnvelope(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: Optional[str] = None
    replay_job: ReplayJobResponse = Field(..., alias="replayJob")


class ReplayFailureEnvelope(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = False
    error: str
    status: int
    replay_job: ReplayJobResponse = Field(..., alias="replayJob")


class ReplayHistoryResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    dlq_topic_id: Optional[UUID] = Field(None, alias="dlqTopicId")
    count: int
    replay_jobs: List[ReplayJobResponse] = Field(..., alias="replayJobs")


class ReplayMessageRecordResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: UUID
    job_id: UUID = Field(..., alias="jobId")
    message_key: Optional[str] = Field(None, alias="messageKey")
    message_identifier: str = Field(..., alias="messageIdentifier")
    source_offset: int = Field(..., alias="sourceOffset")
    source_partition: int = Field(..., alias="sourcePartition")
    status: str
    error_detail: Optional[str] = Field(None, alias="errorDetail")
    replayed_at: datetime = Field(..., alias="replayedAt")

    @classmethod
    def from_record(cls, record: ReplayMessage) -> "ReplayMessageRecordResponse":
        return cls(
            id=record.id,
            job_id=record.replay_job_id,
            message_key=record.message_key,
            message_identifier=record.message_identifier,
            source_offset=record.dlq_offset,
            source_partition=record.dlq_partition,
            status=record.status,
            error_detail=record.error_message,
            replayed_at=record.replayed_at,
        )


class ReplayJobMessagesResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    job_id: UUID = Field(..., alias="jobId")
    count: int
    messages: List[ReplayMessageRecordResponse]
