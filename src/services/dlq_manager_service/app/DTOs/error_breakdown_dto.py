# src/services/dlq_manager_service/app/DTOs/error_breakdown_dto.py
from typing import List

from pydantic import BaseModel, ConfigDict, Field


class ErrorBreakdownEntryResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    error_type: str = Field(..., alias="errorType")
    count: int
    percentage: float


class ErrorBreakdownResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    total_messages: int = Field(..., alias="totalMessages")
    error_breakdown: List[ErrorBreakdownEntryResponse] = Field(..., alias="errorBreakdown")
