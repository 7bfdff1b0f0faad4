"""
Pydantic schemas for case endpoints.

Responses are written in the v2 shape (camelCase, ISO-8601 UTC dates);
v1 clients receive them reshaped by the router's post-processing stages.
"""

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field, field_serializer


class CaseResponse(BaseModel):
    id: int
    title: str
    caseNumber: Optional[str] = None
    firmId: int
    lawyerId: Optional[int] = None
    nationalId: Optional[str] = Field(
        None, description="Client national ID; masked in responses"
    )
    createdAt: datetime
    updatedAt: datetime

    @field_serializer("createdAt", "updatedAt")
    def serialize_datetime(self, value: datetime) -> str:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace(
            "+00:00", "Z"
        )


class CursorPagination(BaseModel):
    cursor: Optional[str] = None
    limit: int
    hasMore: bool
    total: int


class CaseListResponse(BaseModel):
    data: List[CaseResponse]
    pagination: CursorPagination


class DeleteCaseResponse(BaseModel):
    id: int
    deleted: bool = True
