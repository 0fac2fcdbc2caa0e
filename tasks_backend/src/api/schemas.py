from __future__ import annotations

from datetime import datetime, timezone
from typing import Generic, List, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .models import DESCRIPTION_MAX_LENGTH, TITLE_MAX_LENGTH, TITLE_MIN_LENGTH

T = TypeVar("T")

MSG_DEFAULT_SUCCESS = "Operation successful"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# PUBLIC_INTERFACE
class TaskRequest(BaseModel):
    """
    Body for creating (POST) or replacing (PUT) a Task.

    Length limits are enforced by the service so that every violated field is
    reported together; they are declared here for the OpenAPI document.
    `completed` is ignored on create; on update it is applied only when sent.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Buy milk",
                "description": "Two litres of skimmed milk",
                "completed": False,
            }
        }
    )

    title: str = Field(
        ...,
        description="Task title",
        json_schema_extra={"minLength": TITLE_MIN_LENGTH, "maxLength": TITLE_MAX_LENGTH},
    )
    description: Optional[str] = Field(
        default=None,
        description="Optional detailed description",
        json_schema_extra={"maxLength": DESCRIPTION_MAX_LENGTH},
    )
    completed: Optional[bool] = Field(
        default=None, description="New completion status (update only; omit to keep the current value)"
    )


# PUBLIC_INTERFACE
class TaskOut(BaseModel):
    """
    Schema returned by the API for a Task.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": "550e8400-e29b-41d4-a716-446655440000",
                "title": "Buy milk",
                "description": "Two litres of skimmed milk",
                "completed": False,
                "createdAt": "2025-01-15T10:30:00Z",
                "updatedAt": "2025-01-15T10:30:00Z",
            }
        },
    )

    id: UUID = Field(..., description="Unique identifier of the task")
    title: str = Field(..., description="Task title")
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    completed: bool = Field(..., description="Completion status flag")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")


# PUBLIC_INTERFACE
class PageOut(BaseModel):
    """
    A page of tasks plus pagination metadata.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    content: List[TaskOut] = Field(..., description="Tasks on this page")
    page: int = Field(..., description="Zero-based page number")
    size: int = Field(..., description="Page size applied to the query")
    total_elements: int = Field(..., description="Total number of tasks matching the filters")
    total_pages: int = Field(..., description="Total number of pages")
    first: bool = Field(..., description="Whether this is the first page")
    last: bool = Field(..., description="Whether this is the last page")


class StatsOut(BaseModel):
    total: int = Field(..., description="Number of stored tasks")
    completed: int = Field(..., description="Number of completed tasks")
    pending: int = Field(..., description="Number of pending tasks")


# PUBLIC_INTERFACE
class ApiResponse(BaseModel, Generic[T]):
    """
    Uniform envelope wrapping every API outcome.

    `errors` is only populated for validation failures, one
    "<field>: <message>" entry per violated field.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = Field(..., description="Whether the operation succeeded")
    message: str = Field(..., description="Human readable outcome")
    data: Optional[T] = Field(default=None, description="Payload, if any")
    errors: Optional[List[str]] = Field(default=None, description="Field errors (validation failures only)")
    timestamp: datetime = Field(default_factory=_utcnow, description="Response timestamp (UTC)")

    @classmethod
    def success_response(cls, data: Optional[T] = None, message: str = MSG_DEFAULT_SUCCESS) -> "ApiResponse[T]":
        return cls(success=True, message=message, data=data)

    @classmethod
    def error(cls, message: str, errors: Optional[List[str]] = None) -> "ApiResponse[T]":
        return cls(success=False, message=message, errors=errors)
