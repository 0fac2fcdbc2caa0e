from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from ..models import TaskEntity
from ..repositories import Repository, get_repository
from ..schemas import ApiResponse, PageOut, StatsOut, TaskOut, TaskRequest
from ..services import TaskService

router = APIRouter(
    prefix="/api/v1/tasks",
    tags=["tasks"],
)

# Largest 32-bit signed page number; bigger values are rejected as invalid parameters
MAX_PAGE_NUMBER = 2**31 - 1

_NOT_FOUND = {404: {"description": "Task not found"}}
_VALIDATION = {400: {"description": "Validation error or malformed body"}}


def get_task_service(repo: Repository = Depends(get_repository)) -> TaskService:
    """
    Dependency building the service over the configured repository.
    """
    return TaskService(repo)


def _to_out(entity: TaskEntity) -> TaskOut:
    return TaskOut(**entity)


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=ApiResponse[TaskOut],
    status_code=status.HTTP_201_CREATED,
    summary="Create Task",
    description=(
        "Create a new task.\n\n"
        "- title is required (3-120 characters)\n"
        "- description is optional (at most 2000 characters)\n"
        "- new tasks always start with completed=false"
    ),
    responses={201: {"description": "Task created"}, **_VALIDATION},
)
def create_task(payload: TaskRequest, service: TaskService = Depends(get_task_service)) -> ApiResponse[TaskOut]:
    created = service.create(payload.title, payload.description)
    return ApiResponse[TaskOut].success_response(_to_out(created), message="Task created successfully")


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=ApiResponse[PageOut],
    summary="List Tasks",
    description=(
        "List tasks newest first with optional filters and pagination.\n\n"
        "Query parameters:\n"
        "- completed: filter by completion status\n"
        "- q: case-insensitive search in title and description\n"
        "- page: zero-based page number (negative values read as 0)\n"
        "- size: page size, at most 100 (values below 1 read as 10)"
    ),
    responses={200: {"description": "Tasks retrieved"}, 400: {"description": "Invalid query parameters"}},
)
def list_tasks(
    completed: Optional[bool] = Query(None, description="Filter by completion status"),
    q: Optional[str] = Query(None, description="Search text for title/description"),
    page: int = Query(0, le=MAX_PAGE_NUMBER, description="Zero-based page number"),
    size: int = Query(10, description="Page size (max 100)"),
    service: TaskService = Depends(get_task_service),
) -> ApiResponse[PageOut]:
    envelope = service.list(completed=completed, search=q, page=page, size=size)
    envelope["content"] = [_to_out(t) for t in envelope["content"]]  # type: ignore[union-attr]
    return ApiResponse[PageOut].success_response(PageOut(**envelope), message="Tasks retrieved successfully")


# PUBLIC_INTERFACE
@router.get(
    "/stats",
    response_model=ApiResponse[StatsOut],
    summary="Task Statistics",
    description="Count all tasks and how many are completed or pending.",
)
def task_stats(service: TaskService = Depends(get_task_service)) -> ApiResponse[StatsOut]:
    return ApiResponse[StatsOut].success_response(StatsOut(**service.stats()))


# PUBLIC_INTERFACE
@router.get(
    "/{task_id}",
    response_model=ApiResponse[TaskOut],
    summary="Get Task",
    description="Get a single task by its UUID.",
    responses={200: {"description": "Task found"}, **_NOT_FOUND},
)
def get_task(task_id: UUID, service: TaskService = Depends(get_task_service)) -> ApiResponse[TaskOut]:
    return ApiResponse[TaskOut].success_response(_to_out(service.get(task_id)), message="Task found")


# PUBLIC_INTERFACE
@router.put(
    "/{task_id}",
    response_model=ApiResponse[TaskOut],
    summary="Update Task",
    description=(
        "Replace the title and description of a task. "
        "completed is changed only when present in the body."
    ),
    responses={200: {"description": "Task updated"}, **_VALIDATION, **_NOT_FOUND},
)
def update_task(
    task_id: UUID, payload: TaskRequest, service: TaskService = Depends(get_task_service)
) -> ApiResponse[TaskOut]:
    updated = service.update(task_id, payload.title, payload.description, payload.completed)
    return ApiResponse[TaskOut].success_response(_to_out(updated), message="Task updated successfully")


# PUBLIC_INTERFACE
@router.patch(
    "/{task_id}/toggle",
    response_model=ApiResponse[TaskOut],
    summary="Toggle Task",
    description="Flip the completed flag of a task (true becomes false and vice versa).",
    responses={200: {"description": "Task toggled"}, **_NOT_FOUND},
)
def toggle_task(task_id: UUID, service: TaskService = Depends(get_task_service)) -> ApiResponse[TaskOut]:
    updated = service.toggle(task_id)
    message = "Task marked as completed" if updated["completed"] else "Task marked as pending"
    return ApiResponse[TaskOut].success_response(_to_out(updated), message=message)


# PUBLIC_INTERFACE
@router.delete(
    "/{task_id}",
    response_model=ApiResponse[None],
    summary="Delete Task",
    description="Permanently delete a task.",
    responses={200: {"description": "Task deleted"}, **_NOT_FOUND},
)
def delete_task(task_id: UUID, service: TaskService = Depends(get_task_service)) -> ApiResponse[None]:
    service.delete(task_id)
    return ApiResponse[None].success_response(message="Task deleted successfully")
