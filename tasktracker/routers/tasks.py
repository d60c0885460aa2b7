from fastapi import APIRouter, Depends, Query, status

from tasktracker.auth.gate import get_request_context
from tasktracker.cache.decorators import cache_invalidate, cache_read
from tasktracker.core.context import RequestContext
from tasktracker.core.errors import TaskNotFoundError
from tasktracker.dependencies import get_task_service
from tasktracker.models import ApiResponse, TaskCreate, TaskRead, TaskUpdate
from tasktracker.services.task_service import TaskService
from tasktracker.utils.pagination import (
    calculate_pagination_metadata,
    validate_pagination_params,
)

router = APIRouter(prefix="/tasks", tags=["tasks"])

# list and detail entries live under separate prefixes
TASK_LIST_CACHE = "tasks"
TASK_DETAIL_CACHE = "task"


@router.get("", response_model=ApiResponse)
@cache_read(TASK_LIST_CACHE, ttl=300)
async def get_tasks(
    page: str | None = Query(default=None),
    limit: str | None = Query(default=None),
    ctx: RequestContext = Depends(get_request_context),
    service: TaskService = Depends(get_task_service),
):
    """List the caller's tasks, newest first"""
    params = validate_pagination_params(page, limit)
    result = await service.get_tasks_paginated(ctx.user.id, params.page, params.limit)
    return ApiResponse(
        success=True,
        message="Tasks retrieved successfully",
        data=[TaskRead.model_validate(task) for task in result.tasks],
        pagination=calculate_pagination_metadata(params.page, params.limit, result.total),
    )


@router.get("/{task_id}", response_model=ApiResponse)
@cache_read(TASK_DETAIL_CACHE, ttl=300)
async def get_task(
    task_id: str,
    ctx: RequestContext = Depends(get_request_context),
    service: TaskService = Depends(get_task_service),
):
    """Get a specific task by ID"""
    task = await service.get_task(task_id, ctx.user.id)
    if not task:
        raise TaskNotFoundError()
    return ApiResponse(
        success=True,
        message="Task retrieved successfully",
        data=TaskRead.model_validate(task),
    )


@router.post("", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
@cache_invalidate(TASK_LIST_CACHE)
async def create_task(
    task_data: TaskCreate,
    ctx: RequestContext = Depends(get_request_context),
    service: TaskService = Depends(get_task_service),
):
    """Create a new task"""
    task = await service.create_task(task_data, ctx.user.id)
    return ApiResponse(
        success=True,
        message="Task created successfully",
        data=TaskRead.model_validate(task),
    )


@router.patch("/{task_id}", response_model=ApiResponse)
@cache_invalidate(TASK_LIST_CACHE)
@cache_invalidate(TASK_DETAIL_CACHE)
async def update_task(
    task_id: str,
    task_data: TaskUpdate,
    ctx: RequestContext = Depends(get_request_context),
    service: TaskService = Depends(get_task_service),
):
    task = await service.update_task(task_id, task_data, ctx.user.id)
    if not task:
        raise TaskNotFoundError()
    return ApiResponse(
        success=True,
        message="Task updated successfully",
        data=TaskRead.model_validate(task),
    )


@router.delete("/{task_id}", response_model=ApiResponse)
@cache_invalidate(TASK_LIST_CACHE)
@cache_invalidate(TASK_DETAIL_CACHE)
async def delete_task(
    task_id: str,
    ctx: RequestContext = Depends(get_request_context),
    service: TaskService = Depends(get_task_service),
):
    """Delete a task"""
    task = await service.delete_task(task_id, ctx.user.id)
    if not task:
        raise TaskNotFoundError()
    return ApiResponse(
        success=True,
        message="Task deleted successfully",
        data=TaskRead.model_validate(task),
    )
