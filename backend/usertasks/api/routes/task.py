"""Task API routes."""
from __future__ import annotations

import logging
from time import perf_counter
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy.orm import Session

from usertasks.api.schemas.task import TaskRequest, TaskResponse, UpdateTaskRequest
from usertasks.db.deps import get_db
from usertasks.db.models.task import Task
from usertasks.observability.metrics import log_metric
from usertasks.observability.tracing import trace
from usertasks.services.date_time import format_date_time
from usertasks.services.errors import (
    ConcurrentModificationError,
    EntityNotFoundError,
    TaskServiceError,
    TaskValidationError,
)
from usertasks.services.task_service import TaskService, build_task_service

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_PAGE_SIZE = 20


def get_task_service(db: Session = Depends(get_db)) -> TaskService:
    return build_task_service(db)


@router.post("/api/users/{user_id}/tasks", response_model=TaskResponse, tags=["tasks"])
def create_task(
    user_id: int,
    payload: TaskRequest,
    request: Request,
    service: TaskService = Depends(get_task_service),
) -> TaskResponse:
    request_id = getattr(request.state, "request_id", None)
    start = perf_counter()
    metadata = {"route": "/api/users/{user_id}/tasks", "user_id": user_id, "request_id": request_id}
    with trace("task.create", metadata=metadata, user_id=str(user_id), request_id=request_id):
        try:
            task = service.create_task(
                user_id,
                name=payload.name,
                description=payload.description,
                date_time=payload.date_time,
            )
        except TaskServiceError as exc:
            raise _to_http_error("create_task", exc) from exc

    latency_ms = (perf_counter() - start) * 1000
    log_metric("task.create.success", 1, metadata={"user_id": user_id})
    log_metric("task.create.latency_ms", latency_ms, metadata={"user_id": user_id})
    return _serialize_task(task)


@router.put("/api/users/{user_id}/tasks/{task_id}", response_model=TaskResponse, tags=["tasks"])
def update_task(
    user_id: int,
    task_id: int,
    payload: UpdateTaskRequest,
    request: Request,
    service: TaskService = Depends(get_task_service),
) -> TaskResponse:
    request_id = getattr(request.state, "request_id", None)
    metadata = {"user_id": user_id, "task_id": task_id, "request_id": request_id}
    with trace("task.update", metadata=metadata, user_id=str(user_id), request_id=request_id):
        try:
            task = service.update_task(
                user_id,
                task_id,
                name=payload.name,
                description=payload.description,
                date_time=payload.date_time,
            )
        except TaskServiceError as exc:
            raise _to_http_error("update_task", exc) from exc

    log_metric("task.update.success", 1, metadata={"user_id": user_id})
    return _serialize_task(task)


@router.get("/api/users/{user_id}/tasks/{task_id}", response_model=TaskResponse, tags=["tasks"])
def get_task(
    user_id: int,
    task_id: int,
    request: Request,
    service: TaskService = Depends(get_task_service),
) -> TaskResponse:
    request_id = getattr(request.state, "request_id", None)
    metadata = {"user_id": user_id, "task_id": task_id, "request_id": request_id}
    with trace("task.get", metadata=metadata, user_id=str(user_id), request_id=request_id):
        try:
            task = service.get_task(user_id, task_id)
        except TaskServiceError as exc:
            raise _to_http_error("get_task", exc) from exc

    log_metric("task.get.success", 1, metadata={"user_id": user_id})
    return _serialize_task(task)


@router.get("/api/users/{user_id}/tasks", response_model=List[TaskResponse], tags=["tasks"])
def list_tasks(
    user_id: int,
    request: Request,
    response: Response,
    page: Optional[int] = Query(default=None, ge=0, description="Zero-based page index, 0 when only size is given"),
    size: Optional[int] = Query(default=None, ge=1, le=100, description="Page size, 20 when only page is given"),
    service: TaskService = Depends(get_task_service),
) -> List[TaskResponse]:
    """List a user's tasks ordered by id, optionally one page at a time."""
    request_id = getattr(request.state, "request_id", None)
    metadata = {"user_id": user_id, "page": page, "size": size, "request_id": request_id}
    with trace("task.list", metadata=metadata, user_id=str(user_id), request_id=request_id):
        try:
            if page is None and size is None:
                tasks = service.list_tasks(user_id)
            else:
                task_page = service.list_tasks_paginated(user_id, page or 0, size or DEFAULT_PAGE_SIZE)
                tasks = task_page.items
                response.headers["X-Total-Count"] = str(task_page.total)
        except TaskServiceError as exc:
            raise _to_http_error("list_tasks", exc) from exc

    log_metric("task.list.count", len(tasks), metadata={"user_id": user_id})
    return [_serialize_task(task) for task in tasks]


@router.delete(
    "/api/users/{user_id}/tasks/{task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    tags=["tasks"],
)
def delete_task(
    user_id: int,
    task_id: int,
    request: Request,
    service: TaskService = Depends(get_task_service),
) -> Response:
    request_id = getattr(request.state, "request_id", None)
    metadata = {"user_id": user_id, "task_id": task_id, "request_id": request_id}
    with trace("task.delete", metadata=metadata, user_id=str(user_id), request_id=request_id):
        try:
            service.delete_task(user_id, task_id)
        except TaskServiceError as exc:
            raise _to_http_error("delete_task", exc) from exc

    log_metric("task.delete.success", 1, metadata={"user_id": user_id})
    return Response(status_code=status.HTTP_204_NO_CONTENT)


def _to_http_error(operation: str, exc: TaskServiceError) -> HTTPException:
    logger.warning("[%s] %s: %s", operation, type(exc).__name__, exc)
    if isinstance(exc, EntityNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, TaskValidationError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    if isinstance(exc, ConcurrentModificationError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")


def _serialize_task(task: Task) -> TaskResponse:
    return TaskResponse(
        id=task.id,
        name=task.name,
        description=task.description,
        date_time=format_date_time(task.date_time),
    )
