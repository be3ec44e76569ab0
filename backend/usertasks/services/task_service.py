"""Task lifecycle service: ownership checks, CRUD and the overdue sweep."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator, List, Optional
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from usertasks.core.config import settings
from usertasks.db.models.task import Task, TaskStatus
from usertasks.repositories.orm import SqlAlchemyTaskRepository, SqlAlchemyUserRepository
from usertasks.repositories.ports import TaskPage, TaskRepository, UserRepository
from usertasks.services.date_time import parse_date_time
from usertasks.services.errors import (
    EntityNotFoundError,
    OwnershipViolationError,
    ServiceError,
    TaskServiceError,
)

logger = logging.getLogger(__name__)


@dataclass
class SweepStats:
    pending: int
    completed: int


@contextmanager
def _service_errors(message: str) -> Iterator[None]:
    """Pass domain errors through unchanged and wrap everything else."""
    try:
        yield
    except TaskServiceError:
        raise
    except Exception as exc:
        logger.exception(message)
        raise ServiceError(message) from exc


class TaskService:
    def __init__(self, tasks: TaskRepository, users: UserRepository) -> None:
        self.tasks = tasks
        self.users = users

    def create_task(self, owner_id: int, *, name: str, description: str, date_time: str) -> Task:
        logger.info("Creating task user=%s name=%s date_time=%s", owner_id, name, date_time)
        with _service_errors(f"Error creating task [{name}]"):
            if self.users.find_by_id(owner_id) is None:
                raise EntityNotFoundError(f"Couldn't create task, no user found for id [{owner_id}]")
            scheduled = parse_date_time(date_time)
            task = Task(
                user_id=owner_id,
                name=name,
                description=description,
                date_time=scheduled,
                status=TaskStatus.PENDING,
            )
            return self.tasks.save(task)

    def update_task(
        self,
        owner_id: int,
        task_id: int,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
        date_time: Optional[str] = None,
    ) -> Task:
        """Overwrite the fields that were given. Status is never touched here."""
        logger.info("Updating task user=%s task=%s", owner_id, task_id)
        with _service_errors(f"Error updating task with userId [{owner_id}], taskId [{task_id}]"):
            task = self._load_owned(owner_id, task_id)
            scheduled = parse_date_time(date_time) if date_time is not None else None
            if name is not None:
                task.name = name
            if description is not None:
                task.description = description
            if scheduled is not None:
                task.date_time = scheduled
            return self.tasks.save(task)

    def get_task(self, owner_id: int, task_id: int) -> Task:
        logger.info("Retrieving task user=%s task=%s", owner_id, task_id)
        with _service_errors(f"Error retrieving task with userId [{owner_id}], taskId [{task_id}]"):
            return self._load_owned(owner_id, task_id)

    def list_tasks(self, owner_id: int) -> List[Task]:
        logger.info("Listing tasks user=%s", owner_id)
        with _service_errors(f"Error retrieving tasks for userId [{owner_id}]"):
            self._require_user(owner_id)
            return self.tasks.find_by_user(owner_id)

    def list_tasks_paginated(self, owner_id: int, page: int, size: int) -> TaskPage:
        logger.info("Listing tasks user=%s page=%s size=%s", owner_id, page, size)
        with _service_errors(f"Error retrieving tasks for userId [{owner_id}]"):
            self._require_user(owner_id)
            return self.tasks.find_by_user_paginated(owner_id, page, size)

    def delete_task(self, owner_id: int, task_id: int) -> None:
        logger.info("Deleting task user=%s task=%s", owner_id, task_id)
        with _service_errors(f"Error deleting task with userId [{owner_id}], taskId [{task_id}]"):
            task = self._load_owned(owner_id, task_id)
            self.tasks.delete(task)

    def complete_overdue_tasks(self, now: Optional[datetime] = None) -> SweepStats:
        """Mark every PENDING task scheduled strictly before ``now`` as DONE.

        ``now`` is a naive wall-clock time in the scheduler timezone. Tasks that
        stay PENDING are not rewritten. A task changed or deleted by someone
        else since it was read is skipped without affecting the others, and is
        re-evaluated on the next run.
        """
        current = now or _wall_clock_now()
        pending = self.tasks.find_by_status(TaskStatus.PENDING)
        logger.info("Status sweep: %s pending tasks", len(pending))

        overdue = [_complete(task) for task in pending if _is_overdue(task, current)]
        saved = self.tasks.save_all(overdue)
        if len(saved) < len(overdue):
            logger.info("Status sweep: %s tasks changed concurrently, deferred", len(overdue) - len(saved))
        logger.info("Status sweep: %s tasks completed", len(saved))
        return SweepStats(pending=len(pending), completed=len(saved))

    def _require_user(self, owner_id: int) -> None:
        if self.users.find_by_id(owner_id) is None:
            raise EntityNotFoundError(f"Couldn't retrieve tasks, no user found for id [{owner_id}]")

    def _load_owned(self, owner_id: int, task_id: int) -> Task:
        task = self.tasks.find_by_id(task_id)
        if task is None:
            raise EntityNotFoundError(f"No task found for id [{task_id}]")
        if task.user_id != owner_id:
            raise OwnershipViolationError(f"Invalid user for given taskId: [{task_id}]")
        return task


def _is_overdue(task: Task, now: datetime) -> bool:
    logger.debug("Checking task=%s date_time=%s", task.id, task.date_time)
    return task.date_time < now


def _complete(task: Task) -> Task:
    logger.debug("Task=%s date_time=%s has passed", task.id, task.date_time)
    task.status = TaskStatus.DONE
    return task


def _wall_clock_now() -> datetime:
    return datetime.now(ZoneInfo(settings.scheduler_timezone)).replace(tzinfo=None)


def build_task_service(db: Session) -> TaskService:
    return TaskService(SqlAlchemyTaskRepository(db), SqlAlchemyUserRepository(db))


def run_status_sweep(db: Session, now: Optional[datetime] = None) -> SweepStats:
    """Entry point for the scheduler worker."""
    return build_task_service(db).complete_overdue_tasks(now=now)
