"""SQLAlchemy-backed repositories."""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from sqlalchemy import func, inspect, select, update
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from usertasks.db.models.task import Task, TaskStatus
from usertasks.db.models.user import User
from usertasks.repositories.ports import TaskPage
from usertasks.services.errors import ConcurrentModificationError

logger = logging.getLogger(__name__)


class SqlAlchemyUserRepository:
    def __init__(self, db: Session) -> None:
        self.db = db

    def find_by_id(self, user_id: int) -> Optional[User]:
        return self.db.get(User, user_id)


class SqlAlchemyTaskRepository:
    """Task store over one session. Each write commits its own transaction."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def find_by_id(self, task_id: int) -> Optional[Task]:
        return self.db.get(Task, task_id)

    def save(self, task: Task) -> Task:
        self.db.add(task)
        self._commit()
        self.db.refresh(task)
        return task

    def save_all(self, tasks: Sequence[Task]) -> List[Task]:
        """Write the pending changes of each task under its own version check.

        Rows changed or deleted since they were loaded are skipped and their
        in-memory changes discarded; the rest are committed together. Returns
        the tasks that were written.
        """
        if not tasks:
            return []
        writes = []
        for task in tasks:
            state = inspect(task)
            changes = {attr.key: attr.value for attr in state.attrs if attr.history.has_changes()}
            writes.append((task, task.id, task.version_id, changes))
            self.db.expire(task)

        saved: List[Task] = []
        try:
            for task, task_id, version, changes in writes:
                if not changes:
                    continue
                stmt = (
                    update(Task)
                    .where(Task.id == task_id, Task.version_id == version)
                    .values(**changes, version_id=version + 1)
                    .execution_options(synchronize_session=False)
                )
                if self.db.execute(stmt).rowcount == 1:
                    saved.append(task)
                else:
                    logger.info("Skipping task=%s: version %s is no longer current", task_id, version)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return saved

    def delete(self, task: Task) -> None:
        self.db.delete(task)
        self._commit()

    def find_by_user(self, user_id: int) -> List[Task]:
        stmt = select(Task).where(Task.user_id == user_id).order_by(Task.id.asc())
        return list(self.db.scalars(stmt))

    def find_by_user_paginated(self, user_id: int, page: int, size: int) -> TaskPage:
        total = self.db.scalar(select(func.count()).select_from(Task).where(Task.user_id == user_id)) or 0
        stmt = (
            select(Task)
            .where(Task.user_id == user_id)
            .order_by(Task.id.asc())
            .offset(page * size)
            .limit(size)
        )
        return TaskPage(items=list(self.db.scalars(stmt)), page=page, size=size, total=total)

    def find_by_status(self, status: TaskStatus) -> List[Task]:
        stmt = select(Task).where(Task.status == status).order_by(Task.id.asc())
        return list(self.db.scalars(stmt))

    def _commit(self) -> None:
        try:
            self.db.commit()
        except StaleDataError as exc:
            self.db.rollback()
            logger.warning("Task write lost an optimistic version check: %s", exc)
            raise ConcurrentModificationError("Task was modified concurrently; reload and retry") from exc
        except Exception:
            self.db.rollback()
            raise
