"""Persistence ports used by the task service.

The service depends on these protocols rather than on a session, so tests can
swap in any store with the same shape.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence

from usertasks.db.models.task import Task, TaskStatus
from usertasks.db.models.user import User


@dataclass
class TaskPage:
    items: List[Task]
    page: int
    size: int
    total: int = 0


class UserRepository(Protocol):
    def find_by_id(self, user_id: int) -> Optional[User]: ...


class TaskRepository(Protocol):
    def find_by_id(self, task_id: int) -> Optional[Task]: ...

    def save(self, task: Task) -> Task: ...

    def save_all(self, tasks: Sequence[Task]) -> List[Task]: ...

    def delete(self, task: Task) -> None: ...

    def find_by_user(self, user_id: int) -> List[Task]: ...

    def find_by_user_paginated(self, user_id: int, page: int, size: int) -> TaskPage: ...

    def find_by_status(self, status: TaskStatus) -> List[Task]: ...
