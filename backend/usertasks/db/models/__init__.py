"""ORM models exposed for metadata discovery."""
from usertasks.db.models.task import Task, TaskStatus
from usertasks.db.models.user import User

__all__ = [
    "Task",
    "TaskStatus",
    "User",
]
