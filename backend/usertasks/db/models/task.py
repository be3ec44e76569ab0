"""Task ORM model."""
from __future__ import annotations

import enum

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Index, Integer, String, Text, func

from usertasks.db.base import Base


class TaskStatus(str, enum.Enum):
    PENDING = "PENDING"
    DONE = "DONE"


class Task(Base):
    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_user_id", "user_id"),
        Index("ix_tasks_status", "status"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(length=255), nullable=False)
    description = Column(Text, nullable=False, default="")
    date_time = Column(DateTime, nullable=False)
    status = Column(
        Enum(TaskStatus, name="task_status", native_enum=False, length=16),
        nullable=False,
        default=TaskStatus.PENDING,
    )
    # Every UPDATE is conditional on this column; see ConcurrentModificationError.
    version_id = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    __mapper_args__ = {"version_id_col": version_id}
