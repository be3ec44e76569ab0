"""User ORM model."""
from __future__ import annotations

from sqlalchemy import Column, DateTime, Integer, String, func

from usertasks.db.base import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(length=100), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
