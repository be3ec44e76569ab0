"""Schemas for task endpoints."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class TaskRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str
    date_time: str = Field(..., description="Scheduled time as yyyy-MM-dd HH:mm:ss")


class UpdateTaskRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    date_time: Optional[str] = Field(default=None, description="Scheduled time as yyyy-MM-dd HH:mm:ss")


class TaskResponse(BaseModel):
    id: int
    name: str
    description: str
    date_time: str
