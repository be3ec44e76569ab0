"""Schemas for user endpoints."""
from __future__ import annotations

from pydantic import BaseModel, Field


class UserCreateRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)


class UserResponse(BaseModel):
    id: int
    username: str
