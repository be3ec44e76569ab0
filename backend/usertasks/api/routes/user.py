"""User API routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from usertasks.api.schemas.user import UserCreateRequest, UserResponse
from usertasks.db.deps import get_db
from usertasks.observability.metrics import log_metric
from usertasks.observability.tracing import trace
from usertasks.services.errors import DuplicateEntityError, EntityNotFoundError
from usertasks.services.user_service import create_user, get_user

router = APIRouter()


@router.post("/api/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED, tags=["users"])
def create_user_endpoint(payload: UserCreateRequest, request: Request, db: Session = Depends(get_db)) -> UserResponse:
    request_id = getattr(request.state, "request_id", None)
    with trace("user.create", metadata={"request_id": request_id}, request_id=request_id):
        try:
            user = create_user(db, payload.username)
        except DuplicateEntityError as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    log_metric("user.create.success", 1)
    return UserResponse(id=user.id, username=user.username)


@router.get("/api/users/{user_id}", response_model=UserResponse, tags=["users"])
def get_user_endpoint(user_id: int, request: Request, db: Session = Depends(get_db)) -> UserResponse:
    request_id = getattr(request.state, "request_id", None)
    with trace("user.get", metadata={"user_id": user_id}, user_id=str(user_id), request_id=request_id):
        try:
            user = get_user(db, user_id)
        except EntityNotFoundError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found") from exc
    return UserResponse(id=user.id, username=user.username)
