"""Helpers for working with users."""
from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from usertasks.db.models.user import User
from usertasks.services.errors import DuplicateEntityError, EntityNotFoundError

logger = logging.getLogger(__name__)


def create_user(db: Session, username: str) -> User:
    """Insert a user, refusing a username that is already taken."""
    user = User(username=username)
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise DuplicateEntityError(f"Username [{username}] is already taken") from exc
    db.refresh(user)
    logger.info("Created user id=%s username=%s", user.id, username)
    return user


def get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user:
        raise EntityNotFoundError(f"No user found for id [{user_id}]")
    return user
