"""Errors raised by the task and user services.

Each subclass is one outcome the request boundary maps to its own status code.
Anything that is not one of these is wrapped in ``ServiceError``.
"""
from __future__ import annotations


class TaskServiceError(Exception):
    """Base class for all service-level failures."""


class EntityNotFoundError(TaskServiceError):
    """A referenced user or task does not exist."""


class TaskValidationError(TaskServiceError):
    """The request is well-formed but its values are not acceptable."""


class OwnershipViolationError(TaskValidationError):
    """The task exists but is owned by a different user."""


class ConcurrentModificationError(TaskServiceError):
    """The task changed in the store after it was loaded."""


class DuplicateEntityError(TaskServiceError):
    """A unique field collides with an existing row."""


class ServiceError(TaskServiceError):
    """Unexpected failure, wrapped with the operation that was running."""
