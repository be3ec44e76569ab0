"""Opik client bootstrap."""
from __future__ import annotations

import logging

import opik

from usertasks.core.config import settings

logger = logging.getLogger(__name__)

_client: opik.Opik | None = None


def init_opik() -> None:
    """Create the shared Opik client when tracing is enabled and configured."""
    global _client
    if not settings.opik_enabled:
        logger.info("Opik tracing disabled")
        return
    if not settings.opik_api_key:
        logger.warning("OPIK_ENABLED=true but OPIK_API_KEY is not set; tracing disabled")
        return
    if _client is not None:
        return
    _client = opik.Opik(
        project_name=settings.opik_project,
        workspace=settings.opik_workspace,
        api_key=settings.opik_api_key,
    )
    logger.info("Opik tracing enabled (project=%s)", settings.opik_project)


def get_opik_client() -> opik.Opik | None:
    return _client
