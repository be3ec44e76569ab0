"""Metric emission helpers."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


def log_metric(name: str, value: float, metadata: Optional[Dict[str, Any]] = None) -> None:
    """Emit a metric as a structured log line."""
    if metadata:
        tags = " ".join(f"{key}={val}" for key, val in sorted(metadata.items()))
        logger.info("metric %s=%s %s", name, value, tags)
    else:
        logger.info("metric %s=%s", name, value)
