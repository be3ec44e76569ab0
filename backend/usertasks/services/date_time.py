"""Parsing and formatting of the task date-time wire format."""
from __future__ import annotations

import logging
import re
from datetime import datetime

from usertasks.services.errors import TaskValidationError

logger = logging.getLogger(__name__)

DATE_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
# strptime alone accepts unpadded fields such as "2024-1-5 3:04:05".
_DATE_TIME_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}")


def parse_date_time(value: object) -> datetime:
    """Parse a ``yyyy-MM-dd HH:mm:ss`` string into a naive datetime."""
    if not isinstance(value, str) or not _DATE_TIME_PATTERN.fullmatch(value):
        raise TaskValidationError(f"Couldn't parse date string: [{value}]")
    try:
        return datetime.strptime(value, DATE_TIME_FORMAT)
    except ValueError as exc:
        logger.debug("Rejected date string %r: %s", value, exc)
        raise TaskValidationError(f"Couldn't parse date string: [{value}]") from exc


def format_date_time(value: datetime) -> str:
    return value.strftime(DATE_TIME_FORMAT)
