"""Root logger configuration shared by the API and the worker."""
from __future__ import annotations

import logging

_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_NOISY_LOGGERS = ("apscheduler", "sqlalchemy.engine")


def configure_logging(log_level: str = "INFO") -> None:
    """Attach a console handler to the root logger once.

    Repeated calls (app factory re-runs in tests, worker restarts in the same
    interpreter) only adjust the level.
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    if any(getattr(handler, "_usertasks", False) for handler in root.handlers):
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(fmt=_FORMAT, datefmt=_DATE_FORMAT))
    handler._usertasks = True  # type: ignore[attr-defined]
    root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
