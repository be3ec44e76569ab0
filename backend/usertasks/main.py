"""FastAPI application entrypoint.

Run with ``uvicorn usertasks.main:app``. The overdue-task sweep does not run
here; it lives in the separate worker process (``usertasks-worker``).
"""
from __future__ import annotations

from uuid import uuid4

from fastapi import FastAPI, Request

from usertasks.api.routes.task import router as task_router
from usertasks.api.routes.user import router as user_router
from usertasks.core.config import settings
from usertasks.core.logging import configure_logging
from usertasks.observability.client import init_opik

REQUEST_ID_HEADER = "X-Request-ID"


def create_app() -> FastAPI:
    configure_logging(log_level=settings.log_level)
    init_opik()

    app = FastAPI(title=settings.app_name, debug=settings.debug)

    @app.middleware("http")
    async def assign_request_id(request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid4().hex
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    app.include_router(user_router)
    app.include_router(task_router)
    return app


app = create_app()
