"""Request context (request id, acting user) and CORS middleware."""

import uuid
import time
import logging

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from secadmin.core.config import Settings

logger = logging.getLogger("secadmin")

MUTATING_METHODS = {"POST", "PUT", "PATCH", "DELETE"}


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Resolve the request id and the acting user once per request.

    Both land on ``request.state`` (``request_id``, ``actor``) and are echoed
    as ``X-Request-Id`` / ``X-Actor`` response headers. Role and catalog
    mutations are logged with the actor that made them; reads only at debug.
    """

    def __init__(self, app, default_actor: str):
        super().__init__(app)
        self.default_actor = default_actor

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
        actor = (request.headers.get("X-Actor") or "").strip() or self.default_actor
        request.state.request_id = request_id
        request.state.actor = actor
        start_time = time.time()

        response: Response = await call_next(request)

        duration = round((time.time() - start_time) * 1000, 2)
        response.headers["X-Request-Id"] = request_id
        response.headers["X-Actor"] = actor
        response.headers["X-Response-Time-Ms"] = str(duration)

        if response.status_code >= 500:
            level = logging.WARNING
        elif request.method in MUTATING_METHODS:
            level = logging.INFO
        else:
            level = logging.DEBUG
        logger.log(
            level,
            "%s %s %s %sms actor=%s [%s]",
            request.method,
            request.url.path,
            response.status_code,
            duration,
            actor,
            request_id,
        )
        return response


def setup_middleware(app: FastAPI, config: Settings) -> None:
    """Configure all middleware for the application."""
    # CORS; the context headers must be readable by browser clients
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-Id", "X-Actor", "X-Response-Time-Ms"],
    )

    app.add_middleware(RequestContextMiddleware, default_actor=config.DEFAULT_ACTOR)
