"""Shared request dependencies."""

from typing import Optional

from fastapi import Header, Request


async def get_actor(request: Request, x_actor: Optional[str] = Header(None)) -> str:
    """Name recorded in created_by/updated_by.

    Resolved by the request context middleware; the header and the
    configured default cover apps mounted without it.
    """
    actor = getattr(request.state, "actor", None)
    return actor or x_actor or request.app.state.settings.DEFAULT_ACTOR
