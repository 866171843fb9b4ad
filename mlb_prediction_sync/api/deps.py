"""Dependency injection for FastAPI routes."""

from typing import Annotated

from fastapi import Depends, Request

from mlb_prediction_sync.context import SyncContext


def get_context(request: Request) -> SyncContext:
    """Return the SyncContext built by the application lifespan."""
    return request.app.state.context


# Type alias for SyncContext dependency injection
ContextDep = Annotated[SyncContext, Depends(get_context)]
