"""Shared FastAPI dependencies."""

from fastapi import Depends, Request

from app.core.exceptions import StoreUnavailableError
from app.db.base import DocumentStore


async def get_store(request: Request) -> DocumentStore | None:
    """Dependency: the process-wide store set at startup (None when it could not be created)."""
    return getattr(request.app.state, "store", None)


async def require_store(store: DocumentStore | None = Depends(get_store)) -> DocumentStore:
    """Dependency: like get_store but 503 when the store is unavailable."""
    if store is None:
        raise StoreUnavailableError()
    return store
