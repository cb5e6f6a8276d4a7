"""
FastAPI Dependencies

Resolve the process-scoped AppContext and per-request SightingStore for
route handlers.
"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from wildlife_tracker.config import Settings
from wildlife_tracker.context import AppContext
from wildlife_tracker.database.connection import get_db
from wildlife_tracker.services.sighting_store import SightingStore


def get_context(request: Request) -> AppContext:
    """The AppContext created in the application lifespan."""
    return request.app.state.context


def get_settings(context: AppContext = Depends(get_context)) -> Settings:
    return context.settings


def get_store(
    context: AppContext = Depends(get_context),
    db: Session = Depends(get_db),
) -> SightingStore:
    """
    SightingStore bound to this request's database session.

    Usage:
        @router.get("")
        def list_sightings(store: SightingStore = Depends(get_store)):
            return store.list_active()
    """
    return context.store(db)
