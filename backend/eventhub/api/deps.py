"""
Shared route dependencies.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import async_sessionmaker

from eventhub.db.session import get_session_factory
from eventhub.services.side_effects import SideEffects


def get_side_effects(session_factory: async_sessionmaker = Depends(get_session_factory)) -> SideEffects:
    """A fresh post-commit outbox for the current request."""
    return SideEffects(session_factory)
