"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from eventhub.api.routes import (
    admin_events,
    admin_registrations,
    admin_users,
    archive,
    events,
    notifications,
    registrations,
)

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(events.router)
api_router.include_router(registrations.router)
api_router.include_router(notifications.router)
api_router.include_router(admin_registrations.router)
api_router.include_router(admin_events.router)
api_router.include_router(admin_users.router)
api_router.include_router(archive.router)
