"""
Admin event management. Deleting an event archives it (soft delete).
"""

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.api.deps import get_side_effects
from eventhub.core.security import Identity, require_admin
from eventhub.db.session import get_db
from eventhub.schemas.event import EventCreate, EventResponse, EventUpdate
from eventhub.services import archive_service
from eventhub.services.cache_service import invalidate_event_cache
from eventhub.services.event_service import create_event, update_event
from eventhub.services.side_effects import SideEffects

router = APIRouter(prefix="/admin/events", tags=["Admin events"])


@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(
    event_data: EventCreate,
    background_tasks: BackgroundTasks,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    effects: SideEffects = Depends(get_side_effects),
):
    event = await create_event(db, event_data)
    await invalidate_event_cache()
    effects.audit_admin(admin.user_id, "event.create", "event", event.id, {"title": event.title})
    effects.schedule(background_tasks)
    return event


@router.patch("/{event_id}", response_model=EventResponse)
async def update_event_endpoint(
    event_id: int,
    event_data: EventUpdate,
    background_tasks: BackgroundTasks,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    effects: SideEffects = Depends(get_side_effects),
):
    """Partial update; available slots are clamped to total slots."""
    event = await update_event(db, event_id, event_data)
    await invalidate_event_cache()
    effects.audit_admin(admin.user_id, "event.update", "event", event.id, {"title": event.title})
    effects.schedule(background_tasks)
    return event


@router.delete("/{event_id}")
async def archive_event_endpoint(
    event_id: int,
    background_tasks: BackgroundTasks,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    effects: SideEffects = Depends(get_side_effects),
):
    event = await archive_service.soft_delete_event(db, event_id, admin.user_id)
    await invalidate_event_cache()
    effects.audit_admin(admin.user_id, "event.delete", "event", event_id, {"title": event.title})
    effects.schedule(background_tasks)
    return {"ok": True}
