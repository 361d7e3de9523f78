"""
Attendee registration endpoints.
"""

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.api.deps import get_side_effects
from eventhub.core.security import Identity, get_current_identity
from eventhub.db.session import get_db
from eventhub.schemas.registration import MyRegistration, RegistrationCreate, RegistrationCreated
from eventhub.services.cache_service import invalidate_event_cache
from eventhub.services.registration_service import (
    cancel_own_registration,
    create_registration,
    list_user_registrations,
)
from eventhub.services.side_effects import SideEffects

router = APIRouter(prefix="/registrations", tags=["Registrations"])


@router.post("", response_model=RegistrationCreated)
async def register_for_event(
    body: RegistrationCreate,
    background_tasks: BackgroundTasks,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
    effects: SideEffects = Depends(get_side_effects),
):
    """
    Register the caller for an event.

    The registration starts as pending while the event has free slots and
    waitlisted otherwise. No slot is taken until an admin approves it.
    """
    registration = await create_registration(db, identity.user_id, body.event_id, effects)
    effects.schedule(background_tasks)
    return RegistrationCreated(status=registration.status)


@router.get("", response_model=list[MyRegistration])
async def my_registrations(
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    return await list_user_registrations(db, identity.user_id)


@router.delete("/{registration_id}")
async def cancel_registration(
    registration_id: int,
    background_tasks: BackgroundTasks,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
    effects: SideEffects = Depends(get_side_effects),
):
    """Cancel one of the caller's own registrations."""
    registration = await cancel_own_registration(db, registration_id, identity.user_id, effects)
    await invalidate_event_cache()
    effects.schedule(background_tasks)
    return {"ok": True, "status": registration.status}
