"""
Admin registration endpoints: single status change, bulk actions, listing.
"""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.api.deps import get_side_effects
from eventhub.core.security import Identity, require_admin
from eventhub.db.session import get_db
from eventhub.schemas.registration import AdminRegistration, BulkRequest, BulkResult, StatusUpdate
from eventhub.services.bulk_service import bulk_transition
from eventhub.services.cache_service import invalidate_event_cache
from eventhub.services.registration_service import list_registrations, transition_registration
from eventhub.services.side_effects import SideEffects
from eventhub.services.transitions import RegistrationStatus

router = APIRouter(prefix="/admin/registrations", tags=["Admin registrations"])


@router.get("", response_model=list[AdminRegistration])
async def list_registrations_endpoint(
    event_id: Optional[int] = Query(None),
    status: Optional[RegistrationStatus] = Query(None),
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await list_registrations(db, event_id, status.value if status else None)


@router.patch("/{registration_id}")
async def update_registration_status(
    registration_id: int,
    body: StatusUpdate,
    background_tasks: BackgroundTasks,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    effects: SideEffects = Depends(get_side_effects),
):
    """
    Move one registration to a new status.

    Approving takes a slot from the event (500 with a descriptive message
    when none is left); moving out of confirmed gives it back.
    """
    await transition_registration(db, registration_id, body.status.value, admin, effects, body.reason)
    await invalidate_event_cache()
    effects.schedule(background_tasks)
    return {"ok": True}


@router.post("/bulk", response_model=BulkResult)
async def bulk_registrations(
    body: BulkRequest,
    background_tasks: BackgroundTasks,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    effects: SideEffects = Depends(get_side_effects),
):
    """Apply one action to many registrations, all or nothing."""
    result = await bulk_transition(db, body.ids, body.action, admin, effects, body.reason)
    if result["processed"]:
        await invalidate_event_cache()
    effects.schedule(background_tasks)
    return BulkResult(**result)
