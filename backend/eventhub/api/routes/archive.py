"""
Archive maintenance endpoints: list, restore and permanently delete archived
registrations, users and events.
"""

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.api.deps import get_side_effects
from eventhub.core.exceptions import EventNotFound
from eventhub.core.security import Identity, require_admin
from eventhub.db.session import get_db
from eventhub.schemas.archive import (
    ArchivedRegistrationResponse,
    ArchivedUserResponse,
    DeleteResult,
    IdsRequest,
    RestoreResult,
)
from eventhub.schemas.event import ArchivedEventResponse
from eventhub.services import archive_service
from eventhub.services.cache_service import invalidate_event_cache
from eventhub.services.side_effects import SideEffects

router = APIRouter(prefix="/admin/archive", tags=["Archive"])


def _id_strings(ids) -> list[str]:
    return [str(i) for i in ids]


# Registrations

@router.get("/registrations", response_model=list[ArchivedRegistrationResponse])
async def list_archived_registrations(
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await archive_service.list_archived_registrations(db)


@router.post("/registrations/bulk-restore", response_model=RestoreResult)
async def restore_registrations(
    body: IdsRequest,
    background_tasks: BackgroundTasks,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    effects: SideEffects = Depends(get_side_effects),
):
    result = await archive_service.restore_archived_registrations(db, body.ids)
    effects.audit_admin(
        admin.user_id,
        "registration.archive_restore",
        "registration",
        None,
        {"count": result["restored"], "archiveIds": _id_strings(body.ids), "skipped": result["skipped"] or None},
    )
    effects.schedule(background_tasks)
    return RestoreResult(**result)


@router.post("/registrations/bulk-delete", response_model=DeleteResult)
async def purge_registrations(
    body: IdsRequest,
    background_tasks: BackgroundTasks,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    effects: SideEffects = Depends(get_side_effects),
):
    deleted = await archive_service.purge_archived_registrations(db, body.ids)
    effects.audit_admin(
        admin.user_id,
        "registration.archive_delete",
        "registration",
        None,
        {"count": deleted, "archiveIds": _id_strings(body.ids)},
    )
    effects.schedule(background_tasks)
    return DeleteResult(deleted=deleted, skippedCount=len(set(body.ids)) - deleted)


# Users

@router.get("/users", response_model=list[ArchivedUserResponse])
async def list_archived_users(
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await archive_service.list_archived_users(db)


@router.post("/users/bulk-restore", response_model=RestoreResult)
async def restore_users(
    body: IdsRequest,
    background_tasks: BackgroundTasks,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    effects: SideEffects = Depends(get_side_effects),
):
    result = await archive_service.restore_archived_users(db, body.ids)
    effects.audit_admin(
        admin.user_id,
        "user.archive_restore",
        "user",
        None,
        {"count": result["restored"], "archiveIds": _id_strings(body.ids), "skipped": result["skipped"] or None},
    )
    effects.schedule(background_tasks)
    return RestoreResult(**result)


@router.post("/users/bulk-delete", response_model=DeleteResult)
async def purge_users(
    body: IdsRequest,
    background_tasks: BackgroundTasks,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    effects: SideEffects = Depends(get_side_effects),
):
    deleted = await archive_service.purge_archived_users(db, body.ids)
    effects.audit_admin(
        admin.user_id,
        "user.archive_delete",
        "user",
        None,
        {"count": deleted, "archiveIds": _id_strings(body.ids)},
    )
    effects.schedule(background_tasks)
    return DeleteResult(deleted=deleted, skippedCount=len(set(body.ids)) - deleted)


# Events

@router.get("/events", response_model=list[ArchivedEventResponse])
async def list_archived_events(
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await archive_service.list_archived_events(db)


@router.post("/events/bulk-restore", response_model=RestoreResult)
async def restore_events(
    body: IdsRequest,
    background_tasks: BackgroundTasks,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    effects: SideEffects = Depends(get_side_effects),
):
    result = await archive_service.restore_events(db, body.ids)
    await invalidate_event_cache()
    for event_id, title in result.pop("titles").items():
        effects.audit_admin(admin.user_id, "event.restore", "event", event_id, {"title": title})
    effects.schedule(background_tasks)
    return RestoreResult(**result)


@router.post("/events/bulk-delete", response_model=DeleteResult)
async def delete_events(
    body: IdsRequest,
    background_tasks: BackgroundTasks,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    effects: SideEffects = Depends(get_side_effects),
):
    result = await archive_service.delete_events_permanently(db, body.ids, admin.user_id)
    await invalidate_event_cache()
    for event_id, title in result["titles"].items():
        effects.audit_admin(
            admin.user_id,
            "event.delete_permanent",
            "event",
            event_id,
            {"title": title, "source": "bulk"},
        )
    effects.schedule(background_tasks)
    return DeleteResult(
        deleted=result["deleted"],
        skippedCount=len(set(body.ids)) - result["deleted"],
        registrationsArchived=result["registrationsArchived"],
    )


@router.post("/events/{event_id}/restore")
async def restore_event(
    event_id: int,
    background_tasks: BackgroundTasks,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    effects: SideEffects = Depends(get_side_effects),
):
    result = await archive_service.restore_events(db, [event_id])
    if not result["restored"]:
        raise EventNotFound("Event not found or already restored")
    await invalidate_event_cache()
    effects.audit_admin(admin.user_id, "event.restore", "event", event_id, {"title": result["titles"][event_id]})
    effects.schedule(background_tasks)
    return {"ok": True}


@router.delete("/events/{event_id}")
async def delete_event(
    event_id: int,
    background_tasks: BackgroundTasks,
    admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    effects: SideEffects = Depends(get_side_effects),
):
    result = await archive_service.delete_events_permanently(
        db, [event_id], admin.user_id, deletion_source="event.delete_permanent"
    )
    if not result["deleted"]:
        raise EventNotFound()
    await invalidate_event_cache()
    effects.audit_admin(
        admin.user_id,
        "event.delete_permanent",
        "event",
        event_id,
        {"title": result["titles"][event_id], "registrationsArchived": result["registrationsArchived"]},
    )
    effects.schedule(background_tasks)
    return {"ok": True}
