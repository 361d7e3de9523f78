"""
Archive writer and archive maintenance.

Every hard delete of a registration or user goes through here first: the
row is copied, with the display fields of the user and event it points at,
into an append-only archive table. Callers archive and delete in the same
transaction, archive first.

Events are archived differently: they are soft-deleted (`deleted_at`) and
only a permanent delete removes them, after archiving their registrations.
"""

from datetime import datetime, timezone
from typing import Iterable, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.core.exceptions import EventNotFound
from eventhub.core.logging import get_logger
from eventhub.core.metrics import record_archived
from eventhub.models.archive import ArchivedRegistration, ArchivedUser
from eventhub.models.event import Event
from eventhub.models.registration import Registration
from eventhub.models.user import User

logger = get_logger(__name__)


def _ensure_tables(sync_session, tables) -> None:
    connection = sync_session.connection()
    for table in tables:
        table.create(connection, checkfirst=True)


async def ensure_archive_tables(db: AsyncSession) -> None:
    """CREATE TABLE IF NOT EXISTS for the archive tables (idempotent)."""
    await db.run_sync(
        _ensure_tables,
        [ArchivedRegistration.__table__, ArchivedUser.__table__],
    )


# Registrations

async def _archive_registrations_where(
    db: AsyncSession,
    condition,
    deleted_by: Optional[int],
    deletion_source: str,
) -> int:
    result = await db.execute(
        select(
            Registration,
            User.name,
            User.email,
            Event.title,
            Event.date,
            Event.time,
            Event.location,
        )
        .outerjoin(User, User.id == Registration.user_id)
        .outerjoin(Event, Event.id == Registration.event_id)
        .where(condition)
        .order_by(Registration.id)
    )
    rows = result.all()
    if not rows:
        return 0

    await ensure_archive_tables(db)
    db.add_all([
        ArchivedRegistration(
            registration_id=registration.id,
            event_id=registration.event_id,
            user_id=registration.user_id,
            status=registration.status,
            registered_at=registration.registered_at,
            user_name=user_name,
            user_email=user_email,
            event_title=event_title,
            event_date=event_date,
            event_time=event_time,
            event_location=event_location,
            deleted_by=deleted_by,
            deletion_source=deletion_source,
        )
        for registration, user_name, user_email, event_title, event_date, event_time, event_location in rows
    ])
    await db.flush()

    record_archived(deletion_source, len(rows))
    logger.info("registrations_archived", count=len(rows), source=deletion_source, deleted_by=deleted_by)
    return len(rows)


async def archive_registrations(
    db: AsyncSession,
    registration_ids: Optional[Iterable[int]] = None,
    event_ids: Optional[Iterable[int]] = None,
    user_ids: Optional[Iterable[int]] = None,
    deleted_by: Optional[int] = None,
    deletion_source: str = "registration.delete",
) -> int:
    """
    Snapshot live registrations into the archive.

    Exactly one selector should be given; an empty selector archives nothing
    and returns 0. Returns the number of rows archived.
    """
    if registration_ids is not None:
        ids = list(registration_ids)
        condition = Registration.id.in_(ids)
    elif event_ids is not None:
        ids = list(event_ids)
        condition = Registration.event_id.in_(ids)
    elif user_ids is not None:
        ids = list(user_ids)
        condition = Registration.user_id.in_(ids)
    else:
        raise ValueError("archive_registrations needs registration_ids, event_ids or user_ids")

    if not ids:
        return 0
    return await _archive_registrations_where(db, condition, deleted_by, deletion_source)


async def list_archived_registrations(db: AsyncSession) -> list[ArchivedRegistration]:
    await ensure_archive_tables(db)
    result = await db.execute(
        select(ArchivedRegistration).order_by(ArchivedRegistration.deleted_at.desc(), ArchivedRegistration.id.desc())
    )
    return list(result.scalars().all())


async def restore_archived_registrations(db: AsyncSession, archive_ids: list[int]) -> dict:
    """
    Re-insert archived registrations into the live table.

    Rows that cannot come back are skipped with a reason instead of failing
    the batch: the event is gone or archived, the user is gone, or the pair
    already has a live registration.
    """
    try:
        await ensure_archive_tables(db)
        result = await db.execute(
            select(ArchivedRegistration)
            .where(ArchivedRegistration.id.in_(archive_ids))
            .order_by(ArchivedRegistration.id)
        )
        archived_rows = list(result.scalars().all())

        restored = 0
        skipped: list[dict] = []
        for row in archived_rows:
            event_id = (await db.execute(
                select(Event.id).where(Event.id == row.event_id, Event.deleted_at.is_(None))
            )).scalar_one_or_none()
            if event_id is None:
                skipped.append({"id": str(row.id), "reason": "event_missing_or_archived"})
                continue

            user_id = (await db.execute(select(User.id).where(User.id == row.user_id))).scalar_one_or_none()
            if user_id is None:
                skipped.append({"id": str(row.id), "reason": "user_missing"})
                continue

            existing = (await db.execute(
                select(Registration.id).where(
                    Registration.event_id == row.event_id,
                    Registration.user_id == row.user_id,
                )
            )).scalar_one_or_none()
            if existing is not None:
                skipped.append({"id": str(row.id), "reason": "already_exists"})
                continue

            restored_row = Registration(event_id=row.event_id, user_id=row.user_id, status=row.status)
            if row.registered_at is not None:
                restored_row.registered_at = row.registered_at
            db.add(restored_row)
            await db.delete(row)
            await db.flush()
            restored += 1

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("archived_registrations_restored", requested=len(archive_ids), restored=restored, skipped=len(skipped))
    return {
        "requested": len(archive_ids),
        "restored": restored,
        "skippedCount": len(skipped),
        "skipped": skipped,
    }


async def purge_archived_registrations(db: AsyncSession, archive_ids: list[int]) -> int:
    """Permanently delete archive rows."""
    try:
        await ensure_archive_tables(db)
        result = await db.execute(
            delete(ArchivedRegistration)
            .where(ArchivedRegistration.id.in_(archive_ids))
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    deleted = result.rowcount or 0
    logger.info("archived_registrations_purged", requested=len(archive_ids), deleted=deleted)
    return deleted


# Users

async def archive_users(
    db: AsyncSession,
    user_ids: list[int],
    deleted_by: Optional[int],
    deletion_source: str,
) -> int:
    if not user_ids:
        return 0
    await ensure_archive_tables(db)
    result = await db.execute(select(User).where(User.id.in_(user_ids)).order_by(User.id))
    users = list(result.scalars().all())
    if not users:
        return 0
    db.add_all([
        ArchivedUser(
            user_id=user.id,
            name=user.name,
            email=user.email,
            hashed_password=user.hashed_password,
            role=user.role,
            company=user.company,
            phone=user.phone,
            bio=user.bio,
            created_at_original=user.created_at,
            deleted_by=deleted_by,
            deletion_source=deletion_source,
        )
        for user in users
    ])
    await db.flush()
    logger.info("users_archived", count=len(users), source=deletion_source, deleted_by=deleted_by)
    return len(users)


async def delete_users(db: AsyncSession, user_ids: list[int], deleted_by: int) -> dict:
    """
    Remove users permanently, archiving their registrations and then
    themselves first. One transaction.
    """
    ids = list(dict.fromkeys(user_ids))
    source = "user.bulk_delete"
    try:
        archived_registrations = await archive_registrations(
            db, user_ids=ids, deleted_by=deleted_by, deletion_source=source
        )
        await db.execute(
            delete(Registration).where(Registration.user_id.in_(ids))
        )
        archived = await archive_users(db, ids, deleted_by, source)
        await db.execute(delete(User).where(User.id.in_(ids)))
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    logger.info("users_deleted", count=archived, registrations_archived=archived_registrations)
    return {"deleted": archived, "registrationsArchived": archived_registrations}


async def list_archived_users(db: AsyncSession) -> list[ArchivedUser]:
    await ensure_archive_tables(db)
    result = await db.execute(select(ArchivedUser).order_by(ArchivedUser.deleted_at.desc(), ArchivedUser.id.desc()))
    return list(result.scalars().all())


async def restore_archived_users(db: AsyncSession, archive_ids: list[int]) -> dict:
    """Re-create archived users under their original id; skip id or e-mail clashes."""
    try:
        await ensure_archive_tables(db)
        result = await db.execute(
            select(ArchivedUser).where(ArchivedUser.id.in_(archive_ids)).order_by(ArchivedUser.id)
        )
        archived_rows = list(result.scalars().all())

        restored = 0
        skipped: list[dict] = []
        for row in archived_rows:
            if (await db.execute(select(User.id).where(User.id == row.user_id))).scalar_one_or_none() is not None:
                skipped.append({"id": str(row.id), "reason": "user_id_exists"})
                continue
            if (await db.execute(select(User.id).where(User.email == row.email))).scalar_one_or_none() is not None:
                skipped.append({"id": str(row.id), "reason": "email_exists"})
                continue

            db.add(User(
                id=row.user_id,
                name=row.name,
                email=row.email,
                hashed_password=row.hashed_password,
                role=row.role or "attendee",
                company=row.company,
                phone=row.phone,
                bio=row.bio,
            ))
            await db.delete(row)
            await db.flush()
            restored += 1

        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("archived_users_restored", requested=len(archive_ids), restored=restored, skipped=len(skipped))
    return {
        "requested": len(archive_ids),
        "restored": restored,
        "skippedCount": len(skipped),
        "skipped": skipped,
    }


async def purge_archived_users(db: AsyncSession, archive_ids: list[int]) -> int:
    try:
        await ensure_archive_tables(db)
        result = await db.execute(
            delete(ArchivedUser)
            .where(ArchivedUser.id.in_(archive_ids))
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return result.rowcount or 0


# Events

async def soft_delete_event(db: AsyncSession, event_id: int, deleted_by: int) -> Event:
    try:
        event = (await db.execute(
            select(Event).where(Event.id == event_id, Event.deleted_at.is_(None)).with_for_update()
        )).scalar_one_or_none()
        if event is None:
            raise EventNotFound(f"Event {event_id} not found")
        event.deleted_at = datetime.now(timezone.utc)
        event.deleted_by = deleted_by
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    logger.info("event_archived", event_id=event_id, deleted_by=deleted_by)
    return event


async def list_archived_events(db: AsyncSession) -> list[Event]:
    result = await db.execute(
        select(Event).where(Event.deleted_at.is_not(None)).order_by(Event.deleted_at.desc(), Event.id.desc())
    )
    return list(result.scalars().all())


async def restore_events(db: AsyncSession, event_ids: list[int]) -> dict:
    """Clear the soft-delete marker; ids that are not archived are skipped."""
    try:
        result = await db.execute(
            select(Event)
            .where(Event.id.in_(event_ids), Event.deleted_at.is_not(None))
            .order_by(Event.id)
            .with_for_update()
        )
        events = list(result.scalars().all())
        for event in events:
            event.deleted_at = None
            event.deleted_by = None
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    restored_ids = {event.id for event in events}
    skipped = [{"id": str(i), "reason": "not_archived"} for i in dict.fromkeys(event_ids) if i not in restored_ids]
    logger.info("events_restored", restored=len(events), skipped=len(skipped))
    return {
        "requested": len(event_ids),
        "restored": len(events),
        "skippedCount": len(skipped),
        "skipped": skipped,
        "titles": {event.id: event.title for event in events},
    }


async def delete_events_permanently(
    db: AsyncSession,
    event_ids: list[int],
    deleted_by: int,
    deletion_source: str = "event.bulk_delete_permanent",
) -> dict:
    """Archive the events' registrations, delete them, then delete the events."""
    ids = list(dict.fromkeys(event_ids))
    try:
        result = await db.execute(select(Event.id, Event.title).where(Event.id.in_(ids)).order_by(Event.id))
        found = {event_id: title for event_id, title in result.all()}

        archived = await archive_registrations(
            db, event_ids=ids, deleted_by=deleted_by, deletion_source=deletion_source
        )
        await db.execute(
            delete(Registration).where(Registration.event_id.in_(ids))
        )
        await db.execute(delete(Event).where(Event.id.in_(ids)))
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    logger.info("events_deleted_permanently", count=len(found), registrations_archived=archived)
    return {"deleted": len(found), "registrationsArchived": archived, "titles": found}
