"""
Registration state machine: creation and single-registration transitions.

CONCURRENCY STRATEGY: SELECT ... FOR UPDATE, one transaction per operation
=========================================================================

Every operation that can move an event's slot counter:

  1. reads the registration together with its event and user in one
     statement, locking the registration and event rows FOR UPDATE
  2. decides the slot delta with `transitions.slot_delta`
  3. lets the slot ledger validate and apply it on the locked event
  4. writes the new status
  5. commits, and only then queues audit / e-mail / notification jobs

Any exception before commit rolls the whole transaction back, so a capacity
failure never leaves a half-applied status or counter change behind.
"""

import time
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.core.exceptions import (
    AlreadyRegistered,
    CapacityExceeded,
    EventNotFound,
    InvalidTransition,
    RegistrationNotFound,
    UserNotFound,
)
from eventhub.core.logging import get_logger
from eventhub.core.metrics import record_capacity_rejection, record_transition, transition_latency
from eventhub.core.security import Identity
from eventhub.models.event import Event
from eventhub.models.registration import Registration
from eventhub.models.user import User
from eventhub.services import notification_service, slot_ledger
from eventhub.services.side_effects import RegistrationSnapshot, SideEffects
from eventhub.services.transitions import (
    SELF_CANCELLABLE_STATUSES,
    RegistrationStatus,
    initial_status,
    slot_delta,
)

logger = get_logger(__name__)


def locked_registrations_query(*conditions):
    """Registrations joined with user and event, registration and event rows locked."""
    return (
        select(Registration, User, Event)
        .join(User, User.id == Registration.user_id)
        .join(Event, Event.id == Registration.event_id)
        .where(*conditions)
        .order_by(Registration.event_id, Registration.id)
        .with_for_update(of=[Registration.__table__, Event.__table__])
        .execution_options(populate_existing=True)
    )


def snapshot_of(registration: Registration, user: User, event: Event) -> RegistrationSnapshot:
    return RegistrationSnapshot(
        registration_id=registration.id,
        previous_status=registration.status,
        user_id=registration.user_id,
        user_name=user.name if user else None,
        user_email=user.email if user else None,
        event_id=registration.event_id,
        event_title=event.title if event else None,
        event_date=event.date if event else None,
        event_time=event.time if event else None,
        event_location=event.location if event else None,
        registered_at=registration.registered_at,
    )


async def transition_registration(
    db: AsyncSession,
    registration_id: int,
    new_status: str,
    actor: Identity,
    effects: SideEffects,
    reason: Optional[str] = None,
) -> Registration:
    """
    Move one registration to `new_status` on behalf of an admin.

    Raises RegistrationNotFound for an unknown id and CapacityExceeded when
    confirming on an event with no free slot.
    """
    started = time.perf_counter()
    try:
        row = (await db.execute(
            locked_registrations_query(Registration.id == registration_id)
        )).first()
        if row is None:
            raise RegistrationNotFound()
        registration, user, event = row

        previous_status = registration.status
        snapshot = snapshot_of(registration, user, event)

        slot_ledger.apply_delta(event, slot_delta(previous_status, new_status))
        registration.status = new_status
        await db.commit()
    except CapacityExceeded:
        record_capacity_rejection("single")
        await db.rollback()
        raise
    except Exception:
        await db.rollback()
        raise
    finally:
        transition_latency.labels(path="single").observe(time.perf_counter() - started)

    record_transition(previous_status, new_status)
    logger.info(
        "registration_status_changed",
        registration_id=registration_id,
        event_id=snapshot.event_id,
        previous_status=previous_status,
        new_status=new_status,
        available_slots=event.available_slots,
        admin_id=actor.user_id,
    )

    effects.audit_admin(
        actor.user_id,
        "registration.update_status",
        "registration",
        registration_id,
        {"status": new_status, **snapshot.audit_details(), "reason": reason or None},
    )
    effects.status_changed(snapshot, new_status, reason)
    return registration


async def create_registration(
    db: AsyncSession,
    user_id: int,
    event_id: int,
    effects: SideEffects,
) -> Registration:
    """
    Register a user for an event, or re-register over their cancelled row.

    The initial status depends on availability (pending / waitlisted) but no
    slot is taken here; only an admin approval consumes one.
    """
    try:
        event = (await db.execute(
            select(Event).where(Event.id == event_id, Event.deleted_at.is_(None))
        )).scalar_one_or_none()
        if event is None:
            raise EventNotFound("Event not found.")

        user = (await db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()
        if user is None:
            raise UserNotFound()

        existing = (await db.execute(
            select(Registration)
            .where(Registration.event_id == event_id, Registration.user_id == user_id)
            .with_for_update()
        )).scalar_one_or_none()
        if existing is not None and existing.status != RegistrationStatus.CANCELLED.value:
            raise AlreadyRegistered()

        status = initial_status(event.available_slots)
        if existing is not None:
            action = "registration.reconfirm"
            existing.status = status
            existing.registered_at = datetime.now(timezone.utc)
            registration = existing
        else:
            action = "registration.create"
            registration = Registration(
                event_id=event_id,
                user_id=user_id,
                status=status,
                registered_at=datetime.now(timezone.utc),
            )
            db.add(registration)
        await db.flush()

        snapshot = snapshot_of(registration, user, event)
        await db.commit()
    except IntegrityError:
        # lost a race with a concurrent registration for the same pair
        await db.rollback()
        raise AlreadyRegistered()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "registration_created",
        registration_id=registration.id,
        event_id=event_id,
        user_id=user_id,
        status=status,
        reconfirm=action == "registration.reconfirm",
    )

    effects.email_status(snapshot, status)
    message = notification_service.new_registration_message(snapshot.user_name or "", snapshot.event_title or "", status)
    effects.notify_user(user_id, message.title, message.user_message, message.type)
    effects.notify_admins(message.title, message.admin_message, message.type)
    effects.audit_user(
        user_id,
        action,
        "registration",
        registration.id,
        {
            "eventId": event_id,
            "eventTitle": snapshot.event_title,
            "eventDate": str(snapshot.event_date) if snapshot.event_date else None,
            "eventTime": snapshot.event_time,
            "eventLocation": snapshot.event_location,
            "status": status,
        },
    )
    return registration


async def cancel_own_registration(
    db: AsyncSession,
    registration_id: int,
    user_id: int,
    effects: SideEffects,
) -> Registration:
    """An attendee withdraws; a confirmed seat goes back to the event."""
    cancelled = RegistrationStatus.CANCELLED.value
    try:
        row = (await db.execute(
            locked_registrations_query(
                Registration.id == registration_id,
                Registration.user_id == user_id,
            )
        )).first()
        if row is None:
            raise RegistrationNotFound("Registration not found.")
        registration, user, event = row

        previous_status = registration.status
        if previous_status not in SELF_CANCELLABLE_STATUSES:
            raise InvalidTransition(previous_status, cancelled)

        snapshot = snapshot_of(registration, user, event)
        slot_ledger.apply_delta(event, slot_delta(previous_status, cancelled))
        registration.status = cancelled
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    record_transition(previous_status, cancelled)
    logger.info(
        "registration_cancelled_by_user",
        registration_id=registration_id,
        user_id=user_id,
        previous_status=previous_status,
        available_slots=event.available_slots,
    )

    effects.audit_user(
        user_id,
        "registration.cancel",
        "registration",
        registration_id,
        {
            "previousStatus": previous_status,
            "eventId": str(snapshot.event_id),
            "eventTitle": snapshot.event_title,
        },
    )
    effects.status_changed(snapshot, cancelled)
    return registration


async def list_user_registrations(db: AsyncSession, user_id: int) -> list[dict]:
    """The attendee's registrations, newest first, with event display fields."""
    result = await db.execute(
        select(Registration, Event)
        .join(Event, Event.id == Registration.event_id)
        .where(Registration.user_id == user_id)
        .order_by(Registration.registered_at.desc(), Registration.id.desc())
    )
    return [
        {
            "id": registration.id,
            "event_id": registration.event_id,
            "user_id": registration.user_id,
            "status": registration.status,
            "registered_at": registration.registered_at,
            "event_title": event.title,
            "event_date": event.date,
            "event_time": event.time,
            "event_location": event.location,
        }
        for registration, event in result.all()
    ]


async def list_registrations(
    db: AsyncSession,
    event_id: Optional[int] = None,
    status: Optional[str] = None,
) -> list[dict]:
    """Admin listing of live registrations with user and event fields."""
    query = (
        select(Registration, User, Event)
        .join(User, User.id == Registration.user_id)
        .join(Event, Event.id == Registration.event_id)
    )
    if event_id is not None:
        query = query.where(Registration.event_id == event_id)
    if status is not None:
        query = query.where(Registration.status == status)
    result = await db.execute(query.order_by(Registration.registered_at.desc(), Registration.id.desc()))
    return [
        {
            "id": registration.id,
            "event_id": registration.event_id,
            "user_id": registration.user_id,
            "status": registration.status,
            "registered_at": registration.registered_at,
            "user_name": user.name,
            "user_email": user.email,
            "event_title": event.title,
            "event_date": event.date,
        }
        for registration, user, event in result.all()
    ]
