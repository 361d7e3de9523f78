"""
Event service handling CRUD operations.

Apart from registration transitions, an admin edit is the only other way
`available_slots` changes. Edits lock the event row like the ledger does
and clamp the counter into [0, total_slots].
"""

from datetime import date
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.core.exceptions import EventNotFound
from eventhub.core.logging import get_logger
from eventhub.models.event import Event
from eventhub.schemas.event import EventCreate, EventUpdate
from eventhub.services import slot_ledger

logger = get_logger(__name__)


async def create_event(db: AsyncSession, event_data: EventCreate) -> Event:
    """Create an event; available slots default to, and never exceed, total slots."""
    available = event_data.available_slots
    if available is None or available > event_data.total_slots:
        available = event_data.total_slots

    event = Event(
        title=event_data.title,
        description=event_data.description,
        date=event_data.date,
        time=event_data.time,
        location=event_data.location,
        total_slots=event_data.total_slots,
        available_slots=available,
        image_url=event_data.image_url,
        status=event_data.status,
    )
    try:
        db.add(event)
        await db.flush()
        await db.commit()
        await db.refresh(event)
    except Exception:
        await db.rollback()
        raise

    logger.info("event_created", event_id=event.id, title=event.title, slots=event.total_slots)
    return event


async def get_event(db: AsyncSession, event_id: int) -> Event:
    """Get a single live (not archived) event by ID."""
    result = await db.execute(
        select(Event).where(Event.id == event_id, Event.deleted_at.is_(None))
    )
    event = result.scalar_one_or_none()

    if not event:
        raise EventNotFound(f"Event {event_id} not found")
    return event


async def list_events(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
    upcoming_only: bool = True,
    status: Optional[str] = "published",
) -> tuple[list[Event], int]:
    """List live events with pagination, soonest first."""
    query = select(Event).where(Event.deleted_at.is_(None))

    if status is not None:
        query = query.where(Event.status == status)
    if upcoming_only:
        query = query.where(Event.date >= date.today())

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    events_query = (
        query
        .order_by(Event.date.asc(), Event.time.asc(), Event.id.asc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    result = await db.execute(events_query)
    events = list(result.scalars().all())

    return events, total


async def update_event(db: AsyncSession, event_id: int, event_data: EventUpdate) -> Event:
    """Partial update under the event row lock."""
    changes = event_data.model_dump(exclude_unset=True, exclude_none=True)
    try:
        event = await slot_ledger.lock_event(db, event_id)
        if event.is_archived:
            raise EventNotFound(f"Event {event_id} not found")

        for field, value in changes.items():
            setattr(event, field, value)

        if event.available_slots > event.total_slots:
            logger.warning(
                "event_slots_clamped",
                event_id=event_id,
                available=event.available_slots,
                total=event.total_slots,
            )
            event.available_slots = event.total_slots

        await db.commit()
        await db.refresh(event)
    except Exception:
        await db.rollback()
        raise

    logger.info("event_updated", event_id=event_id, fields=sorted(changes))
    return event
