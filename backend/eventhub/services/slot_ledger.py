"""
Slot ledger: the only writer of `events.available_slots`.

CONCURRENCY STRATEGY: Pessimistic row locks
===========================================

Problem:
  Two admins approve the last free slot of an event at the same time.
  Both read available_slots=1, both decrement, the event is oversubscribed.

Solution:
  Every operation that may move the counter first locks the event rows with
  SELECT ... FOR UPDATE inside the caller's transaction, then decides and
  writes. Competing transactions queue on the row lock and re-read the
  committed value once they get it.

  - Events are always locked in ascending id order so two bulk batches
    touching overlapping events cannot deadlock.
  - The counter is never cached between requests.
  - DB CHECK constraints (0 <= available <= total) are the last line of defense.

No optimistic retries: a shortfall is a hard failure and the caller's
transaction is rolled back as a whole.
"""

from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.core.exceptions import CapacityExceeded, EventNotFound
from eventhub.core.logging import get_logger
from eventhub.models.event import Event

logger = get_logger(__name__)


async def lock_events(db: AsyncSession, event_ids: Iterable[int]) -> dict[int, Event]:
    """Lock the given event rows FOR UPDATE and return them keyed by id."""
    ids = sorted(set(event_ids))
    if not ids:
        return {}
    result = await db.execute(
        select(Event)
        .where(Event.id.in_(ids))
        .order_by(Event.id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return {event.id: event for event in result.scalars().all()}


async def lock_event(db: AsyncSession, event_id: int) -> Event:
    events = await lock_events(db, [event_id])
    event = events.get(event_id)
    if event is None:
        raise EventNotFound(f"Event {event_id} not found")
    return event


def ensure_capacity(event: Event, needed: int, batch: bool = False) -> None:
    """Raise CapacityExceeded unless `needed` slots are free on a locked event."""
    if needed <= 0:
        return
    if event.available_slots < needed:
        logger.warning(
            "slot_capacity_exceeded",
            event_id=event.id,
            needed=needed,
            available=event.available_slots,
        )
        raise CapacityExceeded(event.title, needed, event.available_slots, batch=batch)


def reserve(event: Event, count: int = 1, batch: bool = False) -> None:
    """Take `count` slots from a locked event."""
    ensure_capacity(event, count, batch=batch)
    event.available_slots = event.available_slots - count
    logger.info(
        "slots_reserved",
        event_id=event.id,
        count=count,
        available=event.available_slots,
    )


def release(event: Event, count: int = 1) -> None:
    """Give `count` slots back to a locked event, never above total_slots."""
    if count <= 0:
        return
    restored = event.available_slots + count
    if restored > event.total_slots:
        # total_slots was lowered by an admin edit while seats were held
        logger.warning(
            "slot_release_clamped",
            event_id=event.id,
            requested=count,
            available=event.available_slots,
            total=event.total_slots,
        )
        restored = event.total_slots
    event.available_slots = restored
    logger.info(
        "slots_released",
        event_id=event.id,
        count=count,
        available=event.available_slots,
    )


def apply_delta(event: Event, delta: int, batch: bool = False) -> None:
    """Apply a state-machine slot delta (-n reserves, +n releases)."""
    if delta < 0:
        reserve(event, -delta, batch=batch)
    elif delta > 0:
        release(event, delta)
