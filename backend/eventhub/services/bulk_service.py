"""
Bulk orchestrator: one admin action applied to up to BULK_MAX_IDS registrations.

A batch is all-or-nothing. Inside a single transaction it:

  1. locks every requested registration with its event (events in id order)
  2. splits them into eligible and skipped by the action's status rules
  3. checks capacity for every affected event before writing anything
  4. applies slot changes per event, then the per-row status writes
     (or archives and deletes, for the delete action)
  5. commits

Every requested id that is not processed, whether ineligible or unknown,
is reported back as skipped; skipping is not an error. Side effects are
queued per row plus one audit entry for the whole batch, and only start
after commit.
"""

import time
from collections import Counter
from typing import Optional

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.core.exceptions import CapacityExceeded
from eventhub.core.logging import get_logger
from eventhub.core.metrics import (
    record_bulk_operation,
    record_capacity_rejection,
    record_transition,
    transition_latency,
)
from eventhub.core.security import Identity
from eventhub.models.registration import Registration
from eventhub.services import archive_service, slot_ledger
from eventhub.services.registration_service import locked_registrations_query, snapshot_of
from eventhub.services.side_effects import SideEffects
from eventhub.services.transitions import (
    BULK_AUDIT_ACTION,
    DEFAULT_BULK_REASON,
    ELIGIBLE_STATUSES,
    TARGET_STATUS,
    BulkAction,
    RegistrationStatus,
)

logger = get_logger(__name__)


def _dedupe(ids) -> list[int]:
    return list(dict.fromkeys(ids))


async def bulk_transition(
    db: AsyncSession,
    registration_ids: list[int],
    action: BulkAction,
    actor: Identity,
    effects: SideEffects,
    reason: Optional[str] = None,
) -> dict:
    """
    Apply `action` to every eligible registration in `registration_ids`.

    Returns {"processed": n, "skipped": count, "skippedIds": [...]}.
    Raises CapacityExceeded, with nothing written, when an approve batch
    needs more slots than some event has free.
    """
    action = BulkAction(action)
    ids = _dedupe(registration_ids)
    eligible_statuses = ELIGIBLE_STATUSES[action]
    target = TARGET_STATUS.get(action)
    effective_reason = reason or DEFAULT_BULK_REASON.get(action)

    started = time.perf_counter()
    try:
        rows = (await db.execute(locked_registrations_query(Registration.id.in_(ids)))).all()

        eligible = [row for row in rows if row[0].status in eligible_statuses]
        eligible_set = {row[0].id for row in eligible}
        skipped = [i for i in ids if i not in eligible_set]

        if not eligible:
            await db.rollback()
            record_bulk_operation(action.value, "empty")
            logger.info("bulk_nothing_eligible", action=action.value, requested=len(ids), skipped=len(skipped))
            return {"processed": 0, "skipped": len(skipped), "skippedIds": skipped}

        snapshots = [snapshot_of(registration, user, event) for registration, user, event in eligible]
        events = {event.id: event for _, _, event in eligible}

        if action == BulkAction.APPROVE:
            needed = Counter(registration.event_id for registration, _, _ in eligible)
            for event_id in sorted(needed):
                slot_ledger.ensure_capacity(events[event_id], needed[event_id], batch=True)
            for event_id in sorted(needed):
                slot_ledger.reserve(events[event_id], needed[event_id], batch=True)
        elif action in (BulkAction.REJECT, BulkAction.NOSHOW):
            confirmed = RegistrationStatus.CONFIRMED.value
            freed = Counter(
                registration.event_id for registration, _, _ in eligible
                if registration.status == confirmed
            )
            for event_id in sorted(freed):
                slot_ledger.release(events[event_id], freed[event_id])

        eligible_ids = [registration.id for registration, _, _ in eligible]
        if action == BulkAction.DELETE:
            # slots held by deleted confirmed rows are not given back
            await archive_service.archive_registrations(
                db,
                registration_ids=eligible_ids,
                deleted_by=actor.user_id,
                deletion_source="registration.bulk_delete",
            )
            await db.execute(delete(Registration).where(Registration.id.in_(eligible_ids)))
        else:
            for registration, _, _ in eligible:
                registration.status = target

        await db.commit()
    except CapacityExceeded:
        record_capacity_rejection("bulk")
        record_bulk_operation(action.value, "failed")
        await db.rollback()
        raise
    except Exception:
        record_bulk_operation(action.value, "failed")
        await db.rollback()
        raise
    finally:
        transition_latency.labels(path="bulk").observe(time.perf_counter() - started)

    record_bulk_operation(action.value, "applied")
    logger.info(
        "bulk_applied",
        action=action.value,
        processed=len(eligible_ids),
        skipped=len(skipped),
        events=sorted(events),
        admin_id=actor.user_id,
    )

    if action == BulkAction.DELETE:
        details = {
            "count": len(eligible_ids),
            "action": action.value,
            "registrationIds": [str(i) for i in eligible_ids],
        }
    else:
        for snapshot in snapshots:
            record_transition(snapshot.previous_status, target)
            effects.status_changed(snapshot, target, effective_reason)
        details = {
            "count": len(eligible_ids),
            "newStatus": target,
            "reason": effective_reason,
            "skipped": [str(i) for i in skipped] or None,
        }
    effects.audit_admin(actor.user_id, BULK_AUDIT_ACTION[action], "registration", None, details)

    return {"processed": len(eligible_ids), "skipped": len(skipped), "skippedIds": skipped}
