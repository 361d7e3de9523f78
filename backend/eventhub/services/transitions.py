"""
Registration status rules.

Single source of truth for:
  - the status vocabulary
  - which bulk action may touch which current statuses
  - what each transition does to the event's slot counter

Both the single-registration path and the bulk orchestrator use these
tables; nothing else decides eligibility or slot deltas.

Slot accounting
===============

A registration holds one slot while it is `confirmed`. `attended` is the
same seat, recorded as used, so it neither takes nor gives back a slot.

  into confirmed (from anything else)         -> -1  (requires a free slot)
  out of confirmed (except into attended)     -> +1
  everything else                             ->  0
"""

from enum import Enum


class RegistrationStatus(str, Enum):
    PENDING = "pending"
    WAITLISTED = "waitlisted"
    CONFIRMED = "confirmed"
    ATTENDED = "attended"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"
    REJECTED = "rejected"


class BulkAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
    ATTEND = "attend"
    NOSHOW = "noshow"
    DELETE = "delete"


ALL_STATUSES = frozenset(s.value for s in RegistrationStatus)

# Statuses assigned on creation, depending on slot availability
INITIAL_STATUSES = frozenset({RegistrationStatus.PENDING.value, RegistrationStatus.WAITLISTED.value})

# No further transitions are wired from these in ordinary flow
TERMINAL_STATUSES = frozenset({
    RegistrationStatus.ATTENDED.value,
    RegistrationStatus.CANCELLED.value,
    RegistrationStatus.NO_SHOW.value,
    RegistrationStatus.REJECTED.value,
})

ELIGIBLE_STATUSES: dict[BulkAction, frozenset[str]] = {
    BulkAction.APPROVE: INITIAL_STATUSES,
    BulkAction.REJECT: INITIAL_STATUSES,
    BulkAction.ATTEND: frozenset({RegistrationStatus.CONFIRMED.value}),
    BulkAction.NOSHOW: frozenset({RegistrationStatus.CONFIRMED.value}),
    BulkAction.DELETE: ALL_STATUSES,
}

# DELETE has no target status: the row is archived and removed
TARGET_STATUS: dict[BulkAction, str] = {
    BulkAction.APPROVE: RegistrationStatus.CONFIRMED.value,
    BulkAction.REJECT: RegistrationStatus.REJECTED.value,
    BulkAction.ATTEND: RegistrationStatus.ATTENDED.value,
    BulkAction.NOSHOW: RegistrationStatus.NO_SHOW.value,
}

BULK_AUDIT_ACTION: dict[BulkAction, str] = {
    BulkAction.APPROVE: "registration.bulk_approve",
    BulkAction.REJECT: "registration.bulk_reject",
    BulkAction.ATTEND: "registration.bulk_attend",
    BulkAction.NOSHOW: "registration.bulk_no_show",
    BulkAction.DELETE: "registration.bulk_delete",
}

DEFAULT_BULK_REASON: dict[BulkAction, str] = {
    BulkAction.NOSHOW: "Marked as no show",
}

# Statuses an attendee may cancel their own registration from
SELF_CANCELLABLE_STATUSES = frozenset({
    RegistrationStatus.PENDING.value,
    RegistrationStatus.WAITLISTED.value,
    RegistrationStatus.CONFIRMED.value,
})


def slot_delta(previous: str, new: str) -> int:
    """Change to the event's available_slots caused by previous -> new."""
    confirmed = RegistrationStatus.CONFIRMED.value
    if new == confirmed and previous != confirmed:
        return -1
    if previous == confirmed and new not in (confirmed, RegistrationStatus.ATTENDED.value):
        return 1
    return 0


def is_eligible(action: BulkAction, current_status: str) -> bool:
    return current_status in ELIGIBLE_STATUSES[action]


def initial_status(available_slots: int) -> str:
    """Pending when a slot is free, waitlisted otherwise. No slot is taken."""
    if available_slots > 0:
        return RegistrationStatus.PENDING.value
    return RegistrationStatus.WAITLISTED.value
