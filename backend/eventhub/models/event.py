"""
Event model with slot inventory tracking.

Key design decisions:
- `available_slots` is a denormalized counter owned by the slot ledger;
  it changes only through registration transitions and admin edits
- CHECK constraints are the final safety net for 0 <= available <= total
- Deletion is soft (`deleted_at`); permanent deletion goes through the archive
"""

from sqlalchemy import Column, Integer, String, Date, DateTime, Text, Index, CheckConstraint

from eventhub.db.base import Base, TimestampMixin

EVENT_STATUSES = ("draft", "published", "completed", "cancelled")


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    date = Column(Date, nullable=False)
    time = Column(String(32), nullable=True)
    location = Column(String(255), nullable=True)
    total_slots = Column(Integer, nullable=False)
    available_slots = Column(Integer, nullable=False)
    image_url = Column(String(1024), nullable=True)
    status = Column(String(20), nullable=False, default="published")

    # Soft delete
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    deleted_by = Column(Integer, nullable=True)

    __table_args__ = (
        CheckConstraint("total_slots >= 0", name="check_total_slots_non_negative"),
        CheckConstraint("available_slots >= 0", name="check_available_slots_non_negative"),
        CheckConstraint("available_slots <= total_slots", name="check_available_lte_total"),
        CheckConstraint(
            "status IN ('draft', 'published', 'completed', 'cancelled')",
            name="check_event_status",
        ),
        Index("ix_events_date", "date"),
        Index("ix_events_deleted_at", "deleted_at"),
    )

    @property
    def is_archived(self) -> bool:
        return self.deleted_at is not None

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, title={self.title}, available={self.available_slots}/{self.total_slots})>"
