"""
Registration model: one row per (event, user) pair.

A cancelled row is reused when the same user registers again, so the
unique constraint on the pair holds for the whole lifetime of the row.
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint, CheckConstraint, func

from eventhub.db.base import Base, TimestampMixin


class Registration(Base, TimestampMixin):
    __tablename__ = "registrations"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="pending")
    registered_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="uq_registration_event_user"),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'waitlisted', 'attended', 'cancelled', 'no-show', 'rejected')",
            name="check_registration_status",
        ),
    )

    def __repr__(self) -> str:
        return f"<Registration(id={self.id}, event={self.event_id}, user={self.user_id}, status={self.status})>"
