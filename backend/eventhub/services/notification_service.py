"""
In-app notifications: writers used as post-commit side effects, message
composition for status changes, and the attendee-facing read operations.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from eventhub.core.logging import get_logger
from eventhub.core.metrics import record_side_effect_failure
from eventhub.core.security import ROLE_ADMIN
from eventhub.models.notification import Notification
from eventhub.models.user import User
from eventhub.services.transitions import RegistrationStatus

logger = get_logger(__name__)

NOTIFICATION_TYPES = (
    "registration_pending",
    "registration_approved",
    "registration_rejected",
    "registration_attended",
    "general",
)

ENDED_STATUSES = (
    RegistrationStatus.CANCELLED.value,
    RegistrationStatus.NO_SHOW.value,
    RegistrationStatus.REJECTED.value,
)


@dataclass(frozen=True)
class StatusMessage:
    title: str
    type: str
    user_message: str
    admin_message: str


def status_change_message(
    new_status: str,
    user_name: str,
    event_title: str,
    reason: Optional[str] = None,
) -> Optional[StatusMessage]:
    """Notification text for a status change, or None when nobody is told."""
    if new_status == RegistrationStatus.CONFIRMED.value:
        return StatusMessage(
            title="Registration Approved",
            type="registration_approved",
            user_message=f'Your registration for "{event_title}" has been approved!',
            admin_message=f"{user_name}'s registration for \"{event_title}\" has been approved.",
        )
    if new_status == RegistrationStatus.ATTENDED.value:
        return StatusMessage(
            title="Attendance Marked",
            type="registration_attended",
            user_message=f'Your attendance for "{event_title}" has been recorded. Thank you!',
            admin_message=f'{user_name} marked as attended for "{event_title}".',
        )
    if new_status in ENDED_STATUSES:
        # single and bulk paths share one no-show wording
        verb = "marked as no show" if new_status == RegistrationStatus.NO_SHOW.value else new_status
        suffix = f" Reason: {reason}" if reason else ""
        return StatusMessage(
            title="Registration Rejected",
            type="registration_rejected",
            user_message=f'Your registration for "{event_title}" has been {verb}.{suffix}',
            admin_message=f"{user_name}'s registration for \"{event_title}\" has been {verb}.{suffix}",
        )
    return None


def new_registration_message(user_name: str, event_title: str, status: str) -> StatusMessage:
    if status == RegistrationStatus.WAITLISTED.value:
        user_message = f'You have been added to the waitlist for "{event_title}".'
        admin_message = f'{user_name} joined the waitlist for "{event_title}".'
    else:
        user_message = f'Your registration for "{event_title}" is pending approval.'
        admin_message = f'{user_name} registered for "{event_title}" and is awaiting approval.'
    return StatusMessage(
        title="New Registration",
        type="registration_pending",
        user_message=user_message,
        admin_message=admin_message,
    )


async def create_notification(
    session_factory: async_sessionmaker,
    user_id: int,
    title: str,
    message: str,
    type: str,
) -> bool:
    try:
        async with session_factory() as session:
            session.add(Notification(user_id=user_id, title=title, message=message, type=type, is_read=False))
            await session.commit()
        return True
    except Exception as e:
        record_side_effect_failure("notification")
        logger.error("notification_create_failed", user_id=user_id, type=type, error=str(e))
        return False


async def create_notification_for_admins(
    session_factory: async_sessionmaker,
    title: str,
    message: str,
    type: str,
) -> bool:
    try:
        async with session_factory() as session:
            result = await session.execute(select(User.id).where(User.role == ROLE_ADMIN))
            admin_ids = list(result.scalars().all())
            session.add_all([
                Notification(user_id=admin_id, title=title, message=message, type=type, is_read=False)
                for admin_id in admin_ids
            ])
            await session.commit()
        return True
    except Exception as e:
        record_side_effect_failure("notification")
        logger.error("admin_notification_create_failed", type=type, error=str(e))
        return False


async def list_notifications(db: AsyncSession, user_id: int, limit: int = 50) -> list[Notification]:
    result = await db.execute(
        select(Notification)
        .where(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def mark_all_read(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        .values(is_read=True)
    )
    await db.commit()
    return result.rowcount or 0
