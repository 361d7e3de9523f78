"""
Row factories and lookups shared by the API tests.
"""

from datetime import date, datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eventhub.core.security import create_access_token
from eventhub.models import AuditLog, Event, Notification, Registration, User


async def make_user(session: AsyncSession, name: str, email: str, role: str = "attendee") -> User:
    user = User(name=name, email=email, role=role)
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


async def make_event(
    session: AsyncSession,
    title: str = "Founders Breakfast",
    total_slots: int = 10,
    available_slots: int = None,
    **fields,
) -> Event:
    event = Event(
        title=title,
        description="Monthly meetup for founders",
        date=fields.pop("date", date.today() + timedelta(days=14)),
        time=fields.pop("time", "09:00"),
        location=fields.pop("location", "StartupLab Hall A"),
        total_slots=total_slots,
        available_slots=total_slots if available_slots is None else available_slots,
        status=fields.pop("status", "published"),
        **fields,
    )
    session.add(event)
    await session.commit()
    await session.refresh(event)
    return event


async def make_registration(session: AsyncSession, event: Event, user: User, status: str = "pending") -> Registration:
    registration = Registration(
        event_id=event.id,
        user_id=user.id,
        status=status,
        registered_at=datetime.now(timezone.utc),
    )
    session.add(registration)
    await session.commit()
    await session.refresh(registration)
    return registration


async def reload(session: AsyncSession, model, pk):
    """Fresh copy of a row, bypassing whatever the identity map holds."""
    return await session.get(model, pk, populate_existing=True)


async def audit_entries(session: AsyncSession, action: str) -> list[AuditLog]:
    result = await session.execute(select(AuditLog).where(AuditLog.action == action).order_by(AuditLog.id))
    return list(result.scalars().all())


async def notifications_for(session: AsyncSession, user_id: int) -> list[Notification]:
    result = await session.execute(
        select(Notification).where(Notification.user_id == user_id).order_by(Notification.id)
    )
    return list(result.scalars().all())


def bearer(user: User) -> dict:
    token = create_access_token(data={"sub": str(user.id), "role": user.role})
    return {"Authorization": f"Bearer {token}"}


