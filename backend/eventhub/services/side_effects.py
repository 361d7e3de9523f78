"""
Post-commit side effects (audit, e-mail, in-app notifications).

Services run in two phases:

  1. apply  - transactional, awaited, may raise and roll back
  2. notify - queued while applying, started only after commit

Queued jobs are handed to FastAPI BackgroundTasks, so the response is not
held back by SMTP or extra inserts. When they run they are fanned out with
asyncio.gather(return_exceptions=True) and each opens its own DB session.
A failing job is logged and counted; it never rolls back the state change
and never reaches the caller.
"""

import asyncio
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Awaitable, Callable, Optional

from fastapi import BackgroundTasks
from sqlalchemy.ext.asyncio import async_sessionmaker

from eventhub.core.logging import get_logger
from eventhub.core.metrics import record_side_effect_failure
from eventhub.services import audit_service, notification_service
from eventhub.services.email_service import get_email_service

logger = get_logger(__name__)


@dataclass(frozen=True)
class RegistrationSnapshot:
    """Display fields of a registration captured inside the transaction."""

    registration_id: int
    previous_status: str
    user_id: int
    user_name: Optional[str]
    user_email: Optional[str]
    event_id: int
    event_title: Optional[str]
    event_date: Optional[date]
    event_time: Optional[str]
    event_location: Optional[str]
    registered_at: Optional[datetime] = None

    def audit_details(self) -> dict:
        return {
            "previousStatus": self.previous_status,
            "userId": str(self.user_id),
            "userName": self.user_name,
            "userEmail": self.user_email,
            "eventId": str(self.event_id),
            "eventTitle": self.event_title,
        }


class SideEffects:
    """Outbox of coroutine jobs to start once the transaction has committed."""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory
        self._jobs: list[tuple[str, Callable[..., Awaitable[Any]], tuple, dict]] = []

    def __len__(self) -> int:
        return len(self._jobs)

    def add(self, kind: str, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> None:
        self._jobs.append((kind, func, args, kwargs))

    def clear(self) -> None:
        self._jobs.clear()

    async def _guarded(self, kind: str, func, args, kwargs):
        try:
            return await func(*args, **kwargs)
        except Exception as e:
            record_side_effect_failure(kind)
            logger.error("side_effect_failed", kind=kind, job=getattr(func, "__name__", repr(func)), error=str(e))
            return False

    async def run(self) -> list:
        jobs, self._jobs = self._jobs, []
        if not jobs:
            return []
        results = await asyncio.gather(
            *(self._guarded(kind, func, args, kwargs) for kind, func, args, kwargs in jobs),
            return_exceptions=True,
        )
        failed = sum(1 for r in results if r is False or isinstance(r, BaseException))
        logger.info("side_effects_completed", total=len(results), failed=failed)
        return results

    def schedule(self, background_tasks: BackgroundTasks) -> None:
        """Hand the queued jobs to the response's background tasks."""
        if self._jobs:
            background_tasks.add_task(self.run)

    # Collaborators

    def audit_admin(self, admin_user_id: int, action: str, entity_type: str, entity_id=None, details=None):
        self.add(
            "audit", audit_service.log_admin_action,
            self.session_factory, admin_user_id, action, entity_type, entity_id, details,
        )

    def audit_user(self, user_id: int, action: str, entity_type: str, entity_id=None, details=None):
        self.add(
            "audit", audit_service.log_user_action,
            self.session_factory, user_id, action, entity_type, entity_id, details,
        )

    def notify_user(self, user_id: int, title: str, message: str, type: str):
        self.add(
            "notification", notification_service.create_notification,
            self.session_factory, user_id, title, message, type,
        )

    def notify_admins(self, title: str, message: str, type: str):
        self.add(
            "notification", notification_service.create_notification_for_admins,
            self.session_factory, title, message, type,
        )

    def email_status(self, snapshot: RegistrationSnapshot, status: str):
        """User-facing status e-mail plus the support-inbox copy."""
        if not snapshot.user_email:
            return
        mailer = get_email_service()
        self.add(
            "email", mailer.send_registration_notification_email,
            snapshot.event_title or "", snapshot.user_name or "", snapshot.user_email,
            snapshot.event_date, status,
        )
        self.add(
            "email", mailer.send_event_registration_email,
            snapshot.user_email, snapshot.user_name or "", snapshot.event_title or "",
            snapshot.event_date, snapshot.event_time, snapshot.event_location,
            status, snapshot.registration_id,
        )

    def status_changed(self, snapshot: RegistrationSnapshot, new_status: str, reason: Optional[str] = None):
        """E-mails and in-app notifications for one registration's new status."""
        self.email_status(snapshot, new_status)
        message = notification_service.status_change_message(
            new_status, snapshot.user_name or "", snapshot.event_title or "", reason
        )
        if message is None:
            return
        self.notify_user(snapshot.user_id, message.title, message.user_message, message.type)
        self.notify_admins(message.title, message.admin_message, message.type)
