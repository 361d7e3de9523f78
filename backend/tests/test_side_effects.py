"""
Tests for post-commit side effects: the outbox, message selection, audit
detail shaping and e-mail delivery failures.
"""

import pytest
from fastapi import BackgroundTasks
from sqlalchemy import select

from eventhub.models import AuditLog
from eventhub.services import audit_service
from eventhub.services.email_service import EmailService
from eventhub.services.notification_service import new_registration_message, status_change_message
from eventhub.services.side_effects import RegistrationSnapshot, SideEffects


def _snapshot(email="ravi@example.com"):
    return RegistrationSnapshot(
        registration_id=11,
        previous_status="pending",
        user_id=2,
        user_name="Ravi Founder",
        user_email=email,
        event_id=3,
        event_title="Founders Breakfast",
        event_date=None,
        event_time="09:00",
        event_location="StartupLab Hall A",
    )


@pytest.mark.asyncio
async def test_failing_job_does_not_stop_the_others(session_factory):
    effects = SideEffects(session_factory)
    calls = []

    async def broken():
        raise RuntimeError("smtp down")

    async def fine(value):
        calls.append(value)
        return True

    effects.add("email", broken)
    effects.add("notification", fine, "sent")

    results = await effects.run()
    assert results == [False, True]
    assert calls == ["sent"]
    assert len(effects) == 0


def test_schedule_only_when_jobs_are_queued(session_factory):
    tasks = BackgroundTasks()
    effects = SideEffects(session_factory)
    effects.schedule(tasks)
    assert tasks.tasks == []

    effects.notify_admins("New Registration", "someone registered", "registration_pending")
    effects.schedule(tasks)
    assert len(tasks.tasks) == 1


def test_status_change_without_email_skips_mail(session_factory):
    effects = SideEffects(session_factory)
    effects.status_changed(_snapshot(email=None), "confirmed")
    # user and admin notifications only
    assert len(effects) == 2


def test_status_change_with_email_queues_both_mails(session_factory):
    effects = SideEffects(session_factory)
    effects.status_changed(_snapshot(), "confirmed")
    assert len(effects) == 4


def test_pending_status_change_sends_no_notification(session_factory):
    effects = SideEffects(session_factory)
    effects.status_changed(_snapshot(email=None), "pending")
    assert len(effects) == 0


def test_status_messages():
    approved = status_change_message("confirmed", "Ravi", "Demo Day")
    assert approved.title == "Registration Approved"
    assert approved.type == "registration_approved"

    attended = status_change_message("attended", "Ravi", "Demo Day")
    assert attended.title == "Attendance Marked"

    rejected = status_change_message("rejected", "Ravi", "Demo Day", "Members only")
    assert rejected.title == "Registration Rejected"
    assert rejected.user_message == 'Your registration for "Demo Day" has been rejected. Reason: Members only'

    no_show = status_change_message("no-show", "Ravi", "Demo Day")
    assert no_show.user_message == 'Your registration for "Demo Day" has been marked as no show.'

    assert status_change_message("waitlisted", "Ravi", "Demo Day") is None

    waitlisted = new_registration_message("Ravi", "Demo Day", "waitlisted")
    assert waitlisted.type == "registration_pending"
    assert "waitlist" in waitlisted.user_message


def test_audit_details_always_carry_actor_role():
    assert audit_service.build_details("admin") == {"actorRole": "admin"}
    assert audit_service.build_details("admin", {"status": "confirmed", "reason": None}) == {
        "actorRole": "admin",
        "status": "confirmed",
    }
    assert audit_service.build_details("attendee", "free text") == {"actorRole": "attendee", "value": "free text"}


@pytest.mark.asyncio
async def test_audit_writer_persists_entry(session_factory, db_session):
    ok = await audit_service.log_admin_action(
        session_factory, 1, "registration.update_status", "registration", 9, {"status": "confirmed"}
    )
    assert ok is True

    entry = (await db_session.execute(select(AuditLog))).scalar_one()
    assert entry.entity_id == "9"
    assert entry.actor_role == "admin"
    assert entry.details == {"actorRole": "admin", "status": "confirmed"}


@pytest.mark.asyncio
async def test_audit_writer_swallows_errors():
    def broken_factory():
        raise RuntimeError("database unavailable")

    ok = await audit_service.log_user_action(broken_factory, 2, "registration.create", "registration", 1)
    assert ok is False


@pytest.mark.asyncio
async def test_email_disabled_is_a_successful_noop():
    mailer = EmailService()
    mailer.enabled = False
    assert await mailer.send_registration_notification_email("Demo Day", "Ravi", "ravi@example.com", None, "pending")


@pytest.mark.asyncio
async def test_email_failure_returns_false(monkeypatch):
    async def refuse(*args, **kwargs):
        raise ConnectionRefusedError("no smtp server")

    monkeypatch.setattr("eventhub.services.email_service.aiosmtplib.send", refuse)
    mailer = EmailService()
    mailer.enabled = True

    sent = await mailer.send_event_registration_email(
        "ravi@example.com", "Ravi", "Demo Day", None, None, None, status="confirmed", registration_id=4
    )
    assert sent is False


def test_registration_email_body():
    mailer = EmailService()
    message = mailer.build_message("ravi@example.com", "Hello", "plain body", "<p>html body</p>")
    assert message["To"] == "ravi@example.com"
    assert message["Subject"] == "Hello"
    assert message.is_multipart()
