"""
Tests for single-registration status changes by an admin.
"""

import pytest
from httpx import AsyncClient

from eventhub.models import Event, Registration
from helpers import audit_entries, make_event, make_registration, notifications_for, reload


def _url(registration_id):
    return f"/api/v1/admin/registrations/{registration_id}"


@pytest.mark.asyncio
async def test_approve_takes_last_slot(client: AsyncClient, db_session, admin_headers, attendee):
    """Approving a pending registration confirms it and decrements the event."""
    event = await make_event(db_session, total_slots=2, available_slots=1)
    r1 = await make_registration(db_session, event, attendee)
    event_id, r1_id = event.id, r1.id

    response = await client.patch(_url(r1_id), json={"status": "confirmed"}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json() == {"ok": True}

    assert (await reload(db_session, Registration, r1_id)).status == "confirmed"
    assert (await reload(db_session, Event, event_id)).available_slots == 0


@pytest.mark.asyncio
async def test_cancel_confirmed_releases_slot(client: AsyncClient, db_session, admin_headers, attendee):
    event = await make_event(db_session, total_slots=2, available_slots=0)
    r1 = await make_registration(db_session, event, attendee, status="confirmed")
    event_id, r1_id = event.id, r1.id

    response = await client.patch(_url(r1_id), json={"status": "cancelled"}, headers=admin_headers)
    assert response.status_code == 200

    assert (await reload(db_session, Registration, r1_id)).status == "cancelled"
    assert (await reload(db_session, Event, event_id)).available_slots == 1


@pytest.mark.asyncio
async def test_single_noshow_uses_bulk_wording(client: AsyncClient, db_session, admin_headers, attendee):
    event = await make_event(db_session, total_slots=2, available_slots=1)
    registration = await make_registration(db_session, event, attendee, status="confirmed")
    registration_id, attendee_id = registration.id, attendee.id

    response = await client.patch(_url(registration_id), json={"status": "no-show"}, headers=admin_headers)
    assert response.status_code == 200

    notes = await notifications_for(db_session, attendee_id)
    assert [n.message for n in notes] == ['Your registration for "Founders Breakfast" has been marked as no show.']


@pytest.mark.asyncio
async def test_attended_keeps_counter(client: AsyncClient, db_session, admin_headers, attendee):
    event = await make_event(db_session, total_slots=2, available_slots=0)
    r1 = await make_registration(db_session, event, attendee, status="confirmed")
    event_id, r1_id = event.id, r1.id

    response = await client.patch(_url(r1_id), json={"status": "attended"}, headers=admin_headers)
    assert response.status_code == 200

    assert (await reload(db_session, Registration, r1_id)).status == "attended"
    assert (await reload(db_session, Event, event_id)).available_slots == 0


@pytest.mark.asyncio
async def test_approve_without_free_slot_fails(client: AsyncClient, db_session, admin_headers, attendee, full_event):
    """No slot left: 500 with a message, nothing changes."""
    registration = await make_registration(db_session, full_event, attendee, status="waitlisted")
    event_id, registration_id = full_event.id, registration.id

    response = await client.patch(_url(registration_id), json={"status": "confirmed"}, headers=admin_headers)
    assert response.status_code == 500
    assert response.json() == {"error": "No available slots for this event."}

    assert (await reload(db_session, Registration, registration_id)).status == "waitlisted"
    assert (await reload(db_session, Event, event_id)).available_slots == 0


@pytest.mark.asyncio
async def test_reject_pending_does_not_touch_counter(client: AsyncClient, db_session, admin_headers, attendee, test_event):
    registration = await make_registration(db_session, test_event, attendee)
    event_id, registration_id = test_event.id, registration.id

    response = await client.patch(
        _url(registration_id),
        json={"status": "rejected", "reason": "Event is for members only"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert (await reload(db_session, Event, event_id)).available_slots == 10


@pytest.mark.asyncio
async def test_side_effects_after_commit(client: AsyncClient, db_session, admin, admin_headers, attendee, test_event):
    """Audit entry plus user and admin notifications are written after the change."""
    registration = await make_registration(db_session, test_event, attendee)
    admin_id, attendee_id, registration_id = admin.id, attendee.id, registration.id

    response = await client.patch(
        _url(registration_id),
        json={"status": "rejected", "reason": "Capacity reserved for members"},
        headers=admin_headers,
    )
    assert response.status_code == 200

    entries = await audit_entries(db_session, "registration.update_status")
    assert len(entries) == 1
    entry = entries[0]
    assert entry.actor_user_id == admin_id
    assert entry.entity_id == str(registration_id)
    assert entry.details["actorRole"] == "admin"
    assert entry.details["status"] == "rejected"
    assert entry.details["previousStatus"] == "pending"
    assert entry.details["reason"] == "Capacity reserved for members"

    user_notes = await notifications_for(db_session, attendee_id)
    assert [n.title for n in user_notes] == ["Registration Rejected"]
    assert user_notes[0].message.endswith("has been rejected. Reason: Capacity reserved for members")

    admin_notes = await notifications_for(db_session, admin_id)
    assert [n.type for n in admin_notes] == ["registration_rejected"]


@pytest.mark.asyncio
async def test_unknown_registration_is_404(client: AsyncClient, admin_headers):
    response = await client.patch(_url(999), json={"status": "confirmed"}, headers=admin_headers)
    assert response.status_code == 404
    assert response.json() == {"error": "Registration not found"}


@pytest.mark.asyncio
async def test_invalid_status_is_400(client: AsyncClient, db_session, admin_headers, attendee, test_event):
    registration = await make_registration(db_session, test_event, attendee)
    response = await client.patch(_url(registration.id), json={"status": "approved"}, headers=admin_headers)
    assert response.status_code == 400
    assert "error" in response.json()


@pytest.mark.asyncio
async def test_reason_too_long_is_400(client: AsyncClient, db_session, admin_headers, attendee, test_event):
    registration = await make_registration(db_session, test_event, attendee)
    response = await client.patch(
        _url(registration.id),
        json={"status": "rejected", "reason": "x" * 501},
        headers=admin_headers,
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_requires_admin(client: AsyncClient, db_session, attendee, attendee_headers, test_event):
    registration = await make_registration(db_session, test_event, attendee)
    registration_id = registration.id

    response = await client.patch(_url(registration_id), json={"status": "confirmed"}, headers=attendee_headers)
    assert response.status_code == 403
    assert response.json() == {"error": "Forbidden"}

    response = await client.patch(_url(registration_id), json={"status": "confirmed"})
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


@pytest.mark.asyncio
async def test_admin_listing_filters_by_status(client: AsyncClient, db_session, admin_headers, attendee, other_attendee, test_event):
    await make_registration(db_session, test_event, attendee, status="confirmed")
    await make_registration(db_session, test_event, other_attendee)

    response = await client.get("/api/v1/admin/registrations?status=pending", headers=admin_headers)
    assert response.status_code == 200
    data = response.json()
    assert len(data) == 1
    assert data[0]["user_email"] == "mina@example.com"
    assert data[0]["event_title"] == "Founders Breakfast"
