"""
Tests for archive maintenance: registrations, users and events.
"""

from datetime import datetime, timezone

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from eventhub.models import ArchivedRegistration, ArchivedUser, Event, Registration, User
from eventhub.services import archive_service
from helpers import audit_entries, make_event, make_registration, make_user, reload

ARCHIVE = "/api/v1/admin/archive"


async def _archive(db_session, registration_ids, deleted_by):
    """Archive and delete registrations the way the delete paths do."""
    archived = await archive_service.archive_registrations(
        db_session, registration_ids=registration_ids, deleted_by=deleted_by
    )
    for registration_id in registration_ids:
        await db_session.delete(await db_session.get(Registration, registration_id))
    await db_session.commit()
    return archived


@pytest.mark.asyncio
async def test_archive_registrations_empty_selector_is_noop(db_session):
    assert await archive_service.archive_registrations(db_session, registration_ids=[]) == 0
    with pytest.raises(ValueError):
        await archive_service.archive_registrations(db_session)


@pytest.mark.asyncio
async def test_list_archived_registrations(client: AsyncClient, db_session, admin, admin_headers, attendee, test_event):
    registration = await make_registration(db_session, test_event, attendee, status="rejected")
    registration_id = registration.id
    assert await _archive(db_session, [registration_id], admin.id) == 1

    response = await client.get(f"{ARCHIVE}/registrations", headers=admin_headers)
    assert response.status_code == 200
    data = response.json()
    assert len(data) == 1
    assert data[0]["registration_id"] == registration_id
    assert data[0]["status"] == "rejected"
    assert data[0]["user_name"] == "Ravi Founder"
    assert data[0]["event_title"] == "Founders Breakfast"
    assert data[0]["deletion_source"] == "registration.delete"


@pytest.mark.asyncio
async def test_restore_registrations_skips_conflicts(client: AsyncClient, db_session, admin, admin_headers, attendee, other_attendee, test_event):
    """One row comes back; one clashes with a live registration; one lost its event."""
    gone_event = await make_event(db_session, title="Cancelled Mixer")
    restorable = await make_registration(db_session, test_event, attendee, status="confirmed")
    clashing = await make_registration(db_session, test_event, other_attendee)
    orphaned = await make_registration(db_session, gone_event, attendee)
    ids = [restorable.id, clashing.id, orphaned.id]
    event_id, gone_event_id, other_id = test_event.id, gone_event.id, other_attendee.id
    await _archive(db_session, ids, admin.id)

    # a fresh live registration for the clashing pair, and the orphan's event is archived
    await make_registration(db_session, await reload(db_session, Event, event_id), await reload(db_session, User, other_id))
    gone = await reload(db_session, Event, gone_event_id)
    gone.deleted_at = datetime.now(timezone.utc)
    await db_session.commit()

    archive_ids = (await db_session.execute(
        select(ArchivedRegistration.id).order_by(ArchivedRegistration.registration_id)
    )).scalars().all()

    response = await client.post(
        f"{ARCHIVE}/registrations/bulk-restore", json={"ids": archive_ids}, headers=admin_headers
    )
    assert response.status_code == 200
    body = response.json()
    assert body["requested"] == 3
    assert body["restored"] == 1
    assert body["skippedCount"] == 2
    assert {item["reason"] for item in body["skipped"]} == {"already_exists", "event_missing_or_archived"}

    restored = (await db_session.execute(
        select(Registration).where(Registration.event_id == event_id).order_by(Registration.user_id)
    )).scalars().all()
    assert [r.status for r in restored] == ["confirmed", "pending"]

    remaining = (await db_session.execute(select(ArchivedRegistration.id))).scalars().all()
    assert len(remaining) == 2
    assert len(await audit_entries(db_session, "registration.archive_restore")) == 1


@pytest.mark.asyncio
async def test_purge_archived_registrations(client: AsyncClient, db_session, admin, admin_headers, attendee, test_event):
    registration = await make_registration(db_session, test_event, attendee)
    await _archive(db_session, [registration.id], admin.id)
    archive_id = (await db_session.execute(select(ArchivedRegistration.id))).scalar_one()

    response = await client.post(
        f"{ARCHIVE}/registrations/bulk-delete", json={"ids": [archive_id, 999]}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["deleted"] == 1
    assert response.json()["skippedCount"] == 1
    assert (await db_session.execute(select(ArchivedRegistration.id))).scalars().all() == []


@pytest.mark.asyncio
async def test_bulk_delete_users_archives_everything(client: AsyncClient, db_session, admin, admin_headers, attendee, test_event):
    registration = await make_registration(db_session, test_event, attendee, status="confirmed")
    attendee_id, registration_id = attendee.id, registration.id

    response = await client.request(
        "DELETE", "/api/v1/admin/users/bulk", json={"ids": [attendee_id]}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["deleted"] == 1
    assert response.json()["registrationsArchived"] == 1

    assert await db_session.get(User, attendee_id, populate_existing=True) is None
    assert await db_session.get(Registration, registration_id, populate_existing=True) is None

    archived_user = (await db_session.execute(select(ArchivedUser))).scalar_one()
    assert archived_user.user_id == attendee_id
    assert archived_user.email == "ravi@example.com"
    assert archived_user.deletion_source == "user.bulk_delete"

    archived_registration = (await db_session.execute(select(ArchivedRegistration))).scalar_one()
    assert archived_registration.registration_id == registration_id
    assert archived_registration.user_email == "ravi@example.com"


@pytest.mark.asyncio
async def test_restore_users_skips_email_clash(client: AsyncClient, db_session, admin, admin_headers):
    ghost = await make_user(db_session, "Gone Founder", "gone@example.com")
    twin = await make_user(db_session, "Twin Founder", "twin@example.com")
    # keeps freed ids from being handed out again
    await make_user(db_session, "Keeper", "keeper@example.com")
    ghost_id, twin_id, admin_id = ghost.id, twin.id, admin.id

    result = await archive_service.delete_users(db_session, [ghost_id, twin_id], admin_id)
    assert result == {"deleted": 2, "registrationsArchived": 0}
    await make_user(db_session, "Someone Else", "twin@example.com")

    archive_ids = (await db_session.execute(
        select(ArchivedUser.id).order_by(ArchivedUser.user_id)
    )).scalars().all()

    response = await client.post(f"{ARCHIVE}/users/bulk-restore", json={"ids": archive_ids}, headers=admin_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["restored"] == 1
    assert body["skipped"] == [{"id": str(archive_ids[1]), "reason": "email_exists"}]

    restored = await db_session.get(User, ghost_id, populate_existing=True)
    assert restored.email == "gone@example.com"


@pytest.mark.asyncio
async def test_event_soft_delete_and_restore(client: AsyncClient, db_session, admin_headers, test_event):
    event_id = test_event.id

    response = await client.delete(f"/api/v1/admin/events/{event_id}", headers=admin_headers)
    assert response.status_code == 200
    assert (await client.get(f"/api/v1/events/{event_id}")).status_code == 404

    response = await client.get(f"{ARCHIVE}/events", headers=admin_headers)
    assert [e["id"] for e in response.json()] == [event_id]

    response = await client.post(f"{ARCHIVE}/events/{event_id}/restore", headers=admin_headers)
    assert response.status_code == 200
    assert (await client.get(f"/api/v1/events/{event_id}")).status_code == 200

    response = await client.post(f"{ARCHIVE}/events/{event_id}/restore", headers=admin_headers)
    assert response.status_code == 404
    assert len(await audit_entries(db_session, "event.restore")) == 1


@pytest.mark.asyncio
async def test_bulk_restore_events_reports_skipped(client: AsyncClient, db_session, admin_headers, test_event):
    archived = await make_event(db_session, title="Archived Demo Day", deleted_at=datetime.now(timezone.utc))
    live_id, archived_id = test_event.id, archived.id

    response = await client.post(
        f"{ARCHIVE}/events/bulk-restore", json={"ids": [archived_id, live_id]}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["restored"] == 1
    assert response.json()["skipped"] == [{"id": str(live_id), "reason": "not_archived"}]


@pytest.mark.asyncio
async def test_permanent_event_delete_archives_registrations(client: AsyncClient, db_session, admin_headers, attendee, other_attendee, test_event):
    ids = [
        (await make_registration(db_session, test_event, attendee, status="confirmed")).id,
        (await make_registration(db_session, test_event, other_attendee)).id,
    ]
    event_id = test_event.id

    response = await client.post(f"{ARCHIVE}/events/bulk-delete", json={"ids": [event_id]}, headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["deleted"] == 1
    assert response.json()["registrationsArchived"] == 2

    assert await db_session.get(Event, event_id, populate_existing=True) is None
    archived = (await db_session.execute(
        select(ArchivedRegistration).order_by(ArchivedRegistration.registration_id)
    )).scalars().all()
    assert [a.registration_id for a in archived] == ids
    assert all(a.deletion_source == "event.bulk_delete_permanent" for a in archived)
    assert all(a.event_title == "Founders Breakfast" for a in archived)


@pytest.mark.asyncio
async def test_single_permanent_delete_of_unknown_event_is_404(client: AsyncClient, admin_headers):
    response = await client.delete(f"{ARCHIVE}/events/12345", headers=admin_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_archive_requires_admin(client: AsyncClient, attendee_headers):
    response = await client.get(f"{ARCHIVE}/registrations", headers=attendee_headers)
    assert response.status_code == 403
