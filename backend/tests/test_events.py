"""
Tests for event listing and admin event management.
"""

import pytest
from datetime import date, datetime, timedelta, timezone
from httpx import AsyncClient

from helpers import audit_entries, make_event


def _event_payload(**overrides):
    payload = {
        "title": "Pitch Practice Night",
        "description": "Five-minute pitches with feedback",
        "date": (date.today() + timedelta(days=30)).isoformat(),
        "time": "18:30",
        "location": "StartupLab Hall B",
        "total_slots": 40,
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_create_event(client: AsyncClient, db_session, admin_headers):
    """Admin can create an event; all slots start free."""
    response = await client.post("/api/v1/admin/events", json=_event_payload(), headers=admin_headers)
    assert response.status_code == 201
    data = response.json()
    assert data["title"] == "Pitch Practice Night"
    assert data["total_slots"] == 40
    assert data["available_slots"] == 40
    assert data["status"] == "published"
    assert len(await audit_entries(db_session, "event.create")) == 1


@pytest.mark.asyncio
async def test_create_event_clamps_available_slots(client: AsyncClient, admin_headers):
    response = await client.post(
        "/api/v1/admin/events", json=_event_payload(total_slots=5, available_slots=9), headers=admin_headers
    )
    assert response.status_code == 201
    assert response.json()["available_slots"] == 5


@pytest.mark.asyncio
async def test_create_event_requires_admin(client: AsyncClient, attendee_headers):
    response = await client.post("/api/v1/admin/events", json=_event_payload(), headers=attendee_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_create_event_unauthenticated(client: AsyncClient):
    response = await client.post("/api/v1/admin/events", json=_event_payload())
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_create_event_invalid_slots(client: AsyncClient, admin_headers):
    """Zero slots is rejected as a bad request."""
    response = await client.post("/api/v1/admin/events", json=_event_payload(total_slots=0), headers=admin_headers)
    assert response.status_code == 400
    assert "error" in response.json()


@pytest.mark.asyncio
async def test_update_lowering_total_clamps_available(client: AsyncClient, admin_headers, test_event):
    response = await client.patch(
        f"/api/v1/admin/events/{test_event.id}", json={"total_slots": 4}, headers=admin_headers
    )
    assert response.status_code == 200
    data = response.json()
    assert data["total_slots"] == 4
    assert data["available_slots"] == 4


@pytest.mark.asyncio
async def test_update_archived_event_is_404(client: AsyncClient, db_session, admin_headers):
    event = await make_event(db_session, deleted_at=datetime.now(timezone.utc))
    response = await client.patch(f"/api/v1/admin/events/{event.id}", json={"title": "Back again"}, headers=admin_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_empty_update_is_400(client: AsyncClient, admin_headers, test_event):
    response = await client.patch(f"/api/v1/admin/events/{test_event.id}", json={}, headers=admin_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_list_events(client: AsyncClient, db_session, test_event):
    """Only published, live events are listed."""
    await make_event(db_session, title="Draft Workshop", status="draft")
    response = await client.get("/api/v1/events")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert [e["title"] for e in data["events"]] == ["Founders Breakfast"]
    assert data["page"] == 1
    assert data["cached"] is False


@pytest.mark.asyncio
async def test_list_events_pagination(client: AsyncClient, test_event):
    response = await client.get("/api/v1/events?page=1&page_size=5")
    assert response.status_code == 200
    assert response.json()["page_size"] == 5


@pytest.mark.asyncio
async def test_get_event(client: AsyncClient, test_event):
    response = await client.get(f"/api/v1/events/{test_event.id}")
    assert response.status_code == 200
    data = response.json()
    assert data["id"] == test_event.id
    assert data["title"] == "Founders Breakfast"
    assert data["available_slots"] == 10


@pytest.mark.asyncio
async def test_get_event_not_found(client: AsyncClient):
    response = await client.get("/api/v1/events/99999")
    assert response.status_code == 404
    assert response.json() == {"error": "Event 99999 not found"}
