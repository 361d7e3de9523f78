"""
Locust Load Test Suite

Users live in the external auth service, so the load test signs its own
tokens for users that already exist in the database:

  LOAD_ADMIN_ID=1 LOAD_ATTENDEE_IDS=2,3,4,... SECRET_KEY=... locust -f locustfile.py

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Test over-approval
  locust -f locustfile.py --tags bulk         # Test all-or-nothing bulk approve
  locust -f locustfile.py --tags throughput   # Test cache
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests
"""

import os
import random
from datetime import date, timedelta

from locust import HttpUser, task, between, tag, events
from locust.clients import HttpSession

from eventhub.core.security import create_access_token

ADMIN_ID = int(os.environ.get("LOAD_ADMIN_ID", "1"))
ATTENDEE_IDS = [int(i) for i in os.environ.get("LOAD_ATTENDEE_IDS", "").split(",") if i.strip()]
SLOTS = int(os.environ.get("LOAD_EVENT_SLOTS", "10"))

# Shared state
EVENT_IDS = []
CONCURRENCY_EVENT_ID = None


def admin_headers():
    token = create_access_token(data={"sub": str(ADMIN_ID), "role": "admin"})
    return {"Authorization": f"Bearer {token}"}


def attendee_headers(user_id):
    token = create_access_token(data={"sub": str(user_id), "role": "attendee"})
    return {"Authorization": f"Bearer {token}"}


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    """Setup: one small event and a pending registration per attendee."""
    global CONCURRENCY_EVENT_ID
    print("\n" + "=" * 60)
    print("SETUP: Creating concurrency test event...")
    print("=" * 60)

    client = HttpSession(base_url=environment.host, request_event=environment.events.request, user=None)

    resp = client.post(
        "/api/v1/admin/events",
        json={
            "title": "Concurrency Test Event",
            "description": f"{SLOTS} slots only",
            "date": (date.today() + timedelta(days=30)).isoformat(),
            "location": "Test",
            "total_slots": SLOTS,
        },
        headers=admin_headers(),
    )
    if resp.status_code != 201:
        print(f"\nCould not create event: {resp.status_code} {resp.text}\n")
        return
    CONCURRENCY_EVENT_ID = resp.json()["id"]

    for user_id in ATTENDEE_IDS:
        client.post(
            "/api/v1/registrations",
            json={"eventId": CONCURRENCY_EVENT_ID},
            headers=attendee_headers(user_id),
        )
    print(f"\nCreated event {CONCURRENCY_EVENT_ID} with {SLOTS} slots, {len(ATTENDEE_IDS)} registrations\n")


def _pending_ids(client, headers):
    resp = client.get(
        f"/api/v1/admin/registrations?event_id={CONCURRENCY_EVENT_ID}&status=pending",
        headers=headers,
        name="/api/v1/admin/registrations",
    )
    if resp.status_code != 200:
        return []
    return [r["id"] for r in resp.json()]


class ConcurrencyAdmin(HttpUser):
    """
    TEST 1: Concurrency - many admins approving against a few slots

    Run: locust -f locustfile.py --tags concurrency -u 50 -r 25 --run-time 30s

    After test, verify:
      SELECT COUNT(*) FROM registrations WHERE event_id = X AND status = 'confirmed';
    Should be <= LOAD_EVENT_SLOTS, and events.available_slots should never go negative.
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.headers = admin_headers()

    @tag("concurrency")
    @task
    def approve_one(self):
        """All admins fight for the same slots."""
        if not CONCURRENCY_EVENT_ID:
            return
        pending = _pending_ids(self.client, self.headers)
        if not pending:
            return

        with self.client.patch(
            f"/api/v1/admin/registrations/{random.choice(pending)}",
            json={"status": "confirmed"},
            headers=self.headers,
            name="/api/v1/admin/registrations/{id}",
            catch_response=True,
        ) as resp:
            if resp.status_code == 200:
                resp.success()
            elif resp.status_code == 500 and "No available slots" in resp.text:
                resp.success()  # Expected: full
            elif resp.status_code == 400:
                resp.success()  # Expected: another admin approved it first
            else:
                resp.failure(f"Unexpected: {resp.status_code}")

    @tag("bulk")
    @task
    def approve_batch(self):
        """Batches either fit entirely or change nothing."""
        if not CONCURRENCY_EVENT_ID:
            return
        pending = _pending_ids(self.client, self.headers)
        if not pending:
            return

        batch = random.sample(pending, min(len(pending), random.randint(1, 5)))
        with self.client.post(
            "/api/v1/admin/registrations/bulk",
            json={"ids": batch, "action": "approve"},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            if resp.status_code == 200:
                resp.success()
            elif resp.status_code == 500 and "Not enough available slots" in resp.text:
                resp.success()
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - Cache effectiveness

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. Without Redis: REDIS_ENABLED=false, run again

    Compare:
      - Avg response time
      - Requests/sec
      - P95/P99 latency
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_events_cached(self):
        """Hammer the cached endpoint."""
        page = random.randint(1, 5)
        resp = self.client.get(f"/api/v1/events?page={page}&page_size=20", name="/api/v1/events [cached]")
        if resp.status_code == 200:
            for event in resp.json().get("events", []):
                if event["id"] not in EVENT_IDS:
                    EVENT_IDS.append(event["id"])

    @tag("throughput", "read")
    @task(3)
    def get_event_detail(self):
        if EVENT_IDS:
            self.client.get(f"/api/v1/events/{random.choice(EVENT_IDS)}", name="/api/v1/events/{id}")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - Bad input handling

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s

    System should NOT crash, return proper error codes.
    """
    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.admin = admin_headers()
        self.attendee = attendee_headers(random.choice(ATTENDEE_IDS)) if ATTENDEE_IDS else {}

    def _expect(self, method, url, codes, **kwargs):
        with self.client.request(method, url, catch_response=True, **kwargs) as resp:
            if resp.status_code in codes:
                resp.success()
            else:
                resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def register_missing_event(self):
        self._expect("POST", "/api/v1/registrations", [404], json={"eventId": 999999}, headers=self.attendee)

    @tag("edge")
    @task
    def unknown_bulk_action(self):
        self._expect(
            "POST", "/api/v1/admin/registrations/bulk", [400],
            json={"ids": [1], "action": "archive"}, headers=self.admin,
        )

    @tag("edge")
    @task
    def oversized_batch(self):
        self._expect(
            "POST", "/api/v1/admin/registrations/bulk", [400],
            json={"ids": list(range(1, 60)), "action": "approve"}, headers=self.admin,
        )

    @tag("edge")
    @task
    def unknown_status(self):
        self._expect(
            "PATCH", "/api/v1/admin/registrations/1", [400],
            json={"status": "maybe"}, headers=self.admin,
        )

    @tag("edge")
    @task
    def malformed_json(self):
        self._expect("POST", "/api/v1/registrations", [400], data="not json at all", headers=self.attendee)

    @tag("edge")
    @task
    def attendee_calls_admin_endpoint(self):
        self._expect(
            "POST", "/api/v1/admin/registrations/bulk", [403],
            json={"ids": [1], "action": "approve"}, headers=self.attendee,
        )

    @tag("edge")
    @task
    def missing_auth(self):
        self._expect("POST", "/api/v1/registrations", [401], json={"eventId": 1})
