"""
Locust Load Test Suite

Run scenarios:
  locust -f locustfile.py --tags concurrency  # Test overbooking
  locust -f locustfile.py --tags throughput   # Test journey listing cache
  locust -f locustfile.py --tags edge         # Test bad input
  locust -f locustfile.py                     # All tests

The administrator credentials must match the server's ADMIN_USERNAME and
ADMIN_PASSWORD (defaults admin / admin123).
"""

import os
import random
import string
from datetime import date, timedelta

from locust import HttpUser, task, between, tag, events

ADMIN_AUTH = (
    os.getenv("ADMIN_USERNAME", "admin"),
    os.getenv("ADMIN_PASSWORD", "admin123"),
)

# Shared state
SCHEDULE_IDS = []
CONCURRENCY_SCHEDULE_ID = None


def random_username():
    return "u_" + "".join(random.choices(string.ascii_lowercase, k=8))


def register(client):
    """Register a fresh user and return its basic-auth pair."""
    username = random_username()
    password = "loadtest-password"
    client.post("/api/v1/auth/register", json={"username": username, "password": password})
    return (username, password)


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print("SETUP: Creating concurrency test train...")
    print("=" * 60)


class ConcurrencyUser(HttpUser):
    """
    TEST 1: Concurrency - 100 users -> 10 AC seats

    Run: locust -f locustfile.py --tags concurrency -u 100 -r 50 --run-time 30s

    After test, verify:
      SELECT SUM(num_seats) FROM bookings WHERE schedule_id = X AND seat_class = 'AC';
    Should be <= 10, and ac_seats_available + that sum == 10
    """
    wait_time = between(0, 0.1)

    def on_start(self):
        self.auth = register(self.client)

        if not CONCURRENCY_SCHEDULE_ID:
            train_number = "LT" + "".join(random.choices(string.digits, k=6))
            self.client.post("/api/v1/admin/trains", json={
                "train_number": train_number,
                "train_name": "Load Test Express",
                "source": "Origin",
                "destination": "Terminus",
                "departure_time": "06:00",
                "journey_duration": "04:30",
                "total_ac_seats": 10,
                "total_sleeper_seats": 0,
                "ac_fare": "100.00",
                "sleeper_fare": "0.00",
            }, auth=ADMIN_AUTH)
            resp = self.client.post("/api/v1/admin/schedules", json={
                "train_number": train_number,
                "departure_date": (date.today() + timedelta(days=30)).isoformat(),
            }, auth=ADMIN_AUTH)
            if resp.status_code == 201:
                globals()["CONCURRENCY_SCHEDULE_ID"] = resp.json()["schedule_id"]
                print(f"\nCreated schedule {CONCURRENCY_SCHEDULE_ID} with 10 AC seats\n")

    @tag("concurrency")
    @task
    def book_limited_seats(self):
        """All users fight for the same 10 seats."""
        if not CONCURRENCY_SCHEDULE_ID:
            return

        with self.client.post("/api/v1/bookings/",
            json={"schedule_id": CONCURRENCY_SCHEDULE_ID, "seat_class": "AC", "num_seats": 1},
            auth=self.auth,
            catch_response=True
        ) as resp:
            if resp.status_code == 201:
                resp.success()
            elif resp.status_code == 409:
                resp.success()  # Expected: sold out
            elif resp.status_code == 503:
                resp.success()  # Busy after retries; client may try again
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - Cache effectiveness

    Run twice:
      1. With Redis: locust -f locustfile.py --tags throughput -u 100 -r 20 --run-time 60s
      2. Without Redis: REDIS_ENABLED=false on the server, run again

    Compare avg response time, requests/sec, P95/P99 latency.
    """
    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def list_journeys_cached(self):
        resp = self.client.get("/api/v1/journeys/", name="/api/v1/journeys/ [cached]")
        if resp.status_code == 200:
            for journey in resp.json().get("journeys", []):
                if journey["schedule_id"] not in SCHEDULE_IDS:
                    SCHEDULE_IDS.append(journey["schedule_id"])

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
        self.auth = register(self.client)

    def _expect(self, expected, **kwargs):
        with self.client.post("/api/v1/bookings/", catch_response=True, **kwargs) as resp:
            if resp.status_code in expected:
                resp.success()
            else:
                resp.failure(f"Expected {expected}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_schedule(self):
        self._expect([404], json={"schedule_id": 999999, "seat_class": "AC", "num_seats": 1}, auth=self.auth)

    @tag("edge")
    @task
    def non_positive_seats(self):
        seats = random.choice([0, -5])
        self._expect([422], json={"schedule_id": 1, "seat_class": "AC", "num_seats": seats}, auth=self.auth)

    @tag("edge")
    @task
    def unknown_seat_class(self):
        self._expect([422], json={"schedule_id": 1, "seat_class": "Luxury", "num_seats": 1}, auth=self.auth)

    @tag("edge")
    @task
    def malformed_json(self):
        self._expect([422], data="not json at all", auth=self.auth)

    @tag("edge")
    @task
    def missing_auth(self):
        self._expect([401], json={"schedule_id": 1, "seat_class": "AC", "num_seats": 1})


class RealisticUser(HttpUser):
    """
    TEST 4: Realistic mixed workload

    Run: locust -f locustfile.py -u 200 -r 20 --run-time 120s

    Mostly browsing, some bookings, occasional cancellations.
    """
    wait_time = between(1, 3)

    def on_start(self):
        self.auth = register(self.client)
        self.tickets = []

    @task(50)
    def browse_journeys(self):
        resp = self.client.get("/api/v1/journeys/")
        if resp.status_code == 200:
            for journey in resp.json().get("journeys", []):
                if journey["schedule_id"] not in SCHEDULE_IDS:
                    SCHEDULE_IDS.append(journey["schedule_id"])

    @task(10)
    def book_seats(self):
        if not SCHEDULE_IDS:
            return
        resp = self.client.post("/api/v1/bookings/", json={
            "schedule_id": random.choice(SCHEDULE_IDS),
            "seat_class": random.choice(["AC", "Sleeper"]),
            "num_seats": random.randint(1, 3),
        }, auth=self.auth)
        if resp.status_code == 201:
            self.tickets.append(resp.json()["ticket_id"])

    @task(5)
    def my_bookings(self):
        self.client.get("/api/v1/bookings/", auth=self.auth)

    @task(3)
    def cancel_booking(self):
        if self.tickets:
            ticket_id = self.tickets.pop(random.randrange(len(self.tickets)))
            self.client.delete(f"/api/v1/bookings/{ticket_id}", auth=self.auth,
                name="/api/v1/bookings/{ticket_id}")
