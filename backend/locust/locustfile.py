"""
Locust Load Test Suite

Expects a seeded database: one scheduled flight (LOAD_FLIGHT_ID) and client
rows with ids 1..LOAD_CLIENT_COUNT. Tokens are minted locally with the
service's SECRET_KEY, the same way the external auth service would.

Run scenarios:
  locust -f locustfile.py --tags contention   # Many clients, few seats
  locust -f locustfile.py --tags throughput   # Seat map cache
  locust -f locustfile.py --tags edge         # Bad input
  locust -f locustfile.py                     # All tests
"""

import os
import random
import string

from locust import HttpUser, between, events, tag, task

from airline_booking.core.security import create_access_token

FLIGHT_ID = int(os.getenv("LOAD_FLIGHT_ID", "1"))
CLIENT_COUNT = int(os.getenv("LOAD_CLIENT_COUNT", "50"))
CONTESTED_SEATS = int(os.getenv("LOAD_CONTESTED_SEATS", "10"))

# Shared state
SEAT_IDS = []


def random_passenger(seat_id: int) -> dict:
    return {
        "seat_id": seat_id,
        "first_name": "Load",
        "last_name": "Tester",
        "date_of_birth": "1990-05-17",
        "passport_no": "LT" + "".join(random.choices(string.digits, k=7)),
        "nationality": "Testland",
    }


def auth_headers() -> dict:
    token = create_access_token({"sub": str(random.randint(1, CLIENT_COUNT))}, expires_minutes=120)
    return {"Authorization": f"Bearer {token}"}


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    print("\n" + "=" * 60)
    print(f"SETUP: contending for {CONTESTED_SEATS} seats on flight {FLIGHT_ID}")
    print("=" * 60)


class SeatContentionUser(HttpUser):
    """
    TEST 1: Contention - many clients, a handful of seats

    Run: locust -f locustfile.py --tags contention -u 100 -r 50 --run-time 30s

    After test, verify no seat is held twice:
      SELECT seat_id, COUNT(*) FROM passengers
      WHERE flight_id = X AND holds_seat GROUP BY seat_id HAVING COUNT(*) > 1;
    Should return no rows.
    """

    wait_time = between(0, 0.1)

    def on_start(self):
        self.headers = auth_headers()
        if not SEAT_IDS:
            resp = self.client.get(f"/api/v1/flights/{FLIGHT_ID}/seats")
            if resp.status_code == 200:
                SEAT_IDS.extend(seat["seat_id"] for seat in resp.json()["seats"][:CONTESTED_SEATS])
                print(f"\n✓ Contested seats: {SEAT_IDS}\n")

    @tag("contention")
    @task
    def book_contested_seat(self):
        """All users fight for the same seats."""
        if not SEAT_IDS:
            return

        with self.client.post(
            "/api/v1/bookings/",
            json={"flight_id": FLIGHT_ID, "passengers": [random_passenger(random.choice(SEAT_IDS))]},
            headers=self.headers,
            name="/api/v1/bookings/ [contended]",
            catch_response=True,
        ) as resp:
            if resp.status_code in (201, 409):
                resp.success()  # 409: SEAT_CONFLICT is the expected loser outcome
            else:
                resp.failure(f"Unexpected: {resp.status_code}")


class ThroughputUser(HttpUser):
    """
    TEST 2: Throughput - seat map cache effectiveness

    Run twice, with REDIS_ENABLED=true and false, and compare P95/P99 latency.
    """

    wait_time = between(0.1, 0.5)

    @tag("throughput", "read")
    @task(10)
    def seat_map(self):
        self.client.get(f"/api/v1/flights/{FLIGHT_ID}/seats", name="/api/v1/flights/{id}/seats [cached]")

    @tag("throughput", "read")
    @task(3)
    def seat_summary(self):
        self.client.get(f"/api/v1/flights/{FLIGHT_ID}/seats/summary", name="/api/v1/flights/{id}/seats/summary")

    @tag("throughput")
    @task(1)
    def health_check(self):
        self.client.get("/health")


class EdgeCaseUser(HttpUser):
    """
    TEST 3: Edge cases - the service must answer with proper error codes, never 500.

    Run: locust -f locustfile.py --tags edge -u 20 -r 5 --run-time 30s
    """

    wait_time = between(0.5, 1.5)

    def on_start(self):
        self.headers = auth_headers()

    def _expect(self, resp, codes):
        if resp.status_code in codes:
            resp.success()
        else:
            resp.failure(f"Expected {codes}, got {resp.status_code}")

    @tag("edge")
    @task
    def unknown_flight(self):
        with self.client.post(
            "/api/v1/bookings/",
            json={"flight_id": 999999, "passengers": [random_passenger(1)]},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self._expect(resp, (404,))

    @tag("edge")
    @task
    def no_passengers(self):
        with self.client.post(
            "/api/v1/bookings/",
            json={"flight_id": FLIGHT_ID, "passengers": []},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self._expect(resp, (422,))

    @tag("edge")
    @task
    def invalid_passenger(self):
        passenger = random_passenger(1)
        passenger["passport_no"] = "x"
        with self.client.post(
            "/api/v1/bookings/",
            json={"flight_id": FLIGHT_ID, "passengers": [passenger]},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self._expect(resp, (422,))

    @tag("edge")
    @task
    def negative_payment(self):
        with self.client.post(
            "/api/v1/payments/",
            json={"booking_id": 1, "amount": "-5", "currency": "USD"},
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self._expect(resp, (422,))

    @tag("edge")
    @task
    def malformed_json(self):
        with self.client.post(
            "/api/v1/bookings/",
            data="not json at all",
            headers=self.headers,
            catch_response=True,
        ) as resp:
            self._expect(resp, (400, 422))

    @tag("edge")
    @task
    def missing_auth(self):
        with self.client.post(
            "/api/v1/bookings/",
            json={"flight_id": FLIGHT_ID, "passengers": [random_passenger(1)]},
            catch_response=True,
        ) as resp:
            self._expect(resp, (401,))
