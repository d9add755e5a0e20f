"""API envelope tests against a stubbed database session."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "api"))

import uuid
from datetime import date, datetime
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from db.database import get_db
from main import app
from models import DeliveryDate, Franchise, SubOrder, SubscriptionOrder
from services.delivery_calendar import SCHEDULE_TZ
from services.subscription_lifecycle import ScheduleConfig, pause_delivery

WEEK = ["2024-01-01", "2024-01-02", "2024-01-03", "2024-01-04", "2024-01-05"]
MORNING = datetime(2024, 1, 2, 10, 0, tzinfo=SCHEDULE_TZ)
LATE = datetime(2024, 1, 2, 21, 0, tzinfo=SCHEDULE_TZ)


class _Result:
    def __init__(self, items):
        self.items = items

    def scalar_one_or_none(self):
        return self.items[0] if self.items else None

    def scalars(self):
        return self

    def all(self):
        return self.items

    def first(self):
        return self.items[0] if self.items else None


class _Session:
    """Answers each execute() with the next batch of rows, then with nothing."""

    def __init__(self, *batches):
        self.batches = list(batches)
        self.commits = 0

    async def execute(self, query):
        return _Result(list(self.batches.pop(0)) if self.batches else [])

    async def commit(self):
        self.commits += 1


@pytest.fixture
def client_with():
    def make(session):
        app.dependency_overrides[get_db] = lambda: session
        return TestClient(app)

    yield make
    app.dependency_overrides.clear()


def _subscription(franchise_id=None):
    sub_order = SubOrder(
        id=uuid.uuid4(), subscription_id=uuid.uuid4(), amount=499, start_date=date(2024, 1, 1),
        selected_type=1, days="mon-fri", remaining_days=5, status="Active",
        delivery_dates=[
            DeliveryDate(
                id=uuid.uuid4(), date=d, status="Pending", description="", rating=0,
                is_box_collected=False, is_box_cleaned=False,
            )
            for d in WEEK
        ],
    )
    return SubscriptionOrder(
        id=uuid.uuid4(), user_id=uuid.uuid4(), final_amount=499, total_amount=499,
        gst_amount=0, delivery_fees=0, platform_fees=0, address="12 MG Road",
        location_lat=12.97, location_lng=77.59, location_type="home",
        subscription_status="Active", payment_type="ONLINE",
        assigned_franchise_id=franchise_id or uuid.uuid4(),
        created_at=datetime(2023, 12, 30, 9, 0), orders=[sub_order],
    )


def _day(subscription, day):
    return next(e for e in subscription.orders[0].delivery_dates if e.date == day)


def test_health(client_with):
    resp = client_with(_Session()).get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


def test_missing_order_is_404_envelope(client_with):
    resp = client_with(_Session()).get(f"/api/subscription-orders/{uuid.uuid4()}")
    assert resp.status_code == 404
    body = resp.json()
    assert body["success"] is False
    assert body["error"] == "NOT_FOUND"


# ── Pause / resume ─────────────────────────────────────────

def test_pause_returns_makeup_date(client_with):
    subscription = _subscription()
    wed = _day(subscription, "2024-01-03")
    session = _Session([subscription], [])

    with patch("routers.subscription_orders.datetime") as clock:
        clock.now.return_value = MORNING
        resp = client_with(session).post(
            "/api/subscription-orders/pause",
            json={"user_id": str(subscription.user_id), "delivery_date_id": str(wed.id)},
        )

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["data"]["makeup_date"] == "2024-01-08"
    assert wed.status == "Paused"
    assert session.commits == 1


def test_pause_after_cutoff_is_rejected(client_with):
    subscription = _subscription()
    wed = _day(subscription, "2024-01-03")
    session = _Session([subscription], [])

    with patch("routers.subscription_orders.datetime") as clock:
        clock.now.return_value = LATE
        resp = client_with(session).post(
            "/api/subscription-orders/pause",
            json={"user_id": str(subscription.user_id), "delivery_date_id": str(wed.id)},
        )

    assert resp.status_code == 400
    assert resp.json()["error"] == "CUTOFF_EXCEEDED"
    assert session.commits == 0


def test_resume_drops_makeup_day(client_with):
    subscription = _subscription()
    wed = _day(subscription, "2024-01-03")
    pause_delivery(subscription, wed.id, MORNING, ScheduleConfig())
    session = _Session([subscription])

    resp = client_with(session).post(
        "/api/subscription-orders/resume",
        json={"user_id": str(subscription.user_id), "delivery_date_id": str(wed.id)},
    )

    assert resp.status_code == 200
    assert resp.json()["data"]["removed_date"] == "2024-01-08"
    assert len(subscription.orders[0].delivery_dates) == 5
    assert session.commits == 1


def test_delivery_update_cannot_pause(client_with):
    subscription = _subscription()
    wed = _day(subscription, "2024-01-03")
    session = _Session([subscription])

    resp = client_with(session).patch(
        f"/api/subscription-orders/deliveries/{wed.id}", json={"status": "Paused"},
    )

    assert resp.status_code == 400
    assert resp.json()["error"] == "INVALID_TRANSITION"
    assert wed.status == "Pending"
    assert session.commits == 0


# ── Bulk pause ─────────────────────────────────────────────

def test_pause_all_commits_each_order(client_with):
    a, b = _subscription(), _subscription()
    session = _Session([], [a, b])

    with patch("routers.subscription_orders.datetime") as clock:
        clock.now.return_value = MORNING
        resp = client_with(session).post(
            "/api/subscription-orders/pause-all", json={"date": "2024-01-03", "franchise_ids": ["all"]},
        )

    assert resp.status_code == 200
    assert resp.json()["data"] == {"date": "2024-01-03", "paused": 2, "orders": 2}
    assert session.commits == 2
    assert len(a.orders[0].delivery_dates) == 6


def test_pause_all_filters_by_franchise(client_with):
    franchise_id = uuid.uuid4()
    mine, other = _subscription(franchise_id), _subscription()
    session = _Session([], [mine, other])

    with patch("routers.subscription_orders.datetime") as clock:
        clock.now.return_value = MORNING
        resp = client_with(session).post(
            "/api/subscription-orders/pause-all",
            json={"date": "2024-01-03", "franchise_ids": [str(franchise_id)]},
        )

    assert resp.status_code == 200
    assert resp.json()["data"]["orders"] == 1
    assert _day(mine, "2024-01-03").status == "Paused"
    assert _day(other, "2024-01-03").status == "Pending"
    assert session.commits == 1


def test_pause_all_rejects_non_uuid_franchise(client_with):
    session = _Session([])
    resp = client_with(session).post(
        "/api/subscription-orders/pause-all",
        json={"date": "2024-01-03", "franchise_ids": ["north-branch"]},
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "INVALID_INPUT"
    assert session.commits == 0


def test_pause_all_nothing_matches(client_with):
    with patch("routers.subscription_orders.datetime") as clock:
        clock.now.return_value = MORNING
        resp = client_with(_Session([], [])).post(
            "/api/subscription-orders/pause-all", json={"date": "2024-01-03", "franchise_ids": ["all"]},
        )
    assert resp.status_code == 404
    assert resp.json()["error"] == "NOT_FOUND"


def test_bulk_pause_rejects_bad_date(client_with):
    resp = client_with(_Session()).post(
        "/api/subscription-orders/pause-all", json={"date": "03/01/2024", "franchise_ids": ["all"]},
    )
    assert resp.status_code == 422


# ── Order status / plan lookup ─────────────────────────────

def test_update_subscription_status(client_with):
    subscription = _subscription()
    session = _Session([subscription])

    resp = client_with(session).patch(
        f"/api/subscription-orders/{subscription.id}/status", json={"status": "Inactive"},
    )

    assert resp.status_code == 200
    assert resp.json()["data"]["subscription_status"] == "Inactive"
    assert session.commits == 1


def test_update_subscription_status_rejects_unknown(client_with):
    resp = client_with(_Session()).patch(
        f"/api/subscription-orders/{uuid.uuid4()}/status", json={"status": "Paused"},
    )
    assert resp.status_code == 422


def test_orders_by_subscription_plan(client_with):
    subscription = _subscription()
    plan_id = subscription.orders[0].subscription_id

    resp = client_with(_Session([subscription])).get(f"/api/subscription-orders/subscription/{plan_id}")

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert [o["id"] for o in data] == [str(subscription.id)]
    assert data[0]["orders"][0]["subscription_id"] == str(plan_id)


# ── Franchises ─────────────────────────────────────────────

def test_no_franchise_for_location(client_with):
    resp = client_with(_Session()).post(
        "/api/franchises/by-location", json={"user_lat": 12.95, "user_lng": 77.65},
    )
    assert resp.status_code == 404
    assert resp.json()["error"] == "NO_FRANCHISE_AVAILABLE"


def test_franchise_by_location(client_with):
    franchise = Franchise(
        id=uuid.uuid4(), name="Indiranagar", city_name="Bengaluru", branch_name="HAL 2nd Stage",
        location=None, total_delivery_radius=20.0, free_delivery_radius=10.0, charge_per_extra_km=8.0,
        polygon_coordinates=[
            {"lat": 12.90, "lng": 77.60}, {"lat": 12.90, "lng": 77.70},
            {"lat": 13.00, "lng": 77.70}, {"lat": 13.00, "lng": 77.60},
        ],
    )
    resp = client_with(_Session([franchise])).post(
        "/api/franchises/by-location", json={"user_lat": 12.95, "user_lng": 77.65},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["data"][0]["franchise"] == "Indiranagar"
    assert body["data"][0]["charge"] == 0.0
