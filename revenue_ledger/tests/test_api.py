"""
HTTP tests for the ledger API.

Each test gets a fresh LedgerService through a dependency override.
"""

import logging
from decimal import Decimal
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

from revenue_ledger.api import app, get_ledger_service
from revenue_ledger.config import Settings
from revenue_ledger.service import LedgerService


CREATOR_ID = "550e8400-e29b-41d4-a716-446655440000"
CAMPAIGN_ID = "33333333-3333-3333-3333-333333333333"


@pytest.fixture
def service():
    return LedgerService(settings=Settings(MIN_PAYOUT_THRESHOLD=Decimal("10.00"), SEED_DEMO_DATA=True))


@pytest.fixture
def client(service):
    app.dependency_overrides[get_ledger_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def accrue(client, amount="25.00", source="CAMPAIGN_SUCCESS"):
    return client.post("/revenue", json={
        "account_id": CREATOR_ID,
        "campaign_id": CAMPAIGN_ID,
        "amount": amount,
        "source": source,
    })


class TestRevenueEndpoints:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_add_revenue_and_read_earnings(self, client):
        response = accrue(client)
        assert response.status_code == 201
        assert Decimal(response.json()["entry"]["amount"]) == Decimal("25.00")

        response = client.get(f"/creators/{CREATOR_ID}/revenue")
        assert response.status_code == 200
        earnings = response.json()["earnings"]
        assert Decimal(earnings["total_earnings"]) == Decimal("25.00")
        assert Decimal(earnings["available_for_payout"]) == Decimal("25.00")
        assert response.json()["stats"] is None

    def test_revenue_with_stats(self, client):
        accrue(client)

        response = client.get(f"/creators/{CREATOR_ID}/revenue", params={"stats": "true"})

        assert response.status_code == 200
        stats = response.json()["stats"]
        assert Decimal(stats["last_month_earnings"]) == Decimal("25.00")
        assert stats["trend_percentage"] == 0.0

    def test_invalid_source_is_bad_request(self, client):
        response = accrue(client, source="MERCH")
        assert response.status_code == 400

    def test_too_many_decimals_is_bad_request(self, client):
        response = accrue(client, amount="1.999")
        assert response.status_code == 400

    def test_unknown_creator(self, client):
        response = client.get(f"/creators/{uuid4()}/revenue")
        assert response.status_code == 404

    def test_breakdown_includes_campaign_title(self, client):
        accrue(client)

        response = client.get(f"/creators/{CREATOR_ID}/revenue/breakdown")

        assert response.status_code == 200
        assert response.json()[0]["campaign_title"] == "Bring Back Vinyl Sleeves"


class TestPayoutEndpoints:

    def test_payout_lifecycle(self, client):
        accrue(client)

        response = client.post(f"/creators/{CREATOR_ID}/payouts", json={
            "amount": "25.00",
            "bank_details": {"bank_name": "Northbank", "account_number": "12345678"},
        })
        assert response.status_code == 201
        payout = response.json()["payout"]
        payout_id = payout["id"]
        assert payout["status"] == "PENDING"
        assert payout["bank_details"]["masked_account_number"] == "****5678"

        pending = client.get("/payouts/pending").json()
        assert [p["id"] for p in pending] == [payout_id]

        assert client.post(f"/payouts/{payout_id}/start").status_code == 200
        response = client.post(f"/payouts/{payout_id}/complete")
        assert response.status_code == 200
        assert response.json()["payout"]["status"] == "COMPLETED"

        # A second completion is a conflict, not a retry
        assert client.post(f"/payouts/{payout_id}/complete").status_code == 409

        earnings = client.get(f"/creators/{CREATOR_ID}/revenue").json()["earnings"]
        assert Decimal(earnings["total_paid"]) == Decimal("25.00")
        assert Decimal(earnings["total_pending"]) == Decimal("0.00")

        history = client.get(f"/creators/{CREATOR_ID}/payouts").json()
        assert len(history) == 1

    def test_fail_releases_funds(self, client):
        accrue(client)
        payout_id = client.post(f"/creators/{CREATOR_ID}/payouts", json={"amount": "25.00"}).json()["payout"]["id"]

        response = client.post(f"/payouts/{payout_id}/fail", json={"reason": "bank rejected"})

        assert response.status_code == 200
        assert response.json()["payout"]["notes"] == "bank rejected"
        earnings = client.get(f"/creators/{CREATOR_ID}/revenue").json()["earnings"]
        assert Decimal(earnings["available_for_payout"]) == Decimal("25.00")

    def test_below_threshold_and_overdraw_are_bad_requests(self, client):
        accrue(client)

        assert client.post(f"/creators/{CREATOR_ID}/payouts", json={"amount": "5.00"}).status_code == 400
        assert client.post(f"/creators/{CREATOR_ID}/payouts", json={"amount": "30.00"}).status_code == 400

    def test_unknown_payout_and_creator(self, client):
        missing = uuid4()

        assert client.get(f"/payouts/{missing}").status_code == 404
        assert client.post(f"/payouts/{missing}/start").status_code == 404
        assert client.post(f"/creators/{uuid4()}/payouts", json={"amount": "10.00"}).status_code == 404

    def test_complete_pending_is_conflict(self, client, caplog):
        caplog.set_level(logging.WARNING)
        accrue(client)
        payout_id = client.post(f"/creators/{CREATOR_ID}/payouts", json={"amount": "10.00"}).json()["payout"]["id"]

        assert client.post(f"/payouts/{payout_id}/complete").status_code == 409

        warnings = [r for r in caplog.records if r.levelno == logging.WARNING and payout_id in r.getMessage()]
        assert len(warnings) == 1

    def test_reconcile(self, client, service):
        accrue(client)

        response = client.post(f"/creators/{CREATOR_ID}/reconcile")

        assert response.status_code == 200
        assert response.json()["consistent"] is True
        assert service.get_account(UUID(CREATOR_ID)).total_earnings == Decimal("25.00")

    def test_reconcile_unknown_creator(self, client):
        response = client.post(f"/creators/{uuid4()}/reconcile")
        assert response.status_code == 404

    def test_unknown_creator_views(self, client):
        stranger = uuid4()

        assert client.get(f"/creators/{stranger}/revenue/breakdown").status_code == 404
        assert client.get(f"/creators/{stranger}/revenue/stats").status_code == 404
        assert client.get(f"/creators/{stranger}/payouts").status_code == 404
