"""Mini README: HTTP-level tests for the ledger API.

Structure:
    * build_client - wires the FastAPI app around an in-memory ledger and a
      controllable clock.
    * route tests - status codes and payloads for every endpoint, including
      the create -> stats -> transfer walkthrough.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Tuple

from fastapi.testclient import TestClient

from money_manager.errors import StoreError
from money_manager.interface import create_application
from money_manager.ledger import InMemoryTransactionStore, LedgerService

START = datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc)

LUNCH = {
    "title": "Lunch",
    "amount": 15,
    "type": "expense",
    "category": "Food",
    "division": "Personal",
}


class MutableClock:
    def __init__(self) -> None:
        self.now = START

    def __call__(self) -> datetime:
        return self.now


def build_client() -> Tuple[TestClient, MutableClock]:
    clock = MutableClock()
    service = LedgerService(InMemoryTransactionStore(), clock=clock)
    return TestClient(create_application(service)), clock


def test_health_endpoint() -> None:
    client, _ = build_client()

    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json()["status"] == "Server is healthy and running"


def test_create_stats_transfer_walkthrough() -> None:
    """Create an expense, check the totals, then transfer between divisions."""

    client, _ = build_client()

    created = client.post("/api/transactions", json=LUNCH)
    assert created.status_code == 201
    assert created.json()["amount"] == 15
    assert created.json()["id"]

    stats = client.get("/api/stats").json()
    assert stats["totalExpenses"] >= 15
    assert stats["totalBalance"] == stats["totalIncome"] - stats["totalExpenses"]

    transfer = client.post(
        "/api/transactions/transfer",
        json={"amount": 100, "fromDivision": "Office", "toDivision": "Personal"},
    )
    assert transfer.status_code == 201
    assert transfer.json() == {"message": "Transfer successful"}

    transfers = client.get("/api/transactions", params={"category": "Transfer"}).json()
    assert sorted((item["division"], item["type"]) for item in transfers) == [
        ("Office", "expense"),
        ("Personal", "income"),
    ]
    assert client.get("/api/stats").json()["count"] == 3


def test_create_rejects_invalid_payloads_with_400() -> None:
    client, _ = build_client()

    missing = client.post("/api/transactions", json={"title": "Lunch"})
    wrong_division = client.post("/api/transactions", json={**LUNCH, "division": "Garage"})
    not_json = client.post(
        "/api/transactions", content=b"{oops", headers={"content-type": "application/json"}
    )

    assert missing.status_code == 400
    assert "Missing required fields" in missing.json()["error"]
    assert wrong_division.status_code == 400
    assert not_json.status_code == 400
    assert client.get("/api/transactions").json() == []


def test_list_filters_and_orders_results() -> None:
    client, _ = build_client()
    client.post("/api/transactions", json={**LUNCH, "date": "2024-05-01T12:00:00Z"})
    client.post("/api/transactions", json={**LUNCH, "date": "2024-05-20T12:00:00Z"})
    client.post(
        "/api/transactions",
        json={**LUNCH, "type": "income", "division": "Office", "category": "Invoice"},
    )

    everything = client.get("/api/transactions", params={"division": "All"}).json()
    personal_may = client.get(
        "/api/transactions",
        params={
            "division": "Personal",
            "type": "expense",
            "startDate": "2024-05-10",
            "endDate": "2024-05-31",
        },
    ).json()

    assert [item["date"][:10] for item in everything] == ["2024-06-01", "2024-05-20", "2024-05-01"]
    assert [item["date"][:10] for item in personal_may] == ["2024-05-20"]


def test_list_rejects_unknown_type_filter() -> None:
    client, _ = build_client()

    response = client.get("/api/transactions", params={"type": "refund"})

    assert response.status_code == 400


def test_edit_within_window_returns_updated_record() -> None:
    client, clock = build_client()
    created = client.post("/api/transactions", json=LUNCH).json()
    clock.now = START + timedelta(hours=2)

    response = client.put(f"/api/transactions/{created['id']}", json={"amount": "22.5"})

    assert response.status_code == 200
    assert response.json()["amount"] == 22.5
    assert response.json()["title"] == "Lunch"


def test_edit_after_window_returns_403() -> None:
    client, clock = build_client()
    created = client.post("/api/transactions", json=LUNCH).json()
    clock.now = START + timedelta(hours=13)

    response = client.put(f"/api/transactions/{created['id']}", json={"amount": 1})

    assert response.status_code == 403
    assert "Edit window expired" in response.json()["error"]
    stored = client.get("/api/transactions").json()[0]
    assert stored["amount"] == 15


def test_edit_unknown_and_invalid_payloads() -> None:
    client, _ = build_client()
    created = client.post("/api/transactions", json=LUNCH).json()

    unknown = client.put("/api/transactions/txn_9999", json={"title": "Ghost"})
    invalid = client.put(f"/api/transactions/{created['id']}", json={"type": "refund"})

    assert unknown.status_code == 404
    assert invalid.status_code == 400


class UnreachableStore(InMemoryTransactionStore):
    """Store whose reads fail the way a lost database connection would."""

    def __init__(self, failure: Exception) -> None:
        super().__init__()
        self.failure = failure

    def find(self, criteria=None):
        raise self.failure


def test_out_of_range_dates_answer_400_with_json_error() -> None:
    client, _ = build_client()

    listing = client.get(
        "/api/transactions", params={"startDate": "2024-01-01", "endDate": "9999-12-31"}
    )
    created = client.post("/api/transactions", json={**LUNCH, "date": "0001-01-01T00:00:00+01:00"})

    assert listing.status_code == 400
    assert "out of range" in listing.json()["error"]
    assert created.status_code == 400
    assert "out of range" in created.json()["error"]


def test_store_failure_answers_500_with_json_error() -> None:
    service = LedgerService(UnreachableStore(StoreError("Store operation failed: connection lost")))
    client = TestClient(create_application(service))

    listing = client.get("/api/transactions")
    stats = client.get("/api/stats")

    assert listing.status_code == 500
    assert listing.json() == {"error": "Store operation failed: connection lost"}
    assert stats.status_code == 500


def test_unexpected_errors_still_answer_with_json_error() -> None:
    service = LedgerService(UnreachableStore(RuntimeError("driver crashed")))
    client = TestClient(create_application(service), raise_server_exceptions=False)

    response = client.get("/api/stats")

    assert response.status_code == 500
    assert response.json() == {"error": "driver crashed"}


def test_edit_at_twelve_hours_returns_403() -> None:
    client, clock = build_client()
    created = client.post("/api/transactions", json=LUNCH).json()
    clock.now = START + timedelta(hours=12)

    response = client.put(f"/api/transactions/{created['id']}", json={"title": "Brunch"})

    assert response.status_code == 403
