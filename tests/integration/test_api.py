"""Integration tests for API endpoints"""

import json
import pytest
from datetime import date
from decimal import Decimal
from fastapi.testclient import TestClient
from logbook_ledger.api.dependencies import get_llm_client
from logbook_ledger.domain.exceptions import LLMUnavailable
from logbook_ledger.domain.models import Direction
from logbook_ledger.infrastructure.database.models import Transaction
from logbook_ledger.infrastructure.database.repositories import CategoryRepository, TransactionRepository

pytestmark = pytest.mark.integration


def model_record(day: str, name: str, amount, transaction_type: int, code: str) -> dict:
    return {
        "transaction_date": day,
        "transaction_name": name,
        "amount": amount,
        "transaction_type": transaction_type,
        "code": code,
        "currency_id": 1,
        "user_id": "user_1",
        "created_at": "current ISO timestamp",
        "updated_at": "current ISO timestamp",
    }


def upload(client: TestClient, pdf: bytes, user_id: str = "user_1", content_type: str = "application/pdf"):
    return client.post(
        f"/v1/statements/process?user_id={user_id}",
        files={"bank_statement": ("statement.pdf", pdf, content_type)},
    )


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "logbook_statement_ingestions_total" in response.text


def test_request_id_is_echoed(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


def test_process_statement_returns_cycle_candidates(client: TestClient, make_user, fake_llm, statement_pdf):
    """Model returns a pre-cycle row as well; only the in-cycle row comes back"""
    make_user("user_1", start_day=25)
    fake_llm.completion = "```json\n" + json.dumps(
        [
            model_record("2024-02-24", "Zomato", 450.0, 0, "UPI/zomatoonlineord/ZomatoOnline Ord DR"),
            model_record("2024-03-01", "TATA CONSULTANCY SERVICES", "85,000.00", 1,
                         "NEFT-TATA CONSULTANCY SERVICES LIMITED CR"),
        ],
        indent=2,
    ) + "\n```"

    response = upload(client, statement_pdf)

    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Bank statement processed successfully"
    assert len(data["transactions"]) == 1
    candidate = data["transactions"][0]
    assert candidate["transaction_date"] == "2024-03-01"
    assert candidate["transaction_name"] == "TATA CONSULTANCY SERVICES"
    assert Decimal(candidate["amount"]) == Decimal("85000.00")
    assert candidate["transaction_type"] == 1
    assert candidate["user_id"] == "user_1"
    assert candidate["created_at"].startswith("2024-03-10T12:00:00")

    # Prompt was built from the PDF's text, one statement row per line
    prompt = fake_llm.prompts[0]
    assert "25th of the month" in prompt.user
    assert "2024-03-01 NEFT-TATA CONSULTANCY SERVICES LIMITED CR 85,000.00" in prompt.user


def test_process_statement_does_not_persist(client: TestClient, make_user, fake_llm, statement_pdf, db):
    make_user("user_1", start_day=25)
    fake_llm.completion = json.dumps([model_record("2024-03-01", "Amazon", 10, 0, "UPI/amazon DR")])

    upload(client, statement_pdf)

    assert db.query(Transaction).count() == 0


def test_process_statement_rejects_non_pdf(client: TestClient, make_user, fake_llm):
    make_user("user_1", start_day=25)

    response = upload(client, b"date,amount\n2024-03-01,10", content_type="text/csv")

    assert response.status_code == 415
    assert response.json()["detail"]["reason"] == "unsupported_media_type"
    assert fake_llm.prompts == []


def test_process_statement_corrupt_pdf(client: TestClient, make_user):
    make_user("user_1", start_day=25)

    response = upload(client, b"%PDF-1.4 truncated garbage")

    assert response.status_code == 422
    assert response.json()["detail"] == {"message": "Could not process statement", "reason": "invalid_document"}


def test_process_statement_llm_unavailable(client: TestClient, make_user, fake_llm, statement_pdf):
    make_user("user_1", start_day=25)
    fake_llm.error = LLMUnavailable("LLM request timed out after 60.0s")

    response = upload(client, statement_pdf)

    assert response.status_code == 503
    assert response.json()["detail"]["reason"] == "llm_unavailable"


def test_process_statement_unparsable_response(client: TestClient, make_user, fake_llm, statement_pdf):
    make_user("user_1", start_day=25)
    fake_llm.completion = "I'm sorry, I can't help with that."

    response = upload(client, statement_pdf)

    assert response.status_code == 502
    assert response.json()["detail"]["reason"] == "unparsable_model_response"


def test_process_statement_cycle_not_configured(client: TestClient, make_user, fake_llm, statement_pdf):
    make_user("user_1", start_day=None)

    response = upload(client, statement_pdf)

    assert response.status_code == 409
    assert response.json()["detail"]["reason"] == "cycle_not_configured"
    assert fake_llm.prompts == []


def test_process_statement_unknown_user(client: TestClient, statement_pdf):
    response = upload(client, statement_pdf, user_id="ghost")
    assert response.status_code == 404


def test_current_period_transactions(client: TestClient, make_user, db):
    make_user("user_1", start_day=25)
    groceries = CategoryRepository(db).get_or_create("Groceries")
    repo = TransactionRepository(db)
    for day, name in [(date(2024, 2, 24), "Before"), (date(2024, 2, 25), "First"), (date(2024, 3, 9), "Latest")]:
        repo.add_transaction(
            Transaction(
                user_id="user_1",
                category_id=groceries.id,
                transaction_date=day,
                transaction_name=name,
                amount=Decimal("10.00"),
                currency_id=1,
                transaction_type=int(Direction.DEBIT),
            )
        )
    db.commit()

    response = client.get("/v1/transactions/current-period?user_id=user_1")

    assert response.status_code == 200
    data = response.json()
    assert data["period_start"] == "2024-02-25"
    assert data["period_end"] == "2024-03-10"
    assert [t["transaction_name"] for t in data["transactions"]] == ["Latest", "First"]


def test_current_period_requires_cycle(client: TestClient, make_user):
    make_user("user_1", start_day=None)

    response = client.get("/v1/transactions/current-period?user_id=user_1")

    assert response.status_code == 409
    assert response.json()["detail"]["reason"] == "cycle_not_configured"


def test_category_aggregates_exclude_income(client: TestClient, make_user):
    make_user("user_1", start_day=5)
    client.put("/v1/transactions/income?user_id=user_1", json={"amount": 5000})

    response = client.get("/v1/transactions/category-aggregates?user_id=user_1")

    assert response.status_code == 200
    data = response.json()
    assert data["period_start"] == "2024-03-05"
    assert data["categories"] == []


def test_income_upsert_inserts_then_updates(client: TestClient, make_user, db):
    make_user("user_1", start_day=25)

    first = client.put("/v1/transactions/income?user_id=user_1", json={"amount": 5000})
    second = client.put("/v1/transactions/income?user_id=user_1", json={"amount": 5500.25})

    assert first.status_code == 200
    assert first.json()["action"] == "inserted"
    assert first.json()["period_start"] == "2024-02-25"
    assert second.json()["action"] == "updated"
    assert second.json()["transaction_id"] == first.json()["transaction_id"]
    assert db.query(Transaction).filter(Transaction.is_income.is_(True)).count() == 1


def test_income_upsert_rejects_negative_amount(client: TestClient, make_user):
    make_user("user_1", start_day=25)

    response = client.put("/v1/transactions/income?user_id=user_1", json={"amount": -1})

    assert response.status_code == 422


def test_income_upsert_unknown_user(client: TestClient):
    response = client.put("/v1/transactions/income?user_id=ghost", json={"amount": 10})
    assert response.status_code == 404


def test_configure_and_read_billing_cycle(client: TestClient, make_user):
    make_user("user_1", start_day=None)

    assert client.get("/v1/users/user_1/billing-cycle").status_code == 409

    response = client.put("/v1/users/user_1/billing-cycle", json={"start_day": 31})
    assert response.status_code == 200
    assert response.json() == {
        "user_id": "user_1",
        "start_day": 31,
        "period_start": "2024-02-29",
        "period_end": "2024-03-10",
    }

    response = client.get("/v1/users/user_1/billing-cycle")
    assert response.json()["period_start"] == "2024-02-29"


@pytest.mark.parametrize("start_day", [0, 32])
def test_configure_billing_cycle_validates_day(client: TestClient, make_user, start_day):
    make_user("user_1", start_day=None)

    response = client.put("/v1/users/user_1/billing-cycle", json={"start_day": start_day})

    assert response.status_code == 422


def test_configure_billing_cycle_unknown_user(client: TestClient):
    response = client.put("/v1/users/ghost/billing-cycle", json={"start_day": 5})
    assert response.status_code == 404


def test_process_statement_releases_db_transaction_before_llm_call(client: TestClient, make_user, statement_pdf, db):
    make_user("user_1", start_day=25)
    seen = []

    class RecordingLLMClient:
        async def complete(self, prompt):
            seen.append(db.in_transaction())
            return "[]"

    client.app.dependency_overrides[get_llm_client] = lambda: RecordingLLMClient()

    response = upload(client, statement_pdf)

    assert response.status_code == 200
    assert seen == [False]


def test_money_is_returned_without_float_rounding(client: TestClient, make_user, db):
    make_user("user_1", start_day=25)
    groceries = CategoryRepository(db).get_or_create("Groceries")
    TransactionRepository(db).add_transaction(
        Transaction(
            user_id="user_1",
            category_id=groceries.id,
            transaction_date=date(2024, 3, 1),
            transaction_name="Supermarket",
            amount=Decimal("85000.10"),
            currency_id=1,
            transaction_type=int(Direction.DEBIT),
        )
    )
    db.commit()

    income = client.put("/v1/transactions/income?user_id=user_1", json={"amount": "5500.25"})
    listed = client.get("/v1/transactions/current-period?user_id=user_1")

    assert Decimal(income.json()["amount"]) == Decimal("5500.25")
    amounts = {t["transaction_name"]: Decimal(t["amount"]) for t in listed.json()["transactions"]}
    assert amounts == {"Supermarket": Decimal("85000.10"), "Income": Decimal("5500.25")}
