"""Tests for the FastAPI transport."""

import pytest
from fastapi.testclient import TestClient

from fo_engine.api import endpoints
from fo_engine.engine import FOQualificationEngine
from fo_engine.models.schemas import QualifyRequest

from conftest import FO_TEXT, NEUTRAL_TEXT, WEALTH_TEXT, ScriptedBackend, classification_json, score_json


@pytest.fixture()
def client():
    engine = FOQualificationEngine(
        classification_backend=ScriptedBackend(classification_json("SERVICE_PROVIDER", "UNKNOWN", 0.8)),
        scoring_backend=ScriptedBackend(score_json(7, 0.8, "APPROVED")),
    )
    endpoints.set_default_engine(engine)
    yield TestClient(endpoints.app)
    endpoints.set_default_engine(None)


def test_root_lists_endpoints(client):
    body = client.get("/").json()
    assert body["service"] == "FO Qualification Engine"
    assert "Qualify" in body["endpoints"]


def test_health(client):
    body = client.get("/api/health").json()
    assert body["status"] == "healthy"
    assert "llm_configured" in body


def test_firewall_endpoint(client):
    response = client.post("/api/fo/firewall", json={"company_name": "Summit", "company_text": WEALTH_TEXT})
    assert response.status_code == 200
    body = response.json()
    assert body["decision"] == "REJECT"
    assert body["entity_type"] == "WEALTH_MANAGER"
    assert body["cost"] == "free"


def test_classify_endpoint(client):
    response = client.post("/api/fo/classify", json={"company_name": "Acme", "company_text": NEUTRAL_TEXT})
    body = response.json()
    assert body["entity_type"] == "SERVICE_PROVIDER"
    assert body["source"] == "llm_classification"


def test_qualify_endpoint(client):
    response = client.post(
        "/api/fo/qualify",
        json={"company_name": "Smith Family Office", "company_text": FO_TEXT, "geography": "Texas"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["fo_status"] == "APPROVED"
    assert body["score"]["match_score"] == 7
    assert body["total_cost"] == "free + gemini_call"


def test_qualify_requires_name(client):
    response = client.post("/api/fo/qualify", json={"company_name": "  ", "company_text": FO_TEXT})
    assert response.status_code == 422


def test_qualify_validates_body(client):
    response = client.post("/api/fo/qualify", json={"company_text": FO_TEXT})
    assert response.status_code == 422


def test_batch_endpoint_with_markdown(client):
    payload = {
        "companies": [
            {"company_name": "Summit", "company_text": WEALTH_TEXT},
            {"company_name": "Smith Family Office", "company_text": FO_TEXT},
            {"company_name": "Acme", "company_text": NEUTRAL_TEXT},
        ],
        "max_workers": 2,
        "include_markdown": True,
    }
    body = client.post("/api/fo/qualify/batch", json=payload).json()

    assert body["total_submitted"] == 3
    assert [o["fo_status"] for o in body["outcomes"]] == ["REJECTED", "APPROVED", "REJECTED"]
    assert body["report"]["summary"]["total_discovered"] == 3
    assert body["markdown"].startswith("# Family Office Run Report")


def test_batch_without_markdown(client):
    payload = {"companies": [{"company_name": "Summit", "company_text": WEALTH_TEXT}]}
    body = client.post("/api/fo/qualify/batch", json=payload).json()
    assert "markdown" not in body


def test_stats(client):
    client.post("/api/fo/qualify", json={"company_name": "Summit", "company_text": WEALTH_TEXT})
    body = client.get("/api/stats").json()
    assert body["default_engine"]["total_processed"] == 1


def test_qualify_request_schema_has_example():
    example = QualifyRequest.model_json_schema()["example"]
    assert example["company_name"] == "Smith Family Office"
    QualifyRequest(**example)
