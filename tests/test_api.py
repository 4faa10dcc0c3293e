import pytest
from fastapi.testclient import TestClient

from conftest import TEST_PAN, upstream_error
from jitcard.api import create_app
from jitcard.transactions import AUTHORIZATION_PATH


@pytest.fixture
def api(settings, transport, registry):
    app = create_app(settings, transport=transport, registry=registry)
    with TestClient(app) as client:
        yield client


def test_health_does_not_call_upstream(api, fake):
    resp = api.get("/health")

    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"
    assert resp.json()["card_ready"] is False
    assert resp.json()["setup_complete"] is False
    assert fake.requests == []


def test_setup_then_health_reports_card(api):
    resp = api.post("/api/marqeta/setup", json={"action": "setup"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["data"]["card"]["pan"] == TEST_PAN
    health = api.get("/health").json()
    assert health["card_ready"] is True
    assert health["setup_complete"] is True


def test_validation_error_envelope(api, fake):
    resp = api.post("/api/marqeta/setup", json={})

    assert resp.status_code == 400
    assert resp.json() == {
        "success": False,
        "error": "action is required",
        "details": {"field": "action"},
    }
    assert fake.requests == []


def test_body_must_be_object(api):
    resp = api.post("/api/marqeta/setup", json=["setup"])

    assert resp.status_code == 400
    assert resp.json()["success"] is False
    assert resp.json()["error"] == "Invalid request body"


def test_setup_failure_is_500(api, fake):
    fake.on("POST", "/users", upstream_error(400, "Invalid email"))

    resp = api.post("/api/marqeta/setup", json={"action": "setup"})

    assert resp.status_code == 500
    assert resp.json()["error"] == "Invalid email"


def test_upstream_status_passes_through(api, fake):
    fake.on("POST", AUTHORIZATION_PATH, upstream_error(400, "Card not active"))

    resp = api.post(
        "/api/marqeta/setup",
        json={"action": "simulate", "cardToken": "card_1", "amount": 10},
    )

    assert resp.status_code == 400
    assert resp.json()["error"] == "Card not active"
    assert resp.json()["details"]["error_message"] == "Card not active"


def test_one_click_pay(api):
    resp = api.post("/api/marqeta/one-click-pay", json={"cardToken": "card_1", "amount": 10})

    assert resp.status_code == 200
    assert resp.json()["data"]["cleared"] is True


def test_nfc_pay_unknown_card(api):
    resp = api.post("/api/marqeta/nfc-pay", json={"pan": TEST_PAN, "amount": 10})

    assert resp.status_code == 404
    assert resp.json()["error"] == "Card not found. Please setup JIT funding first."


def test_nfc_pay_after_setup(api):
    api.post("/api/marqeta/setup", json={"action": "setup"})

    resp = api.post("/api/marqeta/nfc-pay", json={"pan": TEST_PAN, "amount": 10})

    assert resp.status_code == 200
    assert resp.json()["data"]["cardLast4"] == "1234"


def test_pin_payment_wrong_pin(api, fake):
    resp = api.post(
        "/api/marqeta/process-pin-payment",
        json={"pan": TEST_PAN, "pin": "000000", "amount": 10},
    )

    assert resp.status_code == 401
    assert resp.json()["error"] == "Invalid PIN"
    assert fake.requests == []


def test_request_id_round_trip(api):
    resp = api.post(
        "/api/marqeta/setup",
        json={"action": "bogus"},
        headers={"X-Request-ID": "req_test_123"},
    )

    assert resp.status_code == 400
    assert resp.headers["X-Request-ID"] == "req_test_123"


def test_other_methods_not_allowed(api):
    resp = api.get("/api/marqeta/setup")

    assert resp.status_code == 405
    assert resp.json()["success"] is False
    assert resp.json()["error"] == "Method Not Allowed"
