import json
from typing import Any, Callable, Union

import httpx
import pytest

from jitcard.client import MarqetaClient
from jitcard.config import JitCardSettings
from jitcard.dispatcher import CommandDispatcher
from jitcard.registry import ResourceRegistry

BASE_URL = "https://sandbox.test/v3"
TEST_PAN = "5112345123451234"

Responder = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


def request_json(request: httpx.Request) -> Any:
    return json.loads(request.content) if request.content else None


class FakeMarqeta:
    """Scripted stand-in for the Marqeta sandbox. Records every request."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._overrides: dict[tuple[str, str], Responder] = {}
        self.card_pan = TEST_PAN

    def on(self, method: str, path: str, responder: Responder) -> None:
        self._overrides[(method, path)] = responder

    def calls(self, method: str | None = None, path: str | None = None) -> list[httpx.Request]:
        return [
            r for r in self.requests
            if (method is None or r.method == method)
            and (path is None or self._path(r) == path)
        ]

    def posted(self, path: str) -> Any:
        """JSON body of the last POST to ``path``."""
        return request_json(self.calls("POST", path)[-1])

    @property
    def paths(self) -> list[tuple[str, str]]:
        return [(r.method, self._path(r)) for r in self.requests]

    @staticmethod
    def _path(request: httpx.Request) -> str:
        return request.url.path[len("/v3"):]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = self._path(request)
        override = self._overrides.get((request.method, path))
        if override is not None:
            return override(request) if callable(override) else override

        body = request_json(request) or {}
        if request.method == "GET" and path == "/cardproducts":
            return httpx.Response(200, json={"count": 0, "data": []})
        if request.method == "POST" and path == "/fundingsources/program":
            return httpx.Response(201, json={"token": body["token"], "name": body["name"], "active": True})
        if request.method == "POST" and path == "/cardproducts":
            return httpx.Response(201, json={**body, "active": True})
        if request.method == "POST" and path == "/users":
            return httpx.Response(201, json={**body, "status": "ACTIVE"})
        if request.method == "POST" and path == "/cards":
            return httpx.Response(201, json={
                "token": body["token"],
                "user_token": body["user_token"],
                "card_product_token": body["card_product_token"],
                "pan": self.card_pan,
                "cvv_number": "123",
                "expiration": "1230",
                "state": "ACTIVE",
            })
        if request.method == "POST" and path == "/velocitycontrols":
            return httpx.Response(201, json={**body, "token": "vc_test_0001"})
        if request.method == "POST" and path == "/simulations/cardtransactions/authorization":
            dollars = int(body["amount"]) / 100
            return httpx.Response(201, json={
                "transaction": {
                    "token": "txn_auth_0001",
                    "type": "authorization",
                    "state": "PENDING",
                    "amount": dollars,
                    "card_token": body["card_token"],
                    "response": {"code": "0000", "memo": "Approved or completed successfully"},
                },
                "gpa_order": {"token": "gpa_0001", "amount": dollars, "state": "COMPLETION"},
            })
        if request.method == "POST" and path == "/simulations/cardtransactions/authorization.clearing":
            return httpx.Response(201, json={
                "transaction": {
                    "token": "txn_clear_0001",
                    "type": "authorization.clearing",
                    "state": "COMPLETION",
                    "amount": body["amount"],
                    "preceding_related_transaction_token": body["preceding_related_transaction_token"],
                },
            })
        if request.method == "GET" and path.startswith("/users/"):
            token = path.rsplit("/", 1)[-1]
            return httpx.Response(200, json={
                "token": token,
                "first_name": "OneClick",
                "last_name": "User-12:00",
                "email": "oneclick-abcd@test.marqeta",
                "status": "ACTIVE",
                "metadata": {"balance_limit": "10000"},
            })
        return httpx.Response(404, json={"error_message": "Resource not found", "error_code": "404"})


def upstream_error(status: int, message: str) -> httpx.Response:
    return httpx.Response(status, json={"error_message": message, "error_code": str(status)})


@pytest.fixture
def settings():
    return JitCardSettings(
        _env_file=None,
        marqeta_base_url=BASE_URL,
        marqeta_app_token="app_token",
        marqeta_admin_token="admin_token",
    )


@pytest.fixture
def fake():
    return FakeMarqeta()


@pytest.fixture
def transport(fake):
    return httpx.MockTransport(fake.handler)


@pytest.fixture
def client(settings, transport):
    return MarqetaClient.from_settings(settings, transport=transport)


@pytest.fixture
def registry():
    return ResourceRegistry()


@pytest.fixture
def dispatcher(client, settings, registry):
    return CommandDispatcher.build(client, settings, registry=registry)
