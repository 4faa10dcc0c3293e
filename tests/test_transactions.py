import pytest

from conftest import upstream_error
from jitcard.exceptions import UpstreamError
from jitcard.models import TransactionState
from jitcard.money import Cents, Dollars
from jitcard.transactions import (
    AUTHORIZATION_PATH,
    AUTO_CLEAR_WARNING,
    CLEARING_PATH,
    TransactionOrchestrator,
)


@pytest.fixture
def transactions(client, settings):
    return TransactionOrchestrator(client, settings)


@pytest.mark.asyncio
async def test_simulate_sends_cents_string(transactions, fake):
    result = await transactions.simulate("card_1", Dollars.parse("10.00"))

    body = fake.posted(AUTHORIZATION_PATH)
    assert body["amount"] == "1000"
    assert body["card_token"] == "card_1"
    assert body["network"] == "VISA"
    assert body["card_acceptor"]["mid"] == "1234567890"
    assert "webhook" not in body

    assert result.transaction_token == "txn_auth_0001"
    assert result.transaction.state == TransactionState.PENDING
    assert result.transaction.amount == 10.0
    assert result.funding_order["token"] == "gpa_0001"


@pytest.mark.asyncio
async def test_simulate_with_webhook(transactions, fake):
    await transactions.simulate("card_1", Dollars.parse("5"), webhook_endpoint="https://hooks.test/txn")

    webhook = fake.posted(AUTHORIZATION_PATH)["webhook"]
    assert webhook == {
        "endpoint": "https://hooks.test/txn",
        "username": "webhook_user",
        "password": "webhook_password",
    }


@pytest.mark.asyncio
async def test_clear_sends_dollars(transactions, fake):
    result = await transactions.clear("txn_auth_0001", Cents(1000))

    body = fake.posted(CLEARING_PATH)
    assert body == {"preceding_related_transaction_token": "txn_auth_0001", "amount": 10}
    assert result.transaction_token == "txn_clear_0001"


@pytest.mark.asyncio
async def test_clear_rejection_propagates(transactions, fake):
    fake.on("POST", CLEARING_PATH, upstream_error(400, "Transaction already cleared"))

    with pytest.raises(UpstreamError, match="Transaction already cleared"):
        await transactions.clear("txn_auth_0001", Cents(1000))


@pytest.mark.asyncio
async def test_authorize_and_clear(transactions, fake):
    result = await transactions.authorize_and_maybe_clear("card_1", Dollars.parse("10.00"))

    assert result.cleared
    assert result.authorization.transaction.state == TransactionState.PENDING
    assert fake.posted(CLEARING_PATH)["amount"] == 10
    assert fake.posted(CLEARING_PATH)["preceding_related_transaction_token"] == "txn_auth_0001"

    payload = result.to_payload()
    assert payload["cleared"] is True
    assert payload["transaction"]["state"] == "CLEARED"
    assert payload["transaction"]["token"] == "txn_auth_0001"
    assert payload["gpa_order"]["amount"] == 10.0


@pytest.mark.asyncio
async def test_authorize_only(transactions, fake):
    result = await transactions.authorize_and_maybe_clear("card_1", Dollars.parse("7.25"), auto_clear=False)

    assert not result.cleared
    assert result.to_payload()["transaction"]["state"] == "PENDING"
    assert fake.calls("POST", CLEARING_PATH) == []
    assert "cleared" not in result.to_payload()


@pytest.mark.asyncio
async def test_clear_failure_returns_authorization_with_warning(transactions, fake):
    fake.on("POST", CLEARING_PATH, upstream_error(500, "Clearing unavailable"))

    result = await transactions.authorize_and_maybe_clear("card_1", Dollars.parse("10.00"))

    assert not result.cleared
    assert result.warning == AUTO_CLEAR_WARNING
    payload = result.to_payload()
    assert payload["warning"] == AUTO_CLEAR_WARNING
    assert payload["transaction"]["state"] == "PENDING"


@pytest.mark.asyncio
async def test_authorization_rejection_propagates(transactions, fake):
    fake.on("POST", AUTHORIZATION_PATH, upstream_error(400, "Card not active"))

    with pytest.raises(UpstreamError) as exc_info:
        await transactions.authorize_and_maybe_clear("card_1", Dollars.parse("10.00"))

    assert exc_info.value.message == "Card not active"
    assert fake.calls("POST", CLEARING_PATH) == []


@pytest.mark.asyncio
async def test_get_balance(transactions, fake):
    data = await transactions.get_balance("user_1")

    assert data["token"] == "user_1"
    assert fake.paths == [("GET", "/users/user_1")]
