import hashlib
import hmac
import json
import time
from urllib.parse import parse_qs

import httpx
import pytest

from quickbites.exceptions import InvalidWebhookException, PaymentProcessorException
from quickbites.services.payment_service import PaymentService

SECRET = "whsec_test"


def _event_payload(event_type="payment_intent.succeeded", intent_id="pi_1", order_code="123456"):
    return json.dumps({
        "id": "evt_1",
        "type": event_type,
        "data": {"object": {"id": intent_id, "metadata": {"order_code": order_code, "user_id": "user-1"}}},
    }).encode()


def _signature(payload, timestamp, secret=SECRET):
    digest = hmac.new(secret.encode(), f"{timestamp}.".encode() + payload, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def _service(webhook_secret=SECRET):
    return PaymentService(secret_key="sk_test_1", api_base="https://payments.test", webhook_secret=webhook_secret)


def _mock_processor(monkeypatch, handler):
    real_client = httpx.AsyncClient

    def client_factory(**kwargs):
        return real_client(transport=httpx.MockTransport(handler), **kwargs)

    monkeypatch.setattr(httpx, "AsyncClient", client_factory)


def test_signed_event_is_parsed():
    payload = _event_payload()
    event = _service().parse_event(payload, _signature(payload, int(time.time())))

    assert event.event_id == "evt_1"
    assert event.payment_intent_id == "pi_1"
    assert event.order_code == "123456"
    assert event.metadata["user_id"] == "user-1"
    assert event.succeeded
    assert not event.failed


def test_failed_and_canceled_events():
    service = _service(webhook_secret="")
    assert service.parse_event(_event_payload("payment_intent.payment_failed")).failed
    assert service.parse_event(_event_payload("payment_intent.canceled")).failed
    other = service.parse_event(_event_payload("charge.refunded"))
    assert not other.succeeded and not other.failed


def test_wrong_secret_is_rejected():
    payload = _event_payload()
    header = _signature(payload, int(time.time()), secret="whsec_other")

    with pytest.raises(InvalidWebhookException):
        _service().parse_event(payload, header)


def test_tampered_payload_is_rejected():
    payload = _event_payload()
    header = _signature(payload, int(time.time()))

    with pytest.raises(InvalidWebhookException):
        _service().parse_event(_event_payload(order_code="999999"), header)


def test_stale_signature_is_rejected():
    payload = _event_payload()
    stale = int(time.time()) - 3600

    with pytest.raises(InvalidWebhookException):
        _service().parse_event(payload, _signature(payload, stale))


@pytest.mark.parametrize("header", [None, "", "v1=abc", "t=notanumber,v1=abc"])
def test_malformed_signature_header(header):
    with pytest.raises(InvalidWebhookException):
        _service().parse_event(_event_payload(), header)


def test_one_matching_signature_is_enough():
    payload = _event_payload()
    timestamp = int(time.time())
    good = _signature(payload, timestamp).split("v1=")[1]
    header = f"t={timestamp},v1=deadbeef,v1={good}"

    assert _service().parse_event(payload, header).payment_intent_id == "pi_1"


def test_malformed_payload_is_rejected():
    service = _service(webhook_secret="")
    with pytest.raises(InvalidWebhookException):
        service.parse_event(b"not json")
    with pytest.raises(InvalidWebhookException):
        service.parse_event(json.dumps({"type": "payment_intent.succeeded"}).encode())


async def test_create_payment_intent_sends_amount_and_metadata(monkeypatch):
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["form"] = parse_qs(request.content.decode())
        return httpx.Response(200, json={
            "id": "pi_123",
            "client_secret": "pi_123_secret_abc",
            "amount": 2307,
            "currency": "usd",
        })

    _mock_processor(monkeypatch, handler)

    intent = await _service().create_payment_intent(2307, {"order_code": "123456", "restaurant": "Burger Barn"})

    assert intent.id == "pi_123"
    assert intent.client_secret == "pi_123_secret_abc"
    assert intent.amount == 2307
    assert seen["url"] == "https://payments.test/v1/payment_intents"
    assert seen["auth"] == "Bearer sk_test_1"
    assert seen["form"]["amount"] == ["2307"]
    assert seen["form"]["currency"] == ["usd"]
    assert seen["form"]["metadata[order_code]"] == ["123456"]
    assert seen["form"]["metadata[restaurant]"] == ["Burger Barn"]


async def test_rejected_payment_intent(monkeypatch):
    _mock_processor(monkeypatch, lambda request: httpx.Response(402, json={"error": {"message": "declined"}}))

    with pytest.raises(PaymentProcessorException):
        await _service().create_payment_intent(1000, {})


async def test_unreachable_processor(monkeypatch):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    _mock_processor(monkeypatch, handler)

    with pytest.raises(PaymentProcessorException):
        await _service().create_payment_intent(1000, {})
