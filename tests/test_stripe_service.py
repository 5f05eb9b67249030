import pytest
import stripe

from storefront.errors import GatewayError, InvalidWebhook
from storefront.stripe_service import PaymentGateway


def test_create_intent_passes_key_and_idempotency(mocker):
    create = mocker.patch("stripe.PaymentIntent.create", return_value=mocker.Mock(id="pi_1"))
    gateway = PaymentGateway("sk_test_1")

    intent = gateway.create_intent(1999, "usd", {"email": "a@example.com"}, idempotency_key="tx1")

    assert intent.id == "pi_1"
    create.assert_called_once_with(
        api_key="sk_test_1",
        amount=1999,
        currency="usd",
        payment_method_types=["card"],
        metadata={"email": "a@example.com"},
        idempotency_key="tx1",
    )


def test_create_intent_without_idempotency_key(mocker):
    create = mocker.patch("stripe.PaymentIntent.create", return_value=mocker.Mock())

    PaymentGateway("sk_test_1").create_intent(500, "usd", {})

    assert "idempotency_key" not in create.call_args.kwargs


def test_stripe_failure_becomes_gateway_error(mocker):
    mocker.patch("stripe.PaymentIntent.create", side_effect=stripe.StripeError("card declined"))

    with pytest.raises(GatewayError):
        PaymentGateway("sk_test_1").create_intent(500, "usd", {})


def test_refund_failure_becomes_gateway_error(mocker):
    mocker.patch("stripe.Refund.create", side_effect=stripe.StripeError("no such intent"))

    with pytest.raises(GatewayError):
        PaymentGateway("sk_test_1").refund("pi_missing")


def test_construct_event_bad_signature(mocker):
    mocker.patch(
        "stripe.Webhook.construct_event",
        side_effect=stripe.SignatureVerificationError("Invalid", "sig"),
    )

    with pytest.raises(InvalidWebhook) as excinfo:
        PaymentGateway("sk_test_1", "whsec_test").construct_event(b"{}", "sig")
    assert excinfo.value.message == "Invalid signature"


def test_construct_event_bad_payload(mocker):
    mocker.patch("stripe.Webhook.construct_event", side_effect=ValueError("bad json"))

    with pytest.raises(InvalidWebhook) as excinfo:
        PaymentGateway("sk_test_1", "whsec_test").construct_event(b"nope", "sig")
    assert excinfo.value.message == "Invalid payload"


def test_construct_event_needs_webhook_secret():
    with pytest.raises(InvalidWebhook):
        PaymentGateway("sk_test_1").construct_event(b"{}", "sig")


def test_refund_passes_idempotency_key(mocker):
    create = mocker.patch("stripe.Refund.create", return_value=mocker.Mock())

    PaymentGateway("sk_test_1").refund("pi_1", idempotency_key="refund-tx1")

    create.assert_called_once_with(
        api_key="sk_test_1", payment_intent="pi_1", idempotency_key="refund-tx1"
    )
