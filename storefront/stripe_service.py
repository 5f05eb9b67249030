import stripe
from loguru import logger

from storefront.errors import GatewayError, InvalidWebhook


class PaymentGateway:
    """Thin adapter over Stripe; every call carries its own api_key."""

    def __init__(self, api_key: str | None, webhook_secret: str | None = None):
        self.api_key = api_key
        self.webhook_secret = webhook_secret

    def create_intent(
        self,
        amount: int,
        currency: str,
        metadata: dict,
        idempotency_key: str | None = None,
    ):
        kwargs = {}
        if idempotency_key:
            kwargs["idempotency_key"] = idempotency_key
        try:
            return stripe.PaymentIntent.create(
                api_key=self.api_key,
                amount=amount,
                currency=currency,
                payment_method_types=["card"],
                metadata=metadata,
                **kwargs,
            )
        except stripe.StripeError as exc:
            logger.error("Stripe PaymentIntent.create failed: {}", exc)
            raise GatewayError() from exc

    def refund(self, payment_intent_id: str, idempotency_key: str | None = None):
        kwargs = {}
        if idempotency_key:
            kwargs["idempotency_key"] = idempotency_key
        try:
            return stripe.Refund.create(
                api_key=self.api_key, payment_intent=payment_intent_id, **kwargs
            )
        except stripe.StripeError as exc:
            logger.error("Stripe Refund.create failed for {}: {}", payment_intent_id, exc)
            raise GatewayError() from exc

    def construct_event(self, payload: bytes, signature: str | None):
        if not self.webhook_secret:
            raise InvalidWebhook("Webhook secret is not configured")
        try:
            return stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except ValueError:
            raise InvalidWebhook("Invalid payload") from None
        except stripe.SignatureVerificationError:
            raise InvalidWebhook("Invalid signature") from None
