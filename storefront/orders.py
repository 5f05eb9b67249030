"""
Order lifecycle: payment intents, order records and status transitions.

Creating the Stripe intent and recording the order are two separate calls
with nothing tying them together. Whatever happens in between is reconciled
later through ``update_status`` (client callback) or ``apply_gateway_event``
(Stripe webhook).
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.database import commit
from storefront.errors import IllegalTransition, NoChange, OrderNotFound
from storefront.models import Order
from storefront.stripe_service import PaymentGateway

PENDING = "pending"
PAID = "paid"
FAILED = "failed"
REFUNDED = "refunded"

TRANSITIONS: dict[str, set[str]] = {
    PENDING: {PAID, FAILED, REFUNDED},
    PAID: {REFUNDED},
}

# A failed attempt can still be followed by a successful one on the same intent
GATEWAY_TRANSITIONS: dict[str, set[str]] = {
    FAILED: {PAID},
}

REFUNDABLE = {PAID}

GATEWAY_EVENTS = {
    "payment_intent.succeeded": PAID,
    "payment_intent.payment_failed": FAILED,
    "charge.refunded": REFUNDED,
}

ORDER_COLUMNS = ("amount", "name", "email", "address", "cart")


def can_transition(current: str, new: str, extra: dict[str, set[str]] | None = None) -> bool:
    allowed = TRANSITIONS.get(current, set())
    if extra:
        allowed = allowed | extra.get(current, set())
    return new in allowed


def to_minor_units(amount) -> int:
    """Convert a major-unit amount (dollars) to the smallest unit (cents)."""
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass
class StatusUpdate:
    transaction_reference: str
    payment_intent_id: str | None
    previous_status: str
    status: str
    matched_count: int = 1
    modified_count: int = 1


class OrderLifecycle:
    def __init__(self, db: Session, gateway: PaymentGateway, currency: str = "usd"):
        self.db = db
        self.gateway = gateway
        self.currency = currency

    def create_payment_intent(
        self,
        amount,
        name: str | None = None,
        email: str | None = None,
        address: str | None = None,
        transaction_reference: str | None = None,
    ) -> dict:
        metadata = {k: v for k, v in (("name", name), ("email", email), ("address", address)) if v}
        intent = self.gateway.create_intent(
            to_minor_units(amount),
            self.currency,
            metadata,
            idempotency_key=transaction_reference,
        )
        logger.info("Created payment intent {}", intent.id)
        return {"clientSecret": intent.client_secret, "paymentIntentId": intent.id}

    def record_order(self, payload: dict) -> tuple[Order, bool]:
        """
        Persist a new order at ``pending``.

        A retry with a transaction reference that is already stored returns
        the existing order untouched with ``created=False``.
        """
        reference = payload.get("transactionReference") or payload.get("paymentIntentId")
        if not reference:
            raise ValueError("transactionReference or paymentIntentId is required")

        existing = self.find(reference)
        if existing is not None:
            logger.info("Order {} already recorded", reference)
            return existing, False

        details = {
            k: v
            for k, v in payload.items()
            if k not in ORDER_COLUMNS
            and k not in ("transactionReference", "tnxID", "paymentIntentId", "status", "_id")
        }
        order = Order(
            transaction_reference=reference,
            payment_intent_id=payload.get("paymentIntentId"),
            amount=payload.get("amount"),
            name=payload.get("name"),
            email=payload.get("email"),
            address=payload.get("address"),
            cart=payload.get("cart") or [],
            details=details,
            status=PENDING,
        )
        self.db.add(order)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            existing = self.find(reference)
            if existing is None:
                raise
            return existing, False

        logger.info("Recorded order {} ({})", reference, order.id)
        return order, True

    def find(self, transaction_reference: str) -> Order | None:
        return self.db.query(Order).filter_by(transaction_reference=transaction_reference).first()

    def get_order(self, transaction_reference: str) -> Order:
        order = self.find(transaction_reference)
        if order is None:
            raise OrderNotFound()
        return order

    def list_orders(self) -> list[Order]:
        return self.db.query(Order).order_by(Order.created_at).all()

    def update_status(self, transaction_reference: str, status: str) -> StatusUpdate:
        return self._transition(self.get_order(transaction_reference), status)

    def refund(self, transaction_reference: str) -> StatusUpdate:
        order = self.get_order(transaction_reference)
        if order.status == REFUNDED:
            raise NoChange("Order is already refunded")
        if order.status not in REFUNDABLE:
            raise IllegalTransition(order.status, REFUNDED)
        if not order.payment_intent_id:
            raise NoChange("Nothing to refund")

        self.gateway.refund(
            order.payment_intent_id, idempotency_key=f"refund-{transaction_reference}"
        )
        return self._transition(order, REFUNDED)

    def apply_gateway_event(self, event) -> str:
        """Reconcile one Stripe notification; returns a short outcome label."""
        status = GATEWAY_EVENTS.get(event["type"])
        if status is None:
            return "ignored"

        obj = event["data"]["object"]
        intent_id = obj.get("payment_intent") if event["type"].startswith("charge.") else obj.get("id")
        order = self.db.query(Order).filter_by(payment_intent_id=intent_id).first() if intent_id else None
        if order is None:
            logger.warning("Webhook {} for unknown payment intent {}", event["type"], intent_id)
            return "unknown"

        try:
            self._transition(order, status, extra=GATEWAY_TRANSITIONS)
        except NoChange:
            logger.info("Duplicate webhook {} for order {}", event["type"], order.transaction_reference)
            return "duplicate"
        except IllegalTransition as exc:
            logger.warning("Out-of-order webhook for order {}: {}", order.transaction_reference, exc.message)
            return "out-of-order"
        return "applied"

    def _transition(self, order: Order, status: str, extra=None) -> StatusUpdate:
        previous = order.status
        if previous == status:
            raise NoChange()
        if not can_transition(previous, status, extra):
            raise IllegalTransition(previous, status)

        order.status = status
        commit(self.db)
        logger.info("Order {} moved {} -> {}", order.transaction_reference, previous, status)
        return StatusUpdate(
            transaction_reference=order.transaction_reference,
            payment_intent_id=order.payment_intent_id,
            previous_status=previous,
            status=status,
        )
