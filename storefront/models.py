import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Numeric, String

from storefront.database import Base

ROLE_STANDARD = "standard"
ROLE_ADMIN = "admin"


def _new_id() -> str:
    return uuid.uuid4().hex


def _now() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=_new_id)
    email = Column(String, unique=True, index=True, nullable=False)
    role = Column(String, nullable=False, default=ROLE_STANDARD)
    profile = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), default=_now)

    def to_dict(self) -> dict:
        return {
            **(self.profile or {}),
            "_id": self.id,
            "email": self.email,
            "role": self.role,
        }


class Order(Base):
    __tablename__ = "orders"

    id = Column(String, primary_key=True, default=_new_id)
    transaction_reference = Column(String, unique=True, index=True, nullable=False)
    payment_intent_id = Column(String, index=True)          # Stripe PaymentIntent ID
    amount = Column(Numeric(12, 2, asdecimal=False))
    name = Column(String)
    email = Column(String, index=True)
    address = Column(String)
    cart = Column(JSON, nullable=False, default=list)
    details = Column(JSON, nullable=False, default=dict)    # any other caller fields
    status = Column(String, nullable=False)                 # pending | paid | failed | refunded
    created_at = Column(DateTime(timezone=True), default=_now)
    updated_at = Column(DateTime(timezone=True), default=_now, onupdate=_now)

    def to_dict(self) -> dict:
        return {
            **(self.details or {}),
            "_id": self.id,
            "transactionReference": self.transaction_reference,
            "paymentIntentId": self.payment_intent_id,
            "amount": self.amount,
            "name": self.name,
            "email": self.email,
            "address": self.address,
            "cart": self.cart,
            "status": self.status,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
