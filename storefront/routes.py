from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import PlainTextResponse
from loguru import logger
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator

from storefront.auth import require_admin, require_self, verify_token
from storefront.deps import get_order_lifecycle, get_token_service, get_user_directory
from storefront.orders import OrderLifecycle
from storefront.tokens import TokenService
from storefront.users import UserDirectory

router = APIRouter()


class Profile(BaseModel):
    model_config = ConfigDict(extra="allow")

    email: str = Field(min_length=3)


class PaymentIntentRequest(BaseModel):
    amount: float = Field(gt=0)
    name: str | None = None
    email: str | None = None
    address: str | None = None
    transaction_reference: str | None = Field(
        None, validation_alias=AliasChoices("transactionReference", "tnxID")
    )


class OrderRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    transaction_reference: str | None = Field(
        None, validation_alias=AliasChoices("transactionReference", "tnxID")
    )
    payment_intent_id: str | None = Field(None, validation_alias="paymentIntentId")
    amount: float | None = None
    name: str | None = None
    email: str | None = None
    address: str | None = None
    cart: list = Field(default_factory=list)
    # Accepted but ignored: new orders always start as pending
    status: str | None = None

    @model_validator(mode="after")
    def _needs_reference(self):
        if not (self.transaction_reference or self.payment_intent_id):
            raise ValueError("transactionReference or paymentIntentId is required")
        return self

    def to_payload(self) -> dict:
        return {
            **(self.model_extra or {}),
            "transactionReference": self.transaction_reference,
            "paymentIntentId": self.payment_intent_id,
            "amount": self.amount,
            "name": self.name,
            "email": self.email,
            "address": self.address,
            "cart": self.cart,
        }


class StatusRequest(BaseModel):
    status: str = Field(min_length=1)


@router.get("/", response_class=PlainTextResponse)
def health():
    return "Storefront is Running"


# --- session & users ---

@router.post("/session")
def create_session(profile: Profile, tokens: TokenService = Depends(get_token_service)):
    return {"token": tokens.issue(profile.model_dump())}


@router.post("/users")
def register_user(profile: Profile, users: UserDirectory = Depends(get_user_directory)):
    result = users.register(profile.model_dump())
    if result.inserted_id is None:
        return {"message": result.message, "insertedId": None}
    return {"acknowledged": True, "insertedId": result.inserted_id}


@router.get("/users")
def list_users(
    auth=Depends(require_admin),
    users: UserDirectory = Depends(get_user_directory),
):
    return [user.to_dict() for user in users.list_users()]


@router.patch("/users/{user_id}")
def promote_user(
    user_id: str,
    auth=Depends(require_admin),
    users: UserDirectory = Depends(get_user_directory),
):
    result = users.promote(user_id)
    return {"matchedCount": result.matched_count, "modifiedCount": result.modified_count}


@router.delete("/users/{user_id}")
def delete_user(
    user_id: str,
    auth=Depends(require_admin),
    users: UserDirectory = Depends(get_user_directory),
):
    users.delete(user_id)
    return {"deletedCount": 1}


@router.get("/users/{email}")
def check_admin(
    email: str,
    claims: dict = Depends(verify_token),
    users: UserDirectory = Depends(get_user_directory),
):
    require_self(email, claims)
    return {"admin": users.is_admin(email)}


# --- payments ---

@router.post("/create-payment-intent")
def create_payment_intent(
    request: PaymentIntentRequest,
    auth=Depends(verify_token),
    orders: OrderLifecycle = Depends(get_order_lifecycle),
):
    return orders.create_payment_intent(
        request.amount,
        name=request.name,
        email=request.email,
        address=request.address,
        transaction_reference=request.transaction_reference,
    )


@router.post("/payment")
def record_order(
    request: OrderRequest,
    auth=Depends(verify_token),
    orders: OrderLifecycle = Depends(get_order_lifecycle),
):
    order, created = orders.record_order(request.to_payload())
    response = {
        "acknowledged": True,
        "insertedId": order.id if created else None,
        "transactionReference": order.transaction_reference,
        "status": order.status,
    }
    if not created:
        response["message"] = "Order Already Recorded"
    return response


@router.patch("/payment/{tnx_id}")
def update_order_status(
    tnx_id: str,
    request: StatusRequest,
    auth=Depends(verify_token),
    orders: OrderLifecycle = Depends(get_order_lifecycle),
):
    update = orders.update_status(tnx_id, request.status)
    return {
        "success": True,
        "message": "Order status updated successfully",
        "transactionReference": update.transaction_reference,
        "paymentIntentId": update.payment_intent_id,
        "previousStatus": update.previous_status,
        "newStatus": update.status,
        "matchedCount": update.matched_count,
        "modifiedCount": update.modified_count,
    }


@router.get("/payment")
def list_orders(
    auth=Depends(require_admin),
    orders: OrderLifecycle = Depends(get_order_lifecycle),
):
    return [order.to_dict() for order in orders.list_orders()]


@router.get("/payment/{tnx_id}")
def get_order(
    tnx_id: str,
    auth=Depends(verify_token),
    orders: OrderLifecycle = Depends(get_order_lifecycle),
):
    return orders.get_order(tnx_id).to_dict()


@router.post("/payment/{tnx_id}/refund")
def refund_order(
    tnx_id: str,
    auth=Depends(require_admin),
    orders: OrderLifecycle = Depends(get_order_lifecycle),
):
    update = orders.refund(tnx_id)
    return {
        "success": True,
        "transactionReference": update.transaction_reference,
        "status": update.status,
    }


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: str = Header(None),
    orders: OrderLifecycle = Depends(get_order_lifecycle),
):
    payload = await request.body()
    event = orders.gateway.construct_event(payload, stripe_signature)
    outcome = orders.apply_gateway_event(event)
    logger.info("Webhook {} -> {}", event["type"], outcome)
    return {"ok": True}
