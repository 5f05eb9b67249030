"""FastAPI dependencies resolving the process-wide services from app.state."""

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from storefront.database import Database
from storefront.orders import OrderLifecycle
from storefront.stripe_service import PaymentGateway
from storefront.tokens import TokenService
from storefront.users import UserDirectory


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_db(database: Database = Depends(get_database)):
    with database.scope() as db:
        yield db


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_gateway(request: Request) -> PaymentGateway:
    return request.app.state.gateway


def get_user_directory(db: Session = Depends(get_db)) -> UserDirectory:
    return UserDirectory(db)


def get_order_lifecycle(
    request: Request,
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_gateway),
) -> OrderLifecycle:
    return OrderLifecycle(db, gateway, currency=request.app.state.settings.currency)
