from dataclasses import dataclass

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.database import commit
from storefront.errors import UserNotFound
from storefront.models import ROLE_ADMIN, ROLE_STANDARD, User

ALREADY_CREATED = "User Already Created"


@dataclass
class RegisterResult:
    inserted_id: str | None
    message: str | None = None


@dataclass
class UpdateResult:
    matched_count: int
    modified_count: int


class UserDirectory:
    """User records and role flags, keyed by unique email."""

    def __init__(self, db: Session):
        self.db = db

    def register(self, payload: dict) -> RegisterResult:
        email = payload["email"]
        if self.get_by_email(email) is not None:
            return RegisterResult(inserted_id=None, message=ALREADY_CREATED)

        # Role is never taken from the registration payload
        profile = {k: v for k, v in payload.items() if k not in ("email", "role", "_id")}
        user = User(email=email, role=ROLE_STANDARD, profile=profile)
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            # Lost a race against a concurrent registration for the same email
            self.db.rollback()
            return RegisterResult(inserted_id=None, message=ALREADY_CREATED)

        logger.info("Registered user {}", user.id)
        return RegisterResult(inserted_id=user.id)

    def get(self, user_id: str) -> User | None:
        return self.db.get(User, user_id)

    def get_by_email(self, email: str | None) -> User | None:
        if not email:
            return None
        return self.db.query(User).filter_by(email=email).first()

    def is_admin(self, email: str | None) -> bool:
        user = self.get_by_email(email)
        return user is not None and user.role == ROLE_ADMIN

    def promote(self, user_id: str) -> UpdateResult:
        user = self.get(user_id)
        if user is None:
            raise UserNotFound()
        if user.role == ROLE_ADMIN:
            return UpdateResult(matched_count=1, modified_count=0)

        user.role = ROLE_ADMIN
        commit(self.db)
        logger.info("Promoted user {} to admin", user_id)
        return UpdateResult(matched_count=1, modified_count=1)

    def list_users(self) -> list[User]:
        return self.db.query(User).order_by(User.created_at).all()

    def delete(self, user_id: str) -> None:
        user = self.get(user_id)
        if user is None:
            raise UserNotFound()
        self.db.delete(user)
        commit(self.db)
        logger.info("Deleted user {}", user_id)
