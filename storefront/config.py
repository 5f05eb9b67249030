import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Force-load .env from the project root
BASE_DIR = Path(__file__).resolve().parent.parent
load_dotenv(dotenv_path=BASE_DIR / ".env")


def _split(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration, read once at startup."""

    token_secret: str | None = None
    stripe_secret_key: str | None = None
    stripe_webhook_secret: str | None = None
    database_url: str = "sqlite:///./storefront.db"
    currency: str = "usd"
    cors_origins: list[str] = field(default_factory=lambda: ["http://localhost:5173"])
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            token_secret=os.getenv("ACCESS_TOKEN_SECRET"),
            stripe_secret_key=os.getenv("STRIPE_SECRET_KEY"),
            stripe_webhook_secret=os.getenv("STRIPE_WEBHOOK_SECRET"),
            database_url=os.getenv("DATABASE_URL", "sqlite:///./storefront.db"),
            currency=os.getenv("PAYMENT_CURRENCY", "usd"),
            cors_origins=_split(os.getenv("CORS_ORIGINS", "http://localhost:5173")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        if not self.token_secret:
            raise RuntimeError("ACCESS_TOKEN_SECRET is not set. Check your .env file.")
        if not self.database_url:
            raise RuntimeError("DATABASE_URL is not set. Check your .env file.")
