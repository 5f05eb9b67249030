import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from storefront.config import Settings
from storefront.database import Database
from storefront.errors import StorefrontError
from storefront.logging_config import configure_logging
from storefront.routes import router
from storefront.stripe_service import PaymentGateway
from storefront.tokens import TokenService


def _invalid_fields(exc: RequestValidationError) -> list[str]:
    # loc is ("body", "amount") and so on; model-level errors only carry ("body",)
    fields = set()
    for err in exc.errors():
        loc = [str(part) for part in err["loc"]]
        fields.add(".".join(loc[1:]) or loc[0])
    return sorted(fields)


def create_app(
    settings: Settings | None = None,
    database: Database | None = None,
    gateway: PaymentGateway | None = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        settings.validate()
        app.state.settings = settings
        app.state.token_service = TokenService(settings.token_secret)
        app.state.database = database or Database(settings.database_url)
        app.state.gateway = gateway or PaymentGateway(
            settings.stripe_secret_key, settings.stripe_webhook_secret
        )
        if not settings.stripe_secret_key:
            logger.warning("STRIPE_SECRET_KEY is not set; payment intents will fail")

        app.state.database.open()
        try:
            yield
        finally:
            app.state.database.close()
            logger.info("Storefront stopped")

    app = FastAPI(title="Storefront", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PATCH", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        start = time.perf_counter()

        with logger.contextualize(request_id=request_id):
            logger.info("request.start {} {}", request.method, request.url.path)
            response = await call_next(request)
            duration_ms = (time.perf_counter() - start) * 1000
            logger.bind(status_code=response.status_code).info(
                "request.end {} in {:.1f}ms", response.status_code, duration_ms
            )
            response.headers.setdefault("X-Request-ID", request_id)
            return response

    @app.exception_handler(StorefrontError)
    async def storefront_error(request: Request, exc: StorefrontError):
        if exc.status_code >= 500:
            logger.opt(exception=exc).error("{} on {}", type(exc).__name__, request.url.path)
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": exc.message},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        fields = _invalid_fields(exc)
        logger.info("Rejected request to {}: invalid {}", request.url.path, fields)
        return JSONResponse(
            status_code=422,
            content={"success": False, "message": f"Invalid request: {', '.join(fields)}"},
        )

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        logger.opt(exception=exc).error("Unhandled error on {}", request.url.path)
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "Internal server error"},
        )

    app.include_router(router)
    return app


app = create_app()
