from contextlib import contextmanager

from loguru import logger
from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from storefront.errors import StoreError

Base = declarative_base()


class Database:
    """Owns the engine and session factory for the lifetime of the process."""

    def __init__(self, url: str):
        self.url = url
        self.engine = None
        self.SessionLocal = None

    def open(self) -> None:
        kwargs = {}
        if self.url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            if ":memory:" in self.url or self.url == "sqlite://":
                kwargs["poolclass"] = StaticPool

        self.engine = create_engine(self.url, **kwargs)
        self.SessionLocal = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)
        Base.metadata.create_all(bind=self.engine)
        logger.info("Database ready: {}", self.engine.url.render_as_string(hide_password=True))

    def close(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
            self.engine = None
            self.SessionLocal = None

    def session(self) -> Session:
        if self.SessionLocal is None:
            raise StoreError("Database is not open")
        return self.SessionLocal()

    @contextmanager
    def scope(self):
        db = self.session()
        try:
            yield db
        finally:
            db.close()


def commit(db: Session) -> None:
    """Commit the session, turning driver failures into StoreError."""
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Store commit failed: {}", exc)
        raise StoreError() from exc
