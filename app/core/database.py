"""PostgreSQL connection and session management."""

from collections.abc import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import settings


class StoreNotConfiguredError(Exception):
    """Raised when a session is requested but no DATABASE_URL is configured."""

    def __init__(self, missing: dict[str, bool]) -> None:
        self.missing = missing
        super().__init__("Server misconfigured: database credentials are missing")


engine = (
    create_engine(
        settings.DATABASE_URL,
        pool_pre_ping=True,
        echo=settings.DEBUG,
    )
    if settings.DATABASE_URL
    else None
)

SessionLocal = (
    sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
    if engine is not None
    else None
)


def get_db() -> Generator[Session, None, None]:
    """Dependency that yields a DB session and closes it when done."""
    if SessionLocal is None:
        raise StoreNotConfiguredError(settings.missing_store_settings())
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_db_connected(db: Session) -> bool:
    """Run a trivial query to verify the database is reachable."""
    try:
        db.execute(text("SELECT 1"))
        return True
    except Exception:
        return False


def get_optional_db() -> Generator[Session | None, None, None]:
    """Like get_db, but yields None instead of raising when no database is configured."""
    if SessionLocal is None:
        yield None
        return
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
