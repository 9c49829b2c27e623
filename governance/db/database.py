"""Database engine, session factory and the transaction scope."""

from collections.abc import Generator, Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from governance.config import settings
from governance.core.errors import ConflictError, StoreUnavailableError
from governance.core.logging import get_logger

logger = get_logger(__name__)

_connect_args = (
    {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}
)

engine = create_engine(
    settings.DATABASE_URL,
    connect_args=_connect_args,
    echo=settings.DEBUG,
)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def get_db() -> Generator[Session, None, None]:
    """Yield a database session and ensure it is closed after use.

    Usage as a FastAPI dependency::

        @router.get("/guilds")
        def list_guilds(db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(session: Session) -> Iterator[Session]:
    """All-or-nothing scope for one logical operation.

    Commits when the block exits normally. Any exception rolls the whole
    unit back; store errors are surfaced as ``ConflictError`` (constraint
    violations) or ``StoreUnavailableError`` (everything else).
    """
    try:
        yield session
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        logger.warning(f"Transaction rolled back on constraint violation: {exc.orig}")
        raise ConflictError("Conflicting write rejected by the store") from exc
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("Transaction rolled back on store failure")
        raise StoreUnavailableError("Backing store unavailable") from exc
    except Exception:
        session.rollback()
        raise
