import logging
from contextlib import contextmanager

from sqlalchemy import Enum, create_engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy.pool import StaticPool

from utils.config import settings
from utils.exceptions import AppError, ConflictError, InternalError

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}}
        # In-memory databases must share one connection to be visible across sessions
        if url in ("sqlite://", "sqlite:///:memory:"):
            options["poolclass"] = StaticPool
        return options
    return {
        "pool_pre_ping": True,
        "pool_size": settings.DB_POOL_SIZE,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
    }


engine = create_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def enum_type(enum_class, name: str) -> Enum:
    """Enum column type that stores member values ("dine-in") instead of names."""
    return Enum(enum_class, name=name, values_callable=lambda members: [m.value for m in members])


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session, action: str):
    """Commit on success; roll back and translate the error otherwise.

    Domain errors raised inside the block propagate unchanged. Optimistic lock
    and unique constraint failures become ConflictError, any other database
    error becomes InternalError.
    """
    try:
        yield
        db.commit()
    except AppError:
        db.rollback()
        raise
    except StaleDataError as e:
        db.rollback()
        logger.warning(f"Concurrent modification while trying to {action}: {str(e)}")
        raise ConflictError("Record was modified by another request, reload and retry") from e
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Integrity error while trying to {action}: {str(e)}")
        raise ConflictError(f"Failed to {action}: conflicting data") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error while trying to {action}: {str(e)}")
        raise InternalError(f"Failed to {action}") from e
