import logging
from contextlib import contextmanager
from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.exc import DatabaseError, DataError, IntegrityError, OperationalError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from hardware_store.core.errors import InfrastructureError, ValidationError

logger = logging.getLogger(__name__)

# Create declarative base
Base = declarative_base()


class UniqueViolationError(Exception):
    """A unique constraint was violated; ``constraint`` holds the store's message."""

    def __init__(self, constraint: str):
        super().__init__(constraint)
        self.constraint = constraint


def is_unique_violation(e: IntegrityError) -> bool:
    error_msg = str(e.orig) if hasattr(e, "orig") else str(e)
    error_msg = error_msg.lower()
    return "unique constraint" in error_msg or "duplicate key" in error_msg


class Database:
    """
    Owns the SQLAlchemy engine and session factory for the process.

    Constructed once by the application factory and disposed on shutdown.
    Services receive it explicitly and open sessions through it.
    """

    def __init__(self, url: str, echo: bool = False):
        if url.startswith("sqlite"):
            # In-memory SQLite must share one connection across threads
            engine_kwargs = {
                "connect_args": {"check_same_thread": False},
                "poolclass": StaticPool,
            }
        else:
            engine_kwargs = {"pool_pre_ping": True}
        self.engine = create_engine(url, echo=echo, **engine_kwargs)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def create_all(self) -> None:
        # import models so they are registered on the metadata
        import hardware_store.models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def drop_all(self) -> None:
        Base.metadata.drop_all(bind=self.engine)

    def dispose(self) -> None:
        self.engine.dispose()
        logger.info("Database connections released")

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Read-only style session; nothing is committed."""
        db = self.SessionLocal()
        try:
            yield db
        except DataError as e:
            logger.warning(f"Value rejected by the database: {str(e)}")
            raise ValidationError("A supplied value is out of range for the database") from e
        except OperationalError as e:
            logger.error(f"Database connection error: {str(e)}")
            raise InfrastructureError("Unable to connect to the database") from e
        except DatabaseError as e:
            logger.error(f"Database error: {str(e)}")
            raise InfrastructureError("A database error occurred") from e
        finally:
            db.close()

    @contextmanager
    def unit_of_work(self) -> Iterator[Session]:
        """
        Transactional scope around a series of writes.

        Commits when the block exits normally and rolls back on any
        exception, so multi-statement operations apply all-or-nothing.
        Store-level failures are translated: unique constraint violations
        become ``UniqueViolationError``, out-of-range values become
        ``ValidationError`` and other SQL errors become ``InfrastructureError``.
        """
        db = self.SessionLocal()
        try:
            yield db
            db.commit()
        except IntegrityError as e:
            db.rollback()
            if is_unique_violation(e):
                raise UniqueViolationError(str(e.orig) if hasattr(e, "orig") else str(e)) from e
            logger.error(f"Integrity error: {str(e)}")
            raise InfrastructureError("Database constraint violation occurred") from e
        except DataError as e:
            db.rollback()
            logger.warning(f"Value rejected by the database: {str(e)}")
            raise ValidationError("A supplied value is out of range for the database") from e
        except OperationalError as e:
            db.rollback()
            logger.error(f"Database connection error: {str(e)}")
            raise InfrastructureError("Unable to connect to the database") from e
        except DatabaseError as e:
            db.rollback()
            logger.error(f"Database error: {str(e)}")
            raise InfrastructureError("A database error occurred") from e
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


def get_database(request: Request) -> Database:
    return request.app.state.database


# Dependency for database session
def get_db(request: Request) -> Iterator[Session]:
    with get_database(request).session() as db:
        yield db
