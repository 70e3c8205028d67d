"""Database handle, session dependency, and transaction scope."""

import logging
from contextlib import contextmanager
from typing import Generator, Iterator, Optional

from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from secadmin.core.config import Settings, settings as default_settings
from secadmin.core.exceptions import ResourceConflictError, TransactionError

logger = logging.getLogger("secadmin")


def create_db_engine(url: str, config: Optional[Settings] = None) -> Engine:
    """Create an engine with pooling suited to the backend in ``url``."""
    config = config or default_settings
    if url.startswith("sqlite"):
        # In-memory SQLite must share one connection across threads
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=config.DB_ECHO,
        )
    return create_engine(
        url,
        pool_size=config.DB_POOL_SIZE,
        max_overflow=config.DB_MAX_OVERFLOW,
        pool_timeout=30,
        pool_recycle=config.DB_POOL_RECYCLE,
        pool_pre_ping=True,
        echo=config.DB_ECHO,
    )


class Database:
    """Owns the engine and session factory for one application lifetime."""

    def __init__(self, url: Optional[str] = None, engine: Optional[Engine] = None,
                 config: Optional[Settings] = None):
        config = config or default_settings
        self.engine = engine or create_db_engine(url or config.DATABASE_URL, config)
        self.session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def session(self) -> Session:
        return self.session_factory()

    def create_all(self) -> None:
        """Create every table known to the models package."""
        import secadmin.models  # noqa: F401  (registers mappers)
        from secadmin.db.base import Base

        Base.metadata.create_all(bind=self.engine)

    def drop_all(self) -> None:
        import secadmin.models  # noqa: F401
        from secadmin.db.base import Base

        Base.metadata.drop_all(bind=self.engine)

    def ping(self) -> bool:
        try:
            with self.engine.connect() as connection:
                connection.execute(text("SELECT 1 FROM DUAL" if self.engine.dialect.name == "oracle" else "SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.warning("Database ping failed: %s", e)
            return False

    def dispose(self) -> None:
        self.engine.dispose()


def get_db(request: Request) -> Generator[Session, None, None]:
    """FastAPI dependency that provides a DB session per request."""
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """Commit everything done in the block, or roll all of it back.

    Database failures surface as ``TransactionError`` (or
    ``ResourceConflictError`` for unique violations); domain errors raised
    inside the block are re-raised unchanged after the rollback.
    """
    try:
        yield db
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning("Integrity error, rolled back: %s", e.orig)
        raise ResourceConflictError("Record conflicts with an existing unique value") from e
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Database error, rolled back: %s", e)
        raise TransactionError("Database operation failed; no changes were applied") from e
    except Exception:
        db.rollback()
        raise
