from contextlib import contextmanager
from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker, declarative_base
import logging

from app.core.config import settings
from app.core.errors import CoreError, UpstreamFailure

logger = logging.getLogger(__name__)

engine = create_engine(settings.DATABASE_URL, echo=False)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

ROW_LOCK_DIALECTS = ("postgresql", "mysql", "oracle")


def get_db():
    """Request-scoped DB session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def supports_row_locking(db: Session) -> bool:
    bind = db.get_bind()
    return bind is not None and bind.dialect.name in ROW_LOCK_DIALECTS


@contextmanager
def unit_of_work(db: Session, action: str):
    """Commit everything done inside the block at once, or nothing.

    Domain errors raised inside roll back and propagate unchanged; storage
    errors roll back and surface as UpstreamFailure.
    """
    try:
        yield db
        db.commit()
    except CoreError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Storage failure during {action}: {e}")
        raise UpstreamFailure(f"Failed to {action}") from e
