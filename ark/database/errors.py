import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError

from ark.exceptions import AppException, DependencyException

logger = logging.getLogger(__name__)


@contextmanager
def store_errors(action: str) -> Iterator[None]:
    """Re-raise SQLAlchemy failures inside the block as ``DependencyException``."""
    try:
        yield
    except AppException:
        raise
    except SQLAlchemyError as exc:
        logger.exception("Database failure while trying to %s", action)
        raise DependencyException(f"Could not {action}: database unavailable") from exc
