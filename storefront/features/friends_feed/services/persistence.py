"""
Translation of database failures into the feature's PersistenceError.
"""

from collections.abc import Iterator
from contextlib import contextmanager

from storefront.db.helpers import DatabaseError
from storefront.features.friends_feed.domain.errors import PersistenceError
from storefront.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


@contextmanager
def persistence_guard(operation: str) -> Iterator[None]:
    """Re-raise DatabaseError from the wrapped block as PersistenceError."""
    try:
        yield
    except DatabaseError as e:
        logger.error(
            "Friends feed storage operation failed",
            operation=operation,
            db_operation=e.operation,
            recoverable=e.recoverable,
            error=str(e),
        )
        raise PersistenceError(operation) from e
