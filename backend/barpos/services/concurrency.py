# Overview: Unit-of-work and locking helpers shared by every write path.

from __future__ import annotations

import logging
import time

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConflictError, StorageError, TransactionError

logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE (a writer holds the whole
    database), but other DBs will honor it.
    """
    return query.with_for_update()


def is_unique_violation(exc: IntegrityError) -> bool:
    orig = getattr(exc, "orig", None)
    # psycopg exposes the SQLSTATE; SQLite only has the message
    if getattr(orig, "pgcode", None) == "23505" or getattr(orig, "sqlstate", None) == "23505":
        return True
    message = str(orig if orig is not None else exc).lower()
    return "unique" in message or "duplicate" in message


def run_atomic(session, func, *, attempts: int = 3, backoff_base: float = 0.05):
    """
    Execute func() and commit its writes as one transaction.

    Any exception rolls back everything func flushed, so no partial write is
    ever visible to the next read. Lock contention (OperationalError) and
    optimistic-lock conflicts (StaleDataError) are retried with exponential
    backoff before surfacing as StorageError.

    Database failures are translated to ledger errors with the original
    exception chained:
    - unique IntegrityError -> ConflictError
    - other IntegrityError  -> TransactionError
    - other SQLAlchemyError -> StorageError
    LedgerError subclasses raised by func propagate unchanged.
    """
    for attempt in range(attempts):
        try:
            result = func()
            session.commit()
            return result
        except (OperationalError, StaleDataError) as exc:
            session.rollback()
            if attempt >= attempts - 1:
                logger.error("Giving up after %d attempts: %s", attempts, exc)
                raise StorageError("Database is busy or unavailable") from exc
            logger.warning("Retrying unit of work after lock conflict (attempt %d)", attempt + 1)
            time.sleep(backoff_base * (2 ** attempt))
        except IntegrityError as exc:
            session.rollback()
            if is_unique_violation(exc):
                raise ConflictError("Record conflicts with an existing unique value",
                                    details={"reason": str(exc.orig)}) from exc
            raise TransactionError("Integrity check failed; nothing was applied",
                                   details={"reason": str(exc.orig)}) from exc
        except SQLAlchemyError as exc:
            session.rollback()
            raise StorageError("Database operation failed") from exc
        except Exception:
            session.rollback()
            raise
