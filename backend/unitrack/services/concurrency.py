# Overview: Unit-of-work and optimistic status updates shared by every mutating service.

from __future__ import annotations

from contextlib import contextmanager

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..errors import Conflict, TransientPersistenceError


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    The conditional UPDATE in compare_and_set is the guard that holds everywhere.
    """
    return query.with_for_update()


@contextmanager
def unit_of_work(*, commit: bool = True):
    """
    Run a block of writes as one all-or-nothing unit.

    - commit=True: commit on success (public service entry points).
    - commit=False: flush only; the caller owns the surrounding transaction.

    Any exception rolls back the whole session transaction. Driver-level
    failures are translated:
    - OperationalError (lock timeout, dropped connection) -> TransientPersistenceError
    - StaleDataError / IntegrityError (lost race on a row or unique key) -> Conflict
    """
    try:
        yield db.session
        if commit:
            db.session.commit()
        else:
            db.session.flush()
    except OperationalError as exc:
        db.session.rollback()
        raise TransientPersistenceError(f"Database unavailable: {exc.orig}") from exc
    except (StaleDataError, IntegrityError) as exc:
        db.session.rollback()
        raise Conflict("Concurrent modification detected; re-read current state and retry") from exc
    except Exception:
        db.session.rollback()
        raise


def compare_and_set(model, key_column, key, status_column, expected: str, values: dict) -> None:
    """
    Single-row conditional UPDATE:

        UPDATE <model> SET <values> WHERE <key_column> = :key AND <status_column> = :expected

    Raises Conflict when no row matched, i.e. another writer moved the row
    away from `expected` after we read it. The in-session instance (if any) is
    refreshed so callers see the committed values.
    """
    stmt = (
        update(model)
        .where(key_column == key, status_column == expected)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    if result.rowcount != 1:
        raise Conflict(
            f"{model.__name__} {key} is no longer '{expected}'; re-read current state and retry"
        )

    instance = db.session.get(model, key)
    if instance is not None:
        db.session.refresh(instance)
