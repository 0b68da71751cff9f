"""
Transaction scope for multi-step check-then-write sequences
"""

import logging
from contextlib import contextmanager

from sqlalchemy import UniqueConstraint

from pickem import db

logger = logging.getLogger(__name__)


@contextmanager
def transaction():
    """Commit everything done inside the block, or roll all of it back.

    Reads issued inside the block see the session's pending writes, so a
    quota check followed by an insert runs against one consistent view. The
    unique constraints on ``picks`` and ``wrinkle_picks`` reject any
    concurrent writer that slips in between, and the resulting
    IntegrityError propagates to the caller.
    """
    try:
        yield db.session
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.debug("Transaction rolled back", exc_info=True)
        raise


def violated_constraint(error, table):
    """Name of the unique constraint on ``table`` behind an IntegrityError.

    PostgreSQL drivers report the constraint name directly. SQLite only
    lists the offending columns, which are matched against the table's
    unique constraints. Returns None when nothing matches.
    """
    orig = getattr(error, "orig", None)
    diag = getattr(orig, "diag", None)
    name = getattr(diag, "constraint_name", None)
    if name:
        return name

    message = str(orig)
    marker = "UNIQUE constraint failed:"
    if marker not in message:
        return None
    columns = [
        part.strip().split(".")[-1]
        for part in message.split(marker, 1)[1].split(",")
    ]
    for constraint in table.constraints:
        if not isinstance(constraint, UniqueConstraint):
            continue
        if [column.name for column in constraint.columns] == columns:
            return constraint.name
    return None
