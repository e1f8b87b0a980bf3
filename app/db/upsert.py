"""
Dialect-aware INSERT constructs.

Both PostgreSQL and SQLite support ``INSERT ... ON CONFLICT``; SQLAlchemy
exposes it only on the dialect-specific ``insert()``. Callers use
``on_conflict_do_nothing`` / ``on_conflict_do_update`` on the returned
statement so that unique keys are enforced by the database in a single
statement, never by read-then-write in Python.
"""
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def dialect_insert(db: Session, model):
    """Return an ON CONFLICT capable insert() for the session's bound dialect."""
    dialect = db.get_bind().dialect.name
    try:
        insert_fn = _INSERTS[dialect]
    except KeyError:
        raise RuntimeError(f"Atomic upserts are not supported on dialect {dialect!r}")
    return insert_fn(model)
