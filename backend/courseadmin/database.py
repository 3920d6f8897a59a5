"""Database engine and helpers.

This module configures the SQLModel/SQLAlchemy engine from
`settings.DATABASE_URL` (a local SQLite file `app.db` next to the package by
default) and provides the session dependency used by the routers and tests.
"""

from sqlalchemy import event
from sqlmodel import SQLModel, create_engine, Session

from .config import settings

DB_URL = settings.DATABASE_URL
_is_sqlite = DB_URL.startswith("sqlite")
engine = create_engine(
    DB_URL,
    echo=False,
    connect_args={"check_same_thread": False} if _is_sqlite else {},
)


if _is_sqlite:
    @event.listens_for(engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, _record):
        # SQLite ignores ON DELETE clauses unless enforcement is switched on per connection.
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_db_and_tables():
    """Create database tables using SQLModel metadata.

    This function is intended for local development and lightweight
    deployments; schema changes beyond additive tables need a proper
    migration tool (alembic).
    """
    from . import models  # noqa: F401  (registers the tables on the metadata)

    SQLModel.metadata.create_all(engine)


def drop_db_and_tables():
    """Drop every table known to the metadata. Used by tests."""
    from . import models  # noqa: F401

    SQLModel.metadata.drop_all(engine)


def get_session():
    """Yield a database `Session` for FastAPI dependency injection.

    The generator yields a session and ensures it is closed when the
    request scope finishes.
    """
    with Session(engine) as session:
        yield session
