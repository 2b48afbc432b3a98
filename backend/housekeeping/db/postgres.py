"""
PostgreSQL connection via SQLAlchemy with psycopg3.

This is the system of record for assignments, rooms and attendance.
"""

from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, scoped_session, declarative_base

from housekeeping.config import config

# SQLAlchemy base for model declarations
Base = declarative_base()

# Engine and session factory (initialized lazily)
_engine = None
_session_factory = None


def get_engine():
    """Get or create the SQLAlchemy engine."""
    global _engine
    if _engine is None:
        # Use psycopg3 dialect
        db_url = config.get_database_url().replace(
            "postgresql://", "postgresql+psycopg://"
        )
        _engine = create_engine(
            db_url,
            echo=config.DEBUG,  # Log SQL in debug mode
            pool_pre_ping=True,  # Verify connections before use
            pool_recycle=300,  # Recycle connections every 5 minutes
            pool_reset_on_return="rollback",
        )

        if _engine.dialect.name == "postgresql":
            @event.listens_for(_engine, "checkout")
            def checkout_listener(dbapi_conn, connection_record, connection_proxy):
                """Ensure connection is in clean state when checked out."""
                try:
                    cursor = dbapi_conn.cursor()
                    cursor.execute("ROLLBACK")
                    cursor.close()
                except Exception:
                    pass  # connection already clean

    return _engine


def bind_engine(engine):
    """Use an externally created engine (tests, scripts)."""
    global _engine, _session_factory
    if _session_factory is not None:
        _session_factory.remove()
    _engine = engine
    _session_factory = None


def get_db_session():
    """Get a scoped database session.

    Returns the thread-local session from the scoped session factory.
    The session is cleaned up at the end of each request via close_db_session().
    """
    global _session_factory
    if _session_factory is None:
        _session_factory = scoped_session(
            sessionmaker(bind=get_engine(), autocommit=False, autoflush=False,
                         expire_on_commit=False)
        )

    return _session_factory()


@contextmanager
def session_scope(session=None):
    """Transactional unit of work.

    Commits when the block exits cleanly, rolls back everything written
    inside the block otherwise. Uses the scoped session unless one is given.
    """
    session = session if session is not None else get_db_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise


def init_db():
    """Initialize database tables (for development/testing)."""
    # Import models so they register with Base.metadata
    from housekeeping import models  # noqa: F401

    Base.metadata.create_all(bind=get_engine())


def close_db_session(exception=None):
    """Remove the current session (call at end of request)."""
    if _session_factory is not None:
        try:
            _session_factory.rollback()
        finally:
            _session_factory.remove()


def rollback_session():
    """Explicitly rollback the current session.

    Call this at the start of a request to ensure clean state.
    """
    if _session_factory is not None:
        session = _session_factory()
        if session.is_active:
            session.rollback()


# Alias for convenience
db = Base
