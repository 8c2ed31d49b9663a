"""
Database connection and session management using SQLAlchemy
"""
import os
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from examportal.core.config import DATABASE_URL


def make_engine(url: str = DATABASE_URL, **kwargs) -> Engine:
    """Create an engine; SQLite connections get WAL, busy timeout and foreign keys"""
    connect_args = kwargs.pop("connect_args", {})
    if url.startswith("sqlite"):
        connect_args.setdefault("check_same_thread", False)  # clock threads submit too
        connect_args.setdefault("timeout", 30.0)
    engine = create_engine(url, connect_args=connect_args, pool_pre_ping=True, echo=False, **kwargs)

    if url.startswith("sqlite"):
        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_conn, connection_record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA busy_timeout=30000")
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


engine = make_engine()

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for models
Base = declarative_base()


def init_db(bind: Engine = None):
    """Initialize database by creating all tables"""
    # Import all models to ensure they're registered
    from examportal.core import db_models  # noqa: F401

    bind = bind or engine
    if bind.url.get_backend_name() == "sqlite" and bind.url.database not in (None, "", ":memory:"):
        os.makedirs(os.path.dirname(os.path.abspath(bind.url.database)), exist_ok=True)

    Base.metadata.create_all(bind=bind)
    print(f"[OK] Database initialized at: {bind.url.render_as_string(hide_password=True)}", flush=True)


@contextmanager
def get_db_session(session_factory: sessionmaker = None):
    """
    Context manager for database sessions
    Usage:
        with get_db_session() as db:
            # use db session
    """
    db: Session = (session_factory or SessionLocal)()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
