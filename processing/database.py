"""
Database engine and sessions for the enrichment state.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from config.settings import settings
from processing.models import Base

SQLITE_PREFIX = "sqlite:///"


def make_engine(url: Optional[str] = None, echo: Optional[bool] = None) -> Engine:
    """
    Engine for ``url`` (DATABASE_URL by default).

    File-backed SQLite databases get their parent directory created and run
    in WAL mode, so a crash between per-entity commits leaves earlier
    commits readable.
    """
    url = url or settings.DATABASE_URL
    engine = create_engine(url, echo=settings.DEBUG if echo is None else echo, future=True)

    if url.startswith(SQLITE_PREFIX) and url != SQLITE_PREFIX + ":memory:":
        Path(url[len(SQLITE_PREFIX):]).parent.mkdir(parents=True, exist_ok=True)

        @event.listens_for(engine, "connect")
        def _set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=FULL")
            cursor.close()

    return engine


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


engine = make_engine()
SessionLocal = make_session_factory(engine)


def init_db(bind: Optional[Engine] = None):
    """Create tables that do not exist yet."""
    Base.metadata.create_all(bind=bind or engine)


@contextmanager
def session_scope(factory: sessionmaker = SessionLocal):
    """Session that is rolled back on error and always closed."""
    db: Session = factory()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
