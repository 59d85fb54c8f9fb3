from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base, Session
from .config import settings

def build_engine(database_url: str, echo: bool = False, **engine_kwargs):
    """Create an engine, applying the SQLite specifics the app relies on."""
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False

    engine = create_engine(
        database_url,
        connect_args=connect_args,
        pool_pre_ping=True,
        echo=echo,
        **engine_kwargs
    )

    if database_url.startswith("sqlite"):
        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            # WAL Mode for SQLite concurrency (file databases only)
            if ":memory:" not in database_url and database_url != "sqlite://":
                cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

    return engine

# Create engine
engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for models
Base = declarative_base()

# Dependency for FastAPI
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

@contextmanager
def transaction(db: Session):
    """
    Commit on success, roll back everything on any exception.
    All ledger-mutating sequences run inside one of these.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
