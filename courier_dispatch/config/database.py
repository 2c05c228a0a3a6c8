# courier_dispatch/config/database.py
from contextlib import contextmanager
import logging

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .settings import settings
from courier_dispatch.shared.database.models import Base

logger = logging.getLogger(__name__)


def _take_over_sqlite_transactions(engine: Engine, begin: str = "BEGIN") -> None:
    """
    Let SQLAlchemy emit BEGIN itself on SQLite.

    pysqlite only opens a transaction before DML, which turns SAVEPOINT into
    an implicit commit and breaks rollback of multi-row units of work.
    """

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql(begin)


def create_database_engine(database_url: str, echo: bool = False, sqlite_begin: str = "BEGIN") -> Engine:
    """
    Build the engine for the configured store.

    PostgreSQL gets connection health checks; SQLite (local runs and tests)
    gets a shared in-memory pool or a busy timeout for file databases.
    """
    if database_url.startswith("sqlite"):
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            engine = create_engine(
                database_url,
                echo=echo,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            engine = create_engine(
                database_url,
                echo=echo,
                connect_args={"check_same_thread": False, "timeout": 30},
            )
        _take_over_sqlite_transactions(engine, sqlite_begin)
        return engine

    engine_kwargs = {
        "pool_pre_ping": True,
        "pool_recycle": 300,
        "echo": echo,
    }

    # SSL for hosted PostgreSQL
    if "render" in database_url:
        engine_kwargs["connect_args"] = {"sslmode": "require"}

    return create_engine(database_url, **engine_kwargs)


# Create engine
engine = create_database_engine(settings.database_url_with_ssl, echo=settings.debug)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_database(bind: Engine = None) -> None:
    """Create all tables that don't exist yet. Safe to call repeatedly."""
    bind = bind or engine
    Base.metadata.create_all(bind)
    logger.info("Database tables initialized")


# Database dependency
def get_db():
    """Database dependency for FastAPI"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session):
    """
    Unit of work over an existing session.

    Commits when the block finishes, rolls back on any exception and
    re-raises it, so multi-row writes land together or not at all.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
