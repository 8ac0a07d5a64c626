# salesdesk/database.py
import logging
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from salesdesk import config
from salesdesk.errors import PersistenceError

logger = logging.getLogger(__name__)


def configure_sqlite(engine):
    """
    Makes pysqlite honour transactions and savepoints, and enforce foreign keys.

    The driver's own transaction handling is switched off and SQLAlchemy emits
    BEGIN itself, otherwise SAVEPOINT/ROLLBACK TO are not reliable. Transactions
    start IMMEDIATE so concurrent writers queue on the busy timeout instead of
    failing with "database is locked" when upgrading a shared read lock.
    """
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def make_engine(url: str):
    kwargs = {}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False, "timeout": config.SQLITE_BUSY_TIMEOUT}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    engine = create_engine(url, **kwargs)
    if url.startswith("sqlite"):
        configure_sqlite(engine)
    return engine


engine = make_engine(config.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind=None):
    from salesdesk.models import Base
    Base.metadata.create_all(bind=bind or engine)


# --- Database Dependency ---
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session):
    """
    One unit of work: commits on success, rolls back on any exception.

    Storage errors are logged and re-raised as PersistenceError so callers
    never see driver details.
    """
    try:
        yield db
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Transaction rolled back after a storage error")
        raise PersistenceError() from e
    except Exception:
        db.rollback()
        raise
