import logging
from contextlib import contextmanager
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker, declarative_base
from os import getenv

from abn.core.errors import ServiceError, StorageError

logger = logging.getLogger(__name__)

DATABASE_URL = getenv("ABN_DATABASE_URL", "sqlite:///./abn.db")


def make_engine(url: str) -> Engine:
    """Engine with the options each backend needs"""
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}

    new_engine = create_engine(url, echo=False, connect_args=connect_args)

    if new_engine.dialect.name == "sqlite":
        # SQLite n'applique pas les FK (ni les cascades) sans ce pragma
        @event.listens_for(new_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return new_engine


engine = make_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def configure_database(url: str) -> None:
    """Rebind engine and session factory (called once at start-up)"""
    global engine
    engine = make_engine(url)
    SessionLocal.configure(bind=engine)


def init_db() -> None:
    # importe les models pour qu'ils soient enregistrés dans Base.metadata
    from abn.models import task, task_property, dependency, view, script, user  # noqa: F401
    Base.metadata.create_all(bind=engine)


def get_db():
    """Dépendance sessionDB"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session):
    """Commit on success, rollback on any error (DB errors become StorageError)."""
    try:
        yield db
        db.commit()
    except ServiceError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"transaction failed: {e}")
        raise StorageError(e) from e
