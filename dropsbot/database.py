from __future__ import annotations

import asyncio
import logging
import os
from contextlib import contextmanager
from typing import Any, Callable, Dict, Generator, Optional, TypeVar

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import SQLModel, Session, create_engine

from .errors import DataStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _is_sqlite(database_url: str) -> bool:
    return database_url.startswith("sqlite")


def _is_postgres(database_url: str) -> bool:
    return database_url.startswith("postgresql")


def _ensure_sqlite_dir(database_url: str) -> None:
    """
    Ensure the parent folder exists for SQLite file-based DB URLs like:
      sqlite:///./data/drops.sqlite
      sqlite:////absolute/path/to/db.sqlite
    """
    if not database_url.startswith("sqlite:///"):
        return

    path = database_url.replace("sqlite:///", "", 1)
    folder = os.path.dirname(path)
    if folder:
        os.makedirs(folder, exist_ok=True)


def _sqlite_pragmas(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragmas(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON;")
        cursor.execute("PRAGMA busy_timeout=5000;")  # reduce 'database is locked'
        cursor.close()


def _postgres_session_settings(engine: Engine) -> None:
    """
    A slash command has ~15 minutes after deferral; a query should never get close.
    """

    @event.listens_for(engine, "connect")
    def _set_postgres_settings(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("SET statement_timeout = 30000;")
        cursor.close()


def create_db_engine(database_url: str, **engine_kwargs: Any) -> Engine:
    """
    Create the SQLAlchemy engine for the given URL.

    - SQLite gets pragmas + check_same_thread=False (queries run in worker threads)
    - Postgres gets a statement timeout
    """
    if not database_url:
        raise RuntimeError("DATABASE_URL is empty.")

    connect_args: Dict[str, Any] = {}
    if _is_sqlite(database_url):
        _ensure_sqlite_dir(database_url)
        connect_args["check_same_thread"] = False

    engine = create_engine(
        database_url,
        echo=False,
        connect_args=connect_args,
        pool_pre_ping=True,
        **engine_kwargs,
    )

    if _is_sqlite(database_url):
        _sqlite_pragmas(engine)

    if _is_postgres(database_url):
        _postgres_session_settings(engine)

    return engine


def register_models() -> None:
    """
    Central place to import ALL models so SQLModel registers them.
    """
    from .models.user import User  # noqa: F401
    from .models.user_stats import UserStats  # noqa: F401
    from .models.drop import Drop, UnlockedDrop  # noqa: F401
    from .models.account_service import AccountService, AccountStock  # noqa: F401
    from .models.announcement import Announcement  # noqa: F401


def init_db(engine: Engine, create_tables: bool = True) -> None:
    """
    Register models, then create missing tables.
    Non-destructive: create_all will not drop or alter existing tables.
    """
    register_models()
    if create_tables:
        SQLModel.metadata.create_all(engine)


class DataStore:
    """
    The bot's handle on the database.

    Sessions are synchronous (SQLModel); read()/write() run the callable in a
    worker thread so the gateway heartbeat keeps flowing while a query runs.
    Every SQLAlchemy failure comes out as DataStoreError.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    @classmethod
    def from_url(cls, database_url: str, **engine_kwargs: Any) -> "DataStore":
        return cls(create_db_engine(database_url, **engine_kwargs))

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Commit on success, roll back on any exception.
        """
        session = Session(self.engine)
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def _read_sync(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        with Session(self.engine) as session:
            return fn(session, *args, **kwargs)

    def _write_sync(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        with self.session_scope() as session:
            return fn(session, *args, **kwargs)

    async def _run(self, runner: Callable[..., T], fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        name = getattr(fn, "__name__", repr(fn))
        try:
            return await asyncio.to_thread(runner, fn, *args, **kwargs)
        except SQLAlchemyError as e:
            logger.error("query failed: %s (%s)", name, e.__class__.__name__)
            raise DataStoreError(f"{name} failed: {e.__class__.__name__}") from e

    async def read(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """
        Run fn(session, *args, **kwargs) without committing. Whatever fn returns
        must be fully loaded before the session closes.
        """
        return await self._run(self._read_sync, fn, *args, **kwargs)

    async def write(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """
        Run fn(session, *args, **kwargs) in a single transaction.
        """
        return await self._run(self._write_sync, fn, *args, **kwargs)

    def dispose(self) -> None:
        self.engine.dispose()


def open_store(database_url: str, *, create_tables: bool = False, engine_kwargs: Optional[Dict[str, Any]] = None) -> DataStore:
    store = DataStore.from_url(database_url, **(engine_kwargs or {}))
    init_db(store.engine, create_tables=create_tables)
    return store
