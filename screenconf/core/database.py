"""
Database connection management for the SQL store backend.

Provides synchronous SQLAlchemy sessions; callers on the event loop run
them through asyncio.to_thread.
"""

import threading
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from screenconf.core.logging import get_logger

logger = get_logger(__name__)


class DatabaseManager:
    """Owns one engine and its session factory."""

    def __init__(self, database_url: Optional[str] = None, engine: Optional[Engine] = None):
        if database_url is None and engine is None:
            raise ValueError("database_url or engine is required")
        self._database_url = database_url
        self._engine: Engine | None = engine
        self._session_factory: sessionmaker[Session] | None = None
        self._lock = threading.Lock()

    def initialize(self) -> None:
        """Create the engine (if needed) and session factory."""
        with self._lock:
            if self._session_factory is not None:
                return

            if self._engine is None:
                logger.info("Initializing screen config database engine")
                self._engine = create_engine(
                    self._database_url,
                    pool_pre_ping=True,
                    echo=False,
                )

            self._session_factory = sessionmaker(
                bind=self._engine,
                autocommit=False,
                autoflush=False,
                expire_on_commit=False,
            )

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            self.initialize()
        return self._engine

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._session_factory is None:
            self.initialize()
        return self._session_factory

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """
        Get a database session context manager.

        Yields a session and handles commit/rollback/close.
        """
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        """Dispose engine and connections."""
        with self._lock:
            if self._engine is not None:
                self._engine.dispose()
                self._engine = None
                self._session_factory = None
                logger.info("Screen config database connections disposed")
