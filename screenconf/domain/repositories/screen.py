"""
Screen configuration repository backed by SQLAlchemy.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Type

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from screenconf.core.database import DatabaseManager
from screenconf.core.exceptions import RowNotFoundError, StoreFailureError
from screenconf.core.logging import get_logger
from screenconf.domain.models import Base, EventScreen, Screen
from screenconf.domain.repositories.base import EVENT_SCREEN_CONFLICT_TARGET, Row

logger = get_logger(__name__)


def _to_datetime(value: Any) -> Any:
    if isinstance(value, str):
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    return value


def _to_iso(value: Any) -> Any:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    return value


def _column_values(model: Type[Base], row: Row) -> Dict[str, Any]:
    """Keep only mapped columns, converting ISO timestamps to datetimes."""
    columns = model.__table__.columns
    values = {}
    for key, value in row.items():
        if key not in columns:
            continue
        if key.endswith("_at"):
            value = _to_datetime(value)
        values[key] = value
    return values


def _model_to_row(instance: Base) -> Row:
    return {
        column.name: _to_iso(getattr(instance, column.name))
        for column in instance.__table__.columns
    }


class ScreenRepository:
    """Repository for Screen and EventScreen rows."""

    def __init__(self, db: Session):
        self.db = db

    def _insert(self, model: Type[Base]):
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            raise StoreFailureError(
                f"Upsert not supported for dialect: {dialect}",
                details={"dialect": dialect},
            )
        return insert(model)

    def _upsert(self, model: Type[Base], row: Row, conflict: Sequence[str]) -> None:
        values = _column_values(model, row)
        stmt = self._insert(model).values(**values)
        update_columns = {
            key: stmt.excluded[key] for key in values if key not in conflict
        }
        if update_columns:
            stmt = stmt.on_conflict_do_update(index_elements=list(conflict), set_=update_columns)
        else:
            stmt = stmt.on_conflict_do_nothing(index_elements=list(conflict))
        self.db.execute(stmt)

    def get_by_id(self, screen_id: str) -> Screen:
        screen = self.db.get(Screen, screen_id)
        if screen is None:
            raise RowNotFoundError(Screen.__tablename__, screen_id)
        return screen

    def upsert(self, row: Row) -> Screen:
        self._upsert(Screen, row, ("id",))
        self.db.flush()
        return self.get_by_id(row["id"])

    def list_by_keys(self, screen_keys: Optional[Sequence[str]] = None) -> List[Screen]:
        stmt = select(Screen).order_by(Screen.name)
        if screen_keys is not None:
            stmt = stmt.where(Screen.screen_key.in_(list(screen_keys)))
        return list(self.db.execute(stmt).scalars().all())

    def upsert_event_screen(self, row: Row, conflict: Sequence[str]) -> EventScreen:
        self._upsert(EventScreen, row, conflict)
        self.db.flush()
        return self.db.get(EventScreen, (row["event_id"], row["screen_id"]))


class SqlScreenStore:
    """
    ScreenStore over a relational database.

    Each call opens its own session and runs in a worker thread so the
    event loop never blocks.
    """

    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager

    def create_tables(self) -> None:
        Base.metadata.create_all(self.db_manager.engine)

    async def _run(self, operation: str, func):
        def _call():
            with self.db_manager.session() as session:
                return func(ScreenRepository(session))

        try:
            return await asyncio.to_thread(_call)
        except SQLAlchemyError as e:
            logger.error("Screen store query failed", operation=operation, error=str(e))
            raise StoreFailureError(
                f"Screen store {operation} failed: {e}",
                details={"operation": operation},
            ) from e

    async def read_screen(self, screen_id: str) -> Row:
        return await self._run(
            "read", lambda repo: _model_to_row(repo.get_by_id(screen_id))
        )

    async def upsert_screen(self, row: Row) -> Row:
        return await self._run("upsert", lambda repo: _model_to_row(repo.upsert(row)))

    async def list_screens(
        self, screen_keys: Optional[Sequence[str]] = None
    ) -> List[Row]:
        return await self._run(
            "list",
            lambda repo: [_model_to_row(s) for s in repo.list_by_keys(screen_keys)],
        )

    async def upsert_event_screen(
        self,
        row: Row,
        on_conflict: Sequence[str] = EVENT_SCREEN_CONFLICT_TARGET,
    ) -> Row:
        return await self._run(
            "upsert_event_screen",
            lambda repo: _model_to_row(repo.upsert_event_screen(row, on_conflict)),
        )

    async def aclose(self) -> None:
        await asyncio.to_thread(self.db_manager.dispose)
