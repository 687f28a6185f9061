"""SQLModel backend: one row per document key holding its record list."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, Column, DateTime, String
from sqlmodel import Field, Session, SQLModel, create_engine, select

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.engine import Engine

    from marginalia.store.base import Record

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(UTC)


class AnnotationSetRow(SQLModel, table=True):
    """Stored annotation set for one document key.

    Attributes:
        document_key: Opaque document key (primary key).
        records: Ordered list of annotation records.
        updated_at: Time of the last save.
    """

    __tablename__ = "annotation_set"

    document_key: str = Field(
        sa_column=Column(String(512), primary_key=True, nullable=False),
    )
    records: list[dict[str, Any]] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )
    updated_at: datetime = Field(
        default_factory=_utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class SqlStore:
    """Persist annotation sets through SQLAlchemy (SQLite by default)."""

    def __init__(self, url: str = "sqlite:///highlights.db", *, echo: bool = False):
        self.engine: Engine = create_engine(url, echo=echo)
        SQLModel.metadata.create_all(self.engine, tables=[AnnotationSetRow.__table__])

    @contextmanager
    def _session(self) -> Iterator[Session]:
        """Yield a session that commits on success and rolls back on error."""
        with Session(self.engine) as session:
            try:
                yield session
                session.commit()
            except Exception:
                logger.exception("Highlight store session error, rolling back")
                session.rollback()
                raise

    def load(self, key: str) -> list[Record]:
        with self._session() as session:
            row = session.get(AnnotationSetRow, key)
            return list(row.records) if row is not None else []

    def save(self, key: str, records: list[Record]) -> None:
        with self._session() as session:
            row = session.get(AnnotationSetRow, key)
            if row is None:
                row = AnnotationSetRow(document_key=key, records=list(records))
            else:
                # Reassign so the JSON column is flagged dirty.
                row.records = list(records)
                row.updated_at = _utcnow()
            session.add(row)
        logger.debug("Saved %d highlight(s) for %r", len(records), key)

    def keys(self) -> list[str]:
        with self._session() as session:
            return list(session.exec(select(AnnotationSetRow.document_key)).all())

    def close(self) -> None:
        self.engine.dispose()
