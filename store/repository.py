"""
Row-level table store backed by SQLAlchemy sessions.

Rows go in and come out as plain dicts in wire form: timestamps as ISO 8601
strings, tags and medications as lists. Every read and write is scoped to an
owning account, so one account never sees another's rows.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import DateTime, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from store.engine import get_engine, init_db
from store.models import TABLES
from tracker.timestamps import format_timestamp, parse_timestamp, utcnow

__all__ = ["StoreError", "RowNotFoundError", "TableStore"]

logger = logging.getLogger(__name__)

_PROTECTED = frozenset({"id", "user_id", "created_at"})


class StoreError(Exception):
    """Failure reported by the table store; the message is passed through untouched."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code


class RowNotFoundError(StoreError):
    def __init__(self, table: str, row_id: str):
        super().__init__(f"No row in {table!r} with id {row_id!r}", code="not_found")
        self.table = table
        self.row_id = row_id


class TableStore:
    """Explicitly constructed handle on the tables; nothing here is module-global."""

    def __init__(self, engine: Engine):
        self.engine = init_db(engine)
        self._SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)

    @classmethod
    def from_env(cls) -> "TableStore":
        return cls(get_engine())

    @contextmanager
    def session_scope(self):
        """
        Provide a transactional session.

        Commits on success, rolls back and re-raises on failure and always
        closes the session. SQLAlchemy errors surface as :class:`StoreError`.
        """
        db: Session = self._SessionLocal()
        try:
            yield db
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("Store operation failed: %s", exc)
            raise StoreError(str(exc.orig if getattr(exc, "orig", None) else exc)) from exc
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    # ---------- helpers ------------------------------------------------

    @staticmethod
    def _model(table: str):
        try:
            return TABLES[table]
        except KeyError:
            raise StoreError(f"Unknown table {table!r}", code="undefined_table") from None

    @staticmethod
    def _to_wire(obj) -> Dict[str, Any]:
        data = {}
        for column in obj.__table__.columns:
            value = getattr(obj, column.name)
            if isinstance(value, datetime):
                value = format_timestamp(value)
            data[column.name] = value
        return data

    @staticmethod
    def _from_wire(model, values: Mapping[str, Any]) -> Dict[str, Any]:
        columns = model.__table__.columns
        parsed = {}
        for key, value in values.items():
            if key not in columns:
                raise StoreError(
                    f"Could not find the {key!r} column of {model.__tablename__!r}",
                    code="undefined_column",
                )
            if isinstance(columns[key].type, DateTime) and value is not None:
                try:
                    value = parse_timestamp(value)
                except ValueError as exc:
                    raise StoreError(
                        f"invalid input syntax for type timestamp: {value!r}",
                        code="invalid_datetime",
                    ) from exc
            parsed[key] = value
        return parsed

    def _owned(self, db: Session, model, owner: str, row_id: str):
        obj = db.execute(
            select(model).where(model.id == row_id, model.user_id == owner)
        ).scalar_one_or_none()
        if obj is None:
            raise RowNotFoundError(model.__tablename__, row_id)
        return obj

    # ---------- CRUD ---------------------------------------------------

    def list(
        self,
        table: str,
        owner: str,
        order_by: str = "created_at",
        descending: bool = True,
    ) -> List[Dict[str, Any]]:
        model = self._model(table)
        if order_by not in model.__table__.columns:
            raise StoreError(f"Cannot order {table!r} by {order_by!r}", code="undefined_column")
        column = getattr(model, order_by)
        with self.session_scope() as db:
            rows = db.execute(
                select(model)
                .where(model.user_id == owner)
                .order_by(column.desc() if descending else column.asc())
            ).scalars()
            return [self._to_wire(row) for row in rows]

    def get(self, table: str, owner: str, row_id: str) -> Dict[str, Any]:
        model = self._model(table)
        with self.session_scope() as db:
            return self._to_wire(self._owned(db, model, owner, row_id))

    def insert(self, table: str, row: Mapping[str, Any]) -> Dict[str, Any]:
        model = self._model(table)
        if not row.get("user_id"):
            raise StoreError("new row violates row-level security policy", code="rls")
        values = self._from_wire(model, row)
        now = utcnow()
        values.setdefault("created_at", now)
        values.setdefault("updated_at", now)
        with self.session_scope() as db:
            obj = model(**values)
            db.add(obj)
            db.flush()
            return self._to_wire(obj)

    def update(
        self, table: str, owner: str, row_id: str, patch: Mapping[str, Any]
    ) -> Dict[str, Any]:
        model = self._model(table)
        protected = _PROTECTED.intersection(patch)
        if protected:
            raise StoreError(
                f"Columns cannot be updated: {', '.join(sorted(protected))}", code="readonly"
            )
        values = self._from_wire(model, patch)
        values.setdefault("updated_at", utcnow())
        with self.session_scope() as db:
            obj = self._owned(db, model, owner, row_id)
            for key, value in values.items():
                setattr(obj, key, value)
            db.flush()
            return self._to_wire(obj)

    def delete(self, table: str, owner: str, row_id: str) -> None:
        model = self._model(table)
        with self.session_scope() as db:
            db.delete(self._owned(db, model, owner, row_id))
