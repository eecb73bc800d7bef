"""
Row-oriented data access.

``TableGateway`` is the only place services touch SQLAlchemy queries for
plain CRUD. Every failure surfaces as ``DataAccessError`` with a readable
message; nothing is retried. Gateways flush, they never commit: the calling
service owns the transaction.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Type

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from clinreview.core.exceptions import DataAccessError

logger = logging.getLogger(__name__)

DateRange = Tuple[str, datetime, datetime]


class TableGateway:
    def __init__(self, db: Session, model: Type[Any]):
        self.db = db
        self.model = model
        self.table = model.__tablename__

    def _column(self, name: str):
        try:
            return getattr(self.model, name)
        except AttributeError:
            raise DataAccessError(f"Unknown column '{name}' on {self.table}")

    def _filtered(self, filters: Optional[Dict[str, Any]], in_: Optional[Tuple[str, Iterable[Any]]] = None,
                  date_range: Optional[DateRange] = None):
        query = self.db.query(self.model)
        for name, value in (filters or {}).items():
            query = query.filter(self._column(name) == value)
        if in_ is not None:
            name, values = in_
            query = query.filter(self._column(name).in_(list(values)))
        if date_range is not None:
            name, start, end = date_range
            column = self._column(name)
            query = query.filter(column >= start, column <= end)
        return query

    def select(
        self,
        filters: Optional[Dict[str, Any]] = None,
        *,
        in_: Optional[Tuple[str, Iterable[Any]]] = None,
        date_range: Optional[DateRange] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
        embed: Sequence[str] = (),
    ) -> List[Any]:
        """
        Equality filters, an optional IN filter and an inclusive date range.
        ``embed`` names relationships to load alongside each row.
        """
        try:
            query = self._filtered(filters, in_, date_range)
            for relation in embed:
                query = query.options(selectinload(self._column(relation)))
            if order_by:
                column = self._column(order_by)
                query = query.order_by(column.desc() if descending else column.asc())
            if limit is not None:
                query = query.limit(limit)
            return query.all()
        except SQLAlchemyError as e:
            logger.error(f"select on {self.table} failed: {e}")
            raise DataAccessError(f"Failed to fetch {self.table}: {e.__class__.__name__}") from e

    def get(self, row_id: Any) -> Optional[Any]:
        try:
            return self.db.get(self.model, row_id)
        except SQLAlchemyError as e:
            raise DataAccessError(f"Failed to fetch {self.table} {row_id}: {e.__class__.__name__}") from e

    def insert(self, rows: List[Dict[str, Any]]) -> List[Any]:
        try:
            objects = [self.model(**row) for row in rows]
            self.db.add_all(objects)
            self.db.flush()
            return objects
        except SQLAlchemyError as e:
            logger.error(f"insert into {self.table} failed: {e}")
            raise DataAccessError(f"Failed to create {self.table}: {e.__class__.__name__}") from e

    def update(self, values: Dict[str, Any], filters: Dict[str, Any]) -> List[Any]:
        if not filters:
            raise DataAccessError(f"Refusing unfiltered update on {self.table}")
        try:
            rows = self._filtered(filters).all()
            for row in rows:
                for name, value in values.items():
                    self._column(name)
                    setattr(row, name, value)
            self.db.flush()
            return rows
        except SQLAlchemyError as e:
            logger.error(f"update on {self.table} failed: {e}")
            raise DataAccessError(f"Failed to update {self.table}: {e.__class__.__name__}") from e

    def delete(self, filters: Optional[Dict[str, Any]] = None, *,
               in_: Optional[Tuple[str, Iterable[Any]]] = None) -> int:
        if not filters and in_ is None:
            raise DataAccessError(f"Refusing unfiltered delete on {self.table}")
        try:
            count = self._filtered(filters, in_).delete(synchronize_session="fetch")
            self.db.flush()
            return count
        except SQLAlchemyError as e:
            logger.error(f"delete on {self.table} failed: {e}")
            raise DataAccessError(f"Failed to delete {self.table}: {e.__class__.__name__}") from e
