"""Row-level access to the relational store.

Every call is one round-trip. Writes commit immediately unless they run
inside :meth:`DataGateway.transaction`, in which case they are committed
together when the block exits. Driver errors surface as ``BackendFailure``
with the original exception chained.
"""
import functools
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import select, update, delete, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from swiftlocal.core.errors import BackendFailure

logger = logging.getLogger(__name__)


def _wrap(fn):
    @functools.wraps(fn)
    def wrapper(self, *args, **kwargs):
        try:
            return fn(self, *args, **kwargs)
        except SQLAlchemyError as exc:
            logger.error("store call %s failed: %s", fn.__name__, exc)
            self.db.rollback()
            raise BackendFailure(f"Data store error during {fn.__name__}") from exc
    return wrapper


class DataGateway:
    def __init__(self, db: Session):
        self.db = db
        self._in_tx = False

    # ---------- reads ----------
    def _filtered(self, stmt, model, eq, in_, ilike):
        for col, val in (eq or {}).items():
            stmt = stmt.where(getattr(model, col) == val)
        for col, vals in (in_ or {}).items():
            stmt = stmt.where(getattr(model, col).in_(list(vals)))
        for col, pattern in (ilike or {}).items():
            stmt = stmt.where(getattr(model, col).ilike(pattern))
        return stmt

    @_wrap
    def select(
        self,
        model,
        *,
        eq: Optional[Dict[str, Any]] = None,
        in_: Optional[Dict[str, Iterable[Any]]] = None,
        ilike: Optional[Dict[str, str]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[Any]:
        in_ = {col: list(vals) for col, vals in (in_ or {}).items()}
        if any(not vals for vals in in_.values()):
            return []
        stmt = self._filtered(select(model), model, eq, in_, ilike)
        if order_by:
            col = getattr(model, order_by)
            stmt = stmt.order_by(col.desc() if descending else col.asc())
        return list(self.db.execute(stmt).scalars().all())

    def first(self, model, **eq) -> Optional[Any]:
        rows = self.select(model, eq=eq)
        return rows[0] if rows else None

    @_wrap
    def get(self, model, row_id: Any) -> Optional[Any]:
        return self.db.get(model, row_id)

    @_wrap
    def count_grouped(self, model, column: str, in_: Optional[Dict[str, Iterable[Any]]] = None) -> Dict[Any, int]:
        """``SELECT column, count(*) ... GROUP BY column`` as a dict."""
        col = getattr(model, column)
        in_ = {c: list(vals) for c, vals in (in_ or {}).items()}
        if any(not vals for vals in in_.values()):
            return {}
        stmt = self._filtered(select(col, func.count()), model, None, in_, None).group_by(col)
        return {key: int(n) for key, n in self.db.execute(stmt).all()}

    @_wrap
    def sum_grouped(self, model, column: str, summed: str) -> Dict[Any, Tuple[int, Any]]:
        """``{group: (count, sum(summed))}`` computed in the store."""
        col = getattr(model, column)
        stmt = select(col, func.count(), func.coalesce(func.sum(getattr(model, summed)), 0)).group_by(col)
        return {key: (int(n), total) for key, n, total in self.db.execute(stmt).all()}

    # ---------- writes ----------
    def _done(self):
        if self._in_tx:
            self.db.flush()
        else:
            self.db.commit()

    @_wrap
    def insert(self, obj):
        self.db.add(obj)
        self._done()
        if not self._in_tx:
            self.db.refresh(obj)
        return obj

    @_wrap
    def insert_many(self, objs: Sequence[Any]) -> Sequence[Any]:
        self.db.add_all(list(objs))
        self._done()
        return objs

    @_wrap
    def update_by_id(self, model, row_id: Any, values: Dict[str, Any]) -> int:
        return self._update(model, {"id": row_id}, values)

    @_wrap
    def update_where(self, model, eq: Dict[str, Any], values: Dict[str, Any]) -> int:
        return self._update(model, eq, values)

    def _update(self, model, eq, values) -> int:
        stmt = self._filtered(update(model), model, eq, None, None).values(**values)
        n = self.db.execute(stmt).rowcount
        self._done()
        return n

    @_wrap
    def decrement_guarded(self, model, row_id: Any, column: str, amount: int, **extra) -> bool:
        """Atomically subtract ``amount`` from ``column`` if it stays >= 0."""
        col = getattr(model, column)
        stmt = (
            update(model)
            .where(model.id == row_id, col >= amount)
            .values({column: col - amount, **extra})
            .execution_options(synchronize_session=False)
        )
        n = self.db.execute(stmt).rowcount
        self._done()
        return n == 1

    @_wrap
    def delete_by_id(self, model, row_id: Any) -> int:
        return self._delete(model, {"id": row_id})

    @_wrap
    def delete_where(self, model, eq: Dict[str, Any]) -> int:
        return self._delete(model, eq)

    def _delete(self, model, eq) -> int:
        stmt = self._filtered(delete(model), model, eq, None, None)
        n = self.db.execute(stmt).rowcount
        self._done()
        return n

    @contextmanager
    def transaction(self):
        """Group several writes into one commit; roll all back on error."""
        if self._in_tx:
            yield self
            return
        self._in_tx = True
        try:
            yield self
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("transaction failed: %s", exc)
            raise BackendFailure("Data store transaction failed") from exc
        except Exception:
            self.db.rollback()
            raise
        finally:
            self._in_tx = False
