import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple, Type, TypeVar

from fastapi import Depends
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlmodel import Session, SQLModel, col, select

from ..db import get_session
from ..models import User
from ..security import require_roles
from ..utils.sqlmodel_helpers import apply_partial_update


logger = logging.getLogger(__name__)

TRow = TypeVar("TRow", bound=SQLModel)


class StoreError(Exception):
    """A write or read the database refused. ``detail`` is shown verbatim."""

    status_code = 409

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class DependentRowsError(StoreError):
    pass


class StoreUnavailable(StoreError):
    status_code = 503


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    action: str  # insert, update, delete
    row_id: Optional[int]
    actor_id: Optional[int]


Listener = Callable[[ChangeEvent], None]


class ChangeFeed:
    """In-process change notifications, keyed by table name."""

    def __init__(self) -> None:
        self._listeners: Dict[str, List[Listener]] = {}

    def subscribe(self, table: str, listener: Listener) -> Callable[[], None]:
        self._listeners.setdefault(table, []).append(listener)

        def _unsubscribe() -> None:
            listeners = self._listeners.get(table, [])
            if listener in listeners:
                listeners.remove(listener)

        return _unsubscribe

    def publish(self, event: ChangeEvent) -> None:
        for listener in list(self._listeners.get(event.table, [])) + list(self._listeners.get("*", [])):
            try:
                listener(event)
            except Exception:
                # El cambio ya está confirmado; un suscriptor roto no debe revertirlo.
                logger.exception("Suscriptor de cambios falló para %s", event)


change_feed = ChangeFeed()


# (modelo, columna, mensaje) usados para rechazar borrados con filas dependientes
Dependent = Tuple[Type[SQLModel], Any, str]


class RecordStore:
    """Session-backed access to the academic collections.

    The acting user is passed in explicitly and travels with every write,
    both in the logs and in the change notifications.
    """

    def __init__(self, session: Session, actor: Optional[User] = None, feed: ChangeFeed = change_feed):
        self.session = session
        self.actor = actor
        self.feed = feed

    @property
    def actor_id(self) -> Optional[int]:
        return self.actor.id if self.actor is not None else None

    # Lecturas

    def get(self, model: Type[TRow], row_id: int) -> Optional[TRow]:
        try:
            return self.session.get(model, row_id)
        except OperationalError as exc:
            raise StoreUnavailable(_error_detail(exc)) from exc

    def list(
        self,
        model: Type[TRow],
        *,
        where: Sequence[Any] = (),
        order_by: Sequence[Any] = (),
        **filters: Any,
    ) -> List[TRow]:
        statement = select(model)
        for name, value in filters.items():
            statement = statement.where(getattr(model, name) == value)
        for clause in where:
            statement = statement.where(clause)
        if order_by:
            statement = statement.order_by(*order_by)
        try:
            return list(self.session.exec(statement).all())
        except OperationalError as exc:
            raise StoreUnavailable(_error_detail(exc)) from exc

    def first(self, model: Type[TRow], **filters: Any) -> Optional[TRow]:
        rows = self.list(model, **filters)
        return rows[0] if rows else None

    def count(self, model: Type[SQLModel], *, where: Sequence[Any] = (), **filters: Any) -> int:
        statement = select(func.count()).select_from(model)
        for name, value in filters.items():
            statement = statement.where(getattr(model, name) == value)
        for clause in where:
            statement = statement.where(clause)
        try:
            return int(self.session.exec(statement).one())
        except OperationalError as exc:
            raise StoreUnavailable(_error_detail(exc)) from exc

    def count_by(self, model: Type[SQLModel], column: Any, *, where: Sequence[Any] = ()) -> Dict[Any, int]:
        """Row counts grouped by *column*; rows where it is NULL are skipped."""
        statement = select(column, func.count()).select_from(model).where(col(column).is_not(None))
        for clause in where:
            statement = statement.where(clause)
        try:
            rows = self.session.exec(statement.group_by(column)).all()
        except OperationalError as exc:
            raise StoreUnavailable(_error_detail(exc)) from exc
        return {key: int(total) for key, total in rows}

    # Escrituras

    def insert(self, row: TRow) -> TRow:
        self.session.add(row)
        self._commit()
        self.session.refresh(row)
        self._notify(row, "insert")
        return row

    def insert_many(self, rows: Iterable[TRow]) -> List[TRow]:
        items = list(rows)
        if not items:
            return []
        self.session.add_all(items)
        self._commit()
        for row in items:
            self.session.refresh(row)
            self._notify(row, "insert")
        return items

    def update(self, row: TRow, data: Dict[str, Any]) -> TRow:
        if not data:
            return row
        apply_partial_update(row, data)
        self.session.add(row)
        self._commit()
        self.session.refresh(row)
        self._notify(row, "update")
        return row

    def replace(self, old_rows: Iterable[SQLModel], new_rows: Iterable[TRow]) -> List[TRow]:
        """Swap ``old_rows`` for ``new_rows`` in a single transaction."""

        removed = list(old_rows)
        removed_ids = [getattr(row, "id", None) for row in removed]
        added = list(new_rows)
        with self._guard():
            for row in removed:
                self.session.delete(row)
            # los borrados van antes que las altas: la unicidad de las aristas se chequea fila a fila
            self.session.flush()
            self.session.add_all(added)
            self.session.commit()
        for row, row_id in zip(removed, removed_ids):
            self._notify(row, "delete", row_id)
        for row in added:
            self.session.refresh(row)
            self._notify(row, "insert")
        return added

    def delete(self, row: SQLModel, *, dependents: Sequence[Dependent] = (), cascade: Iterable[SQLModel] = ()) -> None:
        """Delete ``row`` unless any ``dependents`` query still finds rows.

        ``cascade`` rows are removed first, in the same transaction.
        """

        row_id = getattr(row, "id", None)
        for model, column, message in dependents:
            if self.count(model, where=[column == row_id]):
                logger.info("Borrado rechazado de %s %s: %s", _table_name(row), row_id, message)
                raise DependentRowsError(message)
        with self._guard():
            for extra in cascade:
                self.session.delete(extra)
            self.session.flush()
            self.session.delete(row)
            self.session.commit()
        self._notify(row, "delete", row_id)

    def _commit(self) -> None:
        with self._guard():
            self.session.commit()

    @contextmanager
    def _guard(self) -> Iterator[None]:
        try:
            yield
        except IntegrityError as exc:
            self.session.rollback()
            logger.warning("Restricción violada (actor=%s): %s", self.actor_id, _error_detail(exc))
            raise StoreError(_integrity_detail(exc)) from exc
        except OperationalError as exc:
            self.session.rollback()
            logger.error("Base de datos no disponible: %s", _error_detail(exc))
            raise StoreUnavailable(_error_detail(exc)) from exc
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StoreError(_error_detail(exc)) from exc

    def _notify(self, row: SQLModel, action: str, row_id: Optional[int] = None) -> None:
        if row_id is None:
            row_id = getattr(row, "id", None)
        event = ChangeEvent(table=_table_name(row), action=action, row_id=row_id, actor_id=self.actor_id)
        logger.info("%s %s id=%s actor=%s", action, event.table, event.row_id, event.actor_id)
        self.feed.publish(event)


def _table_name(row: SQLModel) -> str:
    return getattr(type(row), "__tablename__", type(row).__name__.lower())


def _error_detail(exc: SQLAlchemyError) -> str:
    original = getattr(exc, "orig", None)
    return str(original) if original is not None else str(exc)


def _integrity_detail(exc: IntegrityError) -> str:
    detail = _error_detail(exc)
    lowered = detail.lower()
    if "foreign key" in lowered:
        return "Operación rechazada: existen registros relacionados"
    if "unique" in lowered or "duplicate" in lowered:
        return f"Registro duplicado: {detail}"
    return detail


def store_for(*roles: str):
    """Dependency building a ``RecordStore`` bound to an authorised user."""

    def _inner(session: Session = Depends(get_session), user: User = Depends(require_roles(*roles))) -> RecordStore:
        return RecordStore(session, actor=user)

    return _inner
