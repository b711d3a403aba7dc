"""Record stores and the unit of work used to commit multi-step changes."""
from __future__ import annotations

import copy
import json
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence, Tuple, Type, TypeVar

from sqlalchemy import UniqueConstraint
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Field, Session, SQLModel, create_engine, select

from . import config
from .exceptions import InconsistentStateError, RecordNotFoundError, StorageError
from .models import Record

ModelT = TypeVar("ModelT")

# (kind, record id, payload); a ``None`` payload deletes the record.
Operation = Tuple[str, str, Optional[Record]]


def _kind(model: Type[Any]) -> str:
    return model.RECORD_KIND


def _id_text(record_id: Any) -> str:
    return record_id.value if hasattr(record_id, "value") else str(record_id)


def _key(record: Any) -> str:
    return _id_text(record.id)


class UnitOfWork:
    """Stage record writes and commit them to the store together.

    Reads made through the unit of work see its own staged writes. Nothing
    reaches the backing store until :meth:`commit`, and callbacks registered
    with :meth:`on_commit` run only once the writes are stored.
    """

    def __init__(self, store: "RecordStore") -> None:
        self._store = store
        self._staged: Dict[Tuple[str, str], Optional[Record]] = {}
        self._after_commit: List[Tuple[Callable[..., Any], Tuple[Any, ...], Dict[str, Any]]] = []
        self._committed = False

    def get(self, model: Type[ModelT], record_id: str) -> Optional[ModelT]:
        key = (_kind(model), _id_text(record_id))
        if key in self._staged:
            payload = self._staged[key]
            return model.from_record(copy.deepcopy(payload)) if payload is not None else None
        return self._store.get(model, record_id)

    def require(self, model: Type[ModelT], record_id: str) -> ModelT:
        record = self.get(model, record_id)
        if record is None:
            raise RecordNotFoundError(f"{model.__name__} '{record_id}' does not exist.")
        return record

    def list(self, model: Type[ModelT]) -> List[ModelT]:
        kind = _kind(model)
        payloads: Dict[str, Record] = {
            _record_id(payload): payload for payload in self._store.load_all(kind)
        }
        for (staged_kind, record_id), payload in self._staged.items():
            if staged_kind != kind:
                continue
            if payload is None:
                payloads.pop(record_id, None)
            else:
                payloads[record_id] = payload
        return [model.from_record(copy.deepcopy(payload)) for payload in payloads.values()]

    def put(self, record: Any) -> None:
        self._staged[(_kind(type(record)), _key(record))] = record.to_record()

    def remove(self, model: Type[Any], record_id: str) -> None:
        self._staged[(_kind(model), _id_text(record_id))] = None

    def on_commit(self, callback: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        self._after_commit.append((callback, args, kwargs))

    @property
    def pending_operations(self) -> Sequence[Operation]:
        return tuple((kind, record_id, payload) for (kind, record_id), payload in self._staged.items())

    def commit(self) -> None:
        if self._committed:
            raise RuntimeError("Unit of work has already been committed.")
        if self._staged:
            self._store.apply(self.pending_operations)
        self._committed = True
        for callback, args, kwargs in self._after_commit:
            callback(*args, **kwargs)


def _record_id(payload: Record) -> str:
    return str(payload["id"])


class RecordStore:
    """Keyed record collections per entity type.

    Subclasses provide :meth:`load_all`, :meth:`load`, :meth:`apply` and
    :meth:`clear`; everything else is expressed in terms of those.
    """

    def load_all(self, kind: str) -> List[Record]:
        raise NotImplementedError

    def load(self, kind: str, record_id: str) -> Optional[Record]:
        raise NotImplementedError

    def apply(self, operations: Sequence[Operation]) -> None:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError

    def list(self, model: Type[ModelT]) -> List[ModelT]:
        return [model.from_record(payload) for payload in self.load_all(_kind(model))]

    def get(self, model: Type[ModelT], record_id: str) -> Optional[ModelT]:
        payload = self.load(_kind(model), _id_text(record_id))
        return model.from_record(payload) if payload is not None else None

    def put(self, record: Any) -> None:
        with self.transaction() as uow:
            uow.put(record)

    def remove(self, model: Type[Any], record_id: str) -> None:
        with self.transaction() as uow:
            uow.remove(model, record_id)

    @contextmanager
    def transaction(self) -> Iterator[UnitOfWork]:
        uow = UnitOfWork(self)
        yield uow
        uow.commit()


class MemoryRecordStore(RecordStore):
    """Keep records as JSON text in memory, restoring a snapshot on failed commits."""

    def __init__(self) -> None:
        self._data: Dict[str, Dict[str, str]] = {}

    def load_all(self, kind: str) -> List[Record]:
        return [json.loads(raw) for raw in self._data.get(kind, {}).values()]

    def load(self, kind: str, record_id: str) -> Optional[Record]:
        raw = self._data.get(kind, {}).get(record_id)
        return json.loads(raw) if raw is not None else None

    def apply(self, operations: Sequence[Operation]) -> None:
        snapshot = {kind: dict(records) for kind, records in self._data.items()}
        try:
            for kind, record_id, payload in operations:
                bucket = self._data.setdefault(kind, {})
                if payload is None:
                    bucket.pop(record_id, None)
                else:
                    bucket[record_id] = json.dumps(payload, sort_keys=True)
        except (TypeError, ValueError) as exc:
            self._data = snapshot
            raise StorageError(f"Failed to commit {len(operations)} record change(s).") from exc

    def clear(self) -> None:
        self._data.clear()


class StoredRecord(SQLModel, table=True):
    __tablename__ = "record"
    __table_args__ = (UniqueConstraint("kind", "record_id", name="uq_record_kind_record_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    kind: str = Field(index=True)
    record_id: str
    payload: str
    updated_at: datetime = Field(default_factory=datetime.now)


class SqlRecordStore(RecordStore):
    """Persist records as JSON payloads in a single SQLModel table."""

    def __init__(self, url: str | None = None, *, engine: Engine | None = None) -> None:
        if engine is None:
            url = url or f"sqlite:///{config.SQLITE_FILE_NAME}"
            connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
            engine = create_engine(url, echo=False, connect_args=connect_args)
        self._engine = engine
        try:
            SQLModel.metadata.create_all(self._engine, tables=[StoredRecord.__table__])
        except SQLAlchemyError as exc:
            raise StorageError("Unable to initialise the record table.") from exc

    @property
    def engine(self) -> Engine:
        return self._engine

    def _query(self, kind: str, record_id: str | None = None):
        query = select(StoredRecord).where(StoredRecord.kind == kind)
        if record_id is not None:
            query = query.where(StoredRecord.record_id == record_id)
        return query.order_by(StoredRecord.id)

    def load_all(self, kind: str) -> List[Record]:
        try:
            with Session(self._engine) as session:
                rows = session.exec(self._query(kind)).all()
                return [json.loads(row.payload) for row in rows]
        except SQLAlchemyError as exc:
            raise StorageError(f"Unable to list '{kind}' records.") from exc

    def load(self, kind: str, record_id: str) -> Optional[Record]:
        try:
            with Session(self._engine) as session:
                row = session.exec(self._query(kind, record_id)).first()
                return json.loads(row.payload) if row is not None else None
        except SQLAlchemyError as exc:
            raise StorageError(f"Unable to load '{kind}' record '{record_id}'.") from exc

    def apply(self, operations: Sequence[Operation]) -> None:
        try:
            encoded_ops = [
                (kind, record_id, json.dumps(payload, sort_keys=True) if payload is not None else None)
                for kind, record_id, payload in operations
            ]
        except (TypeError, ValueError) as exc:
            raise StorageError(f"Failed to encode {len(operations)} record change(s).") from exc
        session = Session(self._engine)
        try:
            for kind, record_id, encoded in encoded_ops:
                row = session.exec(self._query(kind, record_id)).first()
                if encoded is None:
                    if row is not None:
                        session.delete(row)
                    continue
                if row is None:
                    session.add(StoredRecord(kind=kind, record_id=record_id, payload=encoded))
                else:
                    row.payload = encoded
                    row.updated_at = datetime.now()
                    session.add(row)
            session.commit()
        except SQLAlchemyError as exc:
            try:
                session.rollback()
            except SQLAlchemyError as rollback_exc:
                raise InconsistentStateError(
                    f"Commit of {len(operations)} record change(s) failed and could not be rolled back."
                ) from rollback_exc
            raise StorageError(f"Failed to commit {len(operations)} record change(s).") from exc
        finally:
            session.close()

    def clear(self) -> None:
        try:
            with Session(self._engine) as session:
                for row in session.exec(select(StoredRecord)).all():
                    session.delete(row)
                session.commit()
        except SQLAlchemyError as exc:
            raise StorageError("Unable to clear the record store.") from exc


__all__ = [
    "MemoryRecordStore",
    "Operation",
    "RecordStore",
    "SqlRecordStore",
    "StoredRecord",
    "UnitOfWork",
]
