"""
Document store abstraction for Firestore, SQL databases and an in-memory
test implementation.
"""

from __future__ import annotations

import copy
import threading
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Mapping, Optional, Protocol, Sequence

from google.cloud.firestore_v1 import SERVER_TIMESTAMP
from google.cloud.firestore_v1.base_query import FieldFilter
from sqlalchemy import JSON, Column, Float, String, create_engine, select
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

USERS_COLLECTION = "users"
HOUSEHOLDS_COLLECTION = "households"
JOBS_COLLECTION = "jobs"
REQUEST_LOGS_COLLECTION = "tests"


@dataclass
class Document:
    id: str
    data: Dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict:
        return {"id": self.id, **self.data}


class DocumentStore(Protocol):
    """Operations the handlers need from the document database."""

    def get(self, collection: str, key: str) -> Optional[Document]:
        ...

    def set(
        self,
        collection: str,
        key: str,
        data: Mapping[str, Any],
        *,
        merge: bool = False,
        server_timestamps: Sequence[str] = (),
    ) -> Document:
        """
        Writes a document at `key`, replacing it unless `merge` is set.
        Fields named in `server_timestamps` are set to the store's current
        time at write time. Returns the document as stored.
        """
        ...

    def add(
        self,
        collection: str,
        data: Mapping[str, Any],
        *,
        server_timestamps: Sequence[str] = (),
    ) -> Document:
        """Writes a document under a generated key and returns it."""
        ...

    def query(
        self,
        collection: str,
        *,
        equals: Optional[Mapping[str, Any]] = None,
        within: Optional[Mapping[str, Sequence[Any]]] = None,
    ) -> list[Document]:
        """
        Returns documents whose fields equal every value in `equals` and
        are one of the listed values for every field in `within`.
        """
        ...


def _merge(existing: dict, updates: Mapping[str, Any]) -> dict:
    """Merges `updates` into `existing`, descending into nested maps."""
    merged = dict(existing)
    for key, value in updates.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _matches(
    data: Mapping[str, Any],
    equals: Optional[Mapping[str, Any]],
    within: Optional[Mapping[str, Sequence[Any]]],
) -> bool:
    for name, value in (equals or {}).items():
        if name not in data or data[name] != value:
            return False
    for name, values in (within or {}).items():
        if name not in data or data[name] not in values:
            return False
    return True


def _generate_key() -> str:
    return uuid.uuid4().hex


class InMemoryDocumentStore:
    """Simple in-memory document store for development and tests."""

    def __init__(self):
        self.collections: Dict[str, Dict[str, dict]] = {}
        self._lock = threading.Lock()

    def _stamp(self, data: Mapping[str, Any], server_timestamps: Iterable[str]) -> dict:
        payload = copy.deepcopy(dict(data))
        now = datetime.now(timezone.utc)
        for name in server_timestamps:
            payload[name] = now
        return payload

    def get(self, collection: str, key: str) -> Optional[Document]:
        with self._lock:
            data = self.collections.get(collection, {}).get(key)
            if data is None:
                return None
            return Document(id=key, data=copy.deepcopy(data))

    def set(
        self,
        collection: str,
        key: str,
        data: Mapping[str, Any],
        *,
        merge: bool = False,
        server_timestamps: Sequence[str] = (),
    ) -> Document:
        if not key:
            raise ValueError("Document key must be a non-empty string")
        payload = self._stamp(data, server_timestamps)
        with self._lock:
            docs = self.collections.setdefault(collection, {})
            if merge and key in docs:
                payload = _merge(docs[key], payload)
            docs[key] = payload
            return Document(id=key, data=copy.deepcopy(payload))

    def add(
        self,
        collection: str,
        data: Mapping[str, Any],
        *,
        server_timestamps: Sequence[str] = (),
    ) -> Document:
        return self.set(
            collection, _generate_key(), data, server_timestamps=server_timestamps
        )

    def query(
        self,
        collection: str,
        *,
        equals: Optional[Mapping[str, Any]] = None,
        within: Optional[Mapping[str, Sequence[Any]]] = None,
    ) -> list[Document]:
        with self._lock:
            return [
                Document(id=key, data=copy.deepcopy(data))
                for key, data in self.collections.get(collection, {}).items()
                if _matches(data, equals, within)
            ]


class FirestoreDocumentStore:
    """
    Cloud Firestore implementation. Takes a client from
    `firebase_admin.firestore.client()` (or `google.cloud.firestore.Client`).
    """

    def __init__(self, client):
        self._client = client

    def _read(self, doc_ref) -> Document:
        # Read back so server timestamps come back resolved.
        snapshot = doc_ref.get()
        return Document(id=snapshot.id, data=snapshot.to_dict() or {})

    def get(self, collection: str, key: str) -> Optional[Document]:
        snapshot = self._client.collection(collection).document(key).get()
        if not snapshot.exists:
            return None
        return Document(id=snapshot.id, data=snapshot.to_dict() or {})

    def set(
        self,
        collection: str,
        key: str,
        data: Mapping[str, Any],
        *,
        merge: bool = False,
        server_timestamps: Sequence[str] = (),
    ) -> Document:
        payload = dict(data)
        for name in server_timestamps:
            payload[name] = SERVER_TIMESTAMP
        doc_ref = self._client.collection(collection).document(key)
        doc_ref.set(payload, merge=merge)
        return self._read(doc_ref)

    def add(
        self,
        collection: str,
        data: Mapping[str, Any],
        *,
        server_timestamps: Sequence[str] = (),
    ) -> Document:
        payload = dict(data)
        for name in server_timestamps:
            payload[name] = SERVER_TIMESTAMP
        _, doc_ref = self._client.collection(collection).add(payload)
        return self._read(doc_ref)

    def query(
        self,
        collection: str,
        *,
        equals: Optional[Mapping[str, Any]] = None,
        within: Optional[Mapping[str, Sequence[Any]]] = None,
    ) -> list[Document]:
        query = self._client.collection(collection)
        for name, value in (equals or {}).items():
            query = query.where(filter=FieldFilter(name, "==", value))
        for name, values in (within or {}).items():
            query = query.where(filter=FieldFilter(name, "in", list(values)))
        return [
            Document(id=snapshot.id, data=snapshot.to_dict() or {})
            for snapshot in query.stream()
        ]


class SqlDocumentStore:
    """
    SQLAlchemy-backed implementation storing each document as a JSON row.
    Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).

    Server timestamps are stored as ISO-8601 strings since the JSON column
    cannot hold datetimes. Queries filter rows in Python.
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlDocumentStore")
        engine_kwargs: dict = {"future": True, "pool_pre_ping": True}
        if database_url.startswith("sqlite") and ":memory:" in database_url:
            # One shared connection, otherwise each thread sees an empty database.
            engine_kwargs["poolclass"] = StaticPool
            engine_kwargs["connect_args"] = {"check_same_thread": False}
        else:
            engine_kwargs["pool_recycle"] = 1800
        self.engine = create_engine(database_url, **engine_kwargs)
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def _stamp(self, data: Mapping[str, Any], server_timestamps: Iterable[str]) -> dict:
        payload = copy.deepcopy(dict(data))
        now = datetime.now(timezone.utc).isoformat()
        for name in server_timestamps:
            payload[name] = now
        return payload

    def get(self, collection: str, key: str) -> Optional[Document]:
        with self.Session() as session:
            row = session.get(DocumentRow, (collection, key))
            if not row:
                return None
            return Document(id=row.doc_id, data=dict(row.data))

    def set(
        self,
        collection: str,
        key: str,
        data: Mapping[str, Any],
        *,
        merge: bool = False,
        server_timestamps: Sequence[str] = (),
    ) -> Document:
        if not key:
            raise ValueError("Document key must be a non-empty string")
        payload = self._stamp(data, server_timestamps)
        with self.Session() as session:
            row = session.get(DocumentRow, (collection, key))
            if row:
                row.data = _merge(row.data, payload) if merge else payload
                row.updated_at = time.time()
            else:
                row = DocumentRow(
                    collection=collection,
                    doc_id=key,
                    data=payload,
                    updated_at=time.time(),
                )
                session.add(row)
            session.commit()
            return Document(id=key, data=dict(row.data))

    def add(
        self,
        collection: str,
        data: Mapping[str, Any],
        *,
        server_timestamps: Sequence[str] = (),
    ) -> Document:
        return self.set(
            collection, _generate_key(), data, server_timestamps=server_timestamps
        )

    def query(
        self,
        collection: str,
        *,
        equals: Optional[Mapping[str, Any]] = None,
        within: Optional[Mapping[str, Sequence[Any]]] = None,
    ) -> list[Document]:
        with self.Session() as session:
            stmt = (
                select(DocumentRow)
                .where(DocumentRow.collection == collection)
                .order_by(DocumentRow.doc_id.asc())
            )
            rows = session.execute(stmt).scalars().all()
            return [
                Document(id=row.doc_id, data=dict(row.data))
                for row in rows
                if _matches(row.data, equals, within)
            ]


Base = declarative_base()


class DocumentRow(Base):
    __tablename__ = "documents"

    collection = Column(String, primary_key=True)
    doc_id = Column("id", String, primary_key=True)
    data = Column(JSON, nullable=False)
    updated_at = Column(Float, nullable=False)
