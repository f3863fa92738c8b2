"""Document persistence for configuration graphs.

Documents are JSON objects grouped into named collections and addressed by
an opaque ``_id``. The root ``guilds`` collection additionally enforces a
unique ``guild_id``.
"""
from __future__ import annotations

import json
import logging
import re
import sqlite3
import uuid
from contextlib import closing
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol, Tuple

from .models import CivitasError

logger = logging.getLogger(__name__)

Document = Dict[str, Any]

GUILDS = "guilds"
ROLES = "roles"
ROLE_HOLDERS = "role_holders"
CATEGORIES = "categories"
CHANNELS = "channels"
CHAMBERS = "chambers"
POLITICAL_SYSTEMS = "political_systems"
EVENTS = "events"
ORPHANS = "orphans"

_DB_SCHEMA = """
CREATE TABLE IF NOT EXISTS documents (
    collection TEXT NOT NULL,
    id TEXT NOT NULL,
    data TEXT NOT NULL,
    PRIMARY KEY (collection, id)
);
CREATE UNIQUE INDEX IF NOT EXISTS idx_guilds_guild_id
    ON documents (json_extract(data, '$.guild_id'))
    WHERE collection = 'guilds';
"""

_FIELD_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$")


class StoreError(CivitasError):
    """Raised when the document store cannot complete an operation."""


class DuplicateDocumentError(StoreError):
    """Raised when a document violates a unique index."""


class DocumentStore(Protocol):
    def create(self, collection: str, document: Document) -> Document: ...

    def find_one(self, collection: str, query: Document) -> Optional[Document]: ...

    def find(self, collection: str, query: Optional[Document] = None) -> List[Document]: ...

    def count(self, collection: str, query: Optional[Document] = None) -> int: ...

    def find_one_and_delete(self, collection: str, query: Document) -> Optional[Document]: ...

    def find_one_and_update(
        self, collection: str, query: Document, update: Document
    ) -> Optional[Document]: ...

    def delete_many(self, collection: str, ids: Iterable[str]) -> int: ...

    def populate(self, document: Document, field: str, collection: str) -> Document: ...


def _where(collection: str, query: Optional[Document]) -> Tuple[str, List[Any]]:
    clauses = ["collection = ?"]
    params: List[Any] = [collection]
    for key, value in (query or {}).items():
        if key == "_id":
            clauses.append("id = ?")
            params.append(value)
            continue
        if not _FIELD_PATTERN.match(key):
            raise ValueError(f"Invalid query field {key!r}")
        path = f"$.{key}"
        if value is None:
            clauses.append("json_extract(data, ?) IS NULL")
            params.append(path)
        else:
            clauses.append("json_extract(data, ?) = ?")
            params.extend([path, value])
    return " AND ".join(clauses), params


def _decode(row_id: str, data: str) -> Document:
    document = json.loads(data)
    document["_id"] = row_id
    return document


def _encode(document: Document) -> str:
    body = {key: value for key, value in document.items() if key != "_id"}
    return json.dumps(body)


class SQLiteDocumentStore:
    """Document store backed by a single SQLite table of JSON blobs."""

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path)
        self._ensure_schema()

    @property
    def path(self) -> Path:
        return self._db_path

    def _ensure_schema(self) -> None:
        with closing(sqlite3.connect(self._db_path)) as conn:
            conn.executescript(_DB_SCHEMA)
            conn.commit()

    def create(self, collection: str, document: Document) -> Document:
        doc_id = document.get("_id") or uuid.uuid4().hex
        with closing(sqlite3.connect(self._db_path)) as conn:
            try:
                conn.execute(
                    "INSERT INTO documents (collection, id, data) VALUES (?, ?, ?)",
                    (collection, doc_id, _encode(document)),
                )
                conn.commit()
            except sqlite3.IntegrityError as exc:
                raise DuplicateDocumentError(
                    f"Duplicate document in {collection}: {exc}"
                ) from exc
        stored = dict(document)
        stored["_id"] = doc_id
        return stored

    def find_one(self, collection: str, query: Document) -> Optional[Document]:
        where, params = _where(collection, query)
        with closing(sqlite3.connect(self._db_path)) as conn:
            row = conn.execute(
                f"SELECT id, data FROM documents WHERE {where} LIMIT 1", params
            ).fetchone()
        return _decode(*row) if row else None

    def find(self, collection: str, query: Optional[Document] = None) -> List[Document]:
        where, params = _where(collection, query)
        with closing(sqlite3.connect(self._db_path)) as conn:
            rows = conn.execute(
                f"SELECT id, data FROM documents WHERE {where} ORDER BY rowid", params
            ).fetchall()
        return [_decode(row_id, data) for row_id, data in rows]

    def count(self, collection: str, query: Optional[Document] = None) -> int:
        where, params = _where(collection, query)
        with closing(sqlite3.connect(self._db_path)) as conn:
            (total,) = conn.execute(
                f"SELECT COUNT(*) FROM documents WHERE {where}", params
            ).fetchone()
        return int(total)

    def find_one_and_delete(self, collection: str, query: Document) -> Optional[Document]:
        where, params = _where(collection, query)
        with closing(sqlite3.connect(self._db_path)) as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                row = conn.execute(
                    f"SELECT id, data FROM documents WHERE {where} LIMIT 1", params
                ).fetchone()
                if row is not None:
                    conn.execute(
                        "DELETE FROM documents WHERE collection = ? AND id = ?",
                        (collection, row[0]),
                    )
                conn.commit()
            except sqlite3.Error:
                conn.rollback()
                raise
        return _decode(*row) if row else None

    def find_one_and_update(
        self, collection: str, query: Document, update: Document
    ) -> Optional[Document]:
        """Apply ``update`` as a field-level set; returns the updated document."""

        if "_id" in update:
            raise ValueError("Document ids are immutable")
        where, params = _where(collection, query)
        with closing(sqlite3.connect(self._db_path)) as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                row = conn.execute(
                    f"SELECT id, data FROM documents WHERE {where} LIMIT 1", params
                ).fetchone()
                if row is None:
                    conn.commit()
                    return None
                document = _decode(*row)
                document.update(update)
                conn.execute(
                    "UPDATE documents SET data = ? WHERE collection = ? AND id = ?",
                    (_encode(document), collection, row[0]),
                )
                conn.commit()
            except sqlite3.IntegrityError as exc:
                conn.rollback()
                raise DuplicateDocumentError(
                    f"Duplicate document in {collection}: {exc}"
                ) from exc
            except sqlite3.Error:
                conn.rollback()
                raise
        return document

    def delete_many(self, collection: str, ids: Iterable[str]) -> int:
        id_list = [doc_id for doc_id in ids if doc_id]
        if not id_list:
            return 0
        placeholders = ", ".join("?" for _ in id_list)
        with closing(sqlite3.connect(self._db_path)) as conn:
            cursor = conn.execute(
                f"DELETE FROM documents WHERE collection = ? AND id IN ({placeholders})",
                [collection, *id_list],
            )
            conn.commit()
            deleted = cursor.rowcount
        if deleted != len(id_list):
            logger.debug(
                "Deleted %d of %d %s documents; the rest were already gone",
                deleted,
                len(id_list),
                collection,
            )
        return deleted

    def populate(self, document: Document, field: str, collection: str) -> Document:
        """Return a copy of ``document`` with ``field`` resolved to documents.

        List references drop ids that no longer resolve; a scalar reference
        that no longer resolves becomes ``None``.
        """

        populated = dict(document)
        ref = document.get(field)
        if isinstance(ref, list):
            resolved = [self.find_one(collection, {"_id": item}) for item in ref]
            populated[field] = [doc for doc in resolved if doc is not None]
        elif ref is not None:
            populated[field] = self.find_one(collection, {"_id": ref})
        return populated


__all__ = [
    "CATEGORIES",
    "CHAMBERS",
    "CHANNELS",
    "DocumentStore",
    "DuplicateDocumentError",
    "EVENTS",
    "GUILDS",
    "ORPHANS",
    "POLITICAL_SYSTEMS",
    "ROLES",
    "ROLE_HOLDERS",
    "SQLiteDocumentStore",
    "StoreError",
]
