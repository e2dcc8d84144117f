"""
Document store for clinic data.

Submissions, placements, activities and the admin list are stored as
schemaless JSON documents grouped into collections and addressed by id.
Every document carries an integer version that goes up by one on each
write; compare_and_set uses it to reject writes based on a stale read.

Two implementations:
- SnowflakeDocumentStore keeps documents in a single table with a VARIANT
  body column.
- MockDocumentStore keeps them in memory, for local development and tests.
"""

import copy
import json
import logging
import threading
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Generator, Optional, Protocol
from uuid import uuid4

from ..snowflake.client import SnowflakeConnection

logger = logging.getLogger(__name__)

Filters = dict[str, Any]


class DocumentStoreError(Exception):
    """Raised when a document store operation fails."""
    pass


@dataclass
class StoredDocument:
    """A document together with its id and current version."""
    id: str
    data: dict[str, Any]
    version: int


class DocumentStore(Protocol):
    """
    Protocol for document persistence.

    Filters are equality matches on top-level fields, combined with AND.
    """

    def get(self, collection: str, doc_id: str) -> Optional[StoredDocument]:
        ...

    def query(self, collection: str, filters: Optional[Filters] = None) -> list[StoredDocument]:
        ...

    def set(self, collection: str, doc_id: str, data: dict[str, Any], merge: bool = False) -> None:
        """Create or overwrite a document (or update its fields, with merge)."""
        ...

    def add(self, collection: str, data: dict[str, Any]) -> str:
        """Create a document under a generated id and return the id."""
        ...

    def delete(self, collection: str, doc_id: str) -> None:
        ...

    def compare_and_set(
        self,
        collection: str,
        doc_id: str,
        data: dict[str, Any],
        expected_version: int,
    ) -> bool:
        """
        Write only if the stored version equals expected_version.

        expected_version 0 means the document must not exist yet. Returns
        False, without writing, when the check fails.
        """
        ...


def _matches(data: dict[str, Any], filters: Optional[Filters]) -> bool:
    if not filters:
        return True
    return all(data.get(name) == value for name, value in filters.items())


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------

class MockDocumentStore:
    """
    In-memory document store.

    Documents are deep-copied on the way in and out so callers can never
    mutate stored state by accident. A lock makes compare_and_set atomic
    across threads, which is what the FastAPI threadpool needs.
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, StoredDocument]] = defaultdict(dict)
        self._lock = threading.Lock()

        logger.info("Initialized mock document store (in-memory)")

    def get(self, collection: str, doc_id: str) -> Optional[StoredDocument]:
        with self._lock:
            stored = self._collections[collection].get(doc_id)
            return copy.deepcopy(stored) if stored else None

    def query(self, collection: str, filters: Optional[Filters] = None) -> list[StoredDocument]:
        with self._lock:
            return [
                copy.deepcopy(stored)
                for _, stored in sorted(self._collections[collection].items())
                if _matches(stored.data, filters)
            ]

    def set(self, collection: str, doc_id: str, data: dict[str, Any], merge: bool = False) -> None:
        with self._lock:
            self._write(collection, doc_id, data, merge)

    def add(self, collection: str, data: dict[str, Any]) -> str:
        doc_id = uuid4().hex
        self.set(collection, doc_id, data)
        return doc_id

    def delete(self, collection: str, doc_id: str) -> None:
        with self._lock:
            self._collections[collection].pop(doc_id, None)

    def compare_and_set(
        self,
        collection: str,
        doc_id: str,
        data: dict[str, Any],
        expected_version: int,
    ) -> bool:
        with self._lock:
            stored = self._collections[collection].get(doc_id)
            current_version = stored.version if stored else 0
            if current_version != expected_version:
                return False
            self._write(collection, doc_id, data, merge=False)
            return True

    def _write(self, collection: str, doc_id: str, data: dict[str, Any], merge: bool) -> None:
        stored = self._collections[collection].get(doc_id)
        body = copy.deepcopy(data)
        if merge and stored:
            body = {**stored.data, **body}
        version = stored.version + 1 if stored else 1
        self._collections[collection][doc_id] = StoredDocument(doc_id, body, version)

    def clear(self) -> None:
        """Drop every document (for test cleanup)."""
        with self._lock:
            self._collections.clear()


# ---------------------------------------------------------------------------
# Snowflake store
# ---------------------------------------------------------------------------

class SnowflakeDocumentStore:
    """
    Document store backed by one Snowflake table.

    Layout: (collection, doc_id) primary key, VARIANT body, integer version.
    Filters compile to GET(body, field) = PARSE_JSON(value) so they compare
    JSON values, not strings.

    Snowflake has no row locks for us to take and does not enforce the
    primary key. compare_and_set therefore relies on single statements: a
    MERGE with only a WHEN NOT MATCHED branch to create, a conditional
    UPDATE to replace, and the affected row count of either.
    """

    def __init__(self, connection: SnowflakeConnection, table: str = "DOCUMENTS") -> None:
        if not table.replace("_", "").isalnum():
            raise ValueError(f"Invalid table name: {table!r}")
        self._conn = connection
        self._table = table

    @contextmanager
    def _cursor(self, operation: str, collection: str) -> Generator[Any, None, None]:
        cursor = self._conn.cursor()
        try:
            yield cursor
        except Exception as e:
            logger.error(
                "Document store operation failed",
                extra={"operation": operation, "collection": collection, "error": str(e)},
            )
            try:
                self._conn.rollback()
            except Exception:
                logger.warning("Rollback failed", extra={"operation": operation})
            raise DocumentStoreError(f"{operation} on {collection} failed: {e}") from e
        finally:
            cursor.close()

    @staticmethod
    def _body(raw: Any) -> dict[str, Any]:
        # The connector returns VARIANT columns as JSON text.
        if raw is None:
            return {}
        if isinstance(raw, str):
            return json.loads(raw)
        return dict(raw)

    def ensure_schema(self) -> None:
        with self._cursor("ensure_schema", "*") as cursor:
            cursor.execute(f"""
                CREATE TABLE IF NOT EXISTS {self._table} (
                    collection STRING NOT NULL,
                    doc_id STRING NOT NULL,
                    body VARIANT,
                    version INTEGER NOT NULL,
                    created_at TIMESTAMP_TZ DEFAULT CURRENT_TIMESTAMP(),
                    updated_at TIMESTAMP_TZ DEFAULT CURRENT_TIMESTAMP(),
                    PRIMARY KEY (collection, doc_id)
                )
            """)
            self._conn.commit()

    def get(self, collection: str, doc_id: str) -> Optional[StoredDocument]:
        with self._cursor("get", collection) as cursor:
            cursor.execute(f"""
                SELECT doc_id, body, version
                FROM {self._table}
                WHERE collection = %s AND doc_id = %s
            """, (collection, doc_id))
            row = cursor.fetchone()

        if not row:
            return None
        return StoredDocument(row[0], self._body(row[1]), int(row[2]))

    def query(self, collection: str, filters: Optional[Filters] = None) -> list[StoredDocument]:
        clauses = ["collection = %s"]
        params: list[Any] = [collection]
        for name, value in (filters or {}).items():
            clauses.append("GET(body, %s) = PARSE_JSON(%s)")
            params.extend([name, json.dumps(value)])

        with self._cursor("query", collection) as cursor:
            cursor.execute(f"""
                SELECT doc_id, body, version
                FROM {self._table}
                WHERE {" AND ".join(clauses)}
                ORDER BY doc_id
            """, tuple(params))
            rows = cursor.fetchall()

        return [StoredDocument(row[0], self._body(row[1]), int(row[2])) for row in rows]

    def set(self, collection: str, doc_id: str, data: dict[str, Any], merge: bool = False) -> None:
        body = data
        if merge:
            existing = self.get(collection, doc_id)
            if existing:
                body = {**existing.data, **data}

        with self._cursor("set", collection) as cursor:
            cursor.execute(f"""
                MERGE INTO {self._table} AS t
                USING (SELECT %s AS collection, %s AS doc_id, PARSE_JSON(%s) AS body) AS s
                ON t.collection = s.collection AND t.doc_id = s.doc_id
                WHEN MATCHED THEN UPDATE SET
                    body = s.body,
                    version = t.version + 1,
                    updated_at = CURRENT_TIMESTAMP()
                WHEN NOT MATCHED THEN INSERT (collection, doc_id, body, version)
                    VALUES (s.collection, s.doc_id, s.body, 1)
            """, (collection, doc_id, json.dumps(body)))
            self._conn.commit()

    def add(self, collection: str, data: dict[str, Any]) -> str:
        doc_id = uuid4().hex
        self.set(collection, doc_id, data)
        return doc_id

    def delete(self, collection: str, doc_id: str) -> None:
        with self._cursor("delete", collection) as cursor:
            cursor.execute(f"""
                DELETE FROM {self._table}
                WHERE collection = %s AND doc_id = %s
            """, (collection, doc_id))
            self._conn.commit()

    def compare_and_set(
        self,
        collection: str,
        doc_id: str,
        data: dict[str, Any],
        expected_version: int,
    ) -> bool:
        body = json.dumps(data)
        with self._cursor("compare_and_set", collection) as cursor:
            if expected_version == 0:
                cursor.execute(f"""
                    MERGE INTO {self._table} AS t
                    USING (SELECT %s AS collection, %s AS doc_id, PARSE_JSON(%s) AS body) AS s
                    ON t.collection = s.collection AND t.doc_id = s.doc_id
                    WHEN NOT MATCHED THEN INSERT (collection, doc_id, body, version)
                        VALUES (s.collection, s.doc_id, s.body, 1)
                """, (collection, doc_id, body))
            else:
                cursor.execute(f"""
                    UPDATE {self._table}
                    SET body = PARSE_JSON(%s),
                        version = version + 1,
                        updated_at = CURRENT_TIMESTAMP()
                    WHERE collection = %s AND doc_id = %s AND version = %s
                """, (body, collection, doc_id, expected_version))
            written = cursor.rowcount == 1
            self._conn.commit()

        return written
