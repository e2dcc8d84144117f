"""
Document persistence for clinic data.

Snowflake-backed in production, in-memory in mock mode.
"""

from .client import (
    DocumentStore,
    DocumentStoreError,
    MockDocumentStore,
    SnowflakeDocumentStore,
    StoredDocument,
)

__all__ = [
    "DocumentStore",
    "DocumentStoreError",
    "MockDocumentStore",
    "SnowflakeDocumentStore",
    "StoredDocument",
]
