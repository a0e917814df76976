"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets is the production backend; the in-memory backend serves
tests and unconfigured local runs.
"""

from renobudget.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    NotFoundError,
    RowStorageInterface,
    StorageError,
    storage_context,
)
from renobudget.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryRowStorage,
)
from renobudget.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsRowStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "RowStorageInterface",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    "storage_context",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryRowStorage",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsRowStorage",
]
