"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep budget data in Google Sheets today and a real database later
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

The interface is table/row shaped, like the backend-as-a-service the
app was designed around: rows are plain dicts keyed by column name.
Mapping rows to typed records is NOT the storage layer's job, see
renobudget.summary.mappers.

Filters are equality matches; a list/tuple/set value means "column is
one of these values".
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterator, Optional, Sequence
from uuid import UUID

from renobudget.models.audit import AuditEvent


Filters = Optional[dict[str, Any]]


def normalize_cell(value: Any) -> str:
    """Compare values the way they would read back from a sheet."""
    if value is None:
        return ""
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def row_matches(row: dict, filters: Filters) -> bool:
    """Shared filter semantics for every backend that filters in Python."""
    if not filters:
        return True
    for column, expected in filters.items():
        actual = normalize_cell(row.get(column))
        if isinstance(expected, (list, tuple, set, frozenset)):
            if actual not in {normalize_cell(value) for value in expected}:
                return False
        elif actual != normalize_cell(expected):
            return False
    return True


def sort_rows(rows: list[dict], order_by: Sequence[str], descending: bool) -> list[dict]:
    if not order_by:
        return rows
    return sorted(
        rows,
        key=lambda row: tuple(normalize_cell(row.get(column)) for column in order_by),
        reverse=descending,
    )


class RowStorageInterface(ABC):
    """
    Abstract interface for table storage.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods. Writes are last-write-wins per row.
    """

    @abstractmethod
    async def list_rows(
        self,
        table: str,
        filters: Filters = None,
        order_by: Sequence[str] = (),
        descending: bool = False,
    ) -> list[dict]:
        """
        List rows of a table.

        Args:
            table: Table name
            filters: Column filters
            order_by: Columns to sort by, in priority order
            descending: Sort direction for all order_by columns

        Returns:
            Matching rows, in storage order unless order_by is given
        """
        pass

    @abstractmethod
    async def get_row(self, table: str, row_id: str) -> Optional[dict]:
        """
        Retrieve a row by its ID.

        Returns:
            The row if found, None otherwise
        """
        pass

    @abstractmethod
    async def insert_row(self, table: str, values: dict) -> dict:
        """
        Insert a row.

        The backend assigns id (unless given), created_at and updated_at.

        Returns:
            The stored row

        Raises:
            DuplicateError: If a row with the same id exists
            StorageError: If the insert fails
        """
        pass

    @abstractmethod
    async def update_rows(self, table: str, filters: Filters, values: dict) -> list[dict]:
        """
        Update every row matching filters and refresh updated_at.

        Returns:
            The updated rows (empty when nothing matched)
        """
        pass

    @abstractmethod
    async def upsert_row(
        self,
        table: str,
        values: dict,
        conflict_keys: Sequence[str],
    ) -> dict:
        """
        Update the row whose conflict_keys match values, or insert it.

        Returns:
            The stored row
        """
        pass

    @abstractmethod
    async def delete_rows(self, table: str, filters: Filters) -> int:
        """
        Delete every row matching filters.

        Returns:
            Number of rows deleted
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get all events for a correlation ID, in chronological order."""
        pass

    @abstractmethod
    async def get_events_by_budget(
        self,
        budget_id: str,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get the most recent events of one budget (newest first)."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


@contextmanager
def storage_context(context: str) -> Iterator[None]:
    """
    Prefix storage failures with what the service was doing.

    NotFoundError and DuplicateError keep their type so callers can
    still tell them apart.
    """
    try:
        yield
    except StorageError as e:
        raise type(e)(f"{context}: {e}") from e


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
