"""
In-Memory Storage

Dict-backed implementations of the storage interfaces, used by the test
suite and as the fallback when Google Sheets is not configured.

Rows are copied on the way in and out, so callers never share state
with the store.
"""

from datetime import datetime
from typing import Optional, Sequence
from uuid import UUID, uuid4

from renobudget.models.audit import AuditEvent
from renobudget.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    Filters,
    RowStorageInterface,
    row_matches,
    sort_rows,
)


class InMemoryRowStorage(RowStorageInterface):
    """Tables are lists of dicts, kept in insertion order."""

    def __init__(self, tables: Optional[dict[str, list[dict]]] = None):
        self._tables: dict[str, list[dict]] = {
            name: [dict(row) for row in rows] for name, rows in (tables or {}).items()
        }

    def _table(self, table: str) -> list[dict]:
        return self._tables.setdefault(table, [])

    async def list_rows(
        self,
        table: str,
        filters: Filters = None,
        order_by: Sequence[str] = (),
        descending: bool = False,
    ) -> list[dict]:
        rows = [dict(row) for row in self._table(table) if row_matches(row, filters)]
        return sort_rows(rows, order_by, descending)

    async def get_row(self, table: str, row_id: str) -> Optional[dict]:
        for row in self._table(table):
            if str(row.get("id")) == str(row_id):
                return dict(row)
        return None

    async def insert_row(self, table: str, values: dict) -> dict:
        rows = self._table(table)
        row = dict(values)
        row_id = str(row.get("id") or uuid4())
        if any(str(existing.get("id")) == row_id for existing in rows):
            raise DuplicateError(f"Row already exists in {table}: {row_id}")

        now = datetime.utcnow()
        row["id"] = row_id
        row.setdefault("created_at", now)
        row["updated_at"] = now
        rows.append(row)
        return dict(row)

    async def update_rows(self, table: str, filters: Filters, values: dict) -> list[dict]:
        updated = []
        now = datetime.utcnow()
        for row in self._table(table):
            if row_matches(row, filters):
                row.update(values)
                row["updated_at"] = now
                updated.append(dict(row))
        return updated

    async def upsert_row(
        self,
        table: str,
        values: dict,
        conflict_keys: Sequence[str],
    ) -> dict:
        key_filter = {key: values.get(key) for key in conflict_keys}
        updated = await self.update_rows(table, key_filter, values)
        if updated:
            return updated[0]
        return await self.insert_row(table, values)

    async def delete_rows(self, table: str, filters: Filters) -> int:
        rows = self._table(table)
        kept = [row for row in rows if not row_matches(row, filters)]
        deleted = len(rows) - len(kept)
        self._tables[table] = kept
        return deleted


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_events_by_budget(
        self,
        budget_id: str,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.budget_id == budget_id]
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
