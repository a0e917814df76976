"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the storage backend because:
1. Homeowners can view and share their renovation numbers directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (a renovation has hundreds of rows, not millions)
- No transactions (we handle this with careful ordering in the services)
- No foreign keys (the services cascade deletes themselves)
- Limited query capabilities (we filter in Python)
- Every cell reads back as a string (the mappers coerce)

Each table lives in its own worksheet whose first row is the header
from renobudget.services.storage.tables.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Sequence
from uuid import UUID, uuid4

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from renobudget.config import get_settings
from renobudget.models.audit import AuditEvent, AuditEventType, AuditSeverity
from renobudget.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    Filters,
    RowStorageInterface,
    StorageError,
    row_matches,
    sort_rows,
)
from renobudget.services.storage.tables import columns_for


# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "budget_id",
    "entity_type",
    "entity_id",
    "actor_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
]

logger = structlog.get_logger(__name__)


def to_cell(value: Any) -> str:
    """Render a Python value the way it is written to a sheet."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return format(value, "f")
    return str(value)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._worksheets: dict[str, gspread.Worksheet] = {}
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create(self, title: str, header: list[str], rows: int) -> gspread.Worksheet:
        if title not in self._worksheets:
            spreadsheet = self.get_spreadsheet()
            try:
                sheet = spreadsheet.worksheet(title)
            except gspread.WorksheetNotFound:
                # Create the sheet with headers
                sheet = spreadsheet.add_worksheet(
                    title=title,
                    rows=rows,
                    cols=len(header),
                )
                sheet.append_row(header)
            self._worksheets[title] = sheet
        return self._worksheets[title]

    def get_table_sheet(self, table: str) -> gspread.Worksheet:
        """Get or create the worksheet of a table."""
        return self._get_or_create(
            f"{self._settings.worksheet_prefix}{table}",
            columns_for(table),
            rows=1000,
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )


class GoogleSheetsRowStorage(RowStorageInterface):
    """
    Google Sheets implementation of table storage.

    One row per record. Cells come back as strings; empty cells come
    back as "" and are read as None.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _read(self, table: str) -> tuple[gspread.Worksheet, list[str], list[tuple[int, dict]]]:
        """Return (sheet, header, [(sheet_row_number, row_dict), ...])."""
        sheet = self._client.get_table_sheet(table)
        values = sheet.get_all_values()
        if not values:
            return sheet, columns_for(table), []

        header = values[0]
        rows = []
        for index, raw in enumerate(values[1:], start=2):  # Row 1 is header
            if not raw or not raw[0]:  # Skip empty rows
                continue
            row = {
                column: (raw[i] if i < len(raw) and raw[i] != "" else None)
                for i, column in enumerate(header)
            }
            rows.append((index, row))
        return sheet, header, rows

    @staticmethod
    def _to_row(header: list[str], row: dict) -> list[str]:
        return [to_cell(row.get(column)) for column in header]

    async def list_rows(
        self,
        table: str,
        filters: Filters = None,
        order_by: Sequence[str] = (),
        descending: bool = False,
    ) -> list[dict]:
        try:
            _, _, rows = self._read(table)
        except Exception as e:
            raise StorageError(f"Failed to list {table}: {e}")
        matched = [row for _, row in rows if row_matches(row, filters)]
        return sort_rows(matched, order_by, descending)

    async def get_row(self, table: str, row_id: str) -> Optional[dict]:
        rows = await self.list_rows(table, {"id": row_id})
        return rows[0] if rows else None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type(DuplicateError),
        reraise=True,
    )
    async def insert_row(self, table: str, values: dict) -> dict:
        try:
            sheet, header, rows = self._read(table)
            row = dict(values)
            row["id"] = str(row.get("id") or uuid4())
            if any(existing["id"] == row["id"] for _, existing in rows):
                raise DuplicateError(f"Row already exists in {table}: {row['id']}")

            now = datetime.utcnow()
            row.setdefault("created_at", now)
            row["updated_at"] = now
            sheet.append_row(self._to_row(header, row), value_input_option="RAW")
            return row
        except DuplicateError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to insert into {table}: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def update_rows(self, table: str, filters: Filters, values: dict) -> list[dict]:
        try:
            sheet, header, rows = self._read(table)
            now = datetime.utcnow()
            updates = []
            updated = []
            for index, row in rows:
                if not row_matches(row, filters):
                    continue
                row.update(values)
                row["updated_at"] = now
                updates.append({
                    "range": f"A{index}",
                    "values": [self._to_row(header, row)],
                })
                updated.append(row)

            if updates:
                sheet.batch_update(updates, value_input_option="RAW")
            return updated
        except Exception as e:
            raise StorageError(f"Failed to update {table}: {e}")

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

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def delete_rows(self, table: str, filters: Filters) -> int:
        try:
            sheet, _, rows = self._read(table)
            doomed = [index for index, row in rows if row_matches(row, filters)]
            # Bottom-up so earlier deletions don't shift later row numbers
            for index in sorted(doomed, reverse=True):
                sheet.delete_rows(index)
            return len(doomed)
        except Exception as e:
            raise StorageError(f"Failed to delete from {table}: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            budget_id=safe_get(4) or None,
            entity_type=safe_get(5) or None,
            entity_id=safe_get(6) or None,
            actor_id=safe_get(7) or None,
            correlation_id=UUID(safe_get(8)) if safe_get(8) else None,
            description=safe_get(9),
            details=json.loads(safe_get(10)) if safe_get(10) else {},
            error_message=safe_get(11) or None,
        )

    def _load_events(self) -> list[AuditEvent]:
        sheet = self._client.get_audit_sheet()
        events = []
        for row in sheet.get_all_values()[1:]:
            if not row or not row[0]:
                continue
            try:
                events.append(self._row_to_event(row))
            except (ValueError, KeyError) as e:
                logger.warning("audit_row_unreadable", error=str(e), event_id=row[0])
        return events

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            # Don't raise - audit logging should not break the main flow
            logger.warning("audit_append_failed", error=str(e), event_id=str(event.event_id))
            return False

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID."""
        try:
            events = [e for e in self._load_events() if e.correlation_id == correlation_id]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        # Sort chronologically
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_budget(
        self,
        budget_id: str,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events of a budget."""
        try:
            events = [e for e in self._load_events() if e.budget_id == budget_id]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
