"""Services package."""

from renobudget.services.budget_service import (
    BudgetService,
    UserDirectory,
    UserNotFoundError,
)
from renobudget.services.contract_service import ContractExpenseService
from renobudget.services.expense_service import ExpenseService
from renobudget.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsRowStorage,
    InMemoryAuditStorage,
    InMemoryRowStorage,
    NotFoundError,
    RowStorageInterface,
    StorageError,
)

__all__ = [
    # Domain services
    "BudgetService",
    "ContractExpenseService",
    "ExpenseService",
    "UserDirectory",
    "UserNotFoundError",
    # Storage services
    "AuditStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsRowStorage",
    "InMemoryAuditStorage",
    "InMemoryRowStorage",
    "NotFoundError",
    "RowStorageInterface",
    "StorageError",
]
