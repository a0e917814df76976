"""
Expense Service

Money spent against wishlist items. A budget's expenses are found
through its zones and their items, since expenses only know their item.
"""

from typing import Optional

from renobudget.models.budget import Expense
from renobudget.services.storage import (
    NotFoundError,
    RowStorageInterface,
    storage_context,
)
from renobudget.services.storage.tables import EXPENSES, WISHLIST_ITEMS, ZONES
from renobudget.summary.mappers import map_expense_row
from renobudget.validation import (
    sanitize_optional_date,
    sanitize_optional_text,
    validate_non_negative_amount,
)


class ExpenseService:
    """CRUD for wishlist item expenses."""

    def __init__(self, storage: RowStorageInterface):
        self._storage = storage

    async def list_by_budget(self, budget_id: str) -> list[Expense]:
        """Expenses of every item in the budget, newest first."""
        with storage_context("Failed to resolve project wishlist items"):
            zone_rows = await self._storage.list_rows(ZONES, {"budget_id": budget_id})
            zone_ids = [row["id"] for row in zone_rows]
            item_rows = (
                await self._storage.list_rows(WISHLIST_ITEMS, {"zone_id": zone_ids})
                if zone_ids else []
            )
        item_ids = [row["id"] for row in item_rows]
        if not item_ids:
            return []

        with storage_context("Failed to list project expenses"):
            rows = await self._storage.list_rows(
                EXPENSES,
                {"wishlist_item_id": item_ids},
                order_by=["created_at"],
                descending=True,
            )
        return [map_expense_row(row) for row in rows]

    async def get(self, expense_id: str) -> Expense:
        with storage_context("Failed to get expense"):
            row = await self._storage.get_row(EXPENSES, expense_id)
        if row is None:
            raise NotFoundError(f"Failed to get expense: no expense {expense_id}")
        return map_expense_row(row)

    @staticmethod
    def _values(
        wishlist_item_id: str,
        amount: float,
        description: Optional[str],
        expense_date: Optional[str],
    ) -> dict:
        return {
            "wishlist_item_id": wishlist_item_id,
            "amount": validate_non_negative_amount(amount, "Expense amount"),
            "description": sanitize_optional_text(description),
            "expense_date": sanitize_optional_date(expense_date),
        }

    async def create(
        self,
        wishlist_item_id: str,
        amount: float,
        description: Optional[str] = None,
        expense_date: Optional[str] = None,
    ) -> Expense:
        values = self._values(wishlist_item_id, amount, description, expense_date)
        with storage_context("Failed to create expense"):
            row = await self._storage.insert_row(EXPENSES, values)
        return map_expense_row(row)

    async def update(
        self,
        expense_id: str,
        wishlist_item_id: str,
        amount: float,
        description: Optional[str] = None,
        expense_date: Optional[str] = None,
    ) -> Expense:
        values = self._values(wishlist_item_id, amount, description, expense_date)
        with storage_context("Failed to update expense"):
            rows = await self._storage.update_rows(EXPENSES, {"id": expense_id}, values)
        if not rows:
            raise NotFoundError(f"Failed to update expense: no expense {expense_id}")
        return map_expense_row(rows[0])

    async def remove(self, expense_id: str) -> None:
        with storage_context("Failed to delete expense"):
            await self._storage.delete_rows(EXPENSES, {"id": expense_id})
