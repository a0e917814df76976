"""
Contract Expense Service

Vendor contracts (renovation cost, variation orders, external services)
with their payment milestones and the payments actually made.

The money figures of each contract are derived on read by
derive_contract_summary_row; nothing derived is stored.
"""

from datetime import date, datetime
from typing import Iterable

from renobudget.models.budget import (
    ContractExpense,
    ContractExpenseMilestone,
    ContractExpensePayment,
)
from renobudget.models.inputs import ContractExpenseInput
from renobudget.models.summary import ContractExpenseSummary, ContractSummaryRow
from renobudget.services.storage import (
    NotFoundError,
    RowStorageInterface,
    storage_context,
)
from renobudget.services.storage.tables import (
    CONTRACT_EXPENSES,
    CONTRACT_MILESTONES,
    CONTRACT_PAYMENTS,
)
from renobudget.summary.aggregator import (
    derive_contract_summary_row,
    summarize_contract_expenses,
)
from renobudget.summary.mappers import (
    map_contract_expense_row,
    map_milestone_row,
    map_payment_row,
)
from renobudget.validation import (
    require_payments,
    sanitize_milestones,
    sanitize_optional_amount,
    sanitize_optional_date,
    sanitize_optional_text,
    sanitize_payments,
    sanitize_required_text,
)


class ContractExpenseService:
    """CRUD for contract expenses and their children."""

    def __init__(self, storage: RowStorageInterface):
        self._storage = storage

    async def _load_children(
        self,
        contract_expense_ids: list[str],
    ) -> tuple[
        dict[str, list[ContractExpenseMilestone]],
        dict[str, list[ContractExpensePayment]],
    ]:
        milestones_by_contract: dict[str, list[ContractExpenseMilestone]] = {}
        payments_by_contract: dict[str, list[ContractExpensePayment]] = {}
        if not contract_expense_ids:
            return milestones_by_contract, payments_by_contract

        with storage_context("Failed to list contract payment milestones"):
            milestone_rows = await self._storage.list_rows(
                CONTRACT_MILESTONES, {"contract_expense_id": contract_expense_ids}
            )
        with storage_context("Failed to list contract payments"):
            payment_rows = await self._storage.list_rows(
                CONTRACT_PAYMENTS, {"contract_expense_id": contract_expense_ids}
            )

        milestones = sorted(
            (map_milestone_row(row) for row in milestone_rows),
            key=lambda m: m.sequence_number,
        )
        for milestone in milestones:
            milestones_by_contract.setdefault(milestone.contract_expense_id, []).append(milestone)

        payments = sorted(
            (map_payment_row(row) for row in payment_rows),
            key=lambda p: p.paid_at or date.min,
        )
        for payment in payments:
            payments_by_contract.setdefault(payment.contract_expense_id, []).append(payment)

        return milestones_by_contract, payments_by_contract

    async def _hydrate(self, rows: Iterable[dict]) -> list[ContractExpense]:
        contracts = [map_contract_expense_row(row) for row in rows]
        milestones_by_contract, payments_by_contract = await self._load_children(
            [contract.id for contract in contracts]
        )

        hydrated = []
        for contract in contracts:
            milestones = milestones_by_contract.get(contract.id, [])
            payments = payments_by_contract.get(contract.id, [])
            figures = derive_contract_summary_row(contract, milestones, payments)
            hydrated.append(
                contract.model_copy(update={
                    "milestones": milestones,
                    "payments": payments,
                    "milestone_total_amount": figures.milestone_total_amount,
                    "total_contract_cost": figures.total_contract_cost,
                    "paid_to_date": figures.paid_to_date,
                    "remaining_balance": figures.remaining_balance,
                })
            )
        return hydrated

    async def list_by_budget(self, budget_id: str) -> list[ContractExpense]:
        """Contracts of a budget: undated first, then newest expense date first."""
        with storage_context("Failed to list contract expenses"):
            rows = await self._storage.list_rows(CONTRACT_EXPENSES, {"budget_id": budget_id})
        contracts = await self._hydrate(rows)
        contracts.sort(
            key=lambda c: (c.expense_date is None, c.expense_date or date.min, c.created_at or datetime.min),
            reverse=True,
        )
        return contracts

    async def get(self, contract_expense_id: str) -> ContractExpense:
        with storage_context("Failed to get contract expense"):
            row = await self._storage.get_row(CONTRACT_EXPENSES, contract_expense_id)
        if row is None:
            raise NotFoundError(f"Contract expense not found: {contract_expense_id}")
        return (await self._hydrate([row]))[0]

    async def list_summary_rows(self, budget_id: str) -> list[ContractSummaryRow]:
        contracts = await self.list_by_budget(budget_id)
        return [
            ContractSummaryRow(
                contract_expense_id=c.id,
                budget_id=c.budget_id,
                milestone_total_amount=c.milestone_total_amount,
                total_contract_cost=c.total_contract_cost,
                paid_to_date=c.paid_to_date,
                remaining_balance=c.remaining_balance,
            )
            for c in contracts
        ]

    async def get_budget_summary(self, budget_id: str) -> ContractExpenseSummary:
        """Budget-wide totals; all zero when the budget has no contracts."""
        return summarize_contract_expenses(await self.list_summary_rows(budget_id))

    def _contract_values(self, data: ContractExpenseInput) -> tuple[dict, list[dict], list[dict]]:
        values = {
            "budget_id": data.budget_id,
            "expense_type": data.expense_type.value,
            "expense_name": sanitize_required_text(data.expense_name, "Expense name"),
            "expense_date": sanitize_optional_date(data.expense_date),
            "notes": sanitize_optional_text(data.notes),
            "vendor_name": sanitize_required_text(data.vendor_name, "Vendor name"),
            "contract_total_amount": sanitize_optional_amount(data.contract_total_amount),
        }
        milestones = sanitize_milestones(data.milestones)
        payments = require_payments(sanitize_payments(data.payments))
        return values, milestones, payments

    async def _write_children(
        self,
        contract_expense_id: str,
        milestones: list[dict],
        payments: list[dict],
    ) -> None:
        with storage_context("Failed to save contract expense milestones"):
            for milestone in milestones:
                await self._storage.insert_row(
                    CONTRACT_MILESTONES,
                    {"contract_expense_id": contract_expense_id, **milestone},
                )
        with storage_context("Failed to save contract expense payments"):
            for payment in payments:
                await self._storage.insert_row(
                    CONTRACT_PAYMENTS,
                    {"contract_expense_id": contract_expense_id, **payment},
                )

    async def create(self, data: ContractExpenseInput) -> ContractExpense:
        """
        Create a contract with its milestones and payments.

        Raises:
            InputValidationError: Missing names or no valid payment
        """
        values, milestones, payments = self._contract_values(data)

        with storage_context("Failed to create contract expense"):
            created = await self._storage.insert_row(CONTRACT_EXPENSES, values)
        await self._write_children(created["id"], milestones, payments)
        return await self.get(created["id"])

    async def update(self, contract_expense_id: str, data: ContractExpenseInput) -> ContractExpense:
        """Update a contract; milestones and payments are replaced wholesale."""
        values, milestones, payments = self._contract_values(data)

        with storage_context("Failed to update contract expense"):
            updated = await self._storage.update_rows(
                CONTRACT_EXPENSES, {"id": contract_expense_id}, values
            )
        if not updated:
            raise NotFoundError(f"Contract expense not found: {contract_expense_id}")

        with storage_context("Failed to replace contract expense children"):
            await self._storage.delete_rows(
                CONTRACT_MILESTONES, {"contract_expense_id": contract_expense_id}
            )
            await self._storage.delete_rows(
                CONTRACT_PAYMENTS, {"contract_expense_id": contract_expense_id}
            )
        await self._write_children(contract_expense_id, milestones, payments)
        return await self.get(contract_expense_id)

    async def remove(self, contract_expense_id: str) -> None:
        with storage_context("Failed to delete contract expense"):
            await self._storage.delete_rows(
                CONTRACT_MILESTONES, {"contract_expense_id": contract_expense_id}
            )
            await self._storage.delete_rows(
                CONTRACT_PAYMENTS, {"contract_expense_id": contract_expense_id}
            )
            await self._storage.delete_rows(CONTRACT_EXPENSES, {"id": contract_expense_id})
