"""
Budget Summary Aggregator

Pure functions that turn already-fetched records into dashboard figures:

- per-zone metrics (allocated, spent, purchased / left to purchase)
- contract expense figures and their budget-wide summary
- the composed dashboard for one budget

DESIGN DECISION: Nothing here does I/O or reads ambient state. Callers
fetch the records for an explicit budget id and hand them in; the
functions only read their inputs and return new values.

Referential integrity is NOT validated. An item whose zone is not in
the snapshot, or an expense whose item is not, simply falls into no
bucket.
"""

from collections import defaultdict
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from renobudget.models.budget import (
    Budget,
    ContractExpense,
    ContractExpenseMilestone,
    ContractExpensePayment,
    Expense,
    WishlistItem,
    WishlistItemStatus,
    Zone,
)
from renobudget.models.summary import (
    BudgetDashboardData,
    BudgetDashboardSummary,
    ContractExpenseSummary,
    ContractSummaryRow,
    ZoneMetrics,
)
from renobudget.summary.coercion import ZERO, to_number


# =============================================================================
# ZONES
# =============================================================================

def sum_expenses_by_item(expenses: Iterable[Expense]) -> dict[str, Decimal]:
    """Total expense amount per wishlist item id."""
    totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for expense in expenses:
        totals[expense.wishlist_item_id] += to_number(expense.amount)
    return dict(totals)


def group_items_by_zone(
    wishlist_items: Iterable[WishlistItem],
) -> dict[str, list[WishlistItem]]:
    grouped: dict[str, list[WishlistItem]] = defaultdict(list)
    for item in wishlist_items:
        grouped[item.zone_id].append(item)
    return dict(grouped)


def build_zone_metrics(
    zones: Sequence[Zone],
    wishlist_items: Iterable[WishlistItem],
    expenses: Iterable[Expense],
) -> list[ZoneMetrics]:
    """
    Compute one ZoneMetrics per zone, in the zones' order.

    itemsPurchased counts every item that has left not_started.
    itemsLeftToPurchase is floored at zero.
    """
    items_by_zone = group_items_by_zone(wishlist_items)
    spent_by_item = sum_expenses_by_item(expenses)

    metrics = []
    for zone in zones:
        zone_items = items_by_zone.get(zone.id, [])
        purchased = sum(1 for item in zone_items if item.is_purchased)
        metrics.append(
            ZoneMetrics(
                id=zone.id,
                name=zone.name,
                allocated_budget=sum(
                    (to_number(item.allocated_budget) for item in zone_items), ZERO
                ),
                amount_spent=sum(
                    (spent_by_item.get(item.id, ZERO) for item in zone_items), ZERO
                ),
                items_purchased=purchased,
                items_left_to_purchase=max(len(zone_items) - purchased, 0),
            )
        )
    return metrics


def count_unbudgeted_items(wishlist_items: Iterable[WishlistItem]) -> int:
    """Items nobody has acted on and nobody has earmarked money for."""
    return sum(
        1
        for item in wishlist_items
        if item.status == WishlistItemStatus.NOT_STARTED
        and to_number(item.allocated_budget) == 0
    )


# =============================================================================
# CONTRACT EXPENSES
# =============================================================================

def derive_contract_summary_row(
    contract: ContractExpense,
    milestones: Iterable[ContractExpenseMilestone] = (),
    payments: Iterable[ContractExpensePayment] = (),
) -> ContractSummaryRow:
    """
    Derive the money figures of one contract.

    An explicit contract total wins; otherwise the milestone amounts
    add up to the contract cost. The remaining balance is signed.
    """
    milestone_total = sum(
        (to_number(m.amount) for m in milestones if m.amount is not None), ZERO
    )
    paid = sum((to_number(p.amount) for p in payments), ZERO)

    if contract.contract_total_amount is not None:
        total_cost = to_number(contract.contract_total_amount)
    else:
        total_cost = milestone_total

    return ContractSummaryRow(
        contract_expense_id=contract.id,
        budget_id=contract.budget_id,
        milestone_total_amount=milestone_total,
        total_contract_cost=total_cost,
        paid_to_date=paid,
        remaining_balance=total_cost - paid,
    )


def zero_contract_summary() -> ContractExpenseSummary:
    return ContractExpenseSummary()


def summarize_contract_expenses(rows: Iterable) -> ContractExpenseSummary:
    """
    Fold contract rows into a budget-wide summary.

    Rows are anything carrying total_contract_cost, paid_to_date and
    remaining_balance (ContractSummaryRow or ContractExpense). No rows
    gives the all-zero summary, never None.
    """
    total_cost = ZERO
    paid = ZERO
    remaining = ZERO
    count = 0
    for row in rows:
        total_cost += to_number(row.total_contract_cost)
        paid += to_number(row.paid_to_date)
        remaining += to_number(row.remaining_balance)
        count += 1

    return ContractExpenseSummary(
        total_contract_cost=total_cost,
        paid_to_date=paid,
        remaining_balance=remaining,
        expenses_count=count,
    )


def combine_contract_summaries(
    left: ContractExpenseSummary,
    right: ContractExpenseSummary,
) -> ContractExpenseSummary:
    """Add two partial summaries field by field."""
    return ContractExpenseSummary(
        total_contract_cost=left.total_contract_cost + right.total_contract_cost,
        paid_to_date=left.paid_to_date + right.paid_to_date,
        remaining_balance=left.remaining_balance + right.remaining_balance,
        expenses_count=left.expenses_count + right.expenses_count,
    )


# =============================================================================
# DASHBOARD
# =============================================================================

def compose_dashboard(
    budget: Budget,
    zones: Sequence[Zone],
    wishlist_items: Sequence[WishlistItem],
    expenses: Iterable[Expense],
    contract_rows: Iterable = (),
    contract_summary: Optional[ContractExpenseSummary] = None,
) -> BudgetDashboardData:
    """
    Compose the dashboard for one budget.

    The budget must exist; "no budget" is the caller's business.
    A precomputed contract_summary takes precedence over contract_rows.
    """
    if contract_summary is None:
        contract_summary = summarize_contract_expenses(contract_rows)

    zone_ids = {zone.id for zone in zones}
    zoned_items = [item for item in wishlist_items if item.zone_id in zone_ids]

    return BudgetDashboardData(
        budget=BudgetDashboardSummary(
            id=budget.id,
            name=budget.name,
            total_budget=to_number(budget.total_budget),
            currency=budget.currency,
        ),
        zones=build_zone_metrics(zones, zoned_items, expenses),
        unbudgeted_items=count_unbudgeted_items(zoned_items),
        contract_expense_summary=contract_summary,
    )
