"""
Derived Summary Models

Everything in this module is computed from records, never stored.
The aggregation core in renobudget.summary produces these; the
presentation layer formats them with the budget's currency.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import Field

from renobudget.models.budget import DomainModel, WishlistItemStatus


ZERO = Decimal("0")


class ZoneMetrics(DomainModel):
    """Per-zone dashboard figures."""

    id: str
    name: str
    allocated_budget: Decimal = ZERO
    amount_spent: Decimal = ZERO
    items_purchased: int = Field(default=0, ge=0)
    items_left_to_purchase: int = Field(default=0, ge=0)


class ContractSummaryRow(DomainModel):
    """
    Money figures of one contract expense.

    remaining_balance is signed: an overpaid contract goes negative.
    """

    contract_expense_id: str
    budget_id: str
    milestone_total_amount: Decimal = ZERO
    total_contract_cost: Decimal = ZERO
    paid_to_date: Decimal = ZERO
    remaining_balance: Decimal = ZERO


class ContractExpenseSummary(DomainModel):
    """Totals across all contract expenses of a budget."""

    total_contract_cost: Decimal = ZERO
    paid_to_date: Decimal = ZERO
    remaining_balance: Decimal = ZERO
    expenses_count: int = Field(default=0, ge=0)


class BudgetDashboardSummary(DomainModel):
    """The budget header shown on the dashboard."""

    id: str
    name: str
    total_budget: Decimal = ZERO
    currency: str


class BudgetDashboardData(DomainModel):
    """Everything the dashboard renders for one budget."""

    budget: BudgetDashboardSummary
    zones: list[ZoneMetrics] = Field(default_factory=list)
    unbudgeted_items: int = Field(default=0, ge=0)
    contract_expense_summary: ContractExpenseSummary = Field(
        default_factory=ContractExpenseSummary
    )

    @property
    def total_allocated(self) -> Decimal:
        return sum((zone.allocated_budget for zone in self.zones), ZERO)

    @property
    def total_spent(self) -> Decimal:
        return sum((zone.amount_spent for zone in self.zones), ZERO)


# =============================================================================
# ZONE DETAIL
# =============================================================================

class ZoneDetailItem(DomainModel):
    """A wishlist item with its spending, as listed on the zone page."""

    id: str
    name: str
    allocated_budget: Decimal = ZERO
    amount_spent: Decimal = ZERO
    must_purchase_before: Optional[date] = None
    status: WishlistItemStatus


class PurchasedItemRecord(DomainModel):
    """
    One expense of a purchased item, joined with its schedule.

    difference = item budget - this expense's amount.
    """

    id: str
    wishlist_item_id: str
    purchased_item_name: str
    description: str
    expense_description: str
    budget: Decimal = ZERO
    amount_spent: Decimal = ZERO
    difference: Decimal = ZERO
    purchase_date: Optional[date] = None
    delivery_date: Optional[date] = None
    installation_date: Optional[date] = None
    contact_person_name: Optional[str] = None
    contact_person_email: Optional[str] = None
    contact_person_mobile: Optional[str] = None
    company_brand_name: Optional[str] = None
    delivery_scheduled: bool = False
    status: WishlistItemStatus


class ZoneDetailHeader(DomainModel):
    id: str
    budget_id: str
    name: str
    currency: str


class ZoneDetailData(DomainModel):
    """Everything the zone page renders."""

    zone: ZoneDetailHeader
    amount_spent: Decimal = ZERO
    allocated_budget: Decimal = ZERO
    budget_left: Decimal = ZERO
    purchased_items: list[ZoneDetailItem] = Field(default_factory=list)
    unpurchased_items: list[ZoneDetailItem] = Field(default_factory=list)
    purchased_item_records: list[PurchasedItemRecord] = Field(default_factory=list)


class DeliveryScheduleItem(DomainModel):
    """A wishlist item that has a delivery or installation date."""

    wishlist_item_id: str
    wishlist_item_name: str
    zone_id: str
    zone_name: str
    delivery_date: Optional[date] = None
    installation_date: Optional[date] = None
    contact_person_name: Optional[str] = None
    contact_person_email: Optional[str] = None
    contact_person_mobile: Optional[str] = None
    company_brand_name: Optional[str] = None
    delivery_scheduled: bool = False
    status: WishlistItemStatus


# =============================================================================
# NOTIFICATIONS
# =============================================================================

class NotificationKind(str, Enum):
    UPCOMING = "upcoming"
    OVERDUE = "overdue"


class NotificationField(str, Enum):
    MUST_PURCHASE_BEFORE = "must_purchase_before"
    DELIVERY_DATE = "delivery_date"
    INSTALLATION_DATE = "installation_date"


class ItemDateNotification(DomainModel):
    """An upcoming or overdue date on an item or purchased record."""

    id: str
    kind: NotificationKind
    field: NotificationField
    field_label: str
    item_id: str
    item_name: str
    date_value: date
