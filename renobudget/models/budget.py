"""
Core Domain Records for Renovation Budget

These models describe the in-memory shape of everything the backend
stores: budgets, their members, zones, wishlist items, expenses and
contract expenses.

DESIGN DECISION: Records are read snapshots. They are produced by the
mapping functions in renobudget.summary.mappers and never written back
directly; writes go through the services with explicit input values.

Field names are snake_case in Python. The presentation layer gets
camelCase keys via model_dump(by_alias=True).
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class BudgetRole(str, Enum):
    """
    Collaboration role of a user on a budget.

    Owners and admins manage members and delete data.
    Maintainers edit. Guests only read.
    """
    OWNER = "owner"
    ADMIN = "admin"
    MAINTAINER = "maintainer"
    GUEST = "guest"


class WishlistItemStatus(str, Enum):
    """Purchase status of a wishlist item."""
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ContractExpenseType(str, Enum):
    """Kinds of vendor contract tracked outside the wishlist."""
    RENOVATION_COST = "renovation_cost"
    VARIATION_ORDER = "variation_order"
    EXTERNAL_SERVICE = "external_service"


class ScheduleEventType(str, Enum):
    """Scheduled events attached to a wishlist item."""
    DELIVERY = "delivery"
    INSTALLATION = "installation"


# =============================================================================
# BASE
# =============================================================================

class DomainModel(BaseModel):
    """Base for all records: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


# =============================================================================
# BUDGETS AND MEMBERS
# =============================================================================

class Budget(DomainModel):
    """
    A renovation budget (called a "project" in the UI).

    total_budget is the amount the owner set aside, independent of
    what the zones add up to.
    """

    id: str
    name: str
    total_budget: Decimal = Decimal("0")
    currency: str = "SGD"
    owner_id: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BudgetMember(DomainModel):
    """Membership of a user on a budget."""

    budget_id: str
    user_id: str
    role: BudgetRole
    invited_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BudgetMemberIdentity(DomainModel):
    """A member joined with the user's display details."""

    user_id: str
    role: BudgetRole
    email: Optional[str] = None
    first_name: Optional[str] = None


# =============================================================================
# ZONES, WISHLIST ITEMS, EXPENSES
# =============================================================================

class Zone(DomainModel):
    """A sub-area of a budget, usually a room."""

    id: str
    budget_id: str
    name: str = "Untitled zone"


class WishlistItem(DomainModel):
    """
    A planned purchase inside a zone.

    allocated_budget is stored in the "budget" column of the backend.
    """

    id: str
    zone_id: str
    name: str = "Untitled item"
    allocated_budget: Decimal = Decimal("0")
    status: WishlistItemStatus = WishlistItemStatus.NOT_STARTED
    must_purchase_before: Optional[date] = None

    @property
    def is_purchased(self) -> bool:
        return self.status != WishlistItemStatus.NOT_STARTED


class Expense(DomainModel):
    """Money spent against a wishlist item."""

    id: str
    wishlist_item_id: str
    amount: Decimal = Decimal("0")
    description: Optional[str] = None
    expense_date: Optional[date] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class WishlistItemEvent(DomainModel):
    """
    A delivery or installation slot for a wishlist item.

    There is at most one event per (item, event_type).
    """

    wishlist_item_id: str
    event_type: ScheduleEventType
    scheduled_at: Optional[date] = None
    delivery_scheduled: bool = False
    contact_person_name: Optional[str] = None
    contact_person_email: Optional[str] = None
    contact_person_mobile: Optional[str] = None
    company_brand_name: Optional[str] = None

    @property
    def has_contact(self) -> bool:
        return any((
            self.contact_person_name,
            self.contact_person_email,
            self.contact_person_mobile,
            self.company_brand_name,
        ))


# =============================================================================
# CONTRACT EXPENSES
# =============================================================================

class ContractExpenseMilestone(DomainModel):
    """A planned partial payment, by percentage or fixed amount."""

    id: str
    contract_expense_id: str
    sequence_number: int
    percentage: Optional[Decimal] = None
    amount: Optional[Decimal] = None
    due_date: Optional[date] = None
    notes: Optional[str] = None


class ContractExpensePayment(DomainModel):
    """A payment actually made against a contract expense."""

    id: str
    contract_expense_id: str
    amount: Decimal = Decimal("0")
    paid_at: Optional[date] = None
    notes: Optional[str] = None


class ContractExpense(DomainModel):
    """
    A vendor contract tracked separately from wishlist items.

    The money fields (total_contract_cost, paid_to_date, ...) are derived
    from the contract, its milestones and its payments when listed.
    """

    id: str
    budget_id: str
    expense_type: ContractExpenseType
    expense_name: str
    vendor_name: str
    expense_date: Optional[date] = None
    notes: str = ""
    contract_total_amount: Optional[Decimal] = None

    milestone_total_amount: Decimal = Decimal("0")
    paid_to_date: Decimal = Decimal("0")
    total_contract_cost: Decimal = Decimal("0")
    remaining_balance: Decimal = Decimal("0")

    milestones: list[ContractExpenseMilestone] = Field(default_factory=list)
    payments: list[ContractExpensePayment] = Field(default_factory=list)

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
