"""
Row → Record Mappers

One function per entity. Rows are the dicts a storage backend returns,
keyed by storage column name; every value may be a string.

Keeping the column names in here (and only here) means the aggregator
never sees storage naming.
"""

from typing import Any, Optional

from renobudget.models.budget import (
    Budget,
    BudgetMember,
    BudgetMemberIdentity,
    BudgetRole,
    ContractExpense,
    ContractExpenseMilestone,
    ContractExpensePayment,
    ContractExpenseType,
    Expense,
    ScheduleEventType,
    WishlistItem,
    WishlistItemEvent,
    WishlistItemStatus,
    Zone,
)
from renobudget.summary.coercion import (
    parse_bool,
    parse_date,
    parse_datetime,
    to_number,
    to_optional_number,
)


DEFAULT_CURRENCY = "SGD"
UNTITLED_ZONE = "Untitled zone"
UNTITLED_ITEM = "Untitled item"


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _id(value: Any) -> str:
    return "" if value is None else str(value)


def _status(value: Any) -> WishlistItemStatus:
    try:
        return WishlistItemStatus(_text(value))
    except ValueError:
        return WishlistItemStatus.NOT_STARTED


def _role(value: Any) -> BudgetRole:
    try:
        return BudgetRole(_text(value))
    except ValueError:
        return BudgetRole.GUEST


def _contract_type(value: Any) -> ContractExpenseType:
    try:
        return ContractExpenseType(_text(value))
    except ValueError:
        return ContractExpenseType.RENOVATION_COST


def map_budget_row(row: dict, default_currency: str = DEFAULT_CURRENCY) -> Budget:
    return Budget(
        id=_id(row.get("id")),
        name=_text(row.get("name")) or "",
        total_budget=to_number(row.get("total_budget")),
        currency=_text(row.get("currency")) or default_currency,
        owner_id=_id(row.get("user_id")),
        created_at=parse_datetime(row.get("created_at")),
        updated_at=parse_datetime(row.get("updated_at")),
    )


def map_budget_member_row(row: dict) -> BudgetMember:
    return BudgetMember(
        budget_id=_id(row.get("budget_id")),
        user_id=_id(row.get("user_id")),
        role=_role(row.get("role")),
        invited_by=_text(row.get("invited_by")),
        created_at=parse_datetime(row.get("created_at")),
        updated_at=parse_datetime(row.get("updated_at")),
    )


def map_member_identity_row(row: dict) -> BudgetMemberIdentity:
    return BudgetMemberIdentity(
        user_id=_id(row.get("user_id")),
        role=_role(row.get("role")),
        email=_text(row.get("email")),
        first_name=_text(row.get("first_name")),
    )


def map_zone_row(row: dict) -> Zone:
    return Zone(
        id=_id(row.get("id")),
        budget_id=_id(row.get("budget_id")),
        name=_text(row.get("name")) or UNTITLED_ZONE,
    )


def map_wishlist_item_row(row: dict) -> WishlistItem:
    return WishlistItem(
        id=_id(row.get("id")),
        zone_id=_id(row.get("zone_id")),
        name=_text(row.get("name")) or UNTITLED_ITEM,
        allocated_budget=to_number(row.get("budget")),
        status=_status(row.get("status")),
        must_purchase_before=parse_date(row.get("must_purchase_before")),
    )


def map_expense_row(row: dict) -> Expense:
    return Expense(
        id=_id(row.get("id")),
        wishlist_item_id=_id(row.get("wishlist_item_id")),
        amount=to_number(row.get("amount")),
        description=_text(row.get("description")),
        expense_date=parse_date(row.get("expense_date")),
        created_at=parse_datetime(row.get("created_at")),
        updated_at=parse_datetime(row.get("updated_at")),
    )


def map_schedule_event_row(row: dict) -> Optional[WishlistItemEvent]:
    """Map an event row, or None when its event type is unknown."""
    try:
        event_type = ScheduleEventType(_text(row.get("event_type")))
    except ValueError:
        return None
    return WishlistItemEvent(
        wishlist_item_id=_id(row.get("wishlist_item_id")),
        event_type=event_type,
        scheduled_at=parse_date(row.get("scheduled_at")),
        delivery_scheduled=parse_bool(row.get("delivery_scheduled")),
        contact_person_name=_text(row.get("contact_person_name")),
        contact_person_email=_text(row.get("contact_person_email")),
        contact_person_mobile=_text(row.get("contact_person_mobile")),
        company_brand_name=_text(row.get("company_brand_name")),
    )


def map_milestone_row(row: dict) -> ContractExpenseMilestone:
    return ContractExpenseMilestone(
        id=_id(row.get("id")),
        contract_expense_id=_id(row.get("contract_expense_id")),
        sequence_number=int(to_number(row.get("sequence_number"))),
        percentage=to_optional_number(row.get("percentage")),
        amount=to_optional_number(row.get("amount")),
        due_date=parse_date(row.get("due_date")),
        notes=_text(row.get("notes")),
    )


def map_payment_row(row: dict) -> ContractExpensePayment:
    return ContractExpensePayment(
        id=_id(row.get("id")),
        contract_expense_id=_id(row.get("contract_expense_id")),
        amount=to_number(row.get("amount")),
        paid_at=parse_date(row.get("paid_at")),
        notes=_text(row.get("notes")),
    )


def map_contract_expense_row(row: dict) -> ContractExpense:
    """
    Map the contract columns only.

    Milestones, payments and the derived money fields are attached by
    the contract service once the children are loaded.
    """
    return ContractExpense(
        id=_id(row.get("id")),
        budget_id=_id(row.get("budget_id")),
        expense_type=_contract_type(row.get("expense_type")),
        expense_name=_text(row.get("expense_name")) or "",
        vendor_name=_text(row.get("vendor_name")) or "",
        expense_date=parse_date(row.get("expense_date")),
        notes=_text(row.get("notes")) or "",
        contract_total_amount=to_optional_number(row.get("contract_total_amount")),
        created_at=parse_datetime(row.get("created_at")),
        updated_at=parse_datetime(row.get("updated_at")),
    )
