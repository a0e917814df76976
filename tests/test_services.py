"""
Integration tests for the budget, expense and contract services,
run against in-memory storage.
"""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from renobudget.models.budget import (
    BudgetRole,
    ContractExpenseType,
    WishlistItemStatus,
)
from renobudget.models.inputs import (
    ContractExpenseInput,
    ContractMilestoneInput,
    ContractPaymentInput,
    ScheduleInput,
)
from renobudget.services import (
    BudgetService,
    ContractExpenseService,
    ExpenseService,
    InMemoryRowStorage,
    NotFoundError,
    StorageError,
)
from renobudget.services.storage.tables import (
    BUDGET_MEMBERS,
    EXPENSES,
    USERS,
    WISHLIST_ITEM_EVENTS,
    WISHLIST_ITEMS,
    ZONES,
)
from renobudget.validation import InputValidationError


@pytest.fixture
def storage():
    return InMemoryRowStorage()


@pytest.fixture
def services(storage):
    contracts = ContractExpenseService(storage)
    budgets = BudgetService(storage, contract_service=contracts, default_currency="SGD")
    expenses = ExpenseService(storage)
    return budgets, expenses, contracts


def _contract_input(budget_id, **overrides):
    values = {
        "budget_id": budget_id,
        "expense_type": ContractExpenseType.RENOVATION_COST,
        "expense_name": "Carpentry",
        "vendor_name": "Woodworks",
        "expense_date": "2025-02-01",
        "contract_total_amount": 1000,
        "milestones": [
            ContractMilestoneInput(sequence_number=2, amount=600),
            ContractMilestoneInput(sequence_number=1, percentage=40, amount=400),
        ],
        "payments": [
            ContractPaymentInput(amount=300, paid_at="2025-02-10"),
            ContractPaymentInput(amount=100, paid_at="2025-02-05"),
        ],
    }
    values.update(overrides)
    return ContractExpenseInput(**values)


class TestBudgets:
    """Tests for budget creation and dashboards."""

    def test_create_budget_adds_owner(self, services):
        """Test the creator becomes the owner member."""
        budgets, _, _ = services
        budget = asyncio.run(budgets.create_budget("  Flat ", 25000, "u1"))

        assert budget.name == "Flat"
        assert budget.currency == "SGD"
        assert budget.owner_id == "u1"
        assert asyncio.run(budgets.get_member_role(budget.id, "u1")) == BudgetRole.OWNER

    def test_create_budget_validation(self, services):
        """Test blank names and negative totals are rejected."""
        budgets, _, _ = services
        with pytest.raises(InputValidationError, match="Budget name is required."):
            asyncio.run(budgets.create_budget(" ", 100, "u1"))
        with pytest.raises(InputValidationError, match="Total budget must be at least 0."):
            asyncio.run(budgets.create_budget("Flat", -1, "u1"))
        with pytest.raises(InputValidationError, match="signed in"):
            asyncio.run(budgets.create_budget("Flat", 1, ""))

    def test_get_missing_budget(self, services):
        """Test get_budget raises and get_dashboard returns None."""
        budgets, _, _ = services
        with pytest.raises(NotFoundError):
            asyncio.run(budgets.get_budget("nope"))
        assert asyncio.run(budgets.get_dashboard("nope")) is None
        assert asyncio.run(budgets.get_latest_dashboard()) is None

    def test_dashboard_end_to_end(self, services):
        """Test the reference two-zone budget through the services."""
        budgets, expenses, contracts = services
        budget = asyncio.run(budgets.create_budget("Flat", 5000, "u1"))
        zone_a = asyncio.run(budgets.create_zone(budget.id, "Zone A"))
        asyncio.run(budgets.create_zone(budget.id, "Zone B"))
        asyncio.run(budgets.create_wishlist_item(zone_a.id, "Sofa", 100))
        lamp = asyncio.run(budgets.create_wishlist_item(zone_a.id, "Lamp", 50))
        asyncio.run(budgets.update_wishlist_item_status(lamp.id, WishlistItemStatus.COMPLETED))
        asyncio.run(expenses.create(lamp.id, 40))
        asyncio.run(contracts.create(_contract_input(budget.id)))

        dashboard = asyncio.run(budgets.get_dashboard(budget.id))
        zone_metrics = {z.name: z for z in dashboard.zones}

        assert zone_metrics["Zone A"].allocated_budget == Decimal("150")
        assert zone_metrics["Zone A"].amount_spent == Decimal("40")
        assert zone_metrics["Zone A"].items_purchased == 1
        assert zone_metrics["Zone A"].items_left_to_purchase == 1
        assert zone_metrics["Zone B"].allocated_budget == 0
        assert dashboard.unbudgeted_items == 0
        assert dashboard.contract_expense_summary.total_contract_cost == Decimal("1000")
        assert dashboard.contract_expense_summary.paid_to_date == Decimal("400")
        assert dashboard.contract_expense_summary.expenses_count == 1

    def test_latest_dashboard(self, storage, services):
        """Test the latest dashboard is the most recently created budget."""
        budgets, _, _ = services
        storage._tables["budgets"] = [
            {"id": "old", "name": "Old", "created_at": "2024-01-01T00:00:00"},
            {"id": "new", "name": "New", "created_at": "2025-01-01T00:00:00"},
        ]
        assert asyncio.run(budgets.get_latest_dashboard()).budget.id == "new"


class TestZones:
    """Tests for zone writes."""

    def test_rename_zone(self, services):
        """Test renaming trims, and rejects blanks and unknown zones."""
        budgets, _, _ = services
        zone = asyncio.run(budgets.create_zone("b1", "Kitchen"))
        asyncio.run(budgets.rename_zone(zone.id, " Wet kitchen "))
        assert asyncio.run(budgets.get_zone(zone.id)).name == "Wet kitchen"
        with pytest.raises(InputValidationError, match="Zone name is required."):
            asyncio.run(budgets.rename_zone(zone.id, ""))
        with pytest.raises(NotFoundError, match="Failed to update zone"):
            asyncio.run(budgets.rename_zone("missing", "X"))

    def test_delete_zone_cascades(self, storage, services):
        """Test deleting a zone removes its items, expenses and events."""
        budgets, expenses, _ = services
        zone = asyncio.run(budgets.create_zone("b1", "Kitchen"))
        other = asyncio.run(budgets.create_zone("b1", "Bath"))
        item = asyncio.run(budgets.create_wishlist_item(zone.id, "Fridge", 2000))
        kept = asyncio.run(budgets.create_wishlist_item(other.id, "Mirror", 80))
        asyncio.run(expenses.create(item.id, 1800))
        asyncio.run(expenses.create(kept.id, 70))
        asyncio.run(budgets.set_wishlist_item_schedule(item.id, ScheduleInput(delivery_date="2025-06-01")))

        asyncio.run(budgets.delete_zone(zone.id))

        assert [r["id"] for r in asyncio.run(storage.list_rows(ZONES))] == [other.id]
        assert [r["id"] for r in asyncio.run(storage.list_rows(WISHLIST_ITEMS))] == [kept.id]
        assert [r["wishlist_item_id"] for r in asyncio.run(storage.list_rows(EXPENSES))] == [kept.id]
        assert asyncio.run(storage.list_rows(WISHLIST_ITEM_EVENTS)) == []


class TestWishlistItems:
    """Tests for wishlist item writes."""

    def test_create_validation(self, services):
        """Test item names and budgets are checked."""
        budgets, _, _ = services
        with pytest.raises(InputValidationError, match="Wishlist item name is required."):
            asyncio.run(budgets.create_wishlist_item("z1", " ", 10))
        with pytest.raises(InputValidationError, match="Wishlist item budget must be at least 0."):
            asyncio.run(budgets.create_wishlist_item("z1", "Sofa", -10))

    def test_update_item(self, services):
        """Test updating name, budget and deadline."""
        budgets, _, _ = services
        item = asyncio.run(budgets.create_wishlist_item("z1", "Sofa", 10, must_purchase_before="2025-03-01"))
        asyncio.run(budgets.update_wishlist_item(item.id, "Sectional sofa", 1500, must_purchase_before=""))
        updated = asyncio.run(budgets.get_wishlist_item(item.id))
        assert updated.name == "Sectional sofa"
        assert updated.allocated_budget == Decimal("1500")
        assert updated.must_purchase_before is None

    def test_reset_status_only_without_expenses(self, services):
        """Test the status resets only once no expenses remain."""
        budgets, expenses, _ = services
        item = asyncio.run(budgets.create_wishlist_item("z1", "Sofa", 1000))
        asyncio.run(budgets.update_wishlist_item_status(item.id, WishlistItemStatus.IN_PROGRESS))
        expense = asyncio.run(expenses.create(item.id, 500))

        assert asyncio.run(budgets.reset_wishlist_item_status_if_no_expenses(item.id)) is False
        assert asyncio.run(budgets.get_wishlist_item(item.id)).status == WishlistItemStatus.IN_PROGRESS

        asyncio.run(expenses.remove(expense.id))
        assert asyncio.run(budgets.reset_wishlist_item_status_if_no_expenses(item.id)) is True
        assert asyncio.run(budgets.get_wishlist_item(item.id)).status == WishlistItemStatus.NOT_STARTED

    def test_schedule_upsert_and_delete(self, storage, services):
        """Test schedule events are upserted per type and deleted when blank."""
        budgets, _, _ = services
        item = asyncio.run(budgets.create_wishlist_item("z1", "Sofa", 1000))
        asyncio.run(budgets.set_wishlist_item_schedule(item.id, ScheduleInput(
            delivery_date="2025-06-01",
            installation_date="2025-06-02",
            delivery_scheduled=True,
            contact_person_name=" Mei ",
        )))
        asyncio.run(budgets.set_wishlist_item_schedule(item.id, ScheduleInput(
            delivery_date="2025-06-05",
            delivery_scheduled=True,
        )))

        events = asyncio.run(storage.list_rows(WISHLIST_ITEM_EVENTS))
        assert len(events) == 1
        assert events[0]["event_type"] == "delivery"
        assert events[0]["scheduled_at"] == "2025-06-05"
        assert events[0]["delivery_scheduled"] is True
        assert events[0]["contact_person_name"] is None


class TestZonePages:
    """Tests for zone detail and delivery schedule reads."""

    def test_zone_detail(self, services):
        """Test the zone page uses the budget's currency."""
        budgets, expenses, _ = services
        budget = asyncio.run(budgets.create_budget("Flat", 5000, "u1"))
        zone = asyncio.run(budgets.create_zone(budget.id, "Kitchen"))
        item = asyncio.run(budgets.create_wishlist_item(zone.id, "Fridge", 2000))
        asyncio.run(budgets.update_wishlist_item_status(item.id, WishlistItemStatus.COMPLETED))
        asyncio.run(expenses.create(item.id, 1800, description="Fridge", expense_date="2025-05-01"))

        detail = asyncio.run(budgets.get_zone_detail(zone.id))
        assert detail.zone.currency == "SGD"
        assert detail.budget_left == Decimal("200")
        assert detail.purchased_item_records[0].purchase_date == date(2025, 5, 1)
        assert asyncio.run(budgets.get_zone_detail("missing")) is None

    def test_delivery_schedule(self, services):
        """Test the budget's schedule lists scheduled items only."""
        budgets, _, _ = services
        zone = asyncio.run(budgets.create_zone("b1", "Kitchen"))
        fridge = asyncio.run(budgets.create_wishlist_item(zone.id, "Fridge", 2000))
        asyncio.run(budgets.create_wishlist_item(zone.id, "Kettle", 50))
        asyncio.run(budgets.set_wishlist_item_schedule(fridge.id, ScheduleInput(
            installation_date="2025-06-02",
            company_brand_name="CoolCo",
        )))

        schedule = asyncio.run(budgets.get_delivery_schedule("b1"))
        assert [s.wishlist_item_name for s in schedule] == ["Fridge"]
        assert schedule[0].installation_date == date(2025, 6, 2)
        assert schedule[0].company_brand_name == "CoolCo"
        assert schedule[0].zone_name == "Kitchen"

    def test_unknown_event_type_skipped(self, storage, services):
        """Test a stored event of an unknown type does not break the schedule."""
        budgets, _, _ = services
        zone = asyncio.run(budgets.create_zone("b1", "Kitchen"))
        oven = asyncio.run(budgets.create_wishlist_item(zone.id, "Oven", 900))
        asyncio.run(budgets.set_wishlist_item_schedule(oven.id, ScheduleInput(delivery_date="2025-06-01")))
        asyncio.run(storage.insert_row(WISHLIST_ITEM_EVENTS, {
            "wishlist_item_id": oven.id,
            "event_type": "inspection",
            "scheduled_at": "2025-06-03",
        }))

        schedule = asyncio.run(budgets.get_delivery_schedule("b1"))
        assert [(s.wishlist_item_name, s.delivery_date) for s in schedule] == [("Oven", date(2025, 6, 1))]
        assert asyncio.run(budgets.get_zone_detail(zone.id)).unpurchased_items[0].name == "Oven"


class TestMembers:
    """Tests for membership management."""

    def test_invite_existing_user(self, storage, services):
        """Test inviting a known email adds the member."""
        budgets, _, _ = services
        storage._tables[USERS] = [{"id": "u2", "email": "alex@example.com", "first_name": "Alex"}]

        identity = asyncio.run(budgets.invite_member_by_email("b1", " Alex@Example.com ", BudgetRole.ADMIN, "u1"))

        assert identity.user_id == "u2"
        assert identity.first_name == "Alex"
        assert identity.role == BudgetRole.ADMIN
        members = asyncio.run(budgets.list_members("b1"))
        assert members[0].invited_by == "u1"

    def test_invite_unknown_user(self, storage, services):
        """Test an unknown email is invited as a user, then added."""
        budgets, _, _ = services
        identity = asyncio.run(budgets.invite_member_by_email("b1", "sam@example.com", BudgetRole.GUEST))

        users = asyncio.run(storage.list_rows(USERS))
        assert len(users) == 1
        assert users[0]["invited"] is True
        assert identity.email == "sam@example.com"
        assert asyncio.run(budgets.get_member_role("b1", identity.user_id)) == BudgetRole.GUEST

    def test_invite_rejects_owner_role(self, services):
        """Test nobody can be invited as a second owner."""
        budgets, _, _ = services
        with pytest.raises(InputValidationError):
            asyncio.run(budgets.invite_member_by_email("b1", "x@example.com", BudgetRole.OWNER))

    def test_invite_keeps_owner_membership(self, storage, services):
        """Test the owner's email cannot be re-invited with a lesser role."""
        budgets, _, _ = services
        storage._tables[USERS] = [{"id": "u1", "email": "owner@example.com"}]
        asyncio.run(budgets.upsert_member("b1", "u1", BudgetRole.OWNER))

        with pytest.raises(InputValidationError, match="owner's role cannot be changed"):
            asyncio.run(budgets.invite_member_by_email("b1", "owner@example.com", BudgetRole.ADMIN))
        assert asyncio.run(budgets.get_member_role("b1", "u1")) == BudgetRole.OWNER

    def test_reinvite_changes_role(self, storage, services):
        """Test inviting an existing member updates their role."""
        budgets, _, _ = services
        asyncio.run(budgets.invite_member_by_email("b1", "sam@example.com", BudgetRole.GUEST))
        asyncio.run(budgets.invite_member_by_email("b1", "sam@example.com", BudgetRole.MAINTAINER))
        assert len(asyncio.run(storage.list_rows(BUDGET_MEMBERS))) == 1

    def test_member_identities_and_removal(self, storage, services):
        """Test identities join user details; removal drops the membership."""
        budgets, _, _ = services
        storage._tables[USERS] = [{"id": "u1", "email": "owner@example.com", "first_name": "Olu"}]
        asyncio.run(budgets.upsert_member("b1", "u1", BudgetRole.OWNER))
        asyncio.run(budgets.upsert_member("b1", "u9", BudgetRole.GUEST))

        identities = asyncio.run(budgets.list_member_identities("b1"))
        assert [(i.user_id, i.email) for i in identities] == [("u1", "owner@example.com"), ("u9", None)]

        asyncio.run(budgets.remove_member("b1", "u9"))
        assert asyncio.run(budgets.get_member_role("b1", "u9")) is None
        assert asyncio.run(budgets.get_member_role("b1", "")) is None


class TestExpenses:
    """Tests for ExpenseService."""

    def test_list_by_budget(self, services):
        """Test only the budget's expenses are listed, newest first."""
        budgets, expenses, _ = services
        zone = asyncio.run(budgets.create_zone("b1", "Kitchen"))
        other_zone = asyncio.run(budgets.create_zone("b2", "Elsewhere"))
        item = asyncio.run(budgets.create_wishlist_item(zone.id, "Fridge", 2000))
        other = asyncio.run(budgets.create_wishlist_item(other_zone.id, "Bed", 900))
        first = asyncio.run(expenses.create(item.id, 100))
        second = asyncio.run(expenses.create(item.id, 50, description="  "))
        asyncio.run(expenses.create(other.id, 900))

        listed = asyncio.run(expenses.list_by_budget("b1"))
        assert {e.id for e in listed} == {first.id, second.id}
        assert listed[0].created_at >= listed[1].created_at
        assert second.description is None
        assert asyncio.run(expenses.list_by_budget("empty")) == []

    def test_update_and_remove(self, services):
        """Test updating an expense and removing it."""
        _, expenses, _ = services
        expense = asyncio.run(expenses.create("i1", 100, expense_date="2025-01-01"))
        updated = asyncio.run(expenses.update(expense.id, "i1", 120, description="Deposit"))
        assert updated.amount == Decimal("120")
        assert updated.description == "Deposit"
        assert updated.expense_date is None

        asyncio.run(expenses.remove(expense.id))
        with pytest.raises(NotFoundError):
            asyncio.run(expenses.get(expense.id))
        with pytest.raises(NotFoundError):
            asyncio.run(expenses.update(expense.id, "i1", 1))

    def test_negative_amount_rejected(self, services):
        """Test expenses cannot be negative."""
        _, expenses, _ = services
        with pytest.raises(InputValidationError):
            asyncio.run(expenses.create("i1", -5))


class TestContractExpenses:
    """Tests for ContractExpenseService."""

    def test_create_orders_children(self, services):
        """Test milestones come back by sequence and payments by date."""
        _, _, contracts = services
        contract = asyncio.run(contracts.create(_contract_input("b1")))

        assert [m.sequence_number for m in contract.milestones] == [1, 2]
        assert [p.paid_at for p in contract.payments] == [date(2025, 2, 5), date(2025, 2, 10)]
        assert contract.milestone_total_amount == Decimal("1000")
        assert contract.total_contract_cost == Decimal("1000")
        assert contract.paid_to_date == Decimal("400")
        assert contract.remaining_balance == Decimal("600")

    def test_milestone_total_used_without_contract_total(self, services):
        """Test the milestone sum stands in for a missing contract total."""
        _, _, contracts = services
        contract = asyncio.run(contracts.create(_contract_input(
            "b1",
            contract_total_amount=None,
            milestones=[ContractMilestoneInput(sequence_number=1, amount=250)],
            payments=[ContractPaymentInput(amount=300, paid_at="2025-03-01")],
        )))
        assert contract.total_contract_cost == Decimal("250")
        assert contract.remaining_balance == Decimal("-50")

    def test_requires_payment(self, services):
        """Test a contract without a valid payment is rejected."""
        _, _, contracts = services
        with pytest.raises(InputValidationError, match="At least one actual payment is required."):
            asyncio.run(contracts.create(_contract_input(
                "b1", payments=[ContractPaymentInput(amount=100, paid_at="")]
            )))
        with pytest.raises(InputValidationError, match="Vendor name is required."):
            asyncio.run(contracts.create(_contract_input("b1", vendor_name=" ")))

    def test_update_replaces_children(self, storage, services):
        """Test updating swaps milestones and payments wholesale."""
        _, _, contracts = services
        contract = asyncio.run(contracts.create(_contract_input("b1")))
        updated = asyncio.run(contracts.update(contract.id, _contract_input(
            "b1",
            vendor_name="Better Woodworks",
            milestones=[],
            payments=[ContractPaymentInput(amount=1000, paid_at="2025-04-01")],
        )))

        assert updated.vendor_name == "Better Woodworks"
        assert updated.milestones == []
        assert len(updated.payments) == 1
        assert updated.remaining_balance == 0
        assert len(asyncio.run(storage.list_rows("contract_payments"))) == 1

    def test_update_missing(self, services):
        """Test updating an unknown contract raises NotFoundError."""
        _, _, contracts = services
        with pytest.raises(NotFoundError):
            asyncio.run(contracts.update("missing", _contract_input("b1")))

    def test_list_and_summary(self, services):
        """Test listing order and the budget summary."""
        _, _, contracts = services
        older = asyncio.run(contracts.create(_contract_input("b1", expense_date="2025-01-01")))
        undated = asyncio.run(contracts.create(_contract_input("b1", expense_date=None)))
        newer = asyncio.run(contracts.create(_contract_input(
            "b1",
            expense_date="2025-03-01",
            contract_total_amount=500,
            payments=[ContractPaymentInput(amount=500, paid_at="2025-03-02")],
        )))
        asyncio.run(contracts.create(_contract_input("b2")))

        listed = asyncio.run(contracts.list_by_budget("b1"))
        assert [c.id for c in listed] == [undated.id, newer.id, older.id]

        summary = asyncio.run(contracts.get_budget_summary("b1"))
        assert summary.total_contract_cost == Decimal("2500")
        assert summary.paid_to_date == Decimal("1300")
        assert summary.remaining_balance == Decimal("1200")
        assert summary.expenses_count == 3

        empty = asyncio.run(contracts.get_budget_summary("none"))
        assert empty.expenses_count == 0
        assert empty.total_contract_cost == 0

    def test_remove_cascades(self, storage, services):
        """Test removing a contract removes its milestones and payments."""
        _, _, contracts = services
        contract = asyncio.run(contracts.create(_contract_input("b1")))
        asyncio.run(contracts.remove(contract.id))

        assert asyncio.run(storage.list_rows("contract_expenses")) == []
        assert asyncio.run(storage.list_rows("contract_milestones")) == []
        assert asyncio.run(storage.list_rows("contract_payments")) == []


class FailingStorage(InMemoryRowStorage):
    """Row store whose inserts always fail."""

    async def insert_row(self, table, values):
        raise StorageError("quota exceeded")


class TestStorageFailures:
    """Tests for storage error context."""

    def test_errors_carry_context(self):
        """Test storage failures are prefixed with the failed action."""
        budgets = BudgetService(FailingStorage(), default_currency="SGD")
        with pytest.raises(StorageError, match="^Failed to create zone: quota exceeded$"):
            asyncio.run(budgets.create_zone("b1", "Kitchen"))
