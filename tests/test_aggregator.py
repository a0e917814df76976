"""
Tests for the aggregation core: coercion, row mappers, zone metrics,
contract summaries and the dashboard composer.
"""

import pytest
from datetime import date
from decimal import Decimal

from renobudget.models.budget import (
    Budget,
    BudgetRole,
    ContractExpense,
    ContractExpenseMilestone,
    ContractExpensePayment,
    ContractExpenseType,
    Expense,
    WishlistItem,
    WishlistItemStatus,
    Zone,
)
from renobudget.models.summary import ContractSummaryRow
from renobudget.summary.aggregator import (
    build_zone_metrics,
    combine_contract_summaries,
    compose_dashboard,
    count_unbudgeted_items,
    derive_contract_summary_row,
    summarize_contract_expenses,
)
from renobudget.summary.coercion import parse_date, to_number
from renobudget.summary.mappers import (
    map_budget_row,
    map_contract_expense_row,
    map_schedule_event_row,
    map_wishlist_item_row,
    map_zone_row,
)


def _item(item_id, zone_id, budget, status=WishlistItemStatus.NOT_STARTED):
    return WishlistItem(
        id=item_id,
        zone_id=zone_id,
        name=item_id,
        allocated_budget=Decimal(str(budget)),
        status=status,
    )


def _expense(expense_id, item_id, amount):
    return Expense(id=expense_id, wishlist_item_id=item_id, amount=Decimal(str(amount)))


def _row(contract_id, total, paid, remaining):
    return ContractSummaryRow(
        contract_expense_id=contract_id,
        budget_id="b1",
        total_contract_cost=Decimal(total),
        paid_to_date=Decimal(paid),
        remaining_balance=Decimal(remaining),
    )


@pytest.fixture
def two_zone_budget():
    """Zone A has a 100 item (not started) and a 50 item (completed, spent 40); Zone B is empty."""
    budget = Budget(id="b1", name="Flat", total_budget=Decimal("5000"))
    zones = [Zone(id="za", budget_id="b1", name="Zone A"), Zone(id="zb", budget_id="b1", name="Zone B")]
    items = [
        _item("sofa", "za", 100),
        _item("lamp", "za", 50, WishlistItemStatus.COMPLETED),
    ]
    expenses = [_expense("e1", "lamp", 40)]
    return budget, zones, items, expenses


class TestToNumber:
    """Tests for numeric coercion."""

    @pytest.mark.parametrize("value,expected", [
        ("12.5", Decimal("12.5")),
        (" 7 ", Decimal("7")),
        (3, Decimal("3")),
        (0.1, Decimal("0.1")),
        (Decimal("9.99"), Decimal("9.99")),
    ])
    def test_numeric_values(self, value, expected):
        """Test numbers and numeric strings keep their value."""
        assert to_number(value) == expected

    @pytest.mark.parametrize("value", [None, "", "abc", "NaN", "Infinity", float("nan"), float("inf"), True, [], {}])
    def test_everything_else_is_zero(self, value):
        """Test missing, unparseable and non-finite values give 0."""
        assert to_number(value) == 0

    def test_parse_date(self):
        """Test ISO dates and datetimes parse to dates."""
        assert parse_date("2025-03-01") == date(2025, 3, 1)
        assert parse_date("2025-03-01T10:30:00+08:00") == date(2025, 3, 1)
        assert parse_date("") is None
        assert parse_date("next week") is None
        assert parse_date(None) is None


class TestMappers:
    """Tests for row → record mapping."""

    def test_budget_row(self):
        """Test budget columns map to the record, currency defaulting."""
        budget = map_budget_row({
            "id": "b1",
            "name": "Flat",
            "total_budget": "25000.50",
            "currency": "",
            "user_id": "u1",
            "created_at": "2025-01-02T03:04:05",
        })
        assert budget.total_budget == Decimal("25000.50")
        assert budget.currency == "SGD"
        assert budget.owner_id == "u1"
        assert budget.created_at.year == 2025

    def test_zone_without_name(self):
        """Test a nameless zone gets a placeholder name."""
        assert map_zone_row({"id": "z1", "budget_id": "b1", "name": None}).name == "Untitled zone"

    def test_wishlist_item_row(self):
        """Test the budget column becomes allocated_budget."""
        item = map_wishlist_item_row({
            "id": "i1",
            "zone_id": "z1",
            "name": "Sofa",
            "budget": "1200",
            "status": "in_progress",
            "must_purchase_before": "2025-04-01",
        })
        assert item.allocated_budget == Decimal("1200")
        assert item.status == WishlistItemStatus.IN_PROGRESS
        assert item.must_purchase_before == date(2025, 4, 1)

    def test_wishlist_item_unknown_status(self):
        """Test an unknown status reads as not started."""
        item = map_wishlist_item_row({"id": "i1", "zone_id": "z1", "status": "bogus"})
        assert item.status == WishlistItemStatus.NOT_STARTED
        assert item.name == "Untitled item"
        assert item.allocated_budget == 0

    def test_schedule_event_bool_strings(self):
        """Test delivery_scheduled accepts sheet-style booleans."""
        event = map_schedule_event_row({
            "wishlist_item_id": "i1",
            "event_type": "delivery",
            "scheduled_at": "2025-05-05",
            "delivery_scheduled": "TRUE",
        })
        assert event.delivery_scheduled is True

    def test_contract_row_keeps_missing_total(self):
        """Test a blank contract total stays None rather than 0."""
        contract = map_contract_expense_row({
            "id": "c1",
            "budget_id": "b1",
            "expense_type": "variation_order",
            "expense_name": "Extra socket",
            "vendor_name": "Sparky",
            "contract_total_amount": "",
        })
        assert contract.contract_total_amount is None
        assert contract.expense_type == ContractExpenseType.VARIATION_ORDER

    def test_contract_unknown_type(self):
        """Test an unknown contract type reads as a renovation cost."""
        for stored in ("bogus", "", None):
            contract = map_contract_expense_row({"id": "c1", "budget_id": "b1", "expense_type": stored})
            assert contract.expense_type == ContractExpenseType.RENOVATION_COST

    def test_schedule_event_unknown_type(self):
        """Test an event row of an unknown type maps to None."""
        assert map_schedule_event_row({"wishlist_item_id": "i1", "event_type": "inspection"}) is None
        assert map_schedule_event_row({"wishlist_item_id": "i1"}) is None


class TestZoneMetrics:
    """Tests for per-zone aggregation."""

    def test_two_zone_scenario(self, two_zone_budget):
        """Test the reference two-zone budget."""
        _, zones, items, expenses = two_zone_budget
        metrics = build_zone_metrics(zones, items, expenses)

        assert [m.id for m in metrics] == ["za", "zb"]
        zone_a, zone_b = metrics
        assert zone_a.allocated_budget == Decimal("150")
        assert zone_a.amount_spent == Decimal("40")
        assert zone_a.items_purchased == 1
        assert zone_a.items_left_to_purchase == 1
        assert zone_b.allocated_budget == 0
        assert zone_b.amount_spent == 0
        assert zone_b.items_purchased == 0
        assert zone_b.items_left_to_purchase == 0

    def test_purchased_plus_left_is_item_count(self):
        """Test the two counts always add up to the zone's items."""
        zones = [Zone(id="z1", budget_id="b1")]
        items = [
            _item("a", "z1", 10),
            _item("b", "z1", 0, WishlistItemStatus.IN_PROGRESS),
            _item("c", "z1", 5, WishlistItemStatus.COMPLETED),
        ]
        metrics = build_zone_metrics(zones, items, [])[0]
        assert metrics.items_purchased + metrics.items_left_to_purchase == 3

    def test_orphans_are_ignored(self):
        """Test items of unknown zones and expenses of unknown items count nowhere."""
        zones = [Zone(id="z1", budget_id="b1")]
        items = [_item("a", "z1", 10), _item("ghost", "z9", 99)]
        expenses = [_expense("e1", "a", 3), _expense("e2", "missing", 500)]
        metrics = build_zone_metrics(zones, items, expenses)
        assert len(metrics) == 1
        assert metrics[0].allocated_budget == Decimal("10")
        assert metrics[0].amount_spent == Decimal("3")

    def test_no_zones(self):
        """Test no zones gives no metrics."""
        assert build_zone_metrics([], [_item("a", "z1", 10)], []) == []


class TestUnbudgetedItems:
    """Tests for the unbudgeted item count."""

    def test_only_not_started_zero_budget(self):
        """Test an in-progress zero-budget item is not unbudgeted."""
        items = [
            _item("a", "z1", 0),
            _item("b", "z1", 0, WishlistItemStatus.IN_PROGRESS),
            _item("c", "z1", 100),
        ]
        assert count_unbudgeted_items(items) == 1


class TestContractSummary:
    """Tests for contract derivation and the summary fold."""

    def _contract(self, total=None):
        return ContractExpense(
            id="c1",
            budget_id="b1",
            expense_type=ContractExpenseType.RENOVATION_COST,
            expense_name="Carpentry",
            vendor_name="Woodworks",
            contract_total_amount=total,
        )

    def _milestones(self, *amounts):
        return [
            ContractExpenseMilestone(
                id=f"m{i}",
                contract_expense_id="c1",
                sequence_number=i,
                amount=None if amount is None else Decimal(amount),
            )
            for i, amount in enumerate(amounts, start=1)
        ]

    def _payments(self, *amounts):
        return [
            ContractExpensePayment(id=f"p{i}", contract_expense_id="c1", amount=Decimal(amount))
            for i, amount in enumerate(amounts, start=1)
        ]

    def test_explicit_total_wins(self):
        """Test the contract total overrides the milestone sum."""
        row = derive_contract_summary_row(
            self._contract(Decimal("1000")), self._milestones("300", "300"), self._payments("400")
        )
        assert row.milestone_total_amount == Decimal("600")
        assert row.total_contract_cost == Decimal("1000")
        assert row.paid_to_date == Decimal("400")
        assert row.remaining_balance == Decimal("600")

    def test_milestones_fill_in_missing_total(self):
        """Test milestones without an amount contribute nothing."""
        row = derive_contract_summary_row(
            self._contract(), self._milestones("250", None, "250"), self._payments("100")
        )
        assert row.total_contract_cost == Decimal("500")
        assert row.remaining_balance == Decimal("400")

    def test_overpayment_stays_negative(self):
        """Test the remaining balance is not clamped at zero."""
        row = derive_contract_summary_row(
            self._contract(Decimal("500")), [], self._payments("450", "100")
        )
        assert row.remaining_balance == Decimal("-50")

    def test_reference_summary(self):
        """Test the two-contract reference summary."""
        summary = summarize_contract_expenses([
            _row("c1", "1000", "400", "600"),
            _row("c2", "500", "500", "0"),
        ])
        assert summary.total_contract_cost == Decimal("1500")
        assert summary.paid_to_date == Decimal("900")
        assert summary.remaining_balance == Decimal("600")
        assert summary.expenses_count == 2

    def test_no_contracts_is_zero_summary(self):
        """Test an empty fold is all zeros, never None."""
        summary = summarize_contract_expenses([])
        assert summary is not None
        assert (
            summary.total_contract_cost,
            summary.paid_to_date,
            summary.remaining_balance,
            summary.expenses_count,
        ) == (0, 0, 0, 0)

    def test_partial_folds_combine(self):
        """Test summarising [A, B] then [C] and combining equals one fold."""
        a = _row("a", "1000", "400", "600")
        b = _row("b", "500", "500", "0")
        c = _row("c", "75.25", "80", "-4.75")
        combined = combine_contract_summaries(
            summarize_contract_expenses([a, b]),
            summarize_contract_expenses([c]),
        )
        assert combined == summarize_contract_expenses([a, b, c])
        assert combine_contract_summaries(
            summarize_contract_expenses([c]),
            summarize_contract_expenses([a, b]),
        ) == combined


class TestComposeDashboard:
    """Tests for the dashboard composer."""

    def test_reference_dashboard(self, two_zone_budget):
        """Test the reference budget composes as expected."""
        budget, zones, items, expenses = two_zone_budget
        dashboard = compose_dashboard(
            budget,
            zones,
            items,
            expenses,
            contract_rows=[_row("c1", "1000", "400", "600"), _row("c2", "500", "500", "0")],
        )

        assert dashboard.budget.id == "b1"
        assert dashboard.budget.total_budget == Decimal("5000")
        assert dashboard.budget.currency == "SGD"
        assert len(dashboard.zones) == 2
        assert dashboard.unbudgeted_items == 0
        assert dashboard.contract_expense_summary.expenses_count == 2
        assert dashboard.total_allocated == Decimal("150")
        assert dashboard.total_spent == Decimal("40")

    def test_budget_without_zones(self):
        """Test a budget without zones still gets a contract summary."""
        budget = Budget(id="b1", name="Flat")
        dashboard = compose_dashboard(budget, [], [_item("x", "gone", 0)], [])
        assert dashboard.zones == []
        assert dashboard.unbudgeted_items == 0
        assert dashboard.contract_expense_summary.expenses_count == 0

    def test_camel_case_output(self, two_zone_budget):
        """Test the dashboard serialises with camelCase keys."""
        budget, zones, items, expenses = two_zone_budget
        dumped = compose_dashboard(budget, zones, items, expenses).model_dump(by_alias=True)
        assert "unbudgetedItems" in dumped
        assert "contractExpenseSummary" in dumped
        assert "itemsLeftToPurchase" in dumped["zones"][0]


class TestRoleMapping:
    """Tests for role coercion in member rows."""

    def test_unknown_role_is_guest(self):
        """Test an unknown role reads as guest."""
        from renobudget.summary.mappers import map_budget_member_row

        member = map_budget_member_row({"budget_id": "b1", "user_id": "u1", "role": "superuser"})
        assert member.role == BudgetRole.GUEST


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
