"""
Budget Service

Budgets, their zones and wishlist items, delivery/installation
schedules and memberships. Dashboard and zone pages are composed here
from raw rows with the pure functions in renobudget.summary.

DESIGN DECISION: The row store has no foreign keys, so deleting a zone
cascades by hand, children first: events, expenses, items, then the zone.
"""

from typing import Optional

from renobudget.config import get_settings
from renobudget.models.budget import (
    Budget,
    BudgetMember,
    BudgetMemberIdentity,
    BudgetRole,
    ScheduleEventType,
    WishlistItem,
    WishlistItemStatus,
    Zone,
)
from renobudget.models.inputs import ScheduleInput
from renobudget.models.summary import (
    BudgetDashboardData,
    DeliveryScheduleItem,
    ZoneDetailData,
)
from renobudget.services.contract_service import ContractExpenseService
from renobudget.services.storage import (
    NotFoundError,
    RowStorageInterface,
    storage_context,
)
from renobudget.services.storage.tables import (
    BUDGET_MEMBERS,
    BUDGETS,
    EXPENSES,
    USERS,
    WISHLIST_ITEM_EVENTS,
    WISHLIST_ITEMS,
    ZONES,
)
from renobudget.summary.aggregator import compose_dashboard
from renobudget.summary.mappers import (
    map_budget_member_row,
    map_budget_row,
    map_expense_row,
    map_member_identity_row,
    map_schedule_event_row,
    map_wishlist_item_row,
    map_zone_row,
)
from renobudget.summary.zone_detail import (
    compose_delivery_schedule,
    compose_zone_detail,
)
from renobudget.validation import (
    InputValidationError,
    sanitize_email,
    sanitize_optional_date,
    sanitize_optional_text,
    sanitize_required_text,
    validate_non_negative_amount,
)


class UserNotFoundError(NotFoundError):
    """No user account exists for an email address."""
    pass


class UserDirectory:
    """
    Looks up user accounts by email and invites new ones.

    Accounts live in the users table. Inviting creates the account row
    flagged as invited; the sign-up flow that completes it is outside
    this package.
    """

    def __init__(self, storage: RowStorageInterface):
        self._storage = storage

    async def find_by_email(self, email: str) -> dict:
        with storage_context("Failed to look up user"):
            rows = await self._storage.list_rows(USERS, {"email": email})
        if not rows:
            raise UserNotFoundError(f"No user with email {email}")
        return rows[0]

    async def get(self, user_id: str) -> Optional[dict]:
        with storage_context("Failed to get user"):
            return await self._storage.get_row(USERS, user_id)

    async def invite(self, email: str) -> None:
        with storage_context("Failed to invite user"):
            await self._storage.insert_row(USERS, {"email": email, "invited": True})


class BudgetService:
    """Reads and writes everything that hangs off a budget."""

    def __init__(
        self,
        storage: RowStorageInterface,
        contract_service: Optional[ContractExpenseService] = None,
        user_directory: Optional[UserDirectory] = None,
        default_currency: Optional[str] = None,
    ):
        self._storage = storage
        self._contracts = contract_service or ContractExpenseService(storage)
        self._users = user_directory or UserDirectory(storage)
        self._default_currency = default_currency or get_settings().app.default_currency

    # =========================================================================
    # BUDGETS
    # =========================================================================

    async def list_budgets(self) -> list[Budget]:
        """All budgets, newest first."""
        with storage_context("Failed to list projects"):
            rows = await self._storage.list_rows(BUDGETS, order_by=["created_at"], descending=True)
        return [map_budget_row(row, self._default_currency) for row in rows]

    async def _find_budget(self, budget_id: str) -> Optional[Budget]:
        with storage_context("Failed to get budget"):
            row = await self._storage.get_row(BUDGETS, budget_id)
        return map_budget_row(row, self._default_currency) if row else None

    async def get_budget(self, budget_id: str) -> Budget:
        """
        Get a budget by ID.

        Raises:
            NotFoundError: If the budget does not exist
        """
        budget = await self._find_budget(budget_id)
        if budget is None:
            raise NotFoundError(f"Failed to get project: no budget {budget_id}")
        return budget

    async def create_budget(self, name: str, total_budget: float, owner_id: str) -> Budget:
        """Create a budget and make its creator the owner member."""
        sanitized_name = sanitize_required_text(name, "Budget name")
        validate_non_negative_amount(total_budget, "Total budget")
        if not owner_id:
            raise InputValidationError("You must be signed in to create a budget.", field="owner_id")

        with storage_context("Failed to create budget"):
            row = await self._storage.insert_row(BUDGETS, {
                "name": sanitized_name,
                "total_budget": total_budget,
                "currency": self._default_currency,
                "user_id": owner_id,
            })
        await self.upsert_member(row["id"], owner_id, BudgetRole.OWNER)
        return map_budget_row(row, self._default_currency)

    async def _list_zones(self, budget_id: str) -> list[Zone]:
        with storage_context("Failed to list zones for budget"):
            rows = await self._storage.list_rows(ZONES, {"budget_id": budget_id}, order_by=["created_at"])
        return [map_zone_row(row) for row in rows]

    async def _list_items(self, zone_ids: list[str]) -> list[WishlistItem]:
        if not zone_ids:
            return []
        with storage_context("Failed to list zone wishlist items"):
            rows = await self._storage.list_rows(
                WISHLIST_ITEMS, {"zone_id": zone_ids}, order_by=["created_at"]
            )
        return [map_wishlist_item_row(row) for row in rows]

    async def _list_expenses(self, item_ids: list[str]):
        if not item_ids:
            return []
        with storage_context("Failed to list expenses for wishlist items"):
            rows = await self._storage.list_rows(EXPENSES, {"wishlist_item_id": item_ids})
        return [map_expense_row(row) for row in rows]

    async def _list_events(self, item_ids: list[str]):
        if not item_ids:
            return []
        with storage_context("Failed to list wishlist item events"):
            rows = await self._storage.list_rows(WISHLIST_ITEM_EVENTS, {"wishlist_item_id": item_ids})
        events = (map_schedule_event_row(row) for row in rows)
        return [event for event in events if event is not None]

    async def _build_dashboard(self, budget: Budget) -> BudgetDashboardData:
        zones = await self._list_zones(budget.id)
        items = await self._list_items([zone.id for zone in zones])
        expenses = await self._list_expenses([item.id for item in items])
        contract_summary = await self._contracts.get_budget_summary(budget.id)
        return compose_dashboard(
            budget,
            zones,
            items,
            expenses,
            contract_summary=contract_summary,
        )

    async def get_dashboard(self, budget_id: str) -> Optional[BudgetDashboardData]:
        """Dashboard of one budget, or None when the budget does not exist."""
        budget = await self._find_budget(budget_id)
        if budget is None:
            return None
        return await self._build_dashboard(budget)

    async def get_latest_dashboard(self) -> Optional[BudgetDashboardData]:
        budgets = await self.list_budgets()
        if not budgets:
            return None
        return await self._build_dashboard(budgets[0])

    # =========================================================================
    # ZONES
    # =========================================================================

    async def create_zone(self, budget_id: str, name: str) -> Zone:
        sanitized_name = sanitize_required_text(name, "Zone name")
        with storage_context("Failed to create zone"):
            row = await self._storage.insert_row(ZONES, {"budget_id": budget_id, "name": sanitized_name})
        return map_zone_row(row)

    async def get_zone(self, zone_id: str) -> Optional[Zone]:
        with storage_context("Failed to get zone"):
            row = await self._storage.get_row(ZONES, zone_id)
        return map_zone_row(row) if row else None

    async def rename_zone(self, zone_id: str, name: str) -> None:
        sanitized_name = sanitize_required_text(name, "Zone name")
        with storage_context("Failed to update zone"):
            updated = await self._storage.update_rows(ZONES, {"id": zone_id}, {"name": sanitized_name})
        if not updated:
            raise NotFoundError(f"Failed to update zone: no zone {zone_id}")

    async def delete_zone(self, zone_id: str) -> None:
        """Delete a zone with its items, their expenses and schedule events."""
        with storage_context("Failed to delete zone"):
            item_rows = await self._storage.list_rows(WISHLIST_ITEMS, {"zone_id": zone_id})
            item_ids = [row["id"] for row in item_rows]
            if item_ids:
                await self._storage.delete_rows(WISHLIST_ITEM_EVENTS, {"wishlist_item_id": item_ids})
                await self._storage.delete_rows(EXPENSES, {"wishlist_item_id": item_ids})
                await self._storage.delete_rows(WISHLIST_ITEMS, {"id": item_ids})
            await self._storage.delete_rows(ZONES, {"id": zone_id})

    # =========================================================================
    # WISHLIST ITEMS
    # =========================================================================

    async def create_wishlist_item(
        self,
        zone_id: str,
        name: str,
        budget: float,
        must_purchase_before: Optional[str] = None,
    ) -> WishlistItem:
        sanitized_name = sanitize_required_text(name, "Wishlist item name")
        validate_non_negative_amount(budget, "Wishlist item budget")
        with storage_context("Failed to create wishlist item"):
            row = await self._storage.insert_row(WISHLIST_ITEMS, {
                "zone_id": zone_id,
                "name": sanitized_name,
                "budget": budget,
                "status": WishlistItemStatus.NOT_STARTED.value,
                "must_purchase_before": sanitize_optional_date(must_purchase_before),
            })
        return map_wishlist_item_row(row)

    async def get_wishlist_item(self, wishlist_item_id: str) -> WishlistItem:
        with storage_context("Failed to get wishlist item"):
            row = await self._storage.get_row(WISHLIST_ITEMS, wishlist_item_id)
        if row is None:
            raise NotFoundError(f"Failed to get wishlist item: no item {wishlist_item_id}")
        return map_wishlist_item_row(row)

    async def update_wishlist_item(
        self,
        wishlist_item_id: str,
        name: str,
        budget: float,
        must_purchase_before: Optional[str] = None,
    ) -> None:
        sanitized_name = sanitize_required_text(name, "Wishlist item name")
        validate_non_negative_amount(budget, "Wishlist item budget")
        with storage_context("Failed to update wishlist item"):
            await self._storage.update_rows(
                WISHLIST_ITEMS,
                {"id": wishlist_item_id},
                {
                    "name": sanitized_name,
                    "budget": budget,
                    "must_purchase_before": sanitize_optional_date(must_purchase_before),
                },
            )

    async def update_wishlist_item_status(
        self,
        wishlist_item_id: str,
        status: WishlistItemStatus,
    ) -> None:
        with storage_context("Failed to update wishlist item status"):
            await self._storage.update_rows(
                WISHLIST_ITEMS, {"id": wishlist_item_id}, {"status": status.value}
            )

    async def reset_wishlist_item_status_if_no_expenses(self, wishlist_item_id: str) -> bool:
        """
        Put an item back to not_started once its last expense is gone.

        Returns:
            True if the status was reset
        """
        with storage_context("Failed to count wishlist item expenses"):
            remaining = await self._storage.list_rows(EXPENSES, {"wishlist_item_id": wishlist_item_id})
        if remaining:
            return False

        with storage_context("Failed to reset wishlist item status"):
            await self._storage.update_rows(
                WISHLIST_ITEMS,
                {"id": wishlist_item_id},
                {"status": WishlistItemStatus.NOT_STARTED.value},
            )
        return True

    async def set_wishlist_item_schedule(self, wishlist_item_id: str, schedule: ScheduleInput) -> None:
        """
        Write the delivery and installation events of an item.

        A blank date deletes that event; otherwise it is upserted on
        (wishlist_item_id, event_type). Both events carry the same contact.
        """
        contact = {
            "contact_person_name": sanitize_optional_text(schedule.contact_person_name),
            "contact_person_email": sanitize_optional_text(schedule.contact_person_email),
            "contact_person_mobile": sanitize_optional_text(schedule.contact_person_mobile),
            "company_brand_name": sanitize_optional_text(schedule.company_brand_name),
        }

        for event_type, scheduled_at in (
            (ScheduleEventType.DELIVERY, sanitize_optional_date(schedule.delivery_date)),
            (ScheduleEventType.INSTALLATION, sanitize_optional_date(schedule.installation_date)),
        ):
            key = {"wishlist_item_id": wishlist_item_id, "event_type": event_type.value}
            if scheduled_at is None:
                with storage_context(f"Failed to delete {event_type.value} event"):
                    await self._storage.delete_rows(WISHLIST_ITEM_EVENTS, key)
                continue

            with storage_context(f"Failed to upsert {event_type.value} event"):
                await self._storage.upsert_row(
                    WISHLIST_ITEM_EVENTS,
                    {
                        **key,
                        "scheduled_at": scheduled_at,
                        "delivery_scheduled": (
                            schedule.delivery_scheduled
                            if event_type == ScheduleEventType.DELIVERY
                            else False
                        ),
                        "completed_at": None,
                        **contact,
                    },
                    conflict_keys=["wishlist_item_id", "event_type"],
                )

    # =========================================================================
    # ZONE PAGE AND SCHEDULE
    # =========================================================================

    async def get_zone_detail(self, zone_id: str) -> Optional[ZoneDetailData]:
        """Zone page data, or None when the zone does not exist."""
        zone = await self.get_zone(zone_id)
        if zone is None:
            return None

        budget = await self._find_budget(zone.budget_id)
        currency = budget.currency if budget else self._default_currency
        items = await self._list_items([zone.id])
        item_ids = [item.id for item in items]
        expenses = await self._list_expenses(item_ids)
        events = await self._list_events(item_ids)
        return compose_zone_detail(zone, currency, items, expenses, events)

    async def get_delivery_schedule(self, budget_id: str) -> list[DeliveryScheduleItem]:
        zones = await self._list_zones(budget_id)
        items = await self._list_items([zone.id for zone in zones])
        events = await self._list_events([item.id for item in items])
        return compose_delivery_schedule(zones, items, events)

    # =========================================================================
    # MEMBERS
    # =========================================================================

    async def list_members(self, budget_id: str) -> list[BudgetMember]:
        with storage_context("Failed to list budget members"):
            rows = await self._storage.list_rows(
                BUDGET_MEMBERS, {"budget_id": budget_id}, order_by=["created_at"]
            )
        return [map_budget_member_row(row) for row in rows]

    async def list_member_identities(self, budget_id: str) -> list[BudgetMemberIdentity]:
        """Members joined with their email and first name."""
        members = await self.list_members(budget_id)
        identities = []
        for member in members:
            user = await self._users.get(member.user_id) or {}
            identities.append(
                map_member_identity_row({
                    "user_id": member.user_id,
                    "role": member.role.value,
                    "email": user.get("email"),
                    "first_name": user.get("first_name"),
                })
            )
        return identities

    async def get_member_role(self, budget_id: str, user_id: str) -> Optional[BudgetRole]:
        """Role of a user on a budget, None when they are not a member."""
        if not user_id:
            return None
        with storage_context("Failed to get current user budget role"):
            rows = await self._storage.list_rows(
                BUDGET_MEMBERS, {"budget_id": budget_id, "user_id": user_id}
            )
        if not rows:
            return None
        return map_budget_member_row(rows[0]).role

    async def upsert_member(
        self,
        budget_id: str,
        user_id: str,
        role: BudgetRole,
        invited_by: Optional[str] = None,
    ) -> BudgetMember:
        with storage_context("Failed to upsert budget member"):
            row = await self._storage.upsert_row(
                BUDGET_MEMBERS,
                {
                    "budget_id": budget_id,
                    "user_id": user_id,
                    "role": role.value,
                    "invited_by": invited_by,
                },
                conflict_keys=["budget_id", "user_id"],
            )
        return map_budget_member_row(row)

    async def remove_member(self, budget_id: str, user_id: str) -> None:
        with storage_context("Failed to remove budget member"):
            await self._storage.delete_rows(
                BUDGET_MEMBERS, {"budget_id": budget_id, "user_id": user_id}
            )

    async def invite_member_by_email(
        self,
        budget_id: str,
        email: str,
        role: BudgetRole,
        invited_by: Optional[str] = None,
    ) -> BudgetMemberIdentity:
        """
        Add a user to a budget by email.

        An email without an account is invited through the user
        directory first, then the lookup is retried once.

        Raises:
            InputValidationError: Blank email, the owner role requested,
                or the email belongs to the owner
        """
        normalized_email = sanitize_email(email)
        if role == BudgetRole.OWNER:
            raise InputValidationError("A budget can only have one owner.", field="role")

        try:
            user = await self._users.find_by_email(normalized_email)
        except UserNotFoundError:
            await self._users.invite(normalized_email)
            user = await self._users.find_by_email(normalized_email)

        if await self.get_member_role(budget_id, str(user["id"])) == BudgetRole.OWNER:
            raise InputValidationError("The budget owner's role cannot be changed.", field="email")

        member = await self.upsert_member(budget_id, str(user["id"]), role, invited_by)
        return map_member_identity_row({
            "user_id": member.user_id,
            "role": member.role.value,
            "email": user.get("email"),
            "first_name": user.get("first_name"),
        })
