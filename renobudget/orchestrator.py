"""
Main Orchestrator for Renovation Budget

This module ties together all the components and defines the
flows a member runs against one selected budget:
1. Reading (dashboard, zone page, delivery schedule, contracts, notifications)
2. Editing (zones, wishlist items, expenses, contract expenses, members)

DESIGN DECISION: The orchestrator enforces the boundaries:
- The selected budget and the acting user are explicit, never global
- No write happens unless the member's role allows it
- Every write is audited

This is the "glue" that ensures the system works correctly
even when individual components might behave unexpectedly.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

import structlog

from renobudget.audit import AuditLogger, create_correlation_id
from renobudget.config import get_settings
from renobudget.models.audit import AuditEventType
from renobudget.models.budget import (
    Budget,
    BudgetMemberIdentity,
    BudgetRole,
    ContractExpense,
    Expense,
    WishlistItem,
    WishlistItemStatus,
    Zone,
)
from renobudget.models.inputs import ContractExpenseInput, ScheduleInput
from renobudget.models.summary import (
    BudgetDashboardData,
    ContractExpenseSummary,
    DeliveryScheduleItem,
    ItemDateNotification,
    ZoneDetailData,
)
from renobudget.permissions import Capability, PermissionDeniedError, require
from renobudget.services import (
    BudgetService,
    ContractExpenseService,
    ExpenseService,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsRowStorage,
    InMemoryRowStorage,
    NotFoundError,
    RowStorageInterface,
    StorageError,
)
from renobudget.summary.notifications import build_item_notifications
from renobudget.validation import sanitize_optional_date


logger = structlog.get_logger(__name__)


class BudgetWorkspace:
    """
    One member working on one budget.

    Flow:
    1. Resolve → look up the member's role on the budget (once, cached)
    2. Check → every write requires a capability of that role
    3. Write → call the service
    4. Audit → record what changed and who changed it

    Reads need no capability; the store decides what a user may see.
    """

    def __init__(
        self,
        budget_id: str,
        user_id: str,
        budget_service: BudgetService,
        expense_service: ExpenseService,
        contract_service: ContractExpenseService,
        audit_logger: Optional[AuditLogger] = None,
        notification_window: Optional[timedelta] = None,
    ):
        self.budget_id = budget_id
        self.user_id = user_id
        self._budgets = budget_service
        self._expenses = expense_service
        self._contracts = contract_service
        self._audit_logger = audit_logger or AuditLogger()
        self._notification_window = notification_window or timedelta(
            hours=get_settings().app.notification_window_hours
        )
        self._role: Optional[BudgetRole] = None
        self._role_resolved = False

    # =========================================================================
    # ROLE
    # =========================================================================

    async def role(self) -> Optional[BudgetRole]:
        """The acting user's role on the budget, None for non-members."""
        if not self._role_resolved:
            self._role = await self._budgets.get_member_role(self.budget_id, self.user_id)
            self._role_resolved = True
        return self._role

    def forget_role(self) -> None:
        """Force the next check to look the role up again."""
        self._role_resolved = False

    async def _require(self, capability: Capability) -> None:
        role = await self.role()
        try:
            require(role, capability)
        except PermissionDeniedError:
            await self._audit_logger.log_permission_denied(
                budget_id=self.budget_id,
                capability=capability.value,
                role=role.value if role else None,
                actor_id=self.user_id,
            )
            raise

    async def _zone_of_budget(self, zone_id: str) -> Zone:
        zone = await self._budgets.get_zone(zone_id)
        if zone is None or zone.budget_id != self.budget_id:
            raise NotFoundError(f"Zone {zone_id} is not part of budget {self.budget_id}")
        return zone

    async def _item_of_budget(self, wishlist_item_id: str) -> WishlistItem:
        item = await self._budgets.get_wishlist_item(wishlist_item_id)
        await self._zone_of_budget(item.zone_id)
        return item

    async def _log_storage_error(self, error: StorageError, correlation_id: UUID) -> None:
        await self._audit_logger.log_external_service_error(
            service="storage",
            error_message=str(error),
            budget_id=self.budget_id,
            actor_id=self.user_id,
            correlation_id=correlation_id,
        )

    # =========================================================================
    # READ FLOWS
    # =========================================================================

    async def dashboard(self) -> Optional[BudgetDashboardData]:
        return await self._budgets.get_dashboard(self.budget_id)

    async def contract_summary(self) -> ContractExpenseSummary:
        return await self._contracts.get_budget_summary(self.budget_id)

    async def contract_expenses(self) -> list[ContractExpense]:
        return await self._contracts.list_by_budget(self.budget_id)

    async def zone_detail(self, zone_id: str) -> Optional[ZoneDetailData]:
        """Zone page, or None when the zone is missing or belongs elsewhere."""
        detail = await self._budgets.get_zone_detail(zone_id)
        if detail is None or detail.zone.budget_id != self.budget_id:
            return None
        return detail

    async def delivery_schedule(self) -> list[DeliveryScheduleItem]:
        return await self._budgets.get_delivery_schedule(self.budget_id)

    async def notifications(
        self,
        zone_id: str,
        now: Optional[datetime] = None,
    ) -> list[ItemDateNotification]:
        """Upcoming and overdue dates of a zone's items."""
        detail = await self.zone_detail(zone_id)
        if detail is None:
            return []
        return build_item_notifications(
            detail.purchased_items + detail.unpurchased_items,
            detail.purchased_item_records,
            now or datetime.now(timezone.utc),
            self._notification_window,
        )

    # =========================================================================
    # WRITE FLOWS
    # =========================================================================

    async def add_zone(self, name: str) -> Zone:
        await self._require(Capability.EDIT_BUDGET)
        zone = await self._budgets.create_zone(self.budget_id, name)
        await self._audit_logger.log_zone_changed(
            event_type=AuditEventType.ZONE_CREATED,
            budget_id=self.budget_id,
            zone_id=zone.id,
            name=zone.name,
            actor_id=self.user_id,
        )
        return zone

    async def rename_zone(self, zone_id: str, name: str) -> None:
        await self._require(Capability.EDIT_BUDGET)
        await self._zone_of_budget(zone_id)
        await self._budgets.rename_zone(zone_id, name)
        await self._audit_logger.log_zone_changed(
            event_type=AuditEventType.ZONE_RENAMED,
            budget_id=self.budget_id,
            zone_id=zone_id,
            name=name.strip(),
            actor_id=self.user_id,
        )

    async def delete_zone(self, zone_id: str) -> None:
        await self._require(Capability.DELETE_BUDGET_DATA)
        zone = await self._zone_of_budget(zone_id)
        await self._budgets.delete_zone(zone_id)
        await self._audit_logger.log_zone_changed(
            event_type=AuditEventType.ZONE_DELETED,
            budget_id=self.budget_id,
            zone_id=zone_id,
            name=zone.name,
            actor_id=self.user_id,
        )

    async def add_wishlist_item(
        self,
        zone_id: str,
        name: str,
        budget: float,
        must_purchase_before: Optional[str] = None,
    ) -> WishlistItem:
        await self._require(Capability.EDIT_BUDGET)
        await self._zone_of_budget(zone_id)
        item = await self._budgets.create_wishlist_item(
            zone_id, name, budget, must_purchase_before
        )
        await self._audit_logger.log_wishlist_item_changed(
            event_type=AuditEventType.WISHLIST_ITEM_CREATED,
            budget_id=self.budget_id,
            item_id=item.id,
            details={"name": item.name, "budget": str(item.allocated_budget)},
            actor_id=self.user_id,
        )
        return item

    async def edit_wishlist_item(
        self,
        wishlist_item_id: str,
        name: str,
        budget: float,
        must_purchase_before: Optional[str] = None,
    ) -> WishlistItem:
        await self._require(Capability.EDIT_BUDGET)
        await self._item_of_budget(wishlist_item_id)
        await self._budgets.update_wishlist_item(
            wishlist_item_id, name, budget, must_purchase_before
        )
        item = await self._budgets.get_wishlist_item(wishlist_item_id)
        await self._audit_logger.log_wishlist_item_changed(
            event_type=AuditEventType.WISHLIST_ITEM_UPDATED,
            budget_id=self.budget_id,
            item_id=item.id,
            details={"name": item.name, "budget": str(item.allocated_budget)},
            actor_id=self.user_id,
        )
        return item

    async def set_item_schedule(self, wishlist_item_id: str, schedule: ScheduleInput) -> None:
        """Set or clear an item's delivery and installation dates."""
        await self._require(Capability.EDIT_BUDGET)
        await self._item_of_budget(wishlist_item_id)
        await self._budgets.set_wishlist_item_schedule(wishlist_item_id, schedule)
        await self._audit_logger.log_wishlist_item_changed(
            event_type=AuditEventType.SCHEDULE_UPDATED,
            budget_id=self.budget_id,
            item_id=wishlist_item_id,
            details={
                "delivery_date": sanitize_optional_date(schedule.delivery_date),
                "installation_date": sanitize_optional_date(schedule.installation_date),
            },
            actor_id=self.user_id,
        )

    async def record_expense(
        self,
        wishlist_item_id: str,
        amount: float,
        description: Optional[str] = None,
        expense_date: Optional[str] = None,
        status: WishlistItemStatus = WishlistItemStatus.IN_PROGRESS,
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Record money spent on an item and mark how far its purchase is.

        The expense and the status change share one correlation id.
        """
        await self._require(Capability.EDIT_BUDGET)
        correlation_id = correlation_id or create_correlation_id()

        item = await self._item_of_budget(wishlist_item_id)

        try:
            expense = await self._expenses.create(
                wishlist_item_id, amount, description, expense_date
            )
        except StorageError as e:
            await self._log_storage_error(e, correlation_id)
            raise
        await self._audit_logger.log_expense_recorded(
            budget_id=self.budget_id,
            expense_id=expense.id,
            item_id=wishlist_item_id,
            amount=expense.amount,
            actor_id=self.user_id,
            correlation_id=correlation_id,
        )

        if item.status != status:
            await self._budgets.update_wishlist_item_status(wishlist_item_id, status)
            await self._audit_logger.log_wishlist_item_changed(
                event_type=AuditEventType.WISHLIST_ITEM_STATUS_CHANGED,
                budget_id=self.budget_id,
                item_id=wishlist_item_id,
                details={"from": item.status.value, "to": status.value},
                actor_id=self.user_id,
                correlation_id=correlation_id,
            )
        return expense

    async def edit_expense(
        self,
        expense_id: str,
        wishlist_item_id: str,
        amount: float,
        description: Optional[str] = None,
        expense_date: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Change an expense, possibly moving it to another item.

        Both the current and the target item must be in this budget. An
        item left without expenses goes back to not_started.
        """
        await self._require(Capability.EDIT_BUDGET)
        correlation_id = correlation_id or create_correlation_id()

        current = await self._expenses.get(expense_id)
        await self._item_of_budget(current.wishlist_item_id)
        if wishlist_item_id != current.wishlist_item_id:
            await self._item_of_budget(wishlist_item_id)

        try:
            expense = await self._expenses.update(
                expense_id, wishlist_item_id, amount, description, expense_date
            )
        except StorageError as e:
            await self._log_storage_error(e, correlation_id)
            raise
        await self._audit_logger.log_expense_updated(
            budget_id=self.budget_id,
            expense_id=expense_id,
            item_id=wishlist_item_id,
            amount=expense.amount,
            actor_id=self.user_id,
            correlation_id=correlation_id,
        )

        if wishlist_item_id != current.wishlist_item_id:
            await self._reset_status_if_no_expenses(current.wishlist_item_id, correlation_id)
        return expense

    async def delete_expense(
        self,
        expense_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Delete an expense; its item goes back to not_started if it was the last one."""
        await self._require(Capability.DELETE_BUDGET_DATA)
        correlation_id = correlation_id or create_correlation_id()

        expense = await self._expenses.get(expense_id)
        await self._item_of_budget(expense.wishlist_item_id)

        try:
            await self._expenses.remove(expense_id)
        except StorageError as e:
            await self._log_storage_error(e, correlation_id)
            raise
        await self._audit_logger.log_expense_deleted(
            budget_id=self.budget_id,
            expense_id=expense_id,
            actor_id=self.user_id,
            correlation_id=correlation_id,
        )
        await self._reset_status_if_no_expenses(expense.wishlist_item_id, correlation_id)

    async def _reset_status_if_no_expenses(self, wishlist_item_id: str, correlation_id: UUID) -> None:
        if await self._budgets.reset_wishlist_item_status_if_no_expenses(wishlist_item_id):
            await self._audit_logger.log_wishlist_item_changed(
                event_type=AuditEventType.WISHLIST_ITEM_STATUS_CHANGED,
                budget_id=self.budget_id,
                item_id=wishlist_item_id,
                details={"to": WishlistItemStatus.NOT_STARTED.value},
                actor_id=self.user_id,
                correlation_id=correlation_id,
            )

    async def save_contract_expense(
        self,
        data: ContractExpenseInput,
        contract_expense_id: Optional[str] = None,
    ) -> ContractExpense:
        """Create a contract expense, or replace one when an id is given."""
        await self._require(Capability.EDIT_BUDGET)
        data = data.model_copy(update={"budget_id": self.budget_id})

        if contract_expense_id:
            existing = await self._contracts.get(contract_expense_id)
            if existing.budget_id != self.budget_id:
                raise NotFoundError(
                    f"Contract expense {contract_expense_id} is not part of budget {self.budget_id}"
                )
        try:
            if contract_expense_id:
                contract = await self._contracts.update(contract_expense_id, data)
            else:
                contract = await self._contracts.create(data)
        except StorageError as e:
            await self._log_storage_error(e, create_correlation_id())
            raise

        await self._audit_logger.log_contract_expense_changed(
            event_type=AuditEventType.CONTRACT_EXPENSE_SAVED,
            budget_id=self.budget_id,
            contract_expense_id=contract.id,
            vendor_name=contract.vendor_name,
            actor_id=self.user_id,
        )
        return contract

    async def delete_contract_expense(self, contract_expense_id: str) -> None:
        await self._require(Capability.DELETE_BUDGET_DATA)
        contract = await self._contracts.get(contract_expense_id)
        if contract.budget_id != self.budget_id:
            raise NotFoundError(
                f"Contract expense {contract_expense_id} is not part of budget {self.budget_id}"
            )
        await self._contracts.remove(contract_expense_id)
        await self._audit_logger.log_contract_expense_changed(
            event_type=AuditEventType.CONTRACT_EXPENSE_DELETED,
            budget_id=self.budget_id,
            contract_expense_id=contract_expense_id,
            vendor_name=contract.vendor_name,
            actor_id=self.user_id,
        )

    async def invite_member(self, email: str, role: BudgetRole) -> BudgetMemberIdentity:
        await self._require(Capability.MANAGE_MEMBERS)
        identity = await self._budgets.invite_member_by_email(
            self.budget_id, email, role, invited_by=self.user_id
        )
        await self._audit_logger.log_member_changed(
            event_type=AuditEventType.MEMBER_INVITED,
            budget_id=self.budget_id,
            user_id=identity.user_id,
            role=identity.role.value,
            actor_id=self.user_id,
        )
        return identity

    async def remove_member(self, user_id: str) -> None:
        """Remove a member. The owner cannot be removed."""
        await self._require(Capability.MANAGE_MEMBERS)
        role = await self._budgets.get_member_role(self.budget_id, user_id)
        if role == BudgetRole.OWNER:
            raise PermissionDeniedError(Capability.MANAGE_MEMBERS, await self.role())
        await self._budgets.remove_member(self.budget_id, user_id)
        await self._audit_logger.log_member_changed(
            event_type=AuditEventType.MEMBER_REMOVED,
            budget_id=self.budget_id,
            user_id=user_id,
            role=role.value if role else None,
            actor_id=self.user_id,
        )


class AppComponents:
    """Services shared by every workspace of one process."""

    def __init__(
        self,
        storage: RowStorageInterface,
        audit_logger: AuditLogger,
        sheets_client: Optional[GoogleSheetsClient] = None,
    ):
        self.storage = storage
        self.audit_logger = audit_logger
        self.sheets_client = sheets_client
        self.contract_service = ContractExpenseService(storage)
        self.budget_service = BudgetService(storage, contract_service=self.contract_service)
        self.expense_service = ExpenseService(storage)

    async def create_budget(self, name: str, total_budget: float, owner_id: str) -> Budget:
        """Create a budget owned by owner_id and audit it."""
        budget = await self.budget_service.create_budget(name, total_budget, owner_id)
        await self.audit_logger.log_budget_created(
            budget_id=budget.id,
            name=budget.name,
            total_budget=budget.total_budget,
            actor_id=owner_id,
        )
        return budget

    def workspace(self, budget_id: str, user_id: str) -> BudgetWorkspace:
        """Open a budget for one acting user."""
        return BudgetWorkspace(
            budget_id=budget_id,
            user_id=user_id,
            budget_service=self.budget_service,
            expense_service=self.expense_service,
            contract_service=self.contract_service,
            audit_logger=self.audit_logger,
        )


def create_app_components(use_storage: bool = True) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False for testing without storage.

    Returns:
        AppComponents over Google Sheets, or over in-memory storage
        with local-only audit logging
    """
    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            return AppComponents(
                storage=GoogleSheetsRowStorage(sheets_client),
                audit_logger=AuditLogger(GoogleSheetsAuditStorage(sheets_client)),
                sheets_client=sheets_client,
            )
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", error=str(e))

    return AppComponents(
        storage=InMemoryRowStorage(),
        audit_logger=AuditLogger(),  # Local-only logging
    )
