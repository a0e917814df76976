"""
Audit Logger

DESIGN DECISION: Every change to a budget is logged.
This provides:
1. Traceability of who changed what on a shared budget
2. Debugging capability
3. A history members can read back

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import structlog

from renobudget.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from renobudget.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and member visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value == "error":
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_budget_created(
        self,
        budget_id: str,
        name: str,
        total_budget: Decimal,
        actor_id: Optional[str],
    ) -> None:
        await self.log(AuditEventBuilder.budget_created(
            budget_id=budget_id,
            name=name,
            total_budget=str(total_budget),
            actor_id=actor_id,
        ))

    async def log_zone_changed(
        self,
        event_type: AuditEventType,
        budget_id: str,
        zone_id: str,
        name: Optional[str],
        actor_id: Optional[str],
    ) -> None:
        """Log zone creation, rename or deletion."""
        await self.log(AuditEventBuilder.zone_changed(
            event_type=event_type,
            budget_id=budget_id,
            zone_id=zone_id,
            name=name,
            actor_id=actor_id,
        ))

    async def log_wishlist_item_changed(
        self,
        event_type: AuditEventType,
        budget_id: str,
        item_id: str,
        details: dict,
        actor_id: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.wishlist_item_changed(
            event_type=event_type,
            budget_id=budget_id,
            item_id=item_id,
            details=details,
            actor_id=actor_id,
            correlation_id=correlation_id,
        ))

    async def log_expense_recorded(
        self,
        budget_id: str,
        expense_id: str,
        item_id: str,
        amount: Decimal,
        actor_id: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.expense_recorded(
            budget_id=budget_id,
            expense_id=expense_id,
            item_id=item_id,
            amount=str(amount),
            actor_id=actor_id,
            correlation_id=correlation_id,
        ))

    async def log_expense_updated(
        self,
        budget_id: str,
        expense_id: str,
        item_id: str,
        amount: Decimal,
        actor_id: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.expense_updated(
            budget_id=budget_id,
            expense_id=expense_id,
            item_id=item_id,
            amount=str(amount),
            actor_id=actor_id,
            correlation_id=correlation_id,
        ))

    async def log_expense_deleted(
        self,
        budget_id: str,
        expense_id: str,
        actor_id: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.expense_deleted(
            budget_id=budget_id,
            expense_id=expense_id,
            actor_id=actor_id,
            correlation_id=correlation_id,
        ))

    async def log_contract_expense_changed(
        self,
        event_type: AuditEventType,
        budget_id: str,
        contract_expense_id: str,
        vendor_name: Optional[str],
        actor_id: Optional[str],
    ) -> None:
        await self.log(AuditEventBuilder.contract_expense_changed(
            event_type=event_type,
            budget_id=budget_id,
            contract_expense_id=contract_expense_id,
            vendor_name=vendor_name,
            actor_id=actor_id,
        ))

    async def log_member_changed(
        self,
        event_type: AuditEventType,
        budget_id: str,
        user_id: str,
        role: Optional[str],
        actor_id: Optional[str],
    ) -> None:
        """Log a member invite or removal."""
        await self.log(AuditEventBuilder.member_changed(
            event_type=event_type,
            budget_id=budget_id,
            user_id=user_id,
            role=role,
            actor_id=actor_id,
        ))

    async def log_permission_denied(
        self,
        budget_id: str,
        capability: str,
        role: Optional[str],
        actor_id: Optional[str],
    ) -> None:
        await self.log(AuditEventBuilder.permission_denied(
            budget_id=budget_id,
            capability=capability,
            role=role,
            actor_id=actor_id,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        budget_id: Optional[str] = None,
        actor_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        event = AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            budget_id=budget_id,
            actor_id=actor_id,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a multi-step action (e.g. recording an
    expense, which also updates the item status) and pass it through.
    """
    return uuid4()
