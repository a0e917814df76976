"""
Audit Models for Renovation Budget

Every write to a budget is logged for audit purposes.
This provides:
1. Traceability of who changed what on a shared budget
2. Debugging information when things go wrong
3. Ability to reconstruct history

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Budgets
    BUDGET_CREATED = "budget_created"

    # Zones
    ZONE_CREATED = "zone_created"
    ZONE_RENAMED = "zone_renamed"
    ZONE_DELETED = "zone_deleted"

    # Wishlist
    WISHLIST_ITEM_CREATED = "wishlist_item_created"
    WISHLIST_ITEM_UPDATED = "wishlist_item_updated"
    WISHLIST_ITEM_STATUS_CHANGED = "wishlist_item_status_changed"
    SCHEDULE_UPDATED = "schedule_updated"

    # Expenses
    EXPENSE_RECORDED = "expense_recorded"
    EXPENSE_UPDATED = "expense_updated"
    EXPENSE_DELETED = "expense_deleted"

    # Contracts
    CONTRACT_EXPENSE_SAVED = "contract_expense_saved"
    CONTRACT_EXPENSE_DELETED = "contract_expense_deleted"

    # Members
    MEMBER_INVITED = "member_invited"
    MEMBER_REMOVED = "member_removed"
    PERMISSION_DENIED = "permission_denied"

    # External services
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every write creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    budget_id: Optional[str] = Field(
        default=None,
        description="Budget the event belongs to"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'zone', 'expense', 'member')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )
    actor_id: Optional[str] = Field(
        default=None,
        description="User who triggered the event"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., expense + status change)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "budget_id": self.budget_id,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "actor_id": self.actor_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, budget_id, entity_type,
         entity_id, actor_id, correlation_id, description, details_json,
         error_message]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.budget_id or "",
            self.entity_type or "",
            self.entity_id or "",
            self.actor_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.zone_created(budget_id, zone_id, name, actor_id)
    """

    @staticmethod
    def budget_created(
        budget_id: str,
        name: str,
        total_budget: str,
        actor_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_CREATED,
            budget_id=budget_id,
            entity_type="budget",
            entity_id=budget_id,
            actor_id=actor_id,
            description=f"Budget created: {name}",
            details={"name": name, "total_budget": total_budget},
        )

    @staticmethod
    def zone_changed(
        event_type: AuditEventType,
        budget_id: str,
        zone_id: str,
        name: Optional[str],
        actor_id: Optional[str],
    ) -> AuditEvent:
        verb = {
            AuditEventType.ZONE_CREATED: "created",
            AuditEventType.ZONE_RENAMED: "renamed",
            AuditEventType.ZONE_DELETED: "deleted",
        }.get(event_type, "changed")
        return AuditEvent(
            event_type=event_type,
            budget_id=budget_id,
            entity_type="zone",
            entity_id=zone_id,
            actor_id=actor_id,
            description=f"Zone {verb}" + (f": {name}" if name else ""),
            details={"name": name} if name else {},
        )

    @staticmethod
    def wishlist_item_changed(
        event_type: AuditEventType,
        budget_id: str,
        item_id: str,
        details: dict[str, Any],
        actor_id: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            budget_id=budget_id,
            entity_type="wishlist_item",
            entity_id=item_id,
            actor_id=actor_id,
            correlation_id=correlation_id,
            description=f"Wishlist item {event_type.value.replace('wishlist_item_', '').replace('_', ' ')}",
            details=details,
        )

    @staticmethod
    def expense_recorded(
        budget_id: str,
        expense_id: str,
        item_id: str,
        amount: str,
        actor_id: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_RECORDED,
            budget_id=budget_id,
            entity_type="expense",
            entity_id=expense_id,
            actor_id=actor_id,
            correlation_id=correlation_id,
            description=f"Expense recorded: {amount}",
            details={"wishlist_item_id": item_id, "amount": amount},
        )

    @staticmethod
    def expense_updated(
        budget_id: str,
        expense_id: str,
        item_id: str,
        amount: str,
        actor_id: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_UPDATED,
            budget_id=budget_id,
            entity_type="expense",
            entity_id=expense_id,
            actor_id=actor_id,
            correlation_id=correlation_id,
            description=f"Expense updated: {amount}",
            details={"wishlist_item_id": item_id, "amount": amount},
        )

    @staticmethod
    def expense_deleted(
        budget_id: str,
        expense_id: str,
        actor_id: Optional[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_DELETED,
            budget_id=budget_id,
            entity_type="expense",
            entity_id=expense_id,
            actor_id=actor_id,
            correlation_id=correlation_id,
            description="Expense deleted",
        )

    @staticmethod
    def contract_expense_changed(
        event_type: AuditEventType,
        budget_id: str,
        contract_expense_id: str,
        vendor_name: Optional[str],
        actor_id: Optional[str],
    ) -> AuditEvent:
        action = "saved" if event_type == AuditEventType.CONTRACT_EXPENSE_SAVED else "deleted"
        return AuditEvent(
            event_type=event_type,
            budget_id=budget_id,
            entity_type="contract_expense",
            entity_id=contract_expense_id,
            actor_id=actor_id,
            description=f"Contract expense {action}" + (f": {vendor_name}" if vendor_name else ""),
            details={"vendor_name": vendor_name} if vendor_name else {},
        )

    @staticmethod
    def member_changed(
        event_type: AuditEventType,
        budget_id: str,
        user_id: str,
        role: Optional[str],
        actor_id: Optional[str],
    ) -> AuditEvent:
        action = "invited" if event_type == AuditEventType.MEMBER_INVITED else "removed"
        return AuditEvent(
            event_type=event_type,
            budget_id=budget_id,
            entity_type="member",
            entity_id=user_id,
            actor_id=actor_id,
            description=f"Member {action}" + (f" as {role}" if role else ""),
            details={"role": role} if role else {},
        )

    @staticmethod
    def permission_denied(
        budget_id: str,
        capability: str,
        role: Optional[str],
        actor_id: Optional[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERMISSION_DENIED,
            severity=AuditSeverity.WARNING,
            budget_id=budget_id,
            actor_id=actor_id,
            description=f"Permission denied: {capability}",
            details={"capability": capability, "role": role},
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        budget_id: Optional[str] = None,
        actor_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            budget_id=budget_id,
            actor_id=actor_id,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
