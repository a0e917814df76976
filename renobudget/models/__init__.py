"""
Data Models Package

This package contains all Pydantic models used in the Renovation Budget system:
stored records, derived summaries, write inputs and audit events.
"""

from renobudget.models.budget import (
    Budget,
    BudgetMember,
    BudgetMemberIdentity,
    BudgetRole,
    ContractExpense,
    ContractExpenseMilestone,
    ContractExpensePayment,
    ContractExpenseType,
    DomainModel,
    Expense,
    ScheduleEventType,
    WishlistItem,
    WishlistItemEvent,
    WishlistItemStatus,
    Zone,
)
from renobudget.models.summary import (
    BudgetDashboardData,
    BudgetDashboardSummary,
    ContractExpenseSummary,
    ContractSummaryRow,
    DeliveryScheduleItem,
    ItemDateNotification,
    NotificationField,
    NotificationKind,
    PurchasedItemRecord,
    ZoneDetailData,
    ZoneDetailHeader,
    ZoneDetailItem,
    ZoneMetrics,
)
from renobudget.models.inputs import (
    ContractExpenseInput,
    ContractMilestoneInput,
    ContractPaymentInput,
    ScheduleInput,
)
from renobudget.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Records
    "Budget",
    "BudgetMember",
    "BudgetMemberIdentity",
    "BudgetRole",
    "ContractExpense",
    "ContractExpenseMilestone",
    "ContractExpensePayment",
    "ContractExpenseType",
    "DomainModel",
    "Expense",
    "ScheduleEventType",
    "WishlistItem",
    "WishlistItemEvent",
    "WishlistItemStatus",
    "Zone",
    # Summaries
    "BudgetDashboardData",
    "BudgetDashboardSummary",
    "ContractExpenseSummary",
    "ContractSummaryRow",
    "DeliveryScheduleItem",
    "ItemDateNotification",
    "NotificationField",
    "NotificationKind",
    "PurchasedItemRecord",
    "ZoneDetailData",
    "ZoneDetailHeader",
    "ZoneDetailItem",
    "ZoneMetrics",
    # Inputs
    "ContractExpenseInput",
    "ContractMilestoneInput",
    "ContractPaymentInput",
    "ScheduleInput",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
