"""Budget summary aggregation package."""

from renobudget.summary.aggregator import (
    build_zone_metrics,
    combine_contract_summaries,
    compose_dashboard,
    count_unbudgeted_items,
    derive_contract_summary_row,
    summarize_contract_expenses,
    zero_contract_summary,
)
from renobudget.summary.coercion import parse_date, to_number
from renobudget.summary.notifications import build_item_notifications
from renobudget.summary.zone_detail import (
    compose_delivery_schedule,
    compose_zone_detail,
)

__all__ = [
    "build_item_notifications",
    "build_zone_metrics",
    "combine_contract_summaries",
    "compose_dashboard",
    "compose_delivery_schedule",
    "compose_zone_detail",
    "count_unbudgeted_items",
    "derive_contract_summary_row",
    "parse_date",
    "summarize_contract_expenses",
    "to_number",
    "zero_contract_summary",
]
