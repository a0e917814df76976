"""
Zone Detail and Delivery Schedule Composition

Pure composition of the zone page and the budget-wide delivery schedule
from already-fetched records.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from renobudget.models.budget import (
    Expense,
    ScheduleEventType,
    WishlistItem,
    WishlistItemEvent,
    WishlistItemStatus,
    Zone,
)
from renobudget.models.summary import (
    DeliveryScheduleItem,
    PurchasedItemRecord,
    ZoneDetailData,
    ZoneDetailHeader,
    ZoneDetailItem,
)
from renobudget.summary.aggregator import sum_expenses_by_item
from renobudget.summary.coercion import ZERO, to_number


@dataclass
class _ItemSchedule:
    """Delivery/installation data of one item, merged from its events."""
    delivery_date: Optional[date] = None
    installation_date: Optional[date] = None
    delivery_scheduled: bool = False
    contact_person_name: Optional[str] = None
    contact_person_email: Optional[str] = None
    contact_person_mobile: Optional[str] = None
    company_brand_name: Optional[str] = None


def merge_schedules(events: Iterable[WishlistItemEvent]) -> dict[str, _ItemSchedule]:
    """
    Merge delivery and installation events per item.

    Contact fields keep the last non-empty value seen.
    """
    schedules: dict[str, _ItemSchedule] = {}
    for event in events:
        entry = schedules.setdefault(event.wishlist_item_id, _ItemSchedule())
        if event.event_type == ScheduleEventType.DELIVERY:
            entry.delivery_date = event.scheduled_at
            entry.delivery_scheduled = event.delivery_scheduled
        elif event.event_type == ScheduleEventType.INSTALLATION:
            entry.installation_date = event.scheduled_at

        entry.contact_person_name = event.contact_person_name or entry.contact_person_name
        entry.contact_person_email = event.contact_person_email or entry.contact_person_email
        entry.contact_person_mobile = event.contact_person_mobile or entry.contact_person_mobile
        entry.company_brand_name = event.company_brand_name or entry.company_brand_name
    return schedules


def compose_zone_detail(
    zone: Zone,
    currency: str,
    wishlist_items: Sequence[WishlistItem],
    expenses: Sequence[Expense],
    events: Iterable[WishlistItemEvent] = (),
) -> ZoneDetailData:
    """
    Compose the zone page.

    Items are split into purchased (in progress or completed) and
    unpurchased. Every expense of a purchased item becomes one
    PurchasedItemRecord.
    """
    items = [item for item in wishlist_items if item.zone_id == zone.id]
    item_ids = {item.id for item in items}
    zone_expenses = [e for e in expenses if e.wishlist_item_id in item_ids]
    spent_by_item = sum_expenses_by_item(zone_expenses)
    schedules = merge_schedules(e for e in events if e.wishlist_item_id in item_ids)

    detail_items = [
        ZoneDetailItem(
            id=item.id,
            name=item.name,
            allocated_budget=to_number(item.allocated_budget),
            amount_spent=spent_by_item.get(item.id, ZERO),
            must_purchase_before=item.must_purchase_before,
            status=item.status,
        )
        for item in items
    ]
    purchased = [i for i in detail_items if i.status != WishlistItemStatus.NOT_STARTED]
    unpurchased = [i for i in detail_items if i.status == WishlistItemStatus.NOT_STARTED]

    expenses_by_item: dict[str, list[Expense]] = {}
    for expense in zone_expenses:
        expenses_by_item.setdefault(expense.wishlist_item_id, []).append(expense)

    records = []
    for item in purchased:
        schedule = schedules.get(item.id, _ItemSchedule())
        for expense in expenses_by_item.get(item.id, []):
            raw_description = (expense.description or "").strip()
            amount = to_number(expense.amount)
            records.append(
                PurchasedItemRecord(
                    id=expense.id,
                    wishlist_item_id=item.id,
                    purchased_item_name=item.name,
                    description=raw_description or "-",
                    expense_description=raw_description,
                    budget=item.allocated_budget,
                    amount_spent=amount,
                    difference=item.allocated_budget - amount,
                    purchase_date=expense.expense_date,
                    delivery_date=schedule.delivery_date,
                    installation_date=schedule.installation_date,
                    contact_person_name=schedule.contact_person_name,
                    contact_person_email=schedule.contact_person_email,
                    contact_person_mobile=schedule.contact_person_mobile,
                    company_brand_name=schedule.company_brand_name,
                    delivery_scheduled=schedule.delivery_scheduled,
                    status=item.status,
                )
            )

    allocated: Decimal = sum((i.allocated_budget for i in detail_items), ZERO)
    spent: Decimal = sum((i.amount_spent for i in detail_items), ZERO)

    return ZoneDetailData(
        zone=ZoneDetailHeader(
            id=zone.id,
            budget_id=zone.budget_id,
            name=zone.name,
            currency=currency,
        ),
        amount_spent=spent,
        allocated_budget=allocated,
        budget_left=allocated - spent,
        purchased_items=purchased,
        unpurchased_items=unpurchased,
        purchased_item_records=records,
    )


def compose_delivery_schedule(
    zones: Sequence[Zone],
    wishlist_items: Iterable[WishlistItem],
    events: Iterable[WishlistItemEvent],
) -> list[DeliveryScheduleItem]:
    """
    List items that have a delivery or installation date, by item name.

    Contact details come from the first event that has any, falling
    back to the item's first event.
    """
    zone_names = {zone.id: zone.name for zone in zones}
    events_by_item: dict[str, list[WishlistItemEvent]] = {}
    for event in events:
        events_by_item.setdefault(event.wishlist_item_id, []).append(event)

    schedule = []
    for item in sorted(
        (i for i in wishlist_items if i.zone_id in zone_names),
        key=lambda i: i.name,
    ):
        item_events = events_by_item.get(item.id, [])
        delivery = next(
            (e for e in item_events if e.event_type == ScheduleEventType.DELIVERY), None
        )
        installation = next(
            (e for e in item_events if e.event_type == ScheduleEventType.INSTALLATION), None
        )
        delivery_date = delivery.scheduled_at if delivery else None
        installation_date = installation.scheduled_at if installation else None
        if not delivery_date and not installation_date:
            continue

        contact = next((e for e in item_events if e.has_contact), item_events[0])
        schedule.append(
            DeliveryScheduleItem(
                wishlist_item_id=item.id,
                wishlist_item_name=item.name,
                zone_id=item.zone_id,
                zone_name=zone_names[item.zone_id],
                delivery_date=delivery_date,
                installation_date=installation_date,
                contact_person_name=contact.contact_person_name,
                contact_person_email=contact.contact_person_email,
                contact_person_mobile=contact.contact_person_mobile,
                company_brand_name=contact.company_brand_name,
                delivery_scheduled=delivery.delivery_scheduled if delivery else False,
                status=item.status,
            )
        )
    return schedule
