"""
Item Date Notifications

Flags wishlist dates that are due soon or already past:

- "must purchase before" on items nobody has started buying
- delivery and installation dates on purchased records

A date is upcoming from `window` before it until it arrives, and
overdue from the moment it arrives.
"""

from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional

from renobudget.models.summary import (
    ItemDateNotification,
    NotificationField,
    NotificationKind,
    PurchasedItemRecord,
    ZoneDetailItem,
)
from renobudget.models.budget import WishlistItemStatus


DEFAULT_WINDOW = timedelta(hours=24)

FIELD_LABELS = {
    NotificationField.MUST_PURCHASE_BEFORE: "Must purchase before",
    NotificationField.DELIVERY_DATE: "Delivery date",
    NotificationField.INSTALLATION_DATE: "Installation date",
}


def classify_due_date(
    due: date,
    now: datetime,
    window: timedelta = DEFAULT_WINDOW,
) -> Optional[NotificationKind]:
    """Return OVERDUE, UPCOMING or None for a due date."""
    due_at = datetime.combine(due, time.min, tzinfo=now.tzinfo)
    if now >= due_at:
        return NotificationKind.OVERDUE
    if now >= due_at - window:
        return NotificationKind.UPCOMING
    return None


def build_item_notifications(
    items: Iterable[ZoneDetailItem],
    purchased_records: Iterable[PurchasedItemRecord],
    now: datetime,
    window: timedelta = DEFAULT_WINDOW,
) -> list[ItemDateNotification]:
    """Collect notifications for a zone, soonest date first."""
    notifications = []

    for item in items:
        # Buying has started, so the purchase deadline no longer matters
        if item.status in (WishlistItemStatus.IN_PROGRESS, WishlistItemStatus.COMPLETED):
            continue
        if item.must_purchase_before is None:
            continue
        kind = classify_due_date(item.must_purchase_before, now, window)
        if kind is None:
            continue
        notifications.append(
            ItemDateNotification(
                id=f"{item.id}-{NotificationField.MUST_PURCHASE_BEFORE.value}",
                kind=kind,
                field=NotificationField.MUST_PURCHASE_BEFORE,
                field_label=FIELD_LABELS[NotificationField.MUST_PURCHASE_BEFORE],
                item_id=item.id,
                item_name=item.name,
                date_value=item.must_purchase_before,
            )
        )

    for record in purchased_records:
        for field, value in (
            (NotificationField.DELIVERY_DATE, record.delivery_date),
            (NotificationField.INSTALLATION_DATE, record.installation_date),
        ):
            if value is None:
                continue
            kind = classify_due_date(value, now, window)
            if kind is None:
                continue
            notifications.append(
                ItemDateNotification(
                    id=f"{record.id}-{field.value}",
                    kind=kind,
                    field=field,
                    field_label=FIELD_LABELS[field],
                    item_id=record.wishlist_item_id,
                    item_name=record.purchased_item_name,
                    date_value=value,
                )
            )

    notifications.sort(key=lambda n: n.date_value)
    return notifications
