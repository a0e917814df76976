"""
Table Layout

Column lists for every table the app stores. The Google Sheets backend
writes these as worksheet headers; the in-memory backend ignores them.
"""

BUDGETS = "budgets"
BUDGET_MEMBERS = "budget_members"
USERS = "users"
ZONES = "zones"
WISHLIST_ITEMS = "wishlist_items"
WISHLIST_ITEM_EVENTS = "wishlist_item_events"
EXPENSES = "expenses"
CONTRACT_EXPENSES = "contract_expenses"
CONTRACT_MILESTONES = "contract_milestones"
CONTRACT_PAYMENTS = "contract_payments"

TIMESTAMP_COLUMNS = ["created_at", "updated_at"]

TABLE_COLUMNS: dict[str, list[str]] = {
    BUDGETS: ["id", "name", "total_budget", "currency", "user_id"],
    BUDGET_MEMBERS: ["id", "budget_id", "user_id", "role", "invited_by"],
    USERS: ["id", "email", "first_name", "invited"],
    ZONES: ["id", "budget_id", "name"],
    WISHLIST_ITEMS: [
        "id",
        "zone_id",
        "name",
        "budget",
        "status",
        "must_purchase_before",
    ],
    WISHLIST_ITEM_EVENTS: [
        "id",
        "wishlist_item_id",
        "event_type",
        "scheduled_at",
        "delivery_scheduled",
        "completed_at",
        "contact_person_name",
        "contact_person_email",
        "contact_person_mobile",
        "company_brand_name",
    ],
    EXPENSES: ["id", "wishlist_item_id", "amount", "description", "expense_date"],
    CONTRACT_EXPENSES: [
        "id",
        "budget_id",
        "expense_type",
        "expense_name",
        "expense_date",
        "notes",
        "vendor_name",
        "contract_total_amount",
    ],
    CONTRACT_MILESTONES: [
        "id",
        "contract_expense_id",
        "sequence_number",
        "percentage",
        "amount",
        "due_date",
        "notes",
    ],
    CONTRACT_PAYMENTS: ["id", "contract_expense_id", "amount", "paid_at", "notes"],
}


def columns_for(table: str) -> list[str]:
    """Full header for a table, timestamps included."""
    return TABLE_COLUMNS[table] + TIMESTAMP_COLUMNS
