"""
Write Inputs

Values a user submits through a form. They are deliberately loose:
renobudget.validation trims, filters and rejects them before anything
reaches storage, the same way for every caller.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from renobudget.models.budget import ContractExpenseType


class ContractMilestoneInput(BaseModel):
    """A milestone row as typed in the contract form."""

    sequence_number: int
    percentage: Optional[float] = None
    amount: Optional[float] = None
    due_date: Optional[str] = None
    notes: Optional[str] = None


class ContractPaymentInput(BaseModel):
    """A payment row as typed in the contract form."""

    amount: float
    paid_at: str = ""
    notes: Optional[str] = None


class ContractExpenseInput(BaseModel):
    """
    Create/update payload for a contract expense.

    Milestones and payments replace whatever the contract had before.
    """

    model_config = ConfigDict(use_enum_values=False)

    budget_id: str
    expense_type: ContractExpenseType
    expense_name: str
    vendor_name: str
    expense_date: Optional[str] = None
    notes: Optional[str] = None
    contract_total_amount: Optional[float] = None
    milestones: list[ContractMilestoneInput] = Field(default_factory=list)
    payments: list[ContractPaymentInput] = Field(default_factory=list)


class ScheduleInput(BaseModel):
    """Delivery/installation dates and the vendor contact for an item."""

    delivery_date: Optional[str] = None
    installation_date: Optional[str] = None
    delivery_scheduled: bool = False
    contact_person_name: Optional[str] = None
    contact_person_email: Optional[str] = None
    contact_person_mobile: Optional[str] = None
    company_brand_name: Optional[str] = None
