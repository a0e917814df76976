"""
Role-Based Permissions

Who may do what on a shared budget:

    capability            owner  admin  maintainer  guest
    edit budget data        x      x        x
    delete budget data      x      x
    manage members          x      x

A user without a membership (role None) can do nothing but read what
the backend lets them read.
"""

from enum import Enum
from typing import Optional

from renobudget.models.budget import BudgetRole


class Capability(str, Enum):
    EDIT_BUDGET = "edit_budget"
    DELETE_BUDGET_DATA = "delete_budget_data"
    MANAGE_MEMBERS = "manage_members"


CAPABILITY_ROLES: dict[Capability, frozenset[BudgetRole]] = {
    Capability.EDIT_BUDGET: frozenset(
        {BudgetRole.OWNER, BudgetRole.ADMIN, BudgetRole.MAINTAINER}
    ),
    Capability.DELETE_BUDGET_DATA: frozenset({BudgetRole.OWNER, BudgetRole.ADMIN}),
    Capability.MANAGE_MEMBERS: frozenset({BudgetRole.OWNER, BudgetRole.ADMIN}),
}


class PermissionDeniedError(Exception):
    """The acting user's role does not allow the requested action."""

    def __init__(self, capability: Capability, role: Optional[BudgetRole]):
        self.capability = capability
        self.role = role
        role_name = role.value if role else "no role"
        super().__init__(
            f"A {role_name} member cannot {capability.value.replace('_', ' ')}."
        )


def has_capability(role: Optional[BudgetRole], capability: Capability) -> bool:
    if role is None:
        return False
    return role in CAPABILITY_ROLES[capability]


def can_edit_budget(role: Optional[BudgetRole]) -> bool:
    return has_capability(role, Capability.EDIT_BUDGET)


def can_delete_budget_data(role: Optional[BudgetRole]) -> bool:
    return has_capability(role, Capability.DELETE_BUDGET_DATA)


def can_manage_members(role: Optional[BudgetRole]) -> bool:
    return has_capability(role, Capability.MANAGE_MEMBERS)


def require(role: Optional[BudgetRole], capability: Capability) -> None:
    """Raise PermissionDeniedError unless role grants capability."""
    if not has_capability(role, capability):
        raise PermissionDeniedError(capability, role)
