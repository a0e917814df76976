"""
Renovation Budget - Source Package

Tracks renovation budgets shared between household members: zones,
wishlist items, expenses, vendor contracts and delivery schedules.

DESIGN PRINCIPLES:
1. Derived figures are computed, never stored
2. Fail early, fail visibly
3. Roles gate every write
4. Every change must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Renovation Budget Team"
