# Models package
# Importing modules here ensures they are registered with SQLAlchemy Base
from . import position, profile, kpi, assignment, review_item, kpi_group

# Explicit class exports for cleaner imports
from .position import Position, Role
from .profile import StaffProfile
from .kpi import KPI
from .assignment import Assignment
from .review_item import ReviewItem
from .kpi_group import KPIGroup

__all__ = [
    "Position",
    "Role",
    "StaffProfile",
    "KPI",
    "Assignment",
    "ReviewItem",
    "KPIGroup",
]
