# Services module
from .activity import get_recent_activity, log_activity
from .orbat import (
    OrbatError,
    PersonnelNotFound,
    SlotNotAssignable,
    SlotNotFound,
    assign_slot,
    build_tree,
    clear_slot,
    get_slots,
)

__all__ = [
    "get_recent_activity",
    "log_activity",
    "OrbatError",
    "PersonnelNotFound",
    "SlotNotAssignable",
    "SlotNotFound",
    "assign_slot",
    "build_tree",
    "clear_slot",
    "get_slots",
]
