"""Domain objects for the shift engine."""

from .errors import ConflictError, NotFoundError, PreconditionError, SchedulingError, ValidationError
from .models import Actor, LeaveRequest, Property, Shift, ShiftInput, SpecialReport, StaffMember
from .service_types import TO_CHECK_APARTMENT, TO_FIX, ServiceTypeRegistry, is_inspection, is_remedial

__all__ = [
    "Actor",
    "ConflictError",
    "LeaveRequest",
    "NotFoundError",
    "PreconditionError",
    "Property",
    "SchedulingError",
    "ServiceTypeRegistry",
    "Shift",
    "ShiftInput",
    "SpecialReport",
    "StaffMember",
    "TO_CHECK_APARTMENT",
    "TO_FIX",
    "ValidationError",
    "is_inspection",
    "is_remedial",
]
