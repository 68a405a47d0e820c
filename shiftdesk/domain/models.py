"""Domain dataclasses for shift scheduling and quality audits."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

# Execution status
STATUS_PENDING = "pending"
STATUS_ACTIVE = "active"
STATUS_COMPLETED = "completed"
STATUSES = (STATUS_PENDING, STATUS_ACTIVE, STATUS_COMPLETED)

# Quality verdict
APPROVAL_PENDING = "pending"
APPROVAL_APPROVED = "approved"
APPROVAL_REJECTED = "rejected"

# Remedial linkage
CORRECTION_FIXING = "fixing"
CORRECTION_CORRECTED = "corrected"

# Leave request status
LEAVE_PENDING = "pending"
LEAVE_APPROVED = "approved"
LEAVE_REJECTED = "rejected"

# Publish scopes accepted by create/update
SCOPE_DRAFT = "draft"
SCOPE_DAY = "day"
SCOPE_WEEK = "week"
PUBLISH_SCOPES = (SCOPE_DRAFT, SCOPE_DAY, SCOPE_WEEK)


@dataclass(frozen=True)
class Actor:
    id: str
    name: str


@dataclass(frozen=True)
class StaffMember:
    id: str
    name: str
    role: str
    status: str = "active"


@dataclass(frozen=True)
class Property:
    id: str
    name: str
    address: str = ""
    cleaner_price: float = 0.0
    service_rates: Dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class LeaveRequest:
    id: str
    user_id: str
    start_date: date
    end_date: date
    status: str
    kind: str = "Day Off"

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


@dataclass
class SpecialReport:
    """Maintenance/damage/missing-item report filed during a shift."""

    id: str
    kind: str
    description: str = ""
    photos: List[str] = field(default_factory=list)
    status: str = "open"
    timestamp: Optional[int] = None


@dataclass
class ShiftInput:
    """Scheduler-supplied fields for create/update."""

    property_id: Optional[str]
    date: object
    service_type: Optional[str]
    staff_ids: List[str] = field(default_factory=list)
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    notes: str = ""
    fix_payment: Optional[float] = None
    exclude_laundry: bool = False
    approval_comment: Optional[str] = None
    inspection_photos: List[str] = field(default_factory=list)
    original_cleaning_photos: List[str] = field(default_factory=list)


@dataclass
class Shift:
    id: str
    property_id: str
    property_name: str
    staff_ids: List[str]
    date: date
    start_time: str
    end_time: str
    service_type: str
    status: str = STATUS_PENDING
    approval_status: str = APPROVAL_PENDING
    is_published: bool = False
    was_rejected: bool = False
    correction_status: Optional[str] = None
    approval_comment: Optional[str] = None
    decided_by: Optional[str] = None
    decided_by_id: Optional[str] = None
    fix_payment: Optional[float] = None
    actual_start_time: Optional[int] = None
    actual_end_time: Optional[int] = None
    notes: str = ""
    exclude_laundry: bool = False
    photos: List[str] = field(default_factory=list)
    inspection_photos: List[str] = field(default_factory=list)
    original_cleaning_photos: List[str] = field(default_factory=list)
    reports: List[SpecialReport] = field(default_factory=list)
    remedial_for: Optional[str] = None
    inspects: Optional[str] = None
    cascade_target: Optional[str] = None

    @property
    def is_completed(self) -> bool:
        return self.status == STATUS_COMPLETED

    @property
    def awaiting_audit(self) -> bool:
        return self.status == STATUS_COMPLETED and self.approval_status == APPROVAL_PENDING

    def evidence_photos(self) -> List[str]:
        """Every photo reference attached to the shift, in capture order."""
        collected: List[str] = list(self.photos)
        for report in self.reports:
            collected.extend(report.photos)
        collected.extend(self.inspection_photos)
        return collected
