"""Read-only view over the property, personnel and leave collaborators."""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from ..domain.errors import ValidationError
from ..domain.models import LeaveRequest, Property, StaffMember
from ..rules.timeutil import to_canonical_date

DEFAULT_ASSIGNABLE_ROLES = ("cleaner", "supervisor")
UNKNOWN_PROPERTY = "Unknown"


class Directory:
    def __init__(
        self,
        properties: Iterable[Property] = (),
        staff: Iterable[StaffMember] = (),
        leave: Iterable[LeaveRequest] = (),
        *,
        assignable_roles: Sequence[str] = DEFAULT_ASSIGNABLE_ROLES,
    ) -> None:
        self._properties: Dict[str, Property] = {prop.id: prop for prop in properties}
        self._staff: Dict[str, StaffMember] = {member.id: member for member in staff}
        self.leave: List[LeaveRequest] = list(leave)
        self.assignable_roles = tuple(role.lower() for role in assignable_roles)

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any], *, assignable_roles: Sequence[str] = DEFAULT_ASSIGNABLE_ROLES) -> "Directory":
        properties = [
            Property(
                id=str(item["id"]),
                name=item.get("name", str(item["id"])),
                address=item.get("address", ""),
                cleaner_price=float(item.get("cleaner_price", 0) or 0),
                service_rates=dict(item.get("service_rates") or {}),
            )
            for item in payload.get("properties", [])
        ]
        staff = [
            StaffMember(
                id=str(item["id"]),
                name=item.get("name", str(item["id"])),
                role=item.get("role", "cleaner"),
                status=item.get("status", "active"),
            )
            for item in payload.get("staff", [])
        ]
        leave = [
            LeaveRequest(
                id=str(item["id"]),
                user_id=str(item["user_id"]),
                start_date=to_canonical_date(item["start_date"], strict=True),
                end_date=to_canonical_date(item.get("end_date", item["start_date"]), strict=True),
                status=item.get("status", "pending"),
                kind=item.get("kind", "Day Off"),
            )
            for item in payload.get("leave", [])
        ]
        return cls(properties, staff, leave, assignable_roles=assignable_roles)

    # -- properties -------------------------------------------------------------
    def get_property(self, property_id: str) -> Optional[Property]:
        return self._properties.get(property_id)

    def property_name(self, property_id: str) -> str:
        prop = self.get_property(property_id)
        return prop.name if prop else UNKNOWN_PROPERTY

    # -- personnel --------------------------------------------------------------
    def staff_member(self, staff_id: str) -> Optional[StaffMember]:
        return self._staff.get(staff_id)

    def is_assignable(self, member: StaffMember) -> bool:
        return member.status == "active" and member.role.lower() in self.assignable_roles

    def assignable_staff(self, query: str = "") -> List[StaffMember]:
        needle = query.lower()
        return [
            member
            for member in self._staff.values()
            if self.is_assignable(member) and needle in member.name.lower()
        ]

    def validate_assignable(self, staff_ids: Iterable[str]) -> None:
        """Reject ids that are unknown, inactive or outside the assignable roles.

        Without any staff records loaded there is nothing to check against.
        """

        if not self._staff:
            return
        rejected = []
        for staff_id in staff_ids:
            member = self._staff.get(staff_id)
            if member is None or not self.is_assignable(member):
                rejected.append(staff_id)
        if rejected:
            raise ValidationError(f"Staff not assignable: {', '.join(rejected)}")
