"""Service type vocabulary.

Service types are open-ended: schedulers type new ones at runtime and they
are appended to the registry. A handful of types carry workflow meaning.
"""
from __future__ import annotations

from typing import Iterable, Iterator, List, Optional, Set

from .errors import ValidationError

__all__ = [
    "TO_FIX",
    "TO_CHECK_APARTMENT",
    "STANDARD_CLEAN",
    "DEFAULT_SERVICE_TYPES",
    "AUTO_PUBLISH_SERVICE_TYPES",
    "ServiceTypeRegistry",
    "is_inspection",
    "is_remedial",
    "normalize_service_type",
]


TO_FIX = "TO FIX"
TO_CHECK_APARTMENT = "TO CHECK APARTMENT"
STANDARD_CLEAN = "Standard Clean"

DEFAULT_SERVICE_TYPES: List[str] = [
    STANDARD_CLEAN,
    "Check-out Clean",
    "Deep Clean",
    "Mid-stay Refresh",
    TO_FIX,
    TO_CHECK_APARTMENT,
]

AUTO_PUBLISH_SERVICE_TYPES: Set[str] = {TO_FIX, TO_CHECK_APARTMENT}


def normalize_service_type(value: Optional[str]) -> str:
    return " ".join((value or "").split())


def is_inspection(service_type: Optional[str]) -> bool:
    return normalize_service_type(service_type) == TO_CHECK_APARTMENT


def is_remedial(service_type: Optional[str]) -> bool:
    return normalize_service_type(service_type) == TO_FIX


class ServiceTypeRegistry:
    """Append-only ordered set of known service types."""

    def __init__(self, initial: Iterable[str] | None = None) -> None:
        self._types: List[str] = []
        for value in initial if initial is not None else DEFAULT_SERVICE_TYPES:
            self.register(value)

    def __contains__(self, value: object) -> bool:
        return isinstance(value, str) and normalize_service_type(value) in self._types

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._types))

    def __len__(self) -> int:
        return len(self._types)

    def register(self, value: Optional[str]) -> bool:
        """Add *value* if unseen. Returns ``True`` when the registry grew."""

        normalized = normalize_service_type(value)
        if not normalized:
            raise ValidationError("Service type is required")
        if normalized in self._types:
            return False
        self._types.append(normalized)
        return True

    def search(self, query: str) -> List[str]:
        needle = query.lower()
        return [value for value in self._types if needle in value.lower()]

    def as_list(self) -> List[str]:
        return list(self._types)
