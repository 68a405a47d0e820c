"""Draft/published visibility rules."""
from __future__ import annotations

from datetime import date, timedelta
from typing import AbstractSet, Optional, Tuple

from ..domain.errors import ValidationError
from ..domain.models import PUBLISH_SCOPES, SCOPE_DAY, SCOPE_DRAFT, SCOPE_WEEK
from ..domain.service_types import AUTO_PUBLISH_SERVICE_TYPES, normalize_service_type
from .timeutil import week_start


def normalize_scope(scope: object) -> Optional[str]:
    """Accept the scope names plus the legacy boolean flag (``True`` = day)."""

    if scope is None or scope == "":
        return None
    if scope is True:
        return SCOPE_DAY
    if scope is False:
        return SCOPE_DRAFT
    if isinstance(scope, str) and scope.lower() in PUBLISH_SCOPES:
        return scope.lower()
    raise ValidationError(f"Unknown publish scope: {scope!r}")


def resolve_is_published(
    scope: Optional[str],
    service_type: str,
    prior: Optional[bool] = None,
    auto_publish: AbstractSet[str] = AUTO_PUBLISH_SERVICE_TYPES,
) -> bool:
    """Return the ``is_published`` flag for a saved shift.

    *prior* is the flag of the shift being edited, ``None`` on create.
    """

    if scope in (SCOPE_DAY, SCOPE_WEEK):
        return True
    if scope == SCOPE_DRAFT:
        return False
    if normalize_service_type(service_type) in auto_publish:
        return True
    return bool(prior) if prior is not None else False


def scope_range(scope: Optional[str], day: date) -> Optional[Tuple[date, date]]:
    """Dates whose shifts get published alongside a save with *scope*."""

    if scope == SCOPE_DAY:
        return day, day
    if scope == SCOPE_WEEK:
        start = week_start(day)
        return start, start + timedelta(days=6)
    return None
