"""HTTP blueprints and the request helpers they share."""
from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional

from flask import current_app, request

from ..domain.errors import ValidationError
from ..domain.models import Actor

DEFAULT_ACTOR = Actor(id="system", name="Management")


def get_engine():
    return current_app.extensions["shiftdesk"]


def json_body() -> Dict[str, Any]:
    return request.get_json(silent=True) or {}


def current_actor() -> Actor:
    """Acting user from the ``actor`` payload or the ``X-Actor-*`` headers."""

    payload = json_body().get("actor") or {}
    actor_id = payload.get("id") or request.headers.get("X-Actor-Id")
    if not actor_id:
        return DEFAULT_ACTOR
    name = payload.get("name") or request.headers.get("X-Actor-Name") or actor_id
    return Actor(id=str(actor_id), name=name)


def date_arg(name: str, default: Optional[date] = None) -> Optional[date]:
    value = request.args.get(name)
    if not value:
        return default
    return get_engine().store.canonical_date(value)


def require_timestamp(payload: Dict[str, Any]) -> int:
    value = payload.get("timestamp")
    if value is None or isinstance(value, bool):
        raise ValidationError("timestamp (epoch milliseconds) is required")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid timestamp: {value!r}") from None
