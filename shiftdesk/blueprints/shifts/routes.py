from __future__ import annotations

from flask import Blueprint, jsonify, request

from ...adapters.serializers import change_to_dict, shift_to_view, shifts_to_list
from ...domain.errors import ValidationError
from ...rules.conflicts import Candidate, check_conflicts
from ...rules.timeutil import normalize_time
from .. import current_actor, date_arg, get_engine, json_body, require_timestamp

bp = Blueprint("shifts", __name__)


@bp.route("/api/shifts", methods=["GET"])
def list_shifts():
    store = get_engine().store
    shifts = store.list_shifts(
        date_arg("start"),
        date_arg("end"),
        staff_id=request.args.get("staff_id"),
        property_id=request.args.get("property_id"),
    )
    return jsonify({"shifts": shifts_to_list(shifts)})


@bp.route("/api/shifts/<shift_id>", methods=["GET"])
def get_shift(shift_id: str):
    return jsonify({"shift": shift_to_view(get_engine().store.get(shift_id))})


@bp.route("/api/shifts", methods=["POST"])
def create_shift():
    payload = json_body()
    change = get_engine().store.create(payload, current_actor(), payload.get("publish_scope"))
    return jsonify(change_to_dict(change)), 201


@bp.route("/api/shifts/<shift_id>", methods=["PUT"])
def update_shift(shift_id: str):
    payload = json_body()
    change = get_engine().store.update(
        shift_id,
        payload,
        current_actor(),
        payload.get("publish_scope"),
        confirm_unassign=bool(payload.get("confirm_unassign", False)),
    )
    return jsonify(change_to_dict(change))


@bp.route("/api/shifts/<shift_id>", methods=["DELETE"])
def delete_shift(shift_id: str):
    removed = get_engine().store.delete(shift_id, current_actor())
    return jsonify({"deleted": removed.id})


@bp.route("/api/shifts/<shift_id>/start", methods=["POST"])
def start_shift(shift_id: str):
    shift = get_engine().store.mark_active(shift_id, require_timestamp(json_body()))
    return jsonify({"shift": shift_to_view(shift)})


@bp.route("/api/shifts/<shift_id>/complete", methods=["POST"])
def complete_shift(shift_id: str):
    shift = get_engine().store.mark_completed(shift_id, require_timestamp(json_body()))
    return jsonify({"shift": shift_to_view(shift)})


@bp.route("/api/conflicts/check", methods=["POST"])
def check_candidate():
    """Dry-run conflict check for the shift form."""
    payload = json_body()
    engine = get_engine()
    store = engine.store
    if not payload.get("date"):
        raise ValidationError("date is required")
    candidate = Candidate(
        staff_ids=[str(staff_id) for staff_id in payload.get("staff_ids") or []],
        date=store.canonical_date(payload["date"]),
        start_time=normalize_time(payload.get("start_time"), store.settings["default_start_time"]),
        end_time=normalize_time(payload.get("end_time"), store.settings["default_end_time"]),
        exclude_shift_id=payload.get("exclude_shift_id"),
    )
    result = check_conflicts(candidate, store.snapshot(), engine.directory.leave)
    return jsonify(
        {
            "fatal": result.fatal,
            "conflicts": [conflict.as_dict() for conflict in result.conflicts],
            "advisories": [advisory.as_dict() for advisory in result.advisories],
        }
    )


@bp.route("/api/publish", methods=["POST"])
def publish():
    payload = json_body()
    store = get_engine().store
    actor = current_actor()
    if payload.get("week"):
        published = store.publish_week(payload["week"], actor)
    elif payload.get("day"):
        published = store.publish_day(payload["day"], actor)
    elif payload.get("start") and payload.get("end"):
        published = store.publish_range(payload["start"], payload["end"], actor)
    else:
        raise ValidationError("Provide day, week, or start and end")
    return jsonify({"published": [shift.id for shift in published]})


@bp.route("/api/publish/status", methods=["GET"])
def publish_status():
    start, end = date_arg("start"), date_arg("end")
    if start is None or end is None:
        raise ValidationError("start and end are required")
    return jsonify({"has_unpublished": get_engine().store.has_unpublished_shifts(start, end)})


@bp.route("/api/service-types", methods=["GET"])
def list_service_types():
    registry = get_engine().store.service_types
    query = request.args.get("q", "")
    return jsonify({"service_types": registry.search(query) if query else registry.as_list()})
