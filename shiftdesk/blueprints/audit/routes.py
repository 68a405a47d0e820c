from __future__ import annotations

from flask import Blueprint, jsonify, request

from ...adapters.serializers import outcome_to_dict, shifts_to_list
from .. import current_actor, get_engine, json_body

bp = Blueprint("audit", __name__)


@bp.route("/api/audit/queue", methods=["GET"])
def audit_queue():
    """Completed shifts still waiting for a verdict, oldest first."""
    shifts = [
        shift
        for shift in get_engine().store.list_shifts(property_id=request.args.get("property_id"))
        if shift.awaiting_audit
    ]
    return jsonify({"shifts": shifts_to_list(shifts)})


@bp.route("/api/audit/<shift_id>/approve", methods=["POST"])
def approve(shift_id: str):
    payload = json_body()
    outcome = get_engine().audit.approve(
        shift_id,
        current_actor(),
        comment=payload.get("comment"),
        actual_start_time=payload.get("actual_start_time"),
        actual_end_time=payload.get("actual_end_time"),
    )
    return jsonify(outcome_to_dict(outcome))


@bp.route("/api/audit/<shift_id>/reject", methods=["POST"])
def reject(shift_id: str):
    payload = json_body()
    outcome = get_engine().audit.reject(
        shift_id,
        current_actor(),
        reason=payload.get("reason"),
        actual_start_time=payload.get("actual_start_time"),
        actual_end_time=payload.get("actual_end_time"),
    )
    return jsonify(outcome_to_dict(outcome))


@bp.route("/api/audit/<shift_id>/report-fix", methods=["POST"])
def report_and_fix(shift_id: str):
    payload = json_body()
    outcome = get_engine().audit.report_and_fix(
        shift_id,
        current_actor(),
        reason=payload.get("reason"),
        date=payload.get("date"),
        start_time=payload.get("start_time"),
        end_time=payload.get("end_time"),
        staff_ids=payload.get("staff_ids"),
        fix_payment=payload.get("fix_payment"),
    )
    return jsonify(outcome_to_dict(outcome)), 201


@bp.route("/api/audit/<shift_id>/escalate", methods=["POST"])
def escalate(shift_id: str):
    payload = json_body()
    outcome = get_engine().audit.escalate_to_supervisor(
        shift_id,
        current_actor(),
        date=payload.get("date"),
        start_time=payload.get("start_time"),
        end_time=payload.get("end_time"),
        inspector_ids=payload.get("inspector_ids"),
    )
    return jsonify(outcome_to_dict(outcome)), 201
