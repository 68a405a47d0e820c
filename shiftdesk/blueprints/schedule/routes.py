from __future__ import annotations

from flask import Blueprint, Response, jsonify, request

from ...adapters.report.xlsx_writer import roster_bytes
from ...adapters.serializers import grid_to_dict
from .. import date_arg, get_engine

bp = Blueprint("schedule", __name__)

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _week():
    engine = get_engine()
    start = date_arg("start", engine.store.today())
    return engine.week_grid(start, request.args.get("search", ""))


@bp.route("/api/schedule/week")
def week():
    return jsonify(grid_to_dict(_week()))


@bp.route("/api/schedule/week.xlsx")
def week_xlsx():
    grid = _week()
    filename = f"roster-{grid.week_start.isoformat()}.xlsx"
    return Response(
        roster_bytes(grid).getvalue(),
        mimetype=XLSX_MIMETYPE,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


@bp.route("/api/staff/assignable")
def assignable_staff():
    members = get_engine().directory.assignable_staff(request.args.get("q", ""))
    return jsonify(
        {"staff": [{"id": member.id, "name": member.name, "role": member.role} for member in members]}
    )
