"""Application factory for the shift desk API."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Mapping

import click
from flask import Flask, current_app, jsonify, request
from flask.cli import with_appcontext

from .adapters.config_loader import load_directory_file
from .adapters.report.xlsx_writer import write_roster
from .adapters.repository import ShiftRepository
from .config import load_settings
from .domain.errors import (
    ConflictError,
    NotFoundError,
    PreconditionError,
    SchedulingError,
    ValidationError,
)
from .domain.service_types import ServiceTypeRegistry
from .rules.timeutil import to_canonical_date
from .services.audit import AuditWorkflow
from .services.directory import Directory
from .services.events import EventBus, ShiftEvent
from .services.grid import project_week
from .services.shift_store import ShiftStore

logger = logging.getLogger(__name__)

BLUEPRINTS = [
    ("shiftdesk.blueprints.shifts.routes", "bp"),
    ("shiftdesk.blueprints.audit.routes", "bp"),
    ("shiftdesk.blueprints.schedule.routes", "bp"),
]

STATUS_CODES = [
    (ValidationError, 400),
    (NotFoundError, 404),
    (ConflictError, 409),
    (PreconditionError, 422),
]

MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


@dataclass
class Engine:
    """Per-app bundle of the shift store and its collaborators."""

    store: ShiftStore
    audit: AuditWorkflow
    directory: Directory
    repository: ShiftRepository

    def sync(self) -> int:
        return self.repository.save_snapshot(self.store.snapshot(), self.store.service_types)

    def week_grid(self, start: date, search: str = ""):
        return project_week(
            self.directory.assignable_staff(),
            self.directory.leave,
            self.store.snapshot(),
            start,
            search=search,
        )


def _load_directory(app: Flask, settings: Mapping[str, Any]) -> Directory:
    payload = app.config.get("DIRECTORY")
    if payload is None and app.config.get("DIRECTORY_FILE"):
        payload = load_directory_file(app.config["DIRECTORY_FILE"])
    return Directory.from_mapping(payload or {}, assignable_roles=settings["assignable_roles"])


def build_engine(app: Flask) -> Engine:
    settings = load_settings(app.config.get("SETTINGS_FILE"))
    directory = _load_directory(app, settings)
    repository = ShiftRepository(app.config["DATABASE"])
    shifts, stored_types = repository.load_snapshot()
    registry = ServiceTypeRegistry(settings["service_types"])
    for name in stored_types:
        registry.register(name)

    events = EventBus()

    @events.subscribe
    def log_event(event: ShiftEvent) -> None:
        logger.info("%s: %s", event.message, ", ".join(event.shift_ids) or "-")

    store = ShiftStore(
        shifts,
        directory=directory,
        service_types=registry,
        events=events,
        settings=settings,
    )
    logger.info("Loaded %d shifts from %s", len(store), repository.path)
    return Engine(store=store, audit=AuditWorkflow(store), directory=directory, repository=repository)


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(SchedulingError)
    def handle_scheduling_error(exc: SchedulingError):
        status = next((code for kind, code in STATUS_CODES if isinstance(exc, kind)), 400)
        body: dict[str, Any] = {"error": str(exc), "kind": exc.kind}
        if isinstance(exc, ConflictError):
            body["conflicts"] = [conflict.as_dict() for conflict in exc.conflicts]
        return jsonify(body), status


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_mapping(
        DATABASE=os.path.join(app.instance_path, "shiftdesk.sqlite"),
        SETTINGS_FILE=os.environ.get("SHIFTDESK_SETTINGS"),
        DIRECTORY_FILE=os.environ.get("SHIFTDESK_DIRECTORY"),
        AUTO_SYNC=True,
        LOG_LEVEL="INFO",
        JSON_SORT_KEYS=False,
    )

    if test_config:
        app.config.update(test_config)

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    Path(app.instance_path).mkdir(parents=True, exist_ok=True)
    app.extensions["shiftdesk"] = build_engine(app)

    for import_path, attr in BLUEPRINTS:
        module = __import__(import_path, fromlist=[attr])
        blueprint = getattr(module, attr)
        app.register_blueprint(blueprint)

    register_error_handlers(app)

    @app.after_request
    def sync_after_change(response):
        if app.config["AUTO_SYNC"] and request.method in MUTATING_METHODS and response.status_code < 400:
            count = app.extensions["shiftdesk"].sync()
            logger.debug("Synced %d shifts after %s %s", count, request.method, request.path)
        return response

    @app.route("/healthz")
    def healthcheck() -> tuple[str, int]:
        return "OK", 200

    app.cli.add_command(sync_db_command)
    app.cli.add_command(export_roster_command)
    return app


@click.command("sync-db")
@with_appcontext
def sync_db_command() -> None:
    """Write the current shift state to the SQLite database."""
    count = current_app.extensions["shiftdesk"].sync()
    click.echo(f"Synced {count} shifts.")


@click.command("export-roster")
@click.option("--week", "week", default=None, help="Any date in the week (YYYY-MM-DD). Defaults to this week.")
@click.option("--out", "out", required=True, type=click.Path(dir_okay=False), help="Target .xlsx file.")
@click.option("--search", default="", help="Only include shifts matching this text.")
@with_appcontext
def export_roster_command(week: str | None, out: str, search: str) -> None:
    """Export the weekly staff roster to an Excel workbook."""
    try:
        start = to_canonical_date(week, strict=True) if week else date.today()
    except ValidationError as exc:
        raise click.BadParameter(str(exc), param_hint="--week") from exc
    grid = current_app.extensions["shiftdesk"].week_grid(start, search)
    write_roster(out, grid)
    click.echo(f"Roster for week of {grid.week_start.isoformat()} written to {out}")


if __name__ == "__main__":
    app = create_app()
    app.run(debug=True)
