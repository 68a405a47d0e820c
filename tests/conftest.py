from __future__ import annotations

import itertools
from datetime import date

import pytest

from shiftdesk.domain.models import Property, StaffMember
from shiftdesk.services.audit import AuditWorkflow
from shiftdesk.services.directory import Directory
from shiftdesk.services.events import EventBus
from shiftdesk.services.shift_store import ShiftStore

TODAY = date(2024, 3, 1)

PROPERTIES = [
    Property(id="p1", name="Harbour Loft"),
    Property(id="p2", name="Old Town Studio"),
]

STAFF = [
    StaffMember(id="alice", name="Alice", role="cleaner"),
    StaffMember(id="bob", name="Bob", role="cleaner"),
    StaffMember(id="carla", name="Carla", role="cleaner"),
    StaffMember(id="sara", name="Sara", role="supervisor"),
    StaffMember(id="mo", name="Mo", role="manager"),
    StaffMember(id="xi", name="Xi", role="cleaner", status="inactive"),
]


@pytest.fixture()
def directory() -> Directory:
    return Directory(PROPERTIES, STAFF, [])


@pytest.fixture()
def received() -> list:
    return []


@pytest.fixture()
def events(received) -> EventBus:
    bus = EventBus()
    bus.subscribe(received.append)
    return bus


@pytest.fixture()
def store(directory, events) -> ShiftStore:
    counter = itertools.count(1)
    return ShiftStore(
        directory=directory,
        events=events,
        clock=lambda: TODAY,
        id_factory=lambda prefix: f"{prefix}-{next(counter)}",
    )


@pytest.fixture()
def audit(store) -> AuditWorkflow:
    return AuditWorkflow(store)
