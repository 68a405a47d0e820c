"""Fire-and-forget notification events emitted after committed changes."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)

DRAFT_SAVED = "DRAFT SAVED"
SHIFT_PUBLISHED = "SHIFT PUBLISHED"
DAY_PUBLISHED = "DAY SCHEDULE PUBLISHED"
WEEK_PUBLISHED = "WEEK SCHEDULE PUBLISHED"
SHIFT_UPDATED = "SHIFT UPDATED"
SHIFT_REMOVED = "SHIFT REMOVED"
SHIFT_STARTED = "SHIFT STARTED"
SHIFT_COMPLETED = "SHIFT COMPLETED"
WORK_AUTHORIZED = "WORK AUTHORIZED"
WORK_REJECTED = "WORK REJECTED"
REMEDIAL_DISPATCHED = "REMEDIAL SHIFT DISPATCHED"
SUPERVISOR_DISPATCHED = "SUPERVISOR AUDIT DISPATCHED"


@dataclass(frozen=True)
class ShiftEvent:
    message: str
    level: str = "success"
    shift_ids: Tuple[str, ...] = ()
    actor_id: Optional[str] = None


Listener = Callable[[ShiftEvent], None]


class EventBus:
    def __init__(self) -> None:
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Listener:
        self._listeners.append(listener)
        return listener

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def emit(self, event: ShiftEvent) -> None:
        logger.debug("event %s %s", event.message, ",".join(event.shift_ids))
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                # delivery failures never undo a committed change
                logger.exception("Notification listener %r failed for %s", listener, event.message)
