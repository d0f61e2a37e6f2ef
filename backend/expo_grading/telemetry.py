"""In-process telemetry for grading activity.

Every event is written as one ``TELEMETRY {json}`` log line on the
``expo_grading.telemetry`` logger and handed to registered listeners. The
``record_*`` helpers below define the event vocabulary of the grading
backend; call sites use them instead of spelling event names by hand.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from threading import RLock
from typing import Any, Callable, Dict, Iterable, List

from .models import GradingStatus

logger = logging.getLogger("expo_grading.telemetry")

GRADE_SUBMITTED = "grade_submitted"
GROUP_STATUS_CHANGED = "group_status_changed"
SYSTEM_RESTORED = "system_restored"
USER_DELETED = "user_deleted"


@dataclass(frozen=True)
class TelemetryEvent:
    name: str
    payload: Dict[str, Any]


_listeners: List[Callable[[TelemetryEvent], None]] = []
_lock = RLock()


def register_listener(listener: Callable[[TelemetryEvent], None]) -> None:
    """Register an in-process listener (used in tests)."""
    with _lock:
        _listeners.append(listener)


def clear_listeners() -> None:
    with _lock:
        _listeners.clear()


def emit_event(name: str, **fields: Any) -> None:
    """Emit a structured telemetry event and fan it out to listeners.

    A failing listener is logged and skipped; it never breaks the caller.
    """
    payload = _sanitize(fields)
    event = TelemetryEvent(name=name, payload=payload)

    with _lock:
        listeners = list(_listeners)

    for listener in listeners:
        try:
            listener(event)
        except Exception:  # noqa: BLE001
            logger.exception("Telemetry listener failed for %s", name)

    structured = {"event": name, **payload}
    logger.info("TELEMETRY %s", json.dumps(structured, default=str))


def record_grade_submitted(group_id: str, panelist_id: str, *, replaced: bool, status: GradingStatus) -> None:
    emit_event(GRADE_SUBMITTED, group_id=group_id, panelist_id=panelist_id, replaced=replaced, status=status)


def record_status_change(group_id: str, previous: GradingStatus, status: GradingStatus, *, cause: str) -> bool:
    """Emit ``group_status_changed`` when the status actually moved.

    ``cause`` names the operation that moved it (``grade_submission``,
    ``panel_reassignment``, ``user_deleted``). Returns whether an event was sent.
    """
    if previous == status:
        return False
    emit_event(GROUP_STATUS_CHANGED, group_id=group_id, previous=previous, status=status, cause=cause)
    return True


def record_restore(users: int, groups: int) -> None:
    emit_event(SYSTEM_RESTORED, users=users, groups=groups)


def record_user_deleted(user_id: str, unassigned_group_ids: Iterable[str]) -> None:
    emit_event(USER_DELETED, user_id=user_id, unassigned_groups=sorted(unassigned_group_ids))


def _sanitize(fields: Dict[str, Any]) -> Dict[str, Any]:
    sanitized: Dict[str, Any] = {}
    for key, value in fields.items():
        if isinstance(value, datetime):
            sanitized[key] = value.isoformat()
        elif isinstance(value, Enum):
            sanitized[key] = value.value
        else:
            sanitized[key] = value
    return sanitized


__all__ = [
    "GRADE_SUBMITTED",
    "GROUP_STATUS_CHANGED",
    "SYSTEM_RESTORED",
    "TelemetryEvent",
    "USER_DELETED",
    "clear_listeners",
    "emit_event",
    "record_grade_submitted",
    "record_restore",
    "record_status_change",
    "record_user_deleted",
    "register_listener",
]
