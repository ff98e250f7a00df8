"""Inventory plan lifecycle rules.

    draft -> in_progress -> completed -> closed

No skips, no reversals. ``closed`` is terminal and read-only.
"""

from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple

from app.core.exceptions import InvalidStateError
from app.models.inventory import PlanStatus


class PlanAction(str, Enum):
    """Operations gated by plan status."""

    START = "start"
    COMPLETE = "complete"
    CLOSE = "close"
    DELETE = "delete"
    EDIT = "edit"
    SCAN = "scan"
    CORRECT_RECORD = "correct_record"


# ---------------------------------------------------------------------------
# Status transitions
# ---------------------------------------------------------------------------

TRANSITIONS: Dict[PlanAction, Tuple[PlanStatus, PlanStatus]] = {
    PlanAction.START: (PlanStatus.DRAFT, PlanStatus.IN_PROGRESS),
    PlanAction.COMPLETE: (PlanStatus.IN_PROGRESS, PlanStatus.COMPLETED),
    PlanAction.CLOSE: (PlanStatus.COMPLETED, PlanStatus.CLOSED),
}

EDITABLE_STATUSES = frozenset({PlanStatus.DRAFT, PlanStatus.IN_PROGRESS})

ALLOWED_FROM: Dict[PlanAction, FrozenSet[PlanStatus]] = {
    PlanAction.START: frozenset({PlanStatus.DRAFT}),
    PlanAction.COMPLETE: frozenset({PlanStatus.IN_PROGRESS}),
    PlanAction.CLOSE: frozenset({PlanStatus.COMPLETED}),
    PlanAction.DELETE: frozenset({PlanStatus.DRAFT}),
    PlanAction.EDIT: EDITABLE_STATUSES,
    PlanAction.SCAN: frozenset({PlanStatus.IN_PROGRESS}),
    PlanAction.CORRECT_RECORD: frozenset(
        {PlanStatus.IN_PROGRESS, PlanStatus.COMPLETED}
    ),
}

_REJECTION_MESSAGES = {
    PlanAction.START: "Only draft plans can be started",
    PlanAction.COMPLETE: "Only in_progress plans can be completed",
    PlanAction.CLOSE: "Only completed plans can be closed",
    PlanAction.DELETE: "Only draft plans can be deleted",
    PlanAction.EDIT: "Plans can only be edited while draft or in_progress",
    PlanAction.SCAN: "Scans are only accepted while the plan is in_progress",
    PlanAction.CORRECT_RECORD: "Scan records can only be corrected while the plan is in_progress or completed",
}


def ordered_values(statuses) -> list:
    order = list(PlanStatus)
    return [s.value for s in sorted(statuses, key=order.index)]


def can(action: PlanAction, status: PlanStatus) -> bool:
    return PlanStatus(status) in ALLOWED_FROM[action]


def ensure_can(action: PlanAction, status: PlanStatus) -> None:
    """Raise ``InvalidStateError`` unless ``action`` is legal in ``status``."""
    status = PlanStatus(status)
    if status not in ALLOWED_FROM[action]:
        raise InvalidStateError(
            f"{_REJECTION_MESSAGES[action]} (current status: {status.value})",
            current_status=status.value,
            required_status=ordered_values(ALLOWED_FROM[action]),
        )


def next_status(action: PlanAction, status: Optional[PlanStatus] = None) -> PlanStatus:
    """Target status of a transition, validating ``status`` when given."""
    if action not in TRANSITIONS:
        raise ValueError(f"{action.value} is not a status transition")
    if status is not None:
        ensure_can(action, status)
    return TRANSITIONS[action][1]
