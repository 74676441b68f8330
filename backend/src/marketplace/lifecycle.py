"""
Work order status lifecycle.

registered -> assigned -> in_progress -> completed, and any non-terminal
status -> cancelled. completed and cancelled are terminal.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from .errors import InvalidStatusTransition
from .models import WorkOrderStatus
from .utils import format_timestamp, utc_now

ALLOWED_TRANSITIONS = {
    WorkOrderStatus.REGISTERED: {WorkOrderStatus.ASSIGNED, WorkOrderStatus.CANCELLED},
    WorkOrderStatus.ASSIGNED: {WorkOrderStatus.IN_PROGRESS, WorkOrderStatus.CANCELLED},
    WorkOrderStatus.IN_PROGRESS: {WorkOrderStatus.COMPLETED, WorkOrderStatus.CANCELLED},
    WorkOrderStatus.COMPLETED: set(),
    WorkOrderStatus.CANCELLED: set(),
}

TERMINAL_STATUSES = {WorkOrderStatus.COMPLETED, WorkOrderStatus.CANCELLED}


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def can_transition(old_status: Optional[str], new_status: str) -> bool:
    """Check whether a work order may move from old_status to new_status."""
    return new_status in ALLOWED_TRANSITIONS.get(old_status, set())


def validate_transition(old_status: Optional[str], new_status: str) -> None:
    if not can_transition(old_status, new_status):
        raise InvalidStatusTransition(old_status, new_status)


def status_history_entry(
    old_status: str,
    new_status: str,
    changed_by: Optional[str],
    reason: Optional[str] = None,
    changed_at: datetime = None
) -> Dict[str, Any]:
    """Entry appended to a work order's statusChangeHistory list."""
    return {
        'fromStatus': old_status,
        'toStatus': new_status,
        'changedBy': changed_by,
        'reason': reason,
        'changedAt': format_timestamp(changed_at or utc_now()),
    }
