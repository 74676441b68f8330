"""
Urgent fee escalation.

An urgent work order starts at its base urgent fee percentage. Once the start
delay has passed, every full interval adds a fixed increment until the
maximum is reached. The result depends only on the inputs, so the value can
be recomputed at display time or by the scheduled job without stored
counters.
"""
from datetime import datetime
from decimal import Decimal
from typing import Any

from .models import to_decimal


def _elapsed_seconds(created_at: datetime, now: datetime) -> int:
    elapsed = (now - created_at).total_seconds()
    return max(int(elapsed), 0)


def escalation_steps(
    created_at: datetime,
    now: datetime,
    interval_seconds: int,
    start_delay_seconds: int = 0
) -> int:
    """
    Number of full escalation intervals elapsed after the start delay.

    Args:
        created_at: When the work order was registered
        now: Evaluation time (earlier than created_at counts as zero elapsed)
        interval_seconds: Length of one escalation interval
        start_delay_seconds: Grace period before the first interval starts

    Returns:
        Non-negative step count (0 when escalation is disabled)
    """
    if interval_seconds <= 0:
        return 0
    elapsed = _elapsed_seconds(created_at, now)
    delay = max(start_delay_seconds, 0)
    if elapsed < delay:
        return 0
    return (elapsed - delay) // interval_seconds


def current_urgent_fee_percent(
    base_percent: Any,
    max_percent: Any,
    created_at: datetime,
    now: datetime,
    interval_seconds: int,
    increment_percent: Any,
    start_delay_seconds: int = 0
) -> Decimal:
    """
    Current urgent fee percentage for a work order.

    Args:
        base_percent: Urgent fee percentage at registration
        max_percent: Ceiling; a value below base_percent is treated as base_percent
        created_at: When the work order was registered
        now: Evaluation time
        interval_seconds: Seconds per escalation step (<= 0 disables escalation)
        increment_percent: Percentage points added per step (<= 0 disables escalation)
        start_delay_seconds: Seconds before escalation begins

    Returns:
        Percentage as Decimal, never below base_percent and never above the ceiling
    """
    base = to_decimal(base_percent)
    increment = to_decimal(increment_percent)
    ceiling = max(to_decimal(max_percent), base)

    if interval_seconds <= 0 or increment <= 0:
        return base

    steps = escalation_steps(created_at, now, interval_seconds, start_delay_seconds)
    return min(base + increment * steps, ceiling)
