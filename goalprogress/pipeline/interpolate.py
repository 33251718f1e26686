"""Elapsed-time interpolation of a goal's completed count.

Assumes uniform completion velocity between a goal's creation and its last
update. Used for month-level trends where per-subtopic timestamps are not
needed.
"""
from __future__ import annotations

import math
from collections.abc import Iterable
from datetime import datetime

from .models import GoalSpan


def _round_half_up(val: float) -> int:
    return int(math.floor(val + 0.5))


def interpolate_count(created_at: datetime, updated_at: datetime, completed: int, at: datetime) -> int:
    completed = max(int(completed), 0)
    if at < created_at:
        return 0
    # Zero-duration (and inverted) spans are fully credited once started.
    if updated_at <= at:
        return completed
    elapsed = (at - created_at).total_seconds()
    duration = (updated_at - created_at).total_seconds()
    value = _round_half_up(completed * elapsed / duration)
    return min(max(value, 0), completed)


def interpolate_span(span: GoalSpan, at: datetime) -> int:
    return interpolate_count(span.created_at, span.updated_at, span.completed, at)


def combined_interpolation(spans: Iterable[GoalSpan], at: datetime) -> int:
    return sum(interpolate_span(span, at) for span in spans)
