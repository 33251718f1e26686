"""Fixed trailing windows (days or calendar months) anchored on an injected "today".

Every aggregator here returns exactly one point per window, oldest first,
whether or not anything happened inside it.
"""
from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping
from datetime import date, datetime, timedelta

from ..config import settings
from .dates import (
    ONE_MS,
    add_months,
    day_label,
    local_midnight,
    local_today,
    month_label,
    month_start,
    parse_day,
    resolve_zone,
    to_epoch_ms,
)
from .hierarchy import completion_ratio, field_value
from .interpolate import combined_interpolation
from .models import CompletionEvent, GoalSpan, NormalizedGoal


def day_windows(today: date, count: int) -> list[date]:
    return [today - timedelta(days=count - 1 - i) for i in range(max(count, 0))]


def month_windows(today: date, count: int) -> list[date]:
    base = month_start(today)
    return [add_months(base, -(count - 1 - i)) for i in range(max(count, 0))]


def _window_point(label: str, start: date, value: int, tz_name: str | None) -> dict:
    return {
        "window_label": label,
        "timestamp": to_epoch_ms(local_midnight(start, tz_name)),
        "value": value,
    }


def daily_event_trend(
    events: Iterable[CompletionEvent],
    today: date,
    days: int | None = None,
    tz_name: str | None = None,
    carry_in: bool | None = None,
) -> list[dict]:
    """Cumulative completions per day over the trailing ``days`` window.

    Without ``carry_in`` the count restarts at the first window day, so the
    chart shows progress made inside the window only.
    """
    days = settings.daily_window_days if days is None else days
    carry_in = settings.daily_carry_in if carry_in is None else carry_in
    windows = day_windows(today, days)
    if not windows:
        return []
    per_day = Counter(event.day for event in events)
    running = sum(n for day, n in per_day.items() if day < windows[0]) if carry_in else 0
    points = []
    for day in windows:
        running += per_day.get(day, 0)
        points.append(_window_point(day_label(day), day, running, tz_name))
    return points


def _series_name(goal: NormalizedGoal, idx: int, taken: Mapping[str, object]) -> str:
    name = goal.goal_name or goal.goal_id or f"#{idx}"
    if name in taken:
        name = f"{name} ({goal.goal_id or f'#{idx}'})"
    return name


def daily_event_trend_by_goal(
    normalized: Iterable[NormalizedGoal],
    today: date,
    days: int | None = None,
    tz_name: str | None = None,
    carry_in: bool | None = None,
) -> dict[str, list[dict]]:
    out: dict[str, list[dict]] = {}
    for idx, goal in enumerate(normalized):
        name = _series_name(goal, idx, out)
        out[name] = daily_event_trend(goal.events, today, days=days, tz_name=tz_name, carry_in=carry_in)
    return out


def monthly_event_trend(
    events: Iterable[CompletionEvent],
    today: date,
    months: int | None = None,
    tz_name: str | None = None,
    carry_in: bool = True,
) -> list[dict]:
    """Cumulative completions through the end of each trailing calendar month."""
    months = settings.monthly_window_months if months is None else months
    windows = month_windows(today, months)
    if not windows:
        return []
    per_month = Counter(month_start(event.day) for event in events)
    running = sum(n for month, n in per_month.items() if month < windows[0]) if carry_in else 0
    points = []
    for month in windows:
        running += per_month.get(month, 0)
        points.append(_window_point(month_label(month), month, running, tz_name))
    return points


def monthly_interpolated_trend(
    spans: Iterable[GoalSpan],
    now: datetime,
    months: int | None = None,
    tz_name: str | None = None,
) -> list[dict]:
    """Combined interpolated completed count at the close of each month.

    The current month is evaluated at ``now`` rather than at its end.
    """
    months = settings.monthly_window_months if months is None else months
    spans = list(spans)
    if now.tzinfo is None:
        now = now.replace(tzinfo=resolve_zone(tz_name))
    windows = month_windows(local_today(now, tz_name), months)
    points = []
    for month in windows:
        closes = local_midnight(add_months(month, 1), tz_name) - ONE_MS
        at = min(closes, now)
        points.append(_window_point(month_label(month), month, combined_interpolation(spans, at), tz_name))
    return points


def _goal_key(goal: Mapping, idx: int) -> str:
    val = goal.get("id")
    return f"#{idx}" if val is None else str(val)


def monthly_activity(
    goals,
    today: date,
    months: int | None = None,
    intensity_factor: float | None = None,
    tz_name: str | None = None,
) -> list[dict]:
    """Heat-map cells: goals created or last updated in each trailing month.

    A goal lands in its creation month and, when different, its update month.
    Intensity is ``min(goals * mean completion ratio * factor, 1)`` and the
    most active goal is the one with the highest completion ratio (earliest
    wins ties).
    """
    months = settings.heatmap_window_months if months is None else months
    factor = settings.heatmap_intensity_factor if intensity_factor is None else intensity_factor
    windows = month_windows(today, months)
    buckets: dict[str, list[tuple[str, float]]] = {month_label(m): [] for m in windows}

    for idx, goal in enumerate(goals if isinstance(goals, (list, tuple)) else []):
        if not isinstance(goal, Mapping):
            continue
        key = _goal_key(goal, idx)
        ratio = completion_ratio(goal)
        labels = []
        for keys in (("createdAt", "created_at"), ("updatedAt", "updated_at")):
            day = parse_day(field_value(goal, *keys), tz_name)
            if day is not None and month_label(day) not in labels:
                labels.append(month_label(day))
        for label in labels:
            bucket = buckets.get(label)
            if bucket is not None and all(existing != key for existing, _ in bucket):
                bucket.append((key, ratio))

    points = []
    for month in windows:
        bucket = buckets[month_label(month)]
        point = _window_point(month_label(month), month, len(bucket), tz_name)
        intensity = 0.0
        most_active = None
        if bucket:
            mean_ratio = sum(ratio for _, ratio in bucket) / len(bucket)
            intensity = round(min(len(bucket) * mean_ratio * factor, 1.0), 4)
            best_key, best_ratio = bucket[0]
            for key, ratio in bucket[1:]:
                if ratio > best_ratio:
                    best_key, best_ratio = key, ratio
            most_active = best_key
        point.update(
            {
                "goal_ids": [key for key, _ in bucket],
                "intensity": intensity,
                "most_active_goal_id": most_active,
            }
        )
        points.append(point)
    return points
