from __future__ import annotations

import math
from datetime import datetime

import structlog

from ..config import settings
from ..utils import now_utc, sha256_json
from .cumulative import (
    build_cumulative_series,
    build_multi_series,
    drop_flat_series,
    flatten_multi_series,
    frame_records,
    multi_series_frame,
)
from .dates import local_today, resolve_zone
from .hierarchy import collect_events, goal_spans, normalize_goal, normalize_goals
from .models import NormalizedGoal
from .validation import validate_cumulative_series, validate_window_series
from .windows import (
    daily_event_trend,
    daily_event_trend_by_goal,
    monthly_activity,
    monthly_event_trend,
    monthly_interpolated_trend,
)

log = structlog.get_logger()


def _now(now: datetime | None, tz_name: str | None) -> datetime:
    if now is None:
        return now_utc()
    return now if now.tzinfo is not None else now.replace(tzinfo=resolve_zone(tz_name))


def _completion_pct(completed: int, total: int) -> int:
    return int(math.floor(completed / total * 100 + 0.5)) if total else 0


def _diagnostics(normalized: list[NormalizedGoal], skipped_spans: int = 0) -> dict:
    return {
        "goals": len(normalized),
        "skipped_records": sum(g.skipped_records for g in normalized) + skipped_spans,
        "malformed_nodes": sum(g.malformed_nodes for g in normalized),
        "untimed_completions": sum(g.untimed_completions for g in normalized),
        "counter_mismatches": sum(1 for g in normalized if g.counter_mismatch),
    }


def _check_series(name: str, points: list):
    ok, reasons = validate_cumulative_series(points)
    if not ok:
        log.error("series_validation_failed", series=name, reasons=reasons)


def _check_windows(name: str, points: list, expected: int, monotonic: bool = True):
    ok, reasons = validate_window_series(points, expected, monotonic=monotonic)
    if not ok:
        log.error("series_validation_failed", series=name, reasons=reasons)


def build_goal_progress(goal, now: datetime | None = None, tz_name: str | None = None, extend: bool = False) -> dict:
    """Cumulative views for a single goal: whole goal, per topic, per category.

    ``extend`` adds a trailing point at ``now`` holding each final count.
    Topic and category curves with fewer than two points are dropped here,
    since they carry nothing to draw.
    """
    normalized = normalize_goal(goal, tz_name)
    events = list(normalized.events)
    extend_to = _now(now, tz_name) if extend else None

    progress = build_cumulative_series(events, extend_to=extend_to)
    _check_series("goal_progress", progress)

    topics = drop_flat_series(build_multi_series(events, keys=normalized.topic_names, extend_to=extend_to))
    for name, points in topics.items():
        _check_series(f"topic:{name}", points)

    origins = dict(normalized.category_origins)
    categories = drop_flat_series(
        build_multi_series(
            events,
            keys=list(origins.keys()),
            key=lambda e: e.category_name,
            origins=origins,
            extend_to=extend_to,
        )
    )

    log.debug(
        "goal_progress_built",
        goal_id=normalized.goal_id,
        events=len(events),
        topics=len(topics),
        skipped_records=normalized.skipped_records,
    )
    return {
        "goal_id": normalized.goal_id,
        "goal_name": normalized.goal_name,
        "totals": {
            "total_subtopics": normalized.total_subtopics,
            "completed_subtopics": normalized.completed_subtopics,
            "completion_pct": _completion_pct(normalized.completed_subtopics, normalized.total_subtopics),
        },
        "progress": progress,
        "topics": {
            "series": topics,
            "rows": flatten_multi_series(topics),
            "wide": frame_records(multi_series_frame(topics)),
        },
        "categories": categories,
        "diagnostics": _diagnostics([normalized]),
    }


def build_dashboard(
    goals,
    now: datetime | None = None,
    tz_name: str | None = None,
    days: int | None = None,
    months: int | None = None,
    heatmap_months: int | None = None,
    carry_in: bool | None = None,
) -> dict:
    """Every trailing-window view across a user's goals, anchored on ``now``."""
    days = settings.daily_window_days if days is None else days
    months = settings.monthly_window_months if months is None else months
    heatmap_months = settings.heatmap_window_months if heatmap_months is None else heatmap_months
    now = _now(now, tz_name)
    today = local_today(now, tz_name)
    normalized = normalize_goals(goals, tz_name)
    events = collect_events(normalized)
    spans, skipped_spans = goal_spans(goals, tz_name, normalized=normalized)

    daily = daily_event_trend(events, today, days=days, tz_name=tz_name, carry_in=carry_in)
    by_goal = daily_event_trend_by_goal(normalized, today, days=days, tz_name=tz_name, carry_in=carry_in)
    interpolated = monthly_interpolated_trend(spans, now, months=months, tz_name=tz_name)
    monthly_events = monthly_event_trend(events, today, months=months, tz_name=tz_name)
    heatmap = monthly_activity(goals, today, months=heatmap_months, tz_name=tz_name)

    _check_windows("daily", daily, days)
    _check_windows("monthly_interpolated", interpolated, months)
    _check_windows("monthly_events", monthly_events, months)
    _check_windows("heatmap", heatmap, heatmap_months, monotonic=False)

    total = sum(g.total_subtopics for g in normalized)
    completed = sum(g.completed_subtopics for g in normalized)
    diagnostics = _diagnostics(normalized, skipped_spans)
    result = {
        "as_of": today.isoformat(),
        "totals": {
            "goals": len(normalized),
            "total_subtopics": total,
            "completed_subtopics": completed,
            "completion_pct": _completion_pct(completed, total),
        },
        "daily": {"combined": daily, "by_goal": by_goal},
        "monthly": {"interpolated": interpolated, "events": monthly_events},
        "heatmap": heatmap,
        "diagnostics": diagnostics,
    }
    result["digest"] = sha256_json(result)
    log.info(
        "dashboard_built",
        as_of=result["as_of"],
        goals=len(normalized),
        events=len(events),
        skipped_records=diagnostics["skipped_records"],
        malformed_nodes=diagnostics["malformed_nodes"],
    )
    return result
