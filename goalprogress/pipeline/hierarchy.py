"""Flatten a goal snapshot into typed completion events.

All of the defensiveness against partial snapshots lives here: missing,
null or non-list ``categories`` / ``topics`` / ``subtopics`` and non-mapping
elements inside them are read as empty and counted, never raised. Later
stages only ever see ``NormalizedGoal`` / ``GoalSpan``.
"""
from __future__ import annotations

from collections.abc import Mapping

import structlog

from ..utils import coerce_int
from .dates import parse_day, parse_instant
from .models import CompletionEvent, GoalSpan, NormalizedGoal

log = structlog.get_logger()

COMPLETED = "completed"


def field_value(obj: Mapping, *keys):
    for key in keys:
        val = obj.get(key)
        if val is not None:
            return val
    return None


def _id(val) -> str | None:
    return None if val is None else str(val)


def _name(obj: Mapping) -> str:
    val = obj.get("name")
    return "" if val is None else str(val)


def _children(obj: Mapping, key: str) -> tuple[list[Mapping], int]:
    """Mapping children under ``key`` and the number of malformed nodes seen."""
    val = obj.get(key)
    if not isinstance(val, (list, tuple)):
        return [], 1
    items = [item for item in val if isinstance(item, Mapping)]
    return items, len(val) - len(items)


def _is_completed(subtopic: Mapping) -> bool:
    return str(subtopic.get("status") or "").strip().lower() == COMPLETED


def _blank(val) -> bool:
    return val is None or (isinstance(val, str) and not val.strip())


def normalize_goal(goal, tz_name: str | None = None) -> NormalizedGoal:
    if not isinstance(goal, Mapping):
        return NormalizedGoal(malformed_nodes=1)

    goal_id = _id(goal.get("id"))
    goal_name = _name(goal)
    events: list[CompletionEvent] = []
    topic_names: list[str] = []
    category_origins: dict[str, object] = {}
    total = completed = untimed = skipped = 0

    categories, malformed = _children(goal, "categories")
    for category in categories:
        category_name = _name(category)
        if category_name not in category_origins:
            category_origins[category_name] = parse_instant(
                field_value(category, "createdAt", "created_at"), tz_name
            )
        topics, bad = _children(category, "topics")
        malformed += bad
        for topic in topics:
            topic_name = _name(topic)
            if topic_name not in topic_names:
                topic_names.append(topic_name)
            subtopics, bad = _children(topic, "subtopics")
            malformed += bad
            for subtopic in subtopics:
                total += 1
                if not _is_completed(subtopic):
                    continue
                completed += 1
                raw = field_value(subtopic, "completedAt", "completed_at")
                if _blank(raw):
                    untimed += 1
                    continue
                instant = parse_instant(raw, tz_name)
                day = parse_day(raw, tz_name)
                if instant is None or day is None:
                    skipped += 1
                    log.debug(
                        "completion_timestamp_invalid",
                        goal_id=goal_id,
                        subtopic_id=_id(subtopic.get("id")),
                        value=str(raw)[:64],
                    )
                    continue
                events.append(
                    CompletionEvent(
                        subtopic_id=_id(subtopic.get("id")),
                        topic_id=_id(topic.get("id")),
                        topic_name=topic_name,
                        category_id=_id(category.get("id")),
                        category_name=category_name,
                        goal_id=goal_id,
                        goal_name=goal_name,
                        timestamp=instant,
                        day=day,
                    )
                )

    mismatch = False
    counter = coerce_int(field_value(goal, "completedTopics", "completed_topics"))
    if isinstance(goal.get("categories"), (list, tuple)) and counter is not None and counter != completed:
        mismatch = True
        log.warning("goal_counter_mismatch", goal_id=goal_id, counter=counter, traversed=completed)

    return NormalizedGoal(
        goal_id=goal_id,
        goal_name=goal_name,
        events=tuple(events),
        topic_names=tuple(topic_names),
        category_origins=tuple(category_origins.items()),
        total_subtopics=total,
        completed_subtopics=completed,
        untimed_completions=untimed,
        skipped_records=skipped,
        malformed_nodes=malformed,
        counter_mismatch=mismatch,
    )


def normalize_goals(goals, tz_name: str | None = None) -> list[NormalizedGoal]:
    if not isinstance(goals, (list, tuple)):
        return []
    return [normalize_goal(goal, tz_name) for goal in goals]


def collect_events(normalized: list[NormalizedGoal]) -> list[CompletionEvent]:
    out: list[CompletionEvent] = []
    for goal in normalized:
        out.extend(goal.events)
    return out


def goal_counts(goal, normalized: NormalizedGoal | None = None, tz_name: str | None = None) -> tuple[int, int]:
    """(completed, total) subtopics: by traversal when the hierarchy is present, else the counters."""
    if not isinstance(goal, Mapping):
        return 0, 0
    if isinstance(goal.get("categories"), (list, tuple)):
        if normalized is None:
            normalized = normalize_goal(goal, tz_name)
        return normalized.completed_subtopics, normalized.total_subtopics
    return counter_counts(goal)


def counter_counts(goal) -> tuple[int, int]:
    """(completed, total) from the denormalized ``completedTopics`` / ``totalTopics`` counters."""
    if not isinstance(goal, Mapping):
        return 0, 0
    completed = max(coerce_int(field_value(goal, "completedTopics", "completed_topics")) or 0, 0)
    total = coerce_int(field_value(goal, "totalTopics", "total_topics"))
    if total is None or total < 0:
        return completed, completed
    return min(completed, total), total


def completion_ratio(goal) -> float:
    # Counters only: the heat-map rates goals the way the goal list shows them.
    if not isinstance(goal, Mapping):
        return 0.0
    total = coerce_int(field_value(goal, "totalTopics", "total_topics"))
    if total is None or total <= 0:
        return 0.0
    completed, _ = counter_counts(goal)
    return completed / total


def goal_span(goal, normalized: NormalizedGoal | None = None, tz_name: str | None = None) -> GoalSpan | None:
    """(created, updated, completed) for ``goal``; None when a timestamp is unusable.

    The completed count comes from traversal when the snapshot carries the
    hierarchy, otherwise from the denormalized ``completedTopics`` counter.
    """
    if not isinstance(goal, Mapping):
        return None
    created = parse_instant(field_value(goal, "createdAt", "created_at"), tz_name)
    updated = parse_instant(field_value(goal, "updatedAt", "updated_at"), tz_name)
    if created is None or updated is None:
        return None
    completed, total = goal_counts(goal, normalized, tz_name)
    return GoalSpan(
        goal_id=_id(goal.get("id")),
        goal_name=_name(goal),
        created_at=created,
        updated_at=updated,
        completed=completed,
        total=total,
    )


def goal_spans(
    goals, tz_name: str | None = None, normalized: list[NormalizedGoal] | None = None
) -> tuple[list[GoalSpan], int]:
    """Spans for every usable goal plus the number of goals skipped."""
    if not isinstance(goals, (list, tuple)):
        return [], 0
    spans: list[GoalSpan] = []
    skipped = 0
    for idx, goal in enumerate(goals):
        known = normalized[idx] if normalized is not None and idx < len(normalized) else None
        span = goal_span(goal, known, tz_name)
        if span is None:
            skipped += 1
            log.debug("goal_span_invalid", goal_id=_id(goal.get("id")) if isinstance(goal, Mapping) else None)
            continue
        spans.append(span)
    return spans, skipped
