from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from datetime import datetime, timedelta

import pandas as pd

from ..config import settings
from .dates import to_epoch_ms
from .models import CompletionEvent


def _lead(lead: timedelta | None) -> timedelta:
    return lead if lead is not None else timedelta(days=settings.series_lead_days)


def _point(at: datetime, value: int) -> dict:
    return {"timestamp": to_epoch_ms(at), "value": value}


def _topic_key(event: CompletionEvent) -> str:
    return event.topic_name


def sort_events(events: Iterable[CompletionEvent]) -> list[CompletionEvent]:
    # sorted() is stable: identical instants keep traversal order.
    return sorted(events, key=lambda e: e.timestamp)


def build_cumulative_series(
    events: Iterable[CompletionEvent],
    origin: datetime | None = None,
    lead: timedelta | None = None,
    extend_to: datetime | None = None,
) -> list[dict]:
    """Whole-goal step series: a zero point, then one point per completion."""
    ordered = sort_events(events)
    if not ordered:
        return []
    first = ordered[0].timestamp
    start = origin if origin is not None and origin < first else first - _lead(lead)
    points = [_point(start, 0)]
    for idx, event in enumerate(ordered, start=1):
        points.append(_point(event.timestamp, idx))
    if extend_to is not None and extend_to > ordered[-1].timestamp:
        points.append(_point(extend_to, len(ordered)))
    return points


def build_multi_series(
    events: Iterable[CompletionEvent],
    keys: Iterable[str] | None = None,
    key: Callable[[CompletionEvent], str] | None = None,
    lead: timedelta | None = None,
    origins: Mapping[str, datetime | None] | None = None,
    extend_to: datetime | None = None,
) -> dict[str, list[dict]]:
    """One cumulative series per entity (topic name by default).

    Each event bumps only its own entity's counter. Every entity with at
    least one event is seeded with a zero point at the shared synthetic
    start (first event overall minus ``lead``), or at its own origin when
    ``origins`` has one that is not after its first event. Entities without
    events are left out entirely.
    """
    key = key or _topic_key
    events = list(events)
    ordered = sort_events(events)
    if not ordered:
        return {}

    order: list[str] = []
    for name in keys or ():
        if name not in order:
            order.append(name)
    for event in events:
        name = key(event)
        if name not in order:
            order.append(name)

    first_seen: dict[str, datetime] = {}
    for event in ordered:
        first_seen.setdefault(key(event), event.timestamp)

    shared_start = ordered[0].timestamp - _lead(lead)
    series: dict[str, list[dict]] = {}
    counts: dict[str, int] = {}
    for name in order:
        if name not in first_seen:
            continue
        origin = (origins or {}).get(name)
        start = origin if origin is not None and origin <= first_seen[name] else shared_start
        series[name] = [_point(start, 0)]
        counts[name] = 0

    for event in ordered:
        name = key(event)
        counts[name] += 1
        series[name].append(_point(event.timestamp, counts[name]))

    if extend_to is not None:
        tail = to_epoch_ms(extend_to)
        for points in series.values():
            if points[-1]["timestamp"] < tail:
                points.append({"timestamp": tail, "value": points[-1]["value"]})
    return series


def drop_flat_series(series: Mapping[str, list[dict]], min_points: int = 2) -> dict[str, list[dict]]:
    return {name: points for name, points in series.items() if len(points) >= min_points}


def flatten_multi_series(series: Mapping[str, list[dict]]) -> list[dict]:
    rows = [
        {"timestamp": p["timestamp"], "series_name": name, "value": p["value"]}
        for name, points in series.items()
        for p in points
    ]
    return sorted(rows, key=lambda r: r["timestamp"])


def multi_series_frame(series: Mapping[str, list[dict]]) -> pd.DataFrame:
    """Wide layout: one row per timestamp, one column per entity, forward-filled."""
    columns = list(series.keys())
    rows = flatten_multi_series(series)
    if not rows:
        frame = pd.DataFrame(columns=columns, dtype="int64")
        frame.index.name = "timestamp"
        return frame
    df = pd.DataFrame(rows)
    wide = df.groupby(["timestamp", "series_name"], sort=True)["value"].last().unstack("series_name")
    wide = wide.reindex(columns=columns).sort_index().ffill().fillna(0).astype("int64")
    wide.columns.name = None
    wide.index.name = "timestamp"
    return wide


def frame_records(frame: pd.DataFrame) -> list[dict]:
    """Plain JSON rows ``{"timestamp": ms, "series": {entity: count}}``.

    Entity names are user text, so they stay inside ``series`` and can never
    shadow the row's own ``timestamp``.
    """
    columns = [str(col) for col in frame.columns]
    out = []
    for ts, values in zip(frame.index.tolist(), frame.to_numpy().tolist()):
        out.append({"timestamp": int(ts), "series": {col: int(val) for col, val in zip(columns, values)}})
    return out
