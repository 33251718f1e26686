from datetime import datetime, timedelta
from fastapi import APIRouter, HTTPException
from .schemas import (
    ActivityResponse,
    GoalProgressRequest,
    TopicSeriesResponse,
    TrendRequest,
    TrendResponse,
)
from ..config import settings
from ..utils import now_utc
from ..pipeline.dates import ONE_MS, local_midnight, local_today, resolve_zone
from ..pipeline.hierarchy import collect_events, goal_spans, normalize_goals
from ..pipeline.orchestrator import _diagnostics, build_dashboard, build_goal_progress
from ..pipeline.windows import daily_event_trend, monthly_activity, monthly_interpolated_trend

router = APIRouter()

def _zone_or_400(tz_name: str | None) -> str | None:
    try:
        resolve_zone(tz_name)
    except ValueError as e:
        raise HTTPException(400, str(e))
    return tz_name

def _clock(req: TrendRequest, tz_name: str | None):
    """(now, today) for a request; an explicit ``today`` anchors every view.

    When ``today`` is given and ``now`` does not fall on it locally, ``now``
    becomes the last millisecond of ``today``.
    """
    now: datetime = req.now or now_utc()
    if now.tzinfo is None:
        now = now.replace(tzinfo=resolve_zone(tz_name))
    if req.today is None:
        return now, local_today(now, tz_name)
    if req.now is None or local_today(now, tz_name) != req.today:
        now = local_midnight(req.today + timedelta(days=1), tz_name) - ONE_MS
    return now, req.today

@router.get(
    '/health',
    summary="Health check",
    description="Returns service status and the configured local timezone.",
    tags=["Health"],
)
def health():
    return {'ok': True, 'local_tz': settings.local_tz}

@router.post(
    '/goals/progress',
    summary="Goal progress views",
    description=(
        "Cumulative whole-goal series, per-topic and per-category stepped series "
        "for a single goal snapshot."
    ),
    tags=["Series"],
)
def goal_progress(req: GoalProgressRequest):
    tz_name = _zone_or_400(req.tz)
    return build_goal_progress(req.goal, now=req.now, tz_name=tz_name, extend=req.extend)

@router.post(
    '/goals/topic-series',
    response_model=TopicSeriesResponse,
    summary="Per-topic cumulative series",
    description="Per-topic series keyed by topic name, as flat rows and as a wide table.",
    tags=["Series"],
)
def topic_series(req: GoalProgressRequest):
    tz_name = _zone_or_400(req.tz)
    built = build_goal_progress(req.goal, now=req.now, tz_name=tz_name, extend=req.extend)
    return TopicSeriesResponse(goal_id=built["goal_id"], diagnostics=built["diagnostics"], **built["topics"])

@router.post(
    '/trends/daily',
    response_model=TrendResponse,
    summary="Trailing daily trend",
    description="Cumulative subtopic completions for each of the trailing days ending today.",
    tags=["Trends"],
)
def trend_daily(req: TrendRequest):
    tz_name = _zone_or_400(req.tz)
    _, today = _clock(req, tz_name)
    normalized = normalize_goals(req.goals, tz_name)
    points = daily_event_trend(
        collect_events(normalized), today, days=req.days, tz_name=tz_name, carry_in=req.carry_in
    )
    return TrendResponse(as_of=today, points=points, diagnostics=_diagnostics(normalized))

@router.post(
    '/trends/monthly',
    response_model=TrendResponse,
    summary="Trailing monthly trend",
    description="Elapsed-time interpolated completed count at the close of each trailing month.",
    tags=["Trends"],
)
def trend_monthly(req: TrendRequest):
    tz_name = _zone_or_400(req.tz)
    now, today = _clock(req, tz_name)
    normalized = normalize_goals(req.goals, tz_name)
    spans, skipped = goal_spans(req.goals, tz_name, normalized=normalized)
    points = monthly_interpolated_trend(spans, now, months=req.months, tz_name=tz_name)
    return TrendResponse(as_of=today, points=points, diagnostics=_diagnostics(normalized, skipped))

@router.post(
    '/heatmap/monthly',
    response_model=ActivityResponse,
    summary="Monthly activity heat-map",
    description="Goals created or updated in each trailing month with an intensity in [0, 1].",
    tags=["Trends"],
)
def heatmap_monthly(req: TrendRequest):
    tz_name = _zone_or_400(req.tz)
    _, today = _clock(req, tz_name)
    cells = monthly_activity(req.goals, today, months=req.months, tz_name=tz_name)
    return ActivityResponse(as_of=today, cells=cells)

@router.post(
    '/dashboard',
    summary="All dashboard views",
    description="Daily, monthly and heat-map views plus diagnostics for a list of goal snapshots.",
    tags=["Trends"],
)
def dashboard(req: TrendRequest):
    tz_name = _zone_or_400(req.tz)
    now, _ = _clock(req, tz_name)
    return build_dashboard(
        req.goals,
        now=now,
        tz_name=tz_name,
        days=req.days,
        months=req.months,
        carry_in=req.carry_in,
    )
