from datetime import date, datetime
from pydantic import BaseModel, Field
from typing import Any, Optional

# Goal snapshots stay untyped here so malformed hierarchies reach the normalizer.

class GoalProgressRequest(BaseModel):
    goal: Any = None
    now: Optional[datetime] = None
    tz: Optional[str] = None
    extend: bool = False

class TrendRequest(BaseModel):
    goals: Any = Field(default_factory=list)
    now: Optional[datetime] = None
    today: Optional[date] = None
    tz: Optional[str] = None
    days: Optional[int] = Field(default=None, ge=0, le=366)
    months: Optional[int] = Field(default=None, ge=0, le=120)
    carry_in: Optional[bool] = None

class SeriesPoint(BaseModel):
    timestamp: int
    value: int

class WindowPoint(BaseModel):
    window_label: str
    timestamp: int
    value: int

class ActivityCell(WindowPoint):
    goal_ids: list[str]
    intensity: float
    most_active_goal_id: Optional[str] = None

class Diagnostics(BaseModel):
    goals: int
    skipped_records: int
    malformed_nodes: int
    untimed_completions: int
    counter_mismatches: int

class TopicSeriesResponse(BaseModel):
    goal_id: Optional[str] = None
    series: dict[str, list[SeriesPoint]]
    rows: list[dict[str, Any]]
    wide: list[dict[str, Any]]
    diagnostics: Diagnostics

class TrendResponse(BaseModel):
    as_of: date
    points: list[WindowPoint]
    diagnostics: Diagnostics

class ActivityResponse(BaseModel):
    as_of: date
    cells: list[ActivityCell]
