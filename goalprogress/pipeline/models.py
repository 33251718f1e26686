from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class CompletionEvent(BaseModel):
    """One subtopic transition into ``completed``. Rebuilt on every request."""

    model_config = ConfigDict(frozen=True)

    subtopic_id: Optional[str] = None
    topic_id: Optional[str] = None
    topic_name: str = ""
    category_id: Optional[str] = None
    category_name: str = ""
    goal_id: Optional[str] = None
    goal_name: str = ""
    timestamp: datetime
    day: date


class NormalizedGoal(BaseModel):
    model_config = ConfigDict(frozen=True)

    goal_id: Optional[str] = None
    goal_name: str = ""
    events: tuple[CompletionEvent, ...] = ()
    topic_names: tuple[str, ...] = ()
    category_origins: tuple[tuple[str, Optional[datetime]], ...] = ()
    total_subtopics: int = 0
    completed_subtopics: int = 0
    untimed_completions: int = 0
    skipped_records: int = 0
    malformed_nodes: int = 0
    counter_mismatch: bool = False


class GoalSpan(BaseModel):
    """Goal-level (created, updated, completed) triple for elapsed-time interpolation."""

    model_config = ConfigDict(frozen=True)

    goal_id: Optional[str] = None
    goal_name: str = ""
    created_at: datetime
    updated_at: datetime
    completed: int = 0
    total: int = 0
