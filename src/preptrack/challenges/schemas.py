"""Pydantic models for daily challenge endpoints."""

from __future__ import annotations

from datetime import date as date_type
from datetime import datetime

from pydantic import BaseModel


class ChallengeTask(BaseModel):
    topic_id: int
    topic_name: str | None = None
    difficulty: str
    target_questions: int
    questions_completed: int
    completed: bool


class DailyChallengeResponse(BaseModel):
    id: int
    date: date_type
    challenges: list[ChallengeTask]
    overall_completed: bool
    completed_at: datetime | None = None
    reward_points: int
