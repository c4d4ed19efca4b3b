"""Pydantic models for recommendation endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class RecommendedTopic(BaseModel):
    topic_id: int
    topic_name: str
    reason: str
    priority: str
    estimated_minutes: int


class StudyPlanDay(BaseModel):
    day: str
    topic_ids: list[int]
    topic_names: list[str]
    duration_minutes: int
    focus: str


class WeakArea(BaseModel):
    topic_id: int
    topic_name: str
    current_accuracy: int
    target_accuracy: int
    suggested_practice_count: int


class PracticePatterns(BaseModel):
    average_session_minutes: int
    preferred_difficulty: str
    most_active_hour: int
    sessions_per_week: float


class RecommendationResponse(BaseModel):
    id: int
    recommended_topics: list[RecommendedTopic]
    study_plan: list[StudyPlanDay]
    weak_area_focus: list[WeakArea]
    practice_patterns: PracticePatterns
    confidence_score: int
    generated_at: datetime
    expires_at: datetime
    is_active: bool
