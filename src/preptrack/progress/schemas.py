"""Pydantic models for progress endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class DifficultyBucket(BaseModel):
    attempted: int = 0
    solved: int = 0


class TopicProgressResponse(BaseModel):
    topic_id: int
    topic_name: str
    category: str
    difficulty: str
    strength_score: int
    accuracy_percentage: int
    completion_percentage: int
    consistency_score: int
    total_questions_attempted: int
    questions_solved: int
    recommended_questions: int
    total_time_minutes: int
    avg_time_per_question: int
    difficulty_breakdown: dict[str, DifficultyBucket]
    last_practiced_at: datetime | None = None
    updated_at: datetime | None = None


class ProgressOverviewResponse(BaseModel):
    total_topics: int
    topics_started: int
    topics_not_started: int
    average_strength_score: int
    total_questions_attempted: int
    total_questions_solved: int
    overall_accuracy_percentage: int
    total_time_minutes: int
    topic_progress: list[TopicProgressResponse]


class StrengthsWeaknessesResponse(BaseModel):
    strengths: list[TopicProgressResponse]
    weaknesses: list[TopicProgressResponse]


class RecalculateRequest(BaseModel):
    """Topics to recalculate; omit or leave empty for every started topic."""

    topic_ids: list[int] | None = Field(None, max_length=100)


class RecalculateResponse(BaseModel):
    message: str
    topics_recalculated: int
    updated_at: datetime
