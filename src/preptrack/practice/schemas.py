"""Request/response schemas for topic and practice endpoints."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator

Difficulty = Literal["Easy", "Medium", "Hard"]


# ---------------------------------------------------------------------------
# Topics
# ---------------------------------------------------------------------------


class TopicResponse(BaseModel):
    id: int
    name: str
    category: str
    difficulty: str
    recommended_questions: int
    description: str
    created_at: datetime | None = None

    model_config = {"from_attributes": True}


class TopicsByCategoryResponse(BaseModel):
    categories: dict[str, list[TopicResponse]]
    total: int


# ---------------------------------------------------------------------------
# Practice logs
# ---------------------------------------------------------------------------


class LogPracticeRequest(BaseModel):
    """Record one practice attempt."""

    topic_id: int = Field(..., ge=1)
    question_title: str = Field(..., min_length=1, max_length=200)
    question_url: str | None = Field(None, max_length=2048)
    difficulty: Difficulty
    time_spent_minutes: int = Field(..., ge=1, le=300)
    solved: bool
    notes: str | None = Field(None, max_length=500)
    practiced_at: datetime | None = None

    @field_validator("question_title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            msg = "Question title cannot be empty"
            raise ValueError(msg)
        return v

    @field_validator("question_url")
    @classmethod
    def validate_url(cls, v: str | None) -> str | None:
        """Empty strings mean no URL; anything else must be an http(s) URL."""
        if v is None or not v.strip():
            return None
        parsed = urlparse(v.strip())
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            msg = "Invalid URL format"
            raise ValueError(msg)
        return v.strip()

    @field_validator("practiced_at")
    @classmethod
    def to_utc(cls, v: datetime | None) -> datetime | None:
        """Naive values are taken as UTC; offset values are converted to UTC."""
        if v is None:
            return None
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)


class PracticeLogResponse(BaseModel):
    id: int
    user_id: int
    topic_id: int
    topic_name: str | None = None
    question_title: str
    question_url: str | None = None
    difficulty: str
    time_spent_minutes: int
    solved: bool
    notes: str | None = None
    practiced_at: datetime
    created_at: datetime


class PracticeHistoryResponse(BaseModel):
    logs: list[PracticeLogResponse]
    limit: int
    skip: int


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------


class DifficultyCount(BaseModel):
    attempted: int = 0
    solved: int = 0


class TopicStatsResponse(BaseModel):
    topic_id: int
    topic_name: str
    total_questions: int
    questions_solved: int
    total_time_minutes: int
    average_time_per_question: int
    accuracy_percentage: int
    last_practiced_at: datetime | None = None
    difficulty_breakdown: dict[str, DifficultyCount]


class OverallStatsResponse(BaseModel):
    total_topics: int
    topics_started: int
    total_questions: int
    questions_solved: int
    total_time_minutes: int
    overall_accuracy: int
    topic_stats: list[TopicStatsResponse]
