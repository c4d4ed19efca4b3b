"""Pydantic response models for gamification endpoints."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel


# --- Badge ---


class BadgeResponse(BaseModel):
    slug: str
    name: str
    description: str
    category: str
    criteria_type: str
    criteria_value: int
    icon_url: str
    rarity: str
    points: int
    earned: bool = False
    earned_at: datetime | None = None


class AllBadgesResponse(BaseModel):
    badges: list[BadgeResponse]
    total: int


class EarnedBadgeResponse(BaseModel):
    slug: str
    name: str
    description: str
    category: str
    icon_url: str
    rarity: str
    points: int
    earned_at: datetime
    progress: int = 100


class UserBadgesResponse(BaseModel):
    earned: list[EarnedBadgeResponse]
    total_available: int
    total_earned: int


class BadgeProgressResponse(BaseModel):
    badge_slug: str
    badge_name: str
    criteria_type: str
    threshold: int
    earned: bool
    progress: int


# --- Points & level ---


class LevelResponse(BaseModel):
    total_points: int
    level: int
    points_into_level: int
    points_for_level: int
    next_level: int
    next_level_at: int


# --- Streak ---


class StreakResponse(BaseModel):
    current_streak: int
    longest_streak: int
    last_practice_date: date | None = None


# --- Gamification Summary ---


class GamificationSummaryResponse(BaseModel):
    points: LevelResponse
    streak: StreakResponse
    badges: dict  # {earned: int, total: int}
    questions: dict  # {attempted: int, solved: int}
