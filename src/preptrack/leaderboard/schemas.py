"""Pydantic models for leaderboard endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class LeaderboardEntry(BaseModel):
    user_id: int
    user_name: str
    rank: int
    score: int
    questions_solved: int
    streak: int
    badges: int


class LeaderboardResponse(BaseModel):
    type: str
    topic_id: int | None = None
    topic_name: str | None = None
    rankings: list[LeaderboardEntry]
    last_updated: datetime


class MyRankResponse(BaseModel):
    type: str
    topic_id: int | None = None
    entry: LeaderboardEntry | None = None
