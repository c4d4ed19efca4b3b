"""ORM models for the practice tracker.

Tables are created by the Alembic revisions under alembic/versions; tests
build the same schema from this metadata.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from preptrack.db.base import Base, BigIntPK, JSONDocument, UTCDateTime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """Account row. Credentials live with the auth service."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    full_name: Mapped[str] = mapped_column(String(128), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)

    gamification: Mapped[UserGamification | None] = relationship(
        "UserGamification", back_populates="user", uselist=False,
    )


class UserGamification(Base):
    """Denormalized gamification state, one row per user."""

    __tablename__ = "user_gamification"
    __table_args__ = (
        CheckConstraint("total_points >= 0", name="ck_user_gamification_points"),
        CheckConstraint("current_streak >= 0", name="ck_user_gamification_streak"),
        Index("idx_user_gamification_points", "total_points"),
    )

    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True,
    )
    total_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_practice_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    badges_earned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)

    user: Mapped[User] = relationship("User", back_populates="gamification")


# ---------------------------------------------------------------------------
# Topics & practice logs
# ---------------------------------------------------------------------------


class Topic(Base):
    """Admin-curated practice topic."""

    __tablename__ = "topics"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    difficulty: Mapped[str] = mapped_column(String(16), nullable=False)
    recommended_questions: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)


class PracticeLog(Base):
    """One practice attempt. Append-only: never updated after insert."""

    __tablename__ = "practice_logs"
    __table_args__ = (
        CheckConstraint(
            "time_spent_minutes BETWEEN 1 AND 300", name="ck_practice_logs_minutes",
        ),
        Index("idx_practice_logs_user_topic", "user_id", "topic_id", "practiced_at"),
        Index("idx_practice_logs_practiced_at", "practiced_at"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
    )
    topic_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("topics.id", ondelete="CASCADE"), nullable=False,
    )
    question_title: Mapped[str] = mapped_column(String(200), nullable=False)
    question_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    difficulty: Mapped[str] = mapped_column(String(8), nullable=False)
    time_spent_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    solved: Mapped[bool] = mapped_column(Boolean, nullable=False)
    notes: Mapped[str | None] = mapped_column(String(500), nullable=True)
    practiced_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)


class TopicProgress(Base):
    """Denormalized per-(user, topic) summary, recomputed wholesale from practice_logs."""

    __tablename__ = "topic_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "topic_id", name="topic_progress_user_topic_key"),
        Index("idx_topic_progress_topic_strength", "topic_id", "strength_score"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
    )
    topic_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("topics.id", ondelete="CASCADE"), nullable=False,
    )
    total_questions_attempted: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    questions_solved: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    accuracy_percentage: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_time_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    avg_time_per_question: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    recommended_questions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completion_percentage: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    strength_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    consistency_score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    difficulty_breakdown: Mapped[dict[str, Any]] = mapped_column(JSONDocument, nullable=False, default=dict)
    last_practiced_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)


# ---------------------------------------------------------------------------
# Badges & points
# ---------------------------------------------------------------------------


class BadgeDefinition(Base):
    """Badge catalog entry."""

    __tablename__ = "badge_definitions"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    slug: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False)
    criteria_type: Mapped[str] = mapped_column(String(32), nullable=False)
    criteria_value: Mapped[int] = mapped_column(Integer, nullable=False)
    criteria_topic_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    icon_url: Mapped[str] = mapped_column(String(256), nullable=False, default="/badges/default.png")
    rarity: Mapped[str] = mapped_column(String(16), nullable=False, default="common")
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)


class UserBadge(Base):
    """Earned badge. UNIQUE(user_id, badge_id) is the at-most-once guarantee."""

    __tablename__ = "user_badges"
    __table_args__ = (
        UniqueConstraint("user_id", "badge_id", name="user_badges_user_id_badge_id_key"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
    )
    badge_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("badge_definitions.id", ondelete="CASCADE"), nullable=False,
    )
    earned_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)
    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=100)

    badge: Mapped[BadgeDefinition] = relationship("BadgeDefinition", lazy="joined")


class PointsLedger(Base):
    """Append-only record of every points credit, deduplicated by idempotency_key."""

    __tablename__ = "points_ledger"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    source: Mapped[str] = mapped_column(String(32), nullable=False)
    source_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    description: Mapped[str | None] = mapped_column(String(256), nullable=True)
    idempotency_key: Mapped[str] = mapped_column(String(128), unique=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)


# ---------------------------------------------------------------------------
# Daily challenges
# ---------------------------------------------------------------------------


class DailyChallenge(Base):
    """One challenge set per user per UTC day."""

    __tablename__ = "daily_challenges"
    __table_args__ = (
        UniqueConstraint("user_id", "challenge_date", name="daily_challenges_user_date_key"),
        Index("idx_daily_challenges_date", "challenge_date"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
    )
    challenge_date: Mapped[date] = mapped_column(Date, nullable=False)
    overall_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    completed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    reward_points: Mapped[int] = mapped_column(Integer, nullable=False, default=50)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)

    tasks: Mapped[list[DailyChallengeTask]] = relationship(
        "DailyChallengeTask",
        back_populates="challenge",
        lazy="selectin",
        order_by="DailyChallengeTask.position",
        cascade="all, delete-orphan",
    )


class DailyChallengeTask(Base):
    """One of the three (topic, difficulty) targets of a daily challenge."""

    __tablename__ = "daily_challenge_tasks"
    __table_args__ = (
        UniqueConstraint("challenge_id", "position", name="daily_challenge_tasks_position_key"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    challenge_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("daily_challenges.id", ondelete="CASCADE"), nullable=False,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    topic_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    topic_name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    difficulty: Mapped[str] = mapped_column(String(8), nullable=False)
    target_questions: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
    questions_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    challenge: Mapped[DailyChallenge] = relationship("DailyChallenge", back_populates="tasks")


# ---------------------------------------------------------------------------
# Caches: leaderboards & recommendations
# ---------------------------------------------------------------------------


class LeaderboardSnapshot(Base):
    """Cached ranking for one scope ('global' or 'topic:<id>') with an expiry."""

    __tablename__ = "leaderboard_snapshots"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    scope_key: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    scope: Mapped[str] = mapped_column(String(16), nullable=False)
    topic_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    rankings: Mapped[list[dict[str, Any]]] = mapped_column(JSONDocument, nullable=False, default=list)
    last_updated: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, index=True)


class Recommendation(Base):
    """Generated study recommendation. At most one active row per user."""

    __tablename__ = "recommendations"
    __table_args__ = (
        Index("idx_recommendations_user_active", "user_id", "is_active", "expires_at"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
    )
    recommended_topics: Mapped[list[dict[str, Any]]] = mapped_column(JSONDocument, nullable=False, default=list)
    study_plan: Mapped[list[dict[str, Any]]] = mapped_column(JSONDocument, nullable=False, default=list)
    weak_area_focus: Mapped[list[dict[str, Any]]] = mapped_column(JSONDocument, nullable=False, default=list)
    practice_patterns: Mapped[dict[str, Any]] = mapped_column(JSONDocument, nullable=False, default=dict)
    confidence_score: Mapped[int] = mapped_column(Integer, nullable=False, default=50)
    generated_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=_utcnow)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
