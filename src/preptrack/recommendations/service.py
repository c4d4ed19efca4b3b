"""Study recommendations derived from topic progress and the last 30 days of practice."""

from __future__ import annotations

import logging
import math
from collections import Counter
from datetime import datetime, timedelta, timezone

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from preptrack.config import get_settings
from preptrack.db.models import PracticeLog, Recommendation, Topic, TopicProgress
from preptrack.progress.scoring import DIFFICULTIES, round_half_up

logger = logging.getLogger(__name__)

WEAK_ACCURACY_THRESHOLD = 60
TARGET_ACCURACY = 75
MAX_WEAK_AREAS = 5
INCONSISTENT_THRESHOLD = 50
PATTERN_WINDOW_DAYS = 30
DEFAULT_SESSION_MINUTES = 30
DEFAULT_ACTIVE_HOUR = 18

PLAN_DAYS: tuple[str, ...] = (
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday",
)


def identify_weak_areas(rows: list[tuple[TopicProgress, Topic]]) -> list[dict]:
    """Topics under 60% accuracy, weakest first, at most five."""
    weak = [
        {
            "topic_id": topic.id,
            "topic_name": topic.name,
            "current_accuracy": progress.accuracy_percentage,
            "target_accuracy": TARGET_ACCURACY,
            "suggested_practice_count": math.ceil(
                (TARGET_ACCURACY - progress.accuracy_percentage) / 5
            ) * 10,
        }
        for progress, topic in rows
        if progress.accuracy_percentage < WEAK_ACCURACY_THRESHOLD
    ]
    weak.sort(key=lambda w: (w["current_accuracy"], w["topic_id"]))
    return weak[:MAX_WEAK_AREAS]


def analyze_practice_patterns(logs: list[PracticeLog]) -> dict:
    if not logs:
        return {
            "average_session_minutes": DEFAULT_SESSION_MINUTES,
            "preferred_difficulty": "Medium",
            "most_active_hour": DEFAULT_ACTIVE_HOUR,
            "sessions_per_week": 0.0,
        }

    difficulty_counts = Counter(log.difficulty for log in logs)
    # max() keeps the first of equal counts, so ties go to the easier difficulty
    preferred = max(DIFFICULTIES, key=lambda d: difficulty_counts.get(d, 0))
    hours = Counter(log.practiced_at.astimezone(timezone.utc).hour for log in logs)
    most_active_hour = min(hours, key=lambda h: (-hours[h], h))

    return {
        "average_session_minutes": round_half_up(
            sum(log.time_spent_minutes for log in logs) / len(logs)
        ),
        "preferred_difficulty": preferred,
        "most_active_hour": most_active_hour,
        "sessions_per_week": round(len(logs) / PATTERN_WINDOW_DAYS * 7, 1),
    }


def build_topic_recommendations(
    rows: list[tuple[TopicProgress, Topic]],
    weak_areas: list[dict],
    unstarted: list[Topic],
    session_minutes: int,
) -> list[dict]:
    recommendations = [
        {
            "topic_id": weak["topic_id"],
            "topic_name": weak["topic_name"],
            "reason": f"Low accuracy ({weak['current_accuracy']}%). Focus here to improve fundamentals.",
            "priority": "high",
            "estimated_minutes": session_minutes,
        }
        for weak in weak_areas[:3]
    ]

    inconsistent = [
        (progress, topic)
        for progress, topic in rows
        if progress.consistency_score < INCONSISTENT_THRESHOLD
        and progress.accuracy_percentage >= WEAK_ACCURACY_THRESHOLD
    ]
    recommendations.extend(
        {
            "topic_id": topic.id,
            "topic_name": topic.name,
            "reason": "Inconsistent performance. Practice regularly to build consistency.",
            "priority": "medium",
            "estimated_minutes": session_minutes,
        }
        for _, topic in inconsistent[:2]
    )

    if unstarted:
        topic = unstarted[0]
        recommendations.append({
            "topic_id": topic.id,
            "topic_name": topic.name,
            "reason": "Expand your knowledge by exploring new topics.",
            "priority": "low",
            "estimated_minutes": session_minutes,
        })

    return recommendations


def build_study_plan(recommendations: list[dict], session_minutes: int) -> list[dict]:
    """Monday-Wednesday weak areas, Thursday-Friday consistency, weekend new topics.

    A day whose bucket is empty falls through to the next bucket; days with
    nothing to study are left out.
    """
    by_priority: dict[str, list[dict]] = {"high": [], "medium": [], "low": []}
    for rec in recommendations:
        by_priority[rec["priority"]].append(rec)
    high, medium, low = by_priority["high"], by_priority["medium"], by_priority["low"]

    plan = []
    for index, day in enumerate(PLAN_DAYS):
        if index < 3 and high:
            pick, focus = high[index % len(high)], "Weak areas"
        elif index < 5 and medium:
            pick, focus = medium[(index - 3) % len(medium)], "Consistency building"
        elif low:
            pick, focus = low[0], "New topics"
        else:
            continue
        plan.append({
            "day": day,
            "topic_ids": [pick["topic_id"]],
            "topic_names": [pick["topic_name"]],
            "duration_minutes": session_minutes,
            "focus": focus,
        })
    return plan


def confidence_score(practice_count: int, weak_area_count: int) -> int:
    score = 50
    if practice_count > 50:
        score += 30
    elif practice_count > 20:
        score += 20
    elif practice_count > 10:
        score += 10
    if weak_area_count > 0:
        score += 20
    return min(score, 100)


def recommendation_payload(rec: Recommendation) -> dict:
    return {
        "id": rec.id,
        "recommended_topics": rec.recommended_topics,
        "study_plan": rec.study_plan,
        "weak_area_focus": rec.weak_area_focus,
        "practice_patterns": rec.practice_patterns,
        "confidence_score": rec.confidence_score,
        "generated_at": rec.generated_at,
        "expires_at": rec.expires_at,
        "is_active": rec.is_active,
    }


async def generate(db: AsyncSession, user_id: int, now: datetime | None = None) -> dict:
    """Deactivate the user's current recommendation and store a fresh one."""
    if now is None:
        now = datetime.now(timezone.utc)
    settings = get_settings()

    await db.execute(
        update(Recommendation)
        .where(Recommendation.user_id == user_id, Recommendation.is_active.is_(True))
        .values(is_active=False)
    )

    progress_result = await db.execute(
        select(TopicProgress, Topic)
        .join(Topic, Topic.id == TopicProgress.topic_id)
        .where(TopicProgress.user_id == user_id)
        .order_by(Topic.name)
        .execution_options(populate_existing=True)
    )
    rows = [(progress, topic) for progress, topic in progress_result.all()]

    logs_result = await db.execute(
        select(PracticeLog).where(
            PracticeLog.user_id == user_id,
            PracticeLog.practiced_at >= now - timedelta(days=PATTERN_WINDOW_DAYS),
        )
    )
    logs = list(logs_result.scalars().all())

    started = {topic.id for _, topic in rows}
    unstarted_query = select(Topic).order_by(Topic.name)
    if started:
        unstarted_query = unstarted_query.where(Topic.id.not_in(started))
    unstarted = list((await db.execute(unstarted_query)).scalars().all())

    weak_areas = identify_weak_areas(rows)
    patterns = analyze_practice_patterns(logs)
    session_minutes = patterns["average_session_minutes"]
    topics = build_topic_recommendations(rows, weak_areas, unstarted, session_minutes)

    rec = Recommendation(
        user_id=user_id,
        recommended_topics=topics,
        study_plan=build_study_plan(topics, session_minutes),
        weak_area_focus=weak_areas,
        practice_patterns=patterns,
        confidence_score=confidence_score(len(logs), len(weak_areas)),
        generated_at=now,
        expires_at=now + timedelta(days=settings.recommendation_ttl_days),
        is_active=True,
    )
    db.add(rec)
    await db.commit()
    logger.info("Generated recommendations for user %d", user_id)
    return recommendation_payload(rec)


async def get(db: AsyncSession, user_id: int, now: datetime | None = None) -> dict:
    """The active, unexpired recommendation, generated first when there is none."""
    if now is None:
        now = datetime.now(timezone.utc)

    result = await db.execute(
        select(Recommendation)
        .where(
            Recommendation.user_id == user_id,
            Recommendation.is_active.is_(True),
            Recommendation.expires_at > now,
        )
        .order_by(Recommendation.generated_at.desc())
        .limit(1)
    )
    rec = result.scalar_one_or_none()
    if rec is None:
        return await generate(db, user_id, now=now)
    return recommendation_payload(rec)
