"""Practice logging and the topic/practice read paths.

``log_practice`` is the central write: it stores the log, then runs the
gamification side effects in order. Each side effect runs in its own
SAVEPOINT so a failure there never undoes the committed log.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from preptrack.challenges.service import update_challenge_progress
from preptrack.db.models import PracticeLog, Topic
from preptrack.gamification.badge_service import check_and_award
from preptrack.gamification.points_service import award_practice_points
from preptrack.gamification.streak_service import update_streak
from preptrack.practice.schemas import LogPracticeRequest
from preptrack.progress.scoring import accuracy, difficulty_breakdown, round_half_up
from preptrack.progress.service import get_topic_or_404, recalculate

logger = logging.getLogger(__name__)


def topic_payload(topic: Topic) -> dict:
    return {
        "id": topic.id,
        "name": topic.name,
        "category": topic.category,
        "difficulty": topic.difficulty,
        "recommended_questions": topic.recommended_questions,
        "description": topic.description,
        "created_at": topic.created_at,
    }


def log_payload(log: PracticeLog, topic_name: str | None) -> dict:
    return {
        "id": log.id,
        "user_id": log.user_id,
        "topic_id": log.topic_id,
        "topic_name": topic_name,
        "question_title": log.question_title,
        "question_url": log.question_url,
        "difficulty": log.difficulty,
        "time_spent_minutes": log.time_spent_minutes,
        "solved": log.solved,
        "notes": log.notes,
        "practiced_at": log.practiced_at,
        "created_at": log.created_at,
    }


async def list_topics(db: AsyncSession) -> dict:
    """All topics grouped by category."""
    result = await db.execute(
        select(Topic).order_by(Topic.category, Topic.difficulty, Topic.name)
    )
    categories: dict[str, list[dict]] = {}
    total = 0
    for topic in result.scalars():
        categories.setdefault(topic.category, []).append(topic_payload(topic))
        total += 1
    return {"categories": categories, "total": total}


async def get_topic(db: AsyncSession, topic_id: int) -> dict:
    return topic_payload(await get_topic_or_404(db, topic_id))


async def _best_effort(
    db: AsyncSession,
    name: str,
    user_id: int,
    step: Callable[[], Awaitable[object]],
) -> object | None:
    try:
        async with db.begin_nested():
            return await step()
    except Exception:
        logger.warning("Post-practice %s failed for user %d", name, user_id, exc_info=True)
        return None


async def log_practice(
    db: AsyncSession,
    redis: object,
    user_id: int,
    data: LogPracticeRequest,
    now: datetime | None = None,
) -> dict:
    """Store a practice log, then update progress, streak, points, badges and challenge.

    Raises NotFoundError if the topic does not exist. Returns the created log
    with its topic name.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    topic = await get_topic_or_404(db, data.topic_id)
    log = PracticeLog(
        user_id=user_id,
        topic_id=topic.id,
        question_title=data.question_title,
        question_url=data.question_url,
        difficulty=data.difficulty,
        time_spent_minutes=data.time_spent_minutes,
        solved=data.solved,
        notes=data.notes,
        practiced_at=(data.practiced_at or now).astimezone(timezone.utc),
        created_at=now,
    )
    db.add(log)
    await db.commit()

    await _best_effort(
        db, "progress recalculation", user_id,
        lambda: recalculate(db, user_id, topic.id, now=now),
    )
    await _best_effort(
        db, "streak update", user_id,
        lambda: update_streak(db, redis, user_id, practiced_at=log.practiced_at, now=now),
    )
    await _best_effort(
        db, "points award", user_id,
        lambda: award_practice_points(db, redis, user_id, log.id, log.difficulty, log.solved),
    )
    await _best_effort(
        db, "badge check", user_id,
        lambda: check_and_award(db, redis, user_id),
    )
    await _best_effort(
        db, "challenge update", user_id,
        lambda: update_challenge_progress(
            db, redis, user_id, topic.id, log.difficulty, log.solved, now=now,
        ),
    )
    await db.commit()

    return log_payload(log, topic.name)


async def get_practice_history(
    db: AsyncSession,
    user_id: int,
    topic_id: int | None = None,
    limit: int = 20,
    skip: int = 0,
) -> list[dict]:
    """Practice logs newest first, with topic names."""
    query = (
        select(PracticeLog, Topic.name)
        .outerjoin(Topic, Topic.id == PracticeLog.topic_id)
        .where(PracticeLog.user_id == user_id)
    )
    if topic_id is not None:
        query = query.where(PracticeLog.topic_id == topic_id)
    query = query.order_by(PracticeLog.practiced_at.desc(), PracticeLog.id.desc()).offset(skip).limit(limit)

    result = await db.execute(query)
    return [log_payload(log, topic_name) for log, topic_name in result.all()]


def _topic_stats(topic: Topic, logs: list[PracticeLog]) -> dict:
    attempted = len(logs)
    solved = sum(1 for log in logs if log.solved)
    total_minutes = sum(log.time_spent_minutes for log in logs)
    return {
        "topic_id": topic.id,
        "topic_name": topic.name,
        "total_questions": attempted,
        "questions_solved": solved,
        "total_time_minutes": total_minutes,
        "average_time_per_question": round_half_up(total_minutes / attempted) if attempted else 0,
        "accuracy_percentage": accuracy(solved, attempted),
        "last_practiced_at": max((log.practiced_at for log in logs), default=None),
        "difficulty_breakdown": difficulty_breakdown(logs),
    }


async def get_practice_stats(db: AsyncSession, user_id: int, topic_id: int | None = None) -> dict:
    """Stats for one topic, or across every topic the user has practiced."""
    if topic_id is not None:
        topic = await get_topic_or_404(db, topic_id)
        result = await db.execute(
            select(PracticeLog).where(
                PracticeLog.user_id == user_id, PracticeLog.topic_id == topic_id,
            )
        )
        return _topic_stats(topic, list(result.scalars().all()))

    topics_result = await db.execute(select(Topic))
    topics = {t.id: t for t in topics_result.scalars()}

    logs_result = await db.execute(
        select(PracticeLog).where(PracticeLog.user_id == user_id).order_by(PracticeLog.topic_id)
    )
    by_topic: dict[int, list[PracticeLog]] = {}
    for log in logs_result.scalars():
        by_topic.setdefault(log.topic_id, []).append(log)

    attempted = sum(len(logs) for logs in by_topic.values())
    solved = sum(1 for logs in by_topic.values() for log in logs if log.solved)
    return {
        "total_topics": len(topics),
        "topics_started": len(by_topic),
        "total_questions": attempted,
        "questions_solved": solved,
        "total_time_minutes": sum(
            log.time_spent_minutes for logs in by_topic.values() for log in logs
        ),
        "overall_accuracy": accuracy(solved, attempted),
        "topic_stats": [
            _topic_stats(topics[tid], logs) for tid, logs in by_topic.items() if tid in topics
        ],
    }
