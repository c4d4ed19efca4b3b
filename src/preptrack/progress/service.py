"""Progress aggregation: topic_progress upserts and progress read paths."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from preptrack.config import get_settings
from preptrack.db.base import dialect_insert
from preptrack.db.models import PracticeLog, Topic, TopicProgress
from preptrack.errors import NotFoundError
from preptrack.progress.scoring import ProgressMetrics, empty_breakdown, round_half_up, summarize

logger = logging.getLogger(__name__)


async def get_topic_or_404(db: AsyncSession, topic_id: int) -> Topic:
    """Fetch a topic or raise NotFoundError."""
    topic = await db.get(Topic, topic_id)
    if topic is None:
        raise NotFoundError("Topic", topic_id)
    return topic


def _progress_query():  # noqa: ANN202
    # Summaries are rewritten with Core upserts; always refresh identity-mapped rows.
    return select(TopicProgress).execution_options(populate_existing=True)


async def get_progress_row(db: AsyncSession, user_id: int, topic_id: int) -> TopicProgress | None:
    result = await db.execute(
        _progress_query().where(
            TopicProgress.user_id == user_id,
            TopicProgress.topic_id == topic_id,
        )
    )
    return result.scalar_one_or_none()


async def list_progress_rows(db: AsyncSession, user_id: int) -> list[TopicProgress]:
    """All summaries for a user, strongest first (topic id breaks ties)."""
    result = await db.execute(
        _progress_query()
        .where(TopicProgress.user_id == user_id)
        .order_by(TopicProgress.strength_score.desc(), TopicProgress.topic_id.asc())
    )
    return list(result.scalars().all())


async def recalculate(
    db: AsyncSession,
    user_id: int,
    topic_id: int,
    now: datetime | None = None,
) -> ProgressMetrics | None:
    """Recompute the (user, topic) summary from its full practice history.

    Returns the metrics written, or None when the user has no logs for the
    topic (the summary row is deleted). Flushes, does not commit.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    topic = await get_topic_or_404(db, topic_id)

    result = await db.execute(
        select(PracticeLog)
        .where(PracticeLog.user_id == user_id, PracticeLog.topic_id == topic_id)
        .order_by(PracticeLog.practiced_at.asc(), PracticeLog.id.asc())
    )
    logs = result.scalars().all()

    if not logs:
        await db.execute(
            delete(TopicProgress).where(
                TopicProgress.user_id == user_id,
                TopicProgress.topic_id == topic_id,
            )
        )
        await db.flush()
        return None

    settings = get_settings()
    metrics = summarize(logs, topic.recommended_questions, now, settings.consistency_window_days)

    values = metrics.as_row()
    values["updated_at"] = now
    stmt = dialect_insert(db, TopicProgress).values(user_id=user_id, topic_id=topic_id, **values)
    stmt = stmt.on_conflict_do_update(
        index_elements=["user_id", "topic_id"],
        set_=values,
    )
    await db.execute(stmt)
    await db.flush()
    return metrics


async def recalculate_many(
    db: AsyncSession,
    user_id: int,
    topic_ids: list[int] | None = None,
    now: datetime | None = None,
) -> dict:
    """Recalculate the given topics, or every topic the user has a summary for."""
    if now is None:
        now = datetime.now(timezone.utc)

    if topic_ids:
        targets = list(dict.fromkeys(topic_ids))
    else:
        result = await db.execute(
            select(TopicProgress.topic_id)
            .where(TopicProgress.user_id == user_id)
            .order_by(TopicProgress.topic_id)
        )
        targets = list(result.scalars().all())

    for topic_id in targets:
        await recalculate(db, user_id, topic_id, now=now)

    await db.commit()
    logger.info("Recalculated %d topics for user %d", len(targets), user_id)
    return {
        "message": "Progress recalculated successfully",
        "topics_recalculated": len(targets),
        "updated_at": now,
    }


def _progress_payload(topic: Topic, progress: TopicProgress | None) -> dict:
    """Summary merged with topic metadata; a zero-value payload when not started."""
    base = {
        "topic_id": topic.id,
        "topic_name": topic.name,
        "category": topic.category,
        "difficulty": topic.difficulty,
    }
    if progress is None:
        return {
            **base,
            "strength_score": 0,
            "accuracy_percentage": 0,
            "completion_percentage": 0,
            "consistency_score": 0,
            "total_questions_attempted": 0,
            "questions_solved": 0,
            "recommended_questions": topic.recommended_questions,
            "total_time_minutes": 0,
            "avg_time_per_question": 0,
            "difficulty_breakdown": empty_breakdown(),
            "last_practiced_at": None,
            "updated_at": None,
        }
    return {
        **base,
        "strength_score": progress.strength_score,
        "accuracy_percentage": progress.accuracy_percentage,
        "completion_percentage": progress.completion_percentage,
        "consistency_score": progress.consistency_score,
        "total_questions_attempted": progress.total_questions_attempted,
        "questions_solved": progress.questions_solved,
        "recommended_questions": progress.recommended_questions,
        "total_time_minutes": progress.total_time_minutes,
        "avg_time_per_question": progress.avg_time_per_question,
        "difficulty_breakdown": progress.difficulty_breakdown or empty_breakdown(),
        "last_practiced_at": progress.last_practiced_at,
        "updated_at": progress.updated_at,
    }


async def get_topic_progress(db: AsyncSession, user_id: int, topic_id: int) -> dict:
    """Progress for one topic. Not-started topics return zeroed metrics, not an error."""
    topic = await get_topic_or_404(db, topic_id)
    progress = await get_progress_row(db, user_id, topic_id)
    return _progress_payload(topic, progress)


async def get_progress_overview(db: AsyncSession, user_id: int) -> dict:
    """Aggregate progress across all topics plus the per-topic list, strongest first."""
    topics_result = await db.execute(select(Topic))
    topics = {t.id: t for t in topics_result.scalars()}

    rows = [p for p in await list_progress_rows(db, user_id) if p.topic_id in topics]

    attempted = sum(p.total_questions_attempted for p in rows)
    solved = sum(p.questions_solved for p in rows)
    minutes = sum(p.total_time_minutes for p in rows)
    started = len(rows)

    return {
        "total_topics": len(topics),
        "topics_started": started,
        "topics_not_started": len(topics) - started,
        "average_strength_score": (
            round_half_up(sum(p.strength_score for p in rows) / started) if started else 0
        ),
        "total_questions_attempted": attempted,
        "total_questions_solved": solved,
        "overall_accuracy_percentage": round_half_up(solved / attempted * 100) if attempted else 0,
        "total_time_minutes": minutes,
        "topic_progress": [_progress_payload(topics[p.topic_id], p) for p in rows],
    }


async def get_strengths_weaknesses(db: AsyncSession, user_id: int, count: int = 5) -> dict:
    """Top ``count`` topics by strength, and the bottom ``count`` weakest-first."""
    rows = await list_progress_rows(db, user_id)
    if not rows:
        return {"strengths": [], "weaknesses": []}

    topics_result = await db.execute(
        select(Topic).where(Topic.id.in_({p.topic_id for p in rows}))
    )
    topics = {t.id: t for t in topics_result.scalars()}
    rows = [p for p in rows if p.topic_id in topics]

    strongest = rows[:count]
    weakest = list(reversed(rows[-count:]))
    return {
        "strengths": [_progress_payload(topics[p.topic_id], p) for p in strongest],
        "weaknesses": [_progress_payload(topics[p.topic_id], p) for p in weakest],
    }
