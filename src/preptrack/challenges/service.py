"""Daily challenges: one set of three (topic, difficulty) targets per user per UTC day."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from preptrack.config import get_settings
from preptrack.db.base import dialect_insert
from preptrack.db.models import DailyChallenge, DailyChallengeTask, PracticeLog, Topic, TopicProgress
from preptrack.errors import NotFoundError
from preptrack.gamification.points_service import grant_points
from preptrack.gamification.streak_service import utc_today
from preptrack.notifications import CHANNEL_CHALLENGE_COMPLETED, publish_event

logger = logging.getLogger(__name__)

# Task i targets DIFFICULTY_ORDER[i], whatever the topic's own level
DIFFICULTY_ORDER: tuple[str, ...] = ("Easy", "Medium", "Hard")


def challenge_payload(challenge: DailyChallenge) -> dict:
    return {
        "id": challenge.id,
        "date": challenge.challenge_date,
        "challenges": [
            {
                "topic_id": task.topic_id,
                "topic_name": task.topic_name,
                "difficulty": task.difficulty,
                "target_questions": task.target_questions,
                "questions_completed": task.questions_completed,
                "completed": task.completed,
            }
            for task in challenge.tasks
        ],
        "overall_completed": challenge.overall_completed,
        "completed_at": challenge.completed_at,
        "reward_points": challenge.reward_points,
    }


async def _load_challenge(db: AsyncSession, user_id: int, day: date) -> DailyChallenge | None:
    result = await db.execute(
        select(DailyChallenge)
        .where(DailyChallenge.user_id == user_id, DailyChallenge.challenge_date == day)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _pick_topics(db: AsyncSession, user_id: int) -> list[Topic]:
    """The user's three weakest topics, topped up from the catalog when fewer are started."""
    result = await db.execute(
        select(Topic)
        .join(TopicProgress, TopicProgress.topic_id == Topic.id)
        .where(TopicProgress.user_id == user_id)
        .order_by(TopicProgress.strength_score.asc(), Topic.id.asc())
        .limit(len(DIFFICULTY_ORDER))
    )
    picked = list(result.scalars().all())

    if len(picked) < len(DIFFICULTY_ORDER):
        query = select(Topic).order_by(Topic.id.asc()).limit(len(DIFFICULTY_ORDER) - len(picked))
        if picked:
            query = query.where(Topic.id.not_in([t.id for t in picked]))
        picked.extend((await db.execute(query)).scalars().all())

    return picked


async def generate_for_user(db: AsyncSession, user_id: int, now: datetime | None = None) -> bool:
    """Create today's challenge unless one exists. Returns True if created.

    UNIQUE(user_id, challenge_date) makes concurrent calls create at most one row.
    Flushes, does not commit.
    """
    settings = get_settings()
    today = utc_today(now)

    if await _load_challenge(db, user_id, today) is not None:
        return False

    topics = await _pick_topics(db, user_id)
    if not topics:
        logger.debug("No topics available for user %d challenge", user_id)
        return False

    stamp = datetime.now(timezone.utc)
    inserted = await db.execute(
        dialect_insert(db, DailyChallenge)
        .values(
            user_id=user_id,
            challenge_date=today,
            reward_points=settings.challenge_reward_points,
            created_at=stamp,
            updated_at=stamp,
        )
        .on_conflict_do_nothing(index_elements=["user_id", "challenge_date"])
        .returning(DailyChallenge.id)
    )
    challenge_id = inserted.scalar_one_or_none()
    if challenge_id is None:
        return False

    db.add_all([
        DailyChallengeTask(
            challenge_id=challenge_id,
            position=position,
            topic_id=topic.id,
            topic_name=topic.name,
            difficulty=difficulty,
            target_questions=settings.challenge_target_questions,
        )
        for position, (topic, difficulty) in enumerate(zip(topics, DIFFICULTY_ORDER))
    ])
    await db.flush()
    return True


async def get_today_challenge(db: AsyncSession, user_id: int, now: datetime | None = None) -> dict | None:
    """Today's challenge, generated on demand."""
    today = utc_today(now)
    if await generate_for_user(db, user_id, now=now):
        await db.commit()
    challenge = await _load_challenge(db, user_id, today)
    return challenge_payload(challenge) if challenge else None


async def _complete_if_done(
    db: AsyncSession,
    redis: object,
    challenge: DailyChallenge,
    now: datetime,
) -> bool:
    """Flip overall_completed and credit the reward once all tasks are done.

    The conditional UPDATE lets exactly one caller win. Returns True for the winner.
    """
    tasks = await db.execute(
        select(
            func.count(DailyChallengeTask.id),
            func.coalesce(func.sum(case((DailyChallengeTask.completed.is_(True), 1), else_=0)), 0),
        ).where(DailyChallengeTask.challenge_id == challenge.id)
    )
    total, done = tasks.one()
    if total == 0 or done < total:
        return False

    flipped = await db.execute(
        update(DailyChallenge)
        .where(DailyChallenge.id == challenge.id, DailyChallenge.overall_completed.is_(False))
        .values(overall_completed=True, completed_at=now, updated_at=now)
        .returning(DailyChallenge.id)
    )
    if flipped.scalar_one_or_none() is None:
        return False

    await grant_points(
        db=db,
        redis=redis,
        user_id=challenge.user_id,
        amount=challenge.reward_points,
        source="challenge",
        source_id=str(challenge.id),
        description=f"Completed daily challenge for {challenge.challenge_date.isoformat()}",
        idempotency_key=f"challenge:{challenge.id}",
    )
    await publish_event(redis, CHANNEL_CHALLENGE_COMPLETED, {
        "user_id": challenge.user_id,
        "challenge_id": challenge.id,
        "date": challenge.challenge_date.isoformat(),
        "reward_points": challenge.reward_points,
    })
    logger.info("User %d completed daily challenge %d", challenge.user_id, challenge.id)
    return True


async def update_challenge_progress(
    db: AsyncSession,
    redis: object,
    user_id: int,
    topic_id: int,
    difficulty: str,
    solved: bool,
    now: datetime | None = None,
) -> bool:
    """Count a solved practice log toward today's matching task.

    Returns True if a task was advanced. Flushes, does not commit.
    """
    if not solved:
        return False
    if now is None:
        now = datetime.now(timezone.utc)

    challenge = await _load_challenge(db, user_id, utc_today(now))
    if challenge is None:
        return False

    task = next(
        (
            t for t in challenge.tasks
            if t.topic_id == topic_id and t.difficulty == difficulty and not t.completed
        ),
        None,
    )
    if task is None:
        return False

    advanced = await db.execute(
        update(DailyChallengeTask)
        .where(DailyChallengeTask.id == task.id, DailyChallengeTask.completed.is_(False))
        .values(
            questions_completed=DailyChallengeTask.questions_completed + 1,
            completed=case(
                (DailyChallengeTask.questions_completed + 1 >= DailyChallengeTask.target_questions, True),
                else_=False,
            ),
        )
        .returning(DailyChallengeTask.id)
        .execution_options(synchronize_session=False)
    )
    if advanced.scalar_one_or_none() is None:
        return False
    await db.refresh(task, ["questions_completed", "completed"])

    await db.execute(
        update(DailyChallenge)
        .where(DailyChallenge.id == challenge.id)
        .values(updated_at=now)
    )
    await _complete_if_done(db, redis, challenge, now)
    await db.flush()
    return True


async def complete_challenge(
    db: AsyncSession,
    redis: object,
    user_id: int,
    now: datetime | None = None,
) -> dict:
    """Re-evaluate today's completion flag; the reward is credited at most once."""
    if now is None:
        now = datetime.now(timezone.utc)
    today = utc_today(now)

    challenge = await _load_challenge(db, user_id, today)
    if challenge is None:
        raise NotFoundError("Challenge", today.isoformat())

    await _complete_if_done(db, redis, challenge, now)
    await db.commit()

    challenge = await _load_challenge(db, user_id, today)
    return challenge_payload(challenge)


async def get_challenge_history(db: AsyncSession, user_id: int, limit: int = 7) -> list[dict]:
    """Most recent challenges first."""
    result = await db.execute(
        select(DailyChallenge)
        .where(DailyChallenge.user_id == user_id)
        .order_by(DailyChallenge.challenge_date.desc())
        .limit(limit)
    )
    return [challenge_payload(c) for c in result.scalars().all()]


async def generate_for_all_active_users(db: AsyncSession, now: datetime | None = None) -> int:
    """Generate today's challenge for every user who practiced recently.

    One user's failure is logged and does not stop the batch. Returns the
    number of challenges created.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    settings = get_settings()
    since = now - timedelta(days=settings.active_user_window_days)

    result = await db.execute(
        select(PracticeLog.user_id)
        .where(PracticeLog.practiced_at >= since)
        .distinct()
        .order_by(PracticeLog.user_id)
    )
    user_ids = list(result.scalars().all())

    generated = 0
    for user_id in user_ids:
        try:
            if await generate_for_user(db, user_id, now=now):
                generated += 1
            await db.commit()
        except Exception:
            logger.exception("Failed to generate daily challenge for user %d", user_id)
            await db.rollback()

    logger.info("Generated %d daily challenges for %d active users", generated, len(user_ids))
    return generated


async def purge_old_challenges(db: AsyncSession, now: datetime | None = None) -> int:
    """Delete challenges older than the retention window. Returns rows deleted."""
    if now is None:
        now = datetime.now(timezone.utc)
    cutoff = utc_today(now) - timedelta(days=get_settings().challenge_retention_days)
    old_ids = select(DailyChallenge.id).where(DailyChallenge.challenge_date < cutoff)

    await db.execute(
        delete(DailyChallengeTask)
        .where(DailyChallengeTask.challenge_id.in_(old_ids))
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(delete(DailyChallenge).where(DailyChallenge.challenge_date < cutoff))
    return result.rowcount or 0
