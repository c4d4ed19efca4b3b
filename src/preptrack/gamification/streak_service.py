"""Daily practice streak tracking.

Days are UTC calendar days. Any practice log on a day counts that day once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from preptrack.gamification.points_service import get_or_create_gamification
from preptrack.notifications import CHANNEL_STREAK_UPDATE, publish_event

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StreakState:
    current_streak: int
    longest_streak: int
    last_practice_date: date | None


def utc_today(now: datetime | None = None) -> date:
    """Today's UTC calendar date."""
    if now is None:
        now = datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).date()


def next_streak_state(state: StreakState, today: date) -> tuple[StreakState, str]:
    """Apply one practice day to ``state``.

    Returns the new state and the transition taken:
    "started", "unchanged" (already counted today), "extended" or "reset".
    A last_practice_date in the future is treated as "unchanged".
    """
    if state.last_practice_date is None:
        return StreakState(1, max(state.longest_streak, 1), today), "started"

    days_diff = (today - state.last_practice_date).days
    if days_diff <= 0:
        return state, "unchanged"
    if days_diff == 1:
        current = state.current_streak + 1
        return StreakState(current, max(state.longest_streak, current), today), "extended"
    return StreakState(1, state.longest_streak, today), "reset"


async def update_streak(
    db: AsyncSession,
    redis: object,
    user_id: int,
    practiced_at: datetime | None = None,
    now: datetime | None = None,
) -> StreakState:
    """Count today's practice toward the user's streak.

    Backdated logs (practiced_at on an earlier UTC day than today) leave the
    streak untouched. Flushes, does not commit.
    """
    today = utc_today(now)
    gam = await get_or_create_gamification(db, user_id)
    state = StreakState(gam.current_streak, gam.longest_streak, gam.last_practice_date)

    if practiced_at is not None and utc_today(practiced_at) < today:
        logger.debug("Backdated practice for user %d ignored for streak", user_id)
        return state

    new_state, transition = next_streak_state(state, today)
    if transition == "unchanged":
        return state

    gam.current_streak = new_state.current_streak
    gam.longest_streak = new_state.longest_streak
    gam.last_practice_date = new_state.last_practice_date
    gam.updated_at = datetime.now(timezone.utc)
    await db.flush()

    if transition == "reset" and state.current_streak > 1:
        await publish_event(redis, CHANNEL_STREAK_UPDATE, {
            "user_id": user_id,
            "event": "streak_broken",
            "streak_length": state.current_streak,
        })
    elif transition == "extended":
        await publish_event(redis, CHANNEL_STREAK_UPDATE, {
            "user_id": user_id,
            "event": "streak_extended",
            "streak_length": new_state.current_streak,
        })

    return new_state
