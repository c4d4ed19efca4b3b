"""Best-effort Redis pub/sub notifications for gamification events."""

from __future__ import annotations

import json
import logging

logger = logging.getLogger(__name__)

CHANNEL_BADGE_EARNED = "pubsub:badge_earned"
CHANNEL_LEVEL_UP = "pubsub:level_up"
CHANNEL_STREAK_UPDATE = "pubsub:streak_update"
CHANNEL_CHALLENGE_COMPLETED = "pubsub:challenge_completed"


async def publish_event(redis: object, channel: str, payload: dict) -> bool:
    """Publish ``payload`` as JSON on ``channel``.

    Never raises: a missing client or a publish failure is logged and
    reported as False so the calling operation carries on.
    """
    if redis is None:
        return False
    try:
        await redis.publish(channel, json.dumps(payload, default=str))  # type: ignore[attr-defined]
    except Exception:
        logger.warning("Failed to publish %s notification", channel, exc_info=True)
        return False
    return True
