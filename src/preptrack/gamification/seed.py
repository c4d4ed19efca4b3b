"""Badge seed data: the 14 catalog badges."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from preptrack.db.base import dialect_insert
from preptrack.db.models import BadgeDefinition

logger = logging.getLogger(__name__)

BADGE_SEED_DATA: list[dict] = [
    # Milestones
    {
        "slug": "first_blood",
        "name": "First Blood",
        "description": "Solve your first question",
        "category": "milestone",
        "criteria_type": "solve_count",
        "criteria_value": 1,
        "icon_url": "/badges/first_blood.png",
        "rarity": "common",
        "points": 10,
        "sort_order": 1,
    },
    {
        "slug": "decade",
        "name": "Decade",
        "description": "Solve 10 questions",
        "category": "milestone",
        "criteria_type": "solve_count",
        "criteria_value": 10,
        "icon_url": "/badges/decade.png",
        "rarity": "common",
        "points": 25,
        "sort_order": 2,
    },
    {
        "slug": "half_century",
        "name": "Half Century",
        "description": "Solve 50 questions",
        "category": "milestone",
        "criteria_type": "solve_count",
        "criteria_value": 50,
        "icon_url": "/badges/half_century.png",
        "rarity": "rare",
        "points": 50,
        "sort_order": 3,
    },
    {
        "slug": "century_club",
        "name": "Century Club",
        "description": "Solve 100 questions",
        "category": "milestone",
        "criteria_type": "solve_count",
        "criteria_value": 100,
        "icon_url": "/badges/century.png",
        "rarity": "epic",
        "points": 100,
        "sort_order": 4,
    },
    {
        "slug": "legend",
        "name": "Legend",
        "description": "Solve 500 questions",
        "category": "milestone",
        "criteria_type": "solve_count",
        "criteria_value": 500,
        "icon_url": "/badges/legend.png",
        "rarity": "legendary",
        "points": 500,
        "sort_order": 5,
    },
    # Consistency
    {
        "slug": "getting_started",
        "name": "Getting Started",
        "description": "Practice for 3 consecutive days",
        "category": "consistency",
        "criteria_type": "streak_days",
        "criteria_value": 3,
        "icon_url": "/badges/streak_3.png",
        "rarity": "common",
        "points": 15,
        "sort_order": 6,
    },
    {
        "slug": "week_warrior",
        "name": "Week Warrior",
        "description": "Maintain a 7-day streak",
        "category": "consistency",
        "criteria_type": "streak_days",
        "criteria_value": 7,
        "icon_url": "/badges/streak_7.png",
        "rarity": "rare",
        "points": 50,
        "sort_order": 7,
    },
    {
        "slug": "unstoppable",
        "name": "Unstoppable",
        "description": "Maintain a 30-day streak",
        "category": "consistency",
        "criteria_type": "streak_days",
        "criteria_value": 30,
        "icon_url": "/badges/streak_30.png",
        "rarity": "epic",
        "points": 150,
        "sort_order": 8,
    },
    {
        "slug": "dedication",
        "name": "Dedication",
        "description": "Maintain a 100-day streak",
        "category": "consistency",
        "criteria_type": "streak_days",
        "criteria_value": 100,
        "icon_url": "/badges/streak_100.png",
        "rarity": "legendary",
        "points": 500,
        "sort_order": 9,
    },
    # Mastery
    {
        "slug": "perfectionist",
        "name": "Perfectionist",
        "description": "Achieve 100% accuracy (min 10 questions)",
        "category": "mastery",
        "criteria_type": "accuracy",
        "criteria_value": 100,
        "icon_url": "/badges/perfect.png",
        "rarity": "epic",
        "points": 100,
        "sort_order": 10,
    },
    {
        "slug": "sharpshooter",
        "name": "Sharpshooter",
        "description": "Achieve 90% overall accuracy",
        "category": "mastery",
        "criteria_type": "accuracy",
        "criteria_value": 90,
        "icon_url": "/badges/accuracy_90.png",
        "rarity": "rare",
        "points": 75,
        "sort_order": 11,
    },
    # Special
    {
        "slug": "early_bird",
        "name": "Early Bird",
        "description": "Practice before 6 AM",
        "category": "special",
        "criteria_type": "time_based",
        "criteria_value": 1,
        "icon_url": "/badges/early_bird.png",
        "rarity": "rare",
        "points": 25,
        "sort_order": 12,
    },
    {
        "slug": "night_owl",
        "name": "Night Owl",
        "description": "Practice after 10 PM",
        "category": "special",
        "criteria_type": "time_based",
        "criteria_value": 1,
        "icon_url": "/badges/night_owl.png",
        "rarity": "rare",
        "points": 25,
        "sort_order": 13,
    },
    {
        "slug": "speed_demon",
        "name": "Speed Demon",
        "description": "Solve 10 questions in one day",
        "category": "special",
        "criteria_type": "time_based",
        "criteria_value": 10,
        "icon_url": "/badges/speed.png",
        "rarity": "epic",
        "points": 50,
        "sort_order": 14,
    },
]


async def seed_badges(db: AsyncSession) -> int:
    """Upsert all badge definitions. Returns number of badges seeded."""
    seeded = 0
    for badge_data in BADGE_SEED_DATA:
        stmt = dialect_insert(db, BadgeDefinition).values(**badge_data)
        stmt = stmt.on_conflict_do_update(
            index_elements=["slug"],
            set_={
                "name": stmt.excluded.name,
                "description": stmt.excluded.description,
                "category": stmt.excluded.category,
                "criteria_type": stmt.excluded.criteria_type,
                "criteria_value": stmt.excluded.criteria_value,
                "icon_url": stmt.excluded.icon_url,
                "rarity": stmt.excluded.rarity,
                "points": stmt.excluded.points,
                "sort_order": stmt.excluded.sort_order,
            },
        )
        await db.execute(stmt)
        seeded += 1

    await db.commit()
    logger.info("Seeded %d badge definitions", seeded)
    return seeded
