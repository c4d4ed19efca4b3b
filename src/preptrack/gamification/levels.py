"""Level computation.

Levels are flat 100-point bands: level = total_points // 100 + 1.
These values MUST match the frontend's level display.
"""

from __future__ import annotations

POINTS_PER_LEVEL = 100


def level_for_points(total_points: int) -> int:
    """Level derived from total points (never below 1)."""
    return max(total_points, 0) // POINTS_PER_LEVEL + 1


def compute_level(total_points: int) -> dict:
    """Level info including progress toward the next level."""
    level = level_for_points(total_points)
    floor_points = (level - 1) * POINTS_PER_LEVEL
    return {
        "level": level,
        "points_into_level": max(total_points, 0) - floor_points,
        "points_for_level": POINTS_PER_LEVEL,
        "next_level": level + 1,
        "next_level_at": level * POINTS_PER_LEVEL,
    }
