"""
Level calculator.

A level is a pure function of accumulated points. It is never persisted:
every eligibility decision recomputes it from the current point total.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


# (minimum points, level), highest first
LEVEL_THRESHOLDS: tuple[tuple[int, int], ...] = (
    (100_000, 10),
    (50_000, 9),
    (20_000, 8),
    (10_000, 7),
    (5_000, 6),
    (2_000, 5),
    (1_000, 4),
    (500, 3),
    (250, 2),
    (100, 1),
    (0, 0),
)

MAX_LEVEL = LEVEL_THRESHOLDS[0][1]


@dataclass
class LevelProgress:
    level: int
    points: int
    next_level: Optional[int]
    next_level_points: Optional[int]
    points_to_next_level: int


def level_for_points(points: int) -> int:
    for minimum, level in LEVEL_THRESHOLDS:
        if points >= minimum:
            return level
    return 0


def points_for_level(level: int) -> int:
    """Minimum points needed to reach `level`."""
    for minimum, lvl in LEVEL_THRESHOLDS:
        if lvl == level:
            return minimum
    raise ValueError(f"unknown level {level}")


def level_progress(points: int) -> LevelProgress:
    level = level_for_points(points)
    if level >= MAX_LEVEL:
        return LevelProgress(
            level=level,
            points=points,
            next_level=None,
            next_level_points=None,
            points_to_next_level=0,
        )
    next_points = points_for_level(level + 1)
    return LevelProgress(
        level=level,
        points=points,
        next_level=level + 1,
        next_level_points=next_points,
        points_to_next_level=next_points - points,
    )
