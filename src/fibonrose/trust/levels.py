# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""
Level table for trust scores.

Levels are 1-based. Level ``i`` is reached when the total score is at or
above ``thresholds[i - 1]``; thresholds follow a Fibonacci-like progression.
"""
from __future__ import annotations

from collections.abc import Sequence

from pydantic import BaseModel

DEFAULT_LEVEL_THRESHOLDS: tuple[int, ...] = (0, 50, 100, 200, 350, 550, 850, 1300, 2000, 3000)

#: Level reported for any score below the first threshold.
MIN_LEVEL: int = 1


class LevelProgress(BaseModel, frozen=True):
    """
    Progress of a score through the level table.

    Attributes:
        level: Current level.
        current_threshold: Score at which the current level starts.
        next_threshold: Score at which the next level starts, or None at the
            top of the table.
        points_to_next: Points still needed for the next level (0 at the top).
        percentage: Rounded percentage of the current level completed.
    """

    level: int
    current_threshold: int
    next_threshold: int | None
    points_to_next: int
    percentage: int


def calculate_level(score: int, thresholds: Sequence[int] = DEFAULT_LEVEL_THRESHOLDS) -> int:
    """
    Return the largest level whose threshold is at or below ``score``.

    Scans the table from the top down. Negative scores and scores below the
    first threshold are level 1.
    """
    for index in range(len(thresholds) - 1, -1, -1):
        if score >= thresholds[index]:
            return index + 1
    return MIN_LEVEL


def level_threshold(level: int, thresholds: Sequence[int] = DEFAULT_LEVEL_THRESHOLDS) -> int | None:
    """Return the threshold for ``level``, or None if the level is outside the table."""
    if level < MIN_LEVEL or level > len(thresholds):
        return None
    return thresholds[level - 1]


def level_progress(score: int, thresholds: Sequence[int] = DEFAULT_LEVEL_THRESHOLDS) -> LevelProgress:
    """Compute how far ``score`` has progressed through its current level."""
    level = calculate_level(score, thresholds)
    current = thresholds[level - 1]
    upcoming = level_threshold(level + 1, thresholds)

    if upcoming is None:
        return LevelProgress(
            level=level,
            current_threshold=current,
            next_threshold=None,
            points_to_next=0,
            percentage=100,
        )

    span = upcoming - current
    gained = max(score - current, 0)
    return LevelProgress(
        level=level,
        current_threshold=current,
        next_threshold=upcoming,
        points_to_next=upcoming - score,
        percentage=round(gained / span * 100),
    )
