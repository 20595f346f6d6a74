# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""
Pure trust primitives: event classification, level table and badge checks.

The stateful pieces live in :mod:`fibonrose.trust.ledger` and
:mod:`fibonrose.trust.fraud`; import them from there.
"""
from __future__ import annotations

from fibonrose.trust.badges import DEFAULT_BADGES, BadgeDefinition, eligible_badges, is_eligible
from fibonrose.trust.classifier import (
    DEFAULT_EVENT_TABLE,
    EventClassification,
    EventClassifier,
    EventDefinition,
)
from fibonrose.trust.levels import (
    DEFAULT_LEVEL_THRESHOLDS,
    LevelProgress,
    calculate_level,
    level_progress,
    level_threshold,
)

__all__ = [
    "BadgeDefinition",
    "DEFAULT_BADGES",
    "eligible_badges",
    "is_eligible",
    "EventClassifier",
    "EventClassification",
    "EventDefinition",
    "DEFAULT_EVENT_TABLE",
    "DEFAULT_LEVEL_THRESHOLDS",
    "LevelProgress",
    "calculate_level",
    "level_progress",
    "level_threshold",
]
