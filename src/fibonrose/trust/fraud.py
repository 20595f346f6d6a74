# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""
Heuristic detection of reputation gaming.

The detector is deterministic and stateless. It inspects a principal's
recent event window and reports flags; it never freezes anything itself.
False positives are acceptable because a freeze is reversible by review.
"""
from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence

from pydantic import BaseModel, Field

from fibonrose.config import FraudConfig
from fibonrose.trust.record import TrustEvent

logger = logging.getLogger("fibonrose.fraud")

VELOCITY_FLAG = "Excessive activity in short timeframe"


class FraudVerdict(BaseModel, frozen=True):
    """
    Result of a fraud evaluation.

    Attributes:
        principal_id: The principal that was evaluated.
        suspicious: True if any heuristic raised a flag.
        flags: Human-readable flags, velocity first, then repetitions in
            first-seen order.
    """

    principal_id: str
    suspicious: bool
    flags: list[str] = Field(default_factory=list)

    @property
    def reason(self) -> str:
        return "Suspicious reputation gaming detected: " + ", ".join(self.flags)


class FraudDetector:
    """
    Evaluates velocity and repetition heuristics over a recent event window.

    Velocity: any run of ``velocity_count_threshold + 1`` consecutive events
    (ordered by timestamp) spanning less than ``velocity_time_window``.

    Repetition: any event type occurring more than
    ``repetition_count_threshold`` times in the window.

    Example::

        detector = FraudDetector(FraudConfig(repetition_count_threshold=20))
        verdict = detector.evaluate("user-1", record.recent_events)
        if verdict.suspicious:
            ...
    """

    def __init__(self, config: FraudConfig | None = None) -> None:
        self._config = config or FraudConfig()

    @property
    def config(self) -> FraudConfig:
        return self._config

    def evaluate(self, principal_id: str, recent_events: Sequence[TrustEvent]) -> FraudVerdict:
        flags: list[str] = []

        if self._has_velocity_burst(recent_events):
            flags.append(VELOCITY_FLAG)

        counts = Counter(event.event_type for event in recent_events)
        for event_type, count in counts.items():
            if count > self._config.repetition_count_threshold:
                flags.append(f"Repeated action: {event_type} ({count} times)")

        if flags:
            logger.warning(
                "fraud_flags_raised",
                extra={"principal_id": principal_id, "flags": flags},
            )

        return FraudVerdict(principal_id=principal_id, suspicious=bool(flags), flags=flags)

    def _has_velocity_burst(self, recent_events: Sequence[TrustEvent]) -> bool:
        run = self._config.velocity_count_threshold + 1
        if len(recent_events) < run:
            return False

        timestamps = sorted(event.timestamp for event in recent_events)
        window = self._config.velocity_time_window
        for start in range(len(timestamps) - run + 1):
            if timestamps[start + run - 1] - timestamps[start] < window:
                return True
        return False
