# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""
Tests for the pure trust rules: EventClassifier, level calculation, badge
eligibility and the FraudDetector heuristics.
"""

from __future__ import annotations

from datetime import timedelta

import pytest

from fibonrose.config import FraudConfig
from fibonrose.errors import UnknownEventTypeError
from fibonrose.trust.badges import DEFAULT_BADGES, BadgeDefinition, eligible_badges, is_eligible
from fibonrose.trust.classifier import EventClassifier, EventDefinition
from fibonrose.trust.fraud import VELOCITY_FLAG, FraudDetector
from fibonrose.trust.levels import (
    DEFAULT_LEVEL_THRESHOLDS,
    calculate_level,
    level_progress,
    level_threshold,
)


# ---------------------------------------------------------------------------
# TestEventClassifier
# ---------------------------------------------------------------------------


class TestEventClassifier:
    def test_contribution_resolves_positive_delta(self) -> None:
        result = EventClassifier().classify("complete_gig")
        assert result.point_delta == 40
        assert result.explanation == "You completed a gig on SignGigs (+40 points)"
        assert result.is_violation is False

    def test_violation_resolves_negative_delta(self) -> None:
        result = EventClassifier().classify("harassment_violation")
        assert result.point_delta == -100
        assert result.is_violation is True
        assert result.explanation.endswith("(-100 points)")

    def test_unknown_event_type_raises(self) -> None:
        with pytest.raises(UnknownEventTypeError) as exc_info:
            EventClassifier().classify("made_up_event")
        assert exc_info.value.code == "UNKNOWN_EVENT_TYPE"
        assert exc_info.value.event_type == "made_up_event"

    def test_custom_table_replaces_defaults(self) -> None:
        classifier = EventClassifier({"ship_it": EventDefinition(points=7, description="You shipped")})
        assert classifier.classify("ship_it").point_delta == 7
        assert classifier.is_registered("complete_gig") is False

    def test_table_is_copied_at_construction(self) -> None:
        table = {"ship_it": EventDefinition(points=7, description="You shipped")}
        classifier = EventClassifier(table)
        table["late_entry"] = EventDefinition(points=1, description="Late")
        assert classifier.is_registered("late_entry") is False

    def test_explain_never_raises_for_unknown_types(self) -> None:
        text = EventClassifier().explain("retired_event", 12)
        assert text == "Action: retired_event (+12 points)"

    def test_event_types_are_sorted(self) -> None:
        types = EventClassifier().event_types()
        assert types == sorted(types)
        assert "dao_vote" in types


# ---------------------------------------------------------------------------
# TestLevels
# ---------------------------------------------------------------------------


class TestLevels:
    @pytest.mark.parametrize(
        ("score", "expected"),
        [(0, 1), (49, 1), (50, 2), (99, 2), (100, 3), (120, 3), (850, 7), (3000, 10), (99999, 10)],
    )
    def test_calculate_level_uses_threshold_table(self, score: int, expected: int) -> None:
        assert calculate_level(score) == expected

    def test_negative_score_is_level_one(self) -> None:
        assert calculate_level(-250) == 1

    def test_custom_thresholds(self) -> None:
        assert calculate_level(15, (10, 20, 30)) == 1
        assert calculate_level(5, (10, 20, 30)) == 1
        assert calculate_level(25, (10, 20, 30)) == 2

    def test_level_threshold_outside_table_is_none(self) -> None:
        assert level_threshold(0) is None
        assert level_threshold(len(DEFAULT_LEVEL_THRESHOLDS) + 1) is None
        assert level_threshold(2) == 50

    def test_level_progress_mid_level(self) -> None:
        progress = level_progress(75)
        assert progress.level == 2
        assert progress.current_threshold == 50
        assert progress.next_threshold == 100
        assert progress.points_to_next == 25
        assert progress.percentage == 50

    def test_level_progress_at_top_of_table(self) -> None:
        progress = level_progress(5000)
        assert progress.level == 10
        assert progress.next_threshold is None
        assert progress.points_to_next == 0
        assert progress.percentage == 100


# ---------------------------------------------------------------------------
# TestBadges
# ---------------------------------------------------------------------------


class TestBadges:
    def test_score_badges_awarded_at_threshold(self) -> None:
        earned = eligible_badges(DEFAULT_BADGES, 500, {}, held=())
        assert earned == ["top_contributor", "community_guardian"]

    def test_event_count_badge_uses_lifetime_counters(self) -> None:
        earned = eligible_badges(DEFAULT_BADGES, 50, {"dao_vote": 10}, held=())
        assert earned == ["active_voter"]

    def test_held_badges_are_not_returned_again(self) -> None:
        earned = eligible_badges(DEFAULT_BADGES, 500, {}, held=("top_contributor",))
        assert earned == ["community_guardian"]

    def test_badge_without_criteria_is_never_automatic(self) -> None:
        founding = next(b for b in DEFAULT_BADGES if b.badge_id == "founding_member")
        assert founding.is_automatic is False
        assert is_eligible(founding, 10_000, {"dao_vote": 100}) is False

    def test_combined_criteria_require_both(self) -> None:
        badge = BadgeDefinition(
            badge_id="steward",
            name="Steward",
            description="Votes and scores",
            required_score=100,
            required_events={"dao_vote": 2},
        )
        assert is_eligible(badge, 100, {"dao_vote": 1}) is False
        assert is_eligible(badge, 99, {"dao_vote": 2}) is False
        assert is_eligible(badge, 100, {"dao_vote": 2}) is True


# ---------------------------------------------------------------------------
# TestFraudDetector
# ---------------------------------------------------------------------------


class TestFraudDetector:
    def test_fifty_one_events_within_an_hour_are_flagged(self, event_factory) -> None:
        events = event_factory("complete_gig", 51, timedelta(seconds=60))
        # Mix types so the repetition heuristic does not also fire.
        events = [
            event.model_copy(update={"event_type": f"type_{index % 5}"})
            for index, event in enumerate(events)
        ]
        verdict = FraudDetector().evaluate("user-001", events)
        assert verdict.suspicious is True
        assert verdict.flags == [VELOCITY_FLAG]

    def test_fifty_events_across_two_hours_are_not_flagged(self, event_factory) -> None:
        events = event_factory("complete_gig", 50, timedelta(minutes=2.4))
        events = [
            event.model_copy(update={"event_type": f"type_{index % 5}"})
            for index, event in enumerate(events)
        ]
        verdict = FraudDetector().evaluate("user-001", events)
        assert verdict.suspicious is False
        assert verdict.flags == []

    def test_fifty_one_events_spread_over_two_hours_are_not_flagged(self, event_factory) -> None:
        events = event_factory("complete_gig", 51, timedelta(minutes=2.4))
        events = [
            event.model_copy(update={"event_type": f"type_{index % 5}"})
            for index, event in enumerate(events)
        ]
        assert FraudDetector().evaluate("user-001", events).suspicious is False

    def test_repetition_over_threshold_is_flagged(self, event_factory) -> None:
        events = event_factory("dao_vote", 21, timedelta(seconds=20))
        verdict = FraudDetector().evaluate("user-001", events)
        assert verdict.suspicious is True
        assert verdict.flags == ["Repeated action: dao_vote (21 times)"]
        assert "dao_vote" in verdict.reason

    def test_repetition_at_threshold_is_not_flagged(self, event_factory) -> None:
        events = event_factory("dao_vote", 20, timedelta(seconds=20))
        assert FraudDetector().evaluate("user-001", events).suspicious is False

    def test_both_heuristics_combine(self, event_factory) -> None:
        events = event_factory("dao_vote", 60, timedelta(seconds=10))
        verdict = FraudDetector().evaluate("user-001", events)
        assert verdict.flags == [VELOCITY_FLAG, "Repeated action: dao_vote (60 times)"]

    def test_thresholds_come_from_config(self, event_factory) -> None:
        detector = FraudDetector(
            FraudConfig(
                velocity_count_threshold=3,
                velocity_time_window=timedelta(minutes=5),
                repetition_count_threshold=100,
            )
        )
        events = event_factory("dao_vote", 4, timedelta(minutes=1))
        assert detector.evaluate("user-001", events).flags == [VELOCITY_FLAG]

    def test_empty_window_is_clean(self) -> None:
        verdict = FraudDetector().evaluate("user-001", [])
        assert verdict.suspicious is False
