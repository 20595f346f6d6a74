# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

from collections.abc import Iterable, Mapping

from pydantic import BaseModel, Field


class BadgeDefinition(BaseModel, frozen=True):
    """
    A static achievement.

    A badge is auto-awarded when every criterion it declares is met. Badges
    declaring no criteria are never auto-awarded; they can only be granted
    explicitly through :meth:`~fibonrose.trust.ledger.TrustLedger.grant_badge`.

    Attributes:
        badge_id: Stable identifier stored on trust records.
        name: Display name.
        description: Display description.
        required_score: Minimum total score, if score-based.
        required_events: Lifetime count required per event type, if
            event-count based.
    """

    badge_id: str
    name: str
    description: str
    required_score: int | None = None
    required_events: dict[str, int] = Field(default_factory=dict)

    @property
    def is_automatic(self) -> bool:
        return self.required_score is not None or bool(self.required_events)


DEFAULT_BADGES: tuple[BadgeDefinition, ...] = (
    BadgeDefinition(
        badge_id="founding_member",
        name="Founding Member",
        description="Early adopter of the ecosystem",
    ),
    BadgeDefinition(
        badge_id="top_contributor",
        name="Top Contributor",
        description="Consistently contributes high-quality work",
        required_score=500,
    ),
    BadgeDefinition(
        badge_id="community_guardian",
        name="Community Guardian",
        description="Helps protect and support the community",
        required_score=300,
    ),
    BadgeDefinition(
        badge_id="active_voter",
        name="Active Voter",
        description="Participates actively in DAO governance",
        required_events={"dao_vote": 10},
    ),
    BadgeDefinition(
        badge_id="mentor",
        name="Mentor",
        description="Guides and supports other community members",
        required_events={"mentor_session": 5},
    ),
    BadgeDefinition(
        badge_id="asl_creator",
        name="ASL Creator",
        description="Creates ASL content for the community",
        required_events={"asl_content_created": 3},
    ),
)


def is_eligible(badge: BadgeDefinition, score: int, event_counts: Mapping[str, int]) -> bool:
    """Return True if ``badge`` is auto-awardable and all its criteria are met."""
    if not badge.is_automatic:
        return False
    if badge.required_score is not None and score < badge.required_score:
        return False
    for event_type, required in badge.required_events.items():
        if event_counts.get(event_type, 0) < required:
            return False
    return True


def eligible_badges(
    definitions: Iterable[BadgeDefinition],
    score: int,
    event_counts: Mapping[str, int],
    held: Iterable[str],
) -> list[str]:
    """
    Return ids of badges newly earned at this state, in catalogue order.

    Already-held badges are skipped, so calling this repeatedly on the same
    state returns an empty list after the first award.
    """
    already = set(held)
    return [
        badge.badge_id
        for badge in definitions
        if badge.badge_id not in already and is_eligible(badge, score, event_counts)
    ]
