# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""
Event classification: the single source of truth for point values.

Actors never hardcode their own scoring. They submit a named event type and
the ledger resolves its signed point delta through :class:`EventClassifier`.
"""
from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from pydantic import BaseModel

from fibonrose.errors import UnknownEventTypeError


class EventDefinition(BaseModel, frozen=True):
    """
    A registered event type.

    Attributes:
        points: Signed point delta. Positive for contributions, negative
            for violations.
        description: Second-person sentence used in explanations.
    """

    points: int
    description: str


class EventClassification(BaseModel, frozen=True):
    """Result of classifying an event type."""

    event_type: str
    point_delta: int
    explanation: str

    @property
    def is_violation(self) -> bool:
        return self.point_delta < 0


DEFAULT_EVENT_TABLE: Mapping[str, EventDefinition] = MappingProxyType(
    {
        # Gig marketplace
        "complete_gig": EventDefinition(points=40, description="You completed a gig on SignGigs"),
        "gig_5star_review": EventDefinition(points=10, description="You received a 5-star review"),
        "first_gig_completed": EventDefinition(
            points=40, description="You completed your first gig (bonus!)"
        ),
        # DAO participation
        "dao_vote": EventDefinition(points=5, description="You voted in a DAO proposal"),
        "dao_proposal_submitted": EventDefinition(
            points=15, description="You submitted a DAO proposal"
        ),
        "dao_proposal_approved": EventDefinition(
            points=50, description="Your DAO proposal was approved"
        ),
        # Community
        "help_community_member": EventDefinition(
            points=10, description="You helped a community member"
        ),
        "create_tutorial": EventDefinition(points=25, description="You created a tutorial"),
        "asl_content_created": EventDefinition(points=30, description="You created ASL content"),
        "mentor_session": EventDefinition(points=30, description="You mentored another user"),
        # Profile and onboarding
        "complete_profile": EventDefinition(points=20, description="You completed your profile"),
        "verify_email": EventDefinition(points=10, description="You verified your email address"),
        "verify_identity": EventDefinition(points=15, description="You verified your identity"),
        "complete_onboarding": EventDefinition(points=25, description="You completed onboarding"),
        # Violations
        "harassment_violation": EventDefinition(
            points=-100, description="A harassment violation was recorded"
        ),
        "scam_attempt": EventDefinition(points=-200, description="A scam attempt was recorded"),
        "spam": EventDefinition(points=-20, description="Spam was reported"),
    }
)


def explain(description: str, points: int) -> str:
    """Format an explanation such as ``'You voted in a DAO proposal (+5 points)'``."""
    signed = f"+{points}" if points > 0 else str(points)
    return f"{description} ({signed} points)"


class EventClassifier:
    """
    Pure lookup from event type to point delta and explanation.

    The table is copied into a read-only mapping at construction; there is
    no way to register or change event types afterwards.

    Example::

        classifier = EventClassifier()
        result = classifier.classify("complete_gig")
        assert result.point_delta == 40
    """

    def __init__(self, table: Mapping[str, EventDefinition] | None = None) -> None:
        source = DEFAULT_EVENT_TABLE if table is None else table
        self._table: Mapping[str, EventDefinition] = MappingProxyType(dict(source))

    def classify(self, event_type: str) -> EventClassification:
        """
        Resolve the point delta and explanation for ``event_type``.

        Raises:
            UnknownEventTypeError: If the type is not in the table.
        """
        definition = self._table.get(event_type)
        if definition is None:
            raise UnknownEventTypeError(event_type)
        return EventClassification(
            event_type=event_type,
            point_delta=definition.points,
            explanation=explain(definition.description, definition.points),
        )

    def explain(self, event_type: str, points: int) -> str:
        """
        Explain a historical point change.

        Unlike :meth:`classify` this never raises, so explanations for events
        recorded under an older table still render.
        """
        definition = self._table.get(event_type)
        description = definition.description if definition else f"Action: {event_type}"
        return explain(description, points)

    def is_registered(self, event_type: str) -> bool:
        return event_type in self._table

    def event_types(self) -> list[str]:
        return sorted(self._table)
