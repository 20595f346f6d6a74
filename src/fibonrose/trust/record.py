# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class TrustEvent(BaseModel, frozen=True):
    """
    An applied, already-classified contribution or violation.

    Attributes:
        event_id: Unique id. Caller-supplied ids make replays idempotent.
        event_type: Key into the event table.
        source: External system that reported the event.
        points: Signed point delta resolved from the event table.
        detail: Opaque payload kept for audit only.
        timestamp: When the event occurred (UTC).
        new_total: The principal's total score after this event.
    """

    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    event_type: str
    source: str
    points: int
    detail: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=_utcnow)
    new_total: int = 0


class TrustRecord(BaseModel, frozen=True):
    """
    Snapshot of one principal's trust state.

    Records are immutable values; the ledger replaces the stored record on
    every update, so a snapshot handed to a caller never changes under it.

    Attributes:
        principal_id: The principal this record belongs to.
        total_score: Signed total. May go negative under violations.
        level: Level derived from ``total_score`` via the threshold table.
        badges: Earned badge ids in award order. Never shrinks.
        recent_events: The last K applied events, newest last.
        event_counts: Lifetime count of applied events per event type.
        frozen: When True, positive-delta events are rejected.
        freeze_reason: Why the record was frozen.
        frozen_at: When the record was frozen.
        applied_event_ids: Caller-supplied ids of applied events, for replay detection.
        created_at: When the record was first created.
        updated_at: When the record last changed.
    """

    principal_id: str
    total_score: int = 0
    level: int = 1
    badges: tuple[str, ...] = ()
    recent_events: tuple[TrustEvent, ...] = ()
    event_counts: dict[str, int] = Field(default_factory=dict)
    frozen: bool = False
    freeze_reason: str | None = None
    frozen_at: datetime | None = None
    applied_event_ids: frozenset[str] = Field(default_factory=frozenset)
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class ApplyEventResult(BaseModel, frozen=True):
    """
    Outcome of :meth:`~fibonrose.trust.ledger.TrustLedger.apply_event`.

    A freeze triggered by the fraud detector is reported here rather than
    raised, so the caller can route the principal to review.

    Attributes:
        principal_id: The principal the event was applied to.
        event: The applied event.
        explanation: Human-readable explanation of the point change.
        previous_score: Score before the event.
        new_score: Score after the event.
        previous_level: Level before the event.
        new_level: Level after the event.
        leveled_up: True when ``new_level > previous_level``.
        badges_earned: Badge ids first awarded by this event.
        frozen: Whether the record is frozen after this event.
        freeze_reason: Freeze reason, when frozen.
        newly_frozen: True when this update froze the record.
        fraud_flags: Flags raised by the fraud detector on this update.
        duplicate: True when ``event.event_id`` had already been applied;
            no state changed.
    """

    principal_id: str
    event: TrustEvent
    explanation: str
    previous_score: int
    new_score: int
    previous_level: int
    new_level: int
    leveled_up: bool
    badges_earned: list[str] = Field(default_factory=list)
    frozen: bool = False
    freeze_reason: str | None = None
    newly_frozen: bool = False
    fraud_flags: list[str] = Field(default_factory=list)
    duplicate: bool = False
