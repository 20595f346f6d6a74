# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

import asyncio
import logging
import weakref
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel

from fibonrose.config import FraudConfig, LedgerConfig
from fibonrose.errors import AccountFrozenError, InsufficientTrustError, UnknownBadgeError
from fibonrose.storage.interface import TrustStorage
from fibonrose.storage.memory import MemoryTrustStorage
from fibonrose.trust.badges import eligible_badges
from fibonrose.trust.classifier import EventClassifier
from fibonrose.trust.fraud import FraudDetector
from fibonrose.trust.levels import calculate_level
from fibonrose.trust.record import ApplyEventResult, TrustEvent, TrustRecord

logger = logging.getLogger("fibonrose.ledger")


class TrustCheckResult(BaseModel, frozen=True):
    """
    Result of checking a principal's level against a required minimum.

    Attributes:
        allowed: True if the principal meets or exceeds the required level.
        principal_id: The principal that was evaluated.
        required_level: The minimum level required.
        actual_level: The principal's current level.
        reason: Human-readable explanation.
    """

    allowed: bool
    principal_id: str
    required_level: int
    actual_level: int
    reason: str


class LeaderboardEntry(BaseModel, frozen=True):
    rank: int
    principal_id: str
    score: int
    level: int
    badges: list[str]


class TrustLedger:
    """
    Owns every principal's trust record.

    :meth:`apply_event` is the single update entry point for scores. Updates
    for one principal are serialised with a per-principal lock; different
    principals update concurrently.

    Example::

        ledger = TrustLedger()
        result = await ledger.apply_event("user-1", "complete_gig", source="signgigs")
        assert result.new_score == 40
    """

    def __init__(
        self,
        config: LedgerConfig | None = None,
        storage: TrustStorage | None = None,
        detector: FraudDetector | None = None,
        fraud_config: FraudConfig | None = None,
    ) -> None:
        self._config = config or LedgerConfig()
        self._storage: TrustStorage = storage if storage is not None else MemoryTrustStorage()
        self._detector = detector or FraudDetector(fraud_config)
        self._classifier = EventClassifier(self._config.event_table)
        self._badges = {badge.badge_id: badge for badge in self._config.badges}
        # Entries vanish once no update holds or awaits the lock.
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    @property
    def classifier(self) -> EventClassifier:
        return self._classifier

    @property
    def detector(self) -> FraudDetector:
        return self._detector

    @property
    def config(self) -> LedgerConfig:
        return self._config

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    async def apply_event(
        self,
        principal_id: str,
        event_type: str,
        source: str,
        detail: dict[str, Any] | None = None,
        *,
        event_id: str | None = None,
        occurred_at: datetime | None = None,
    ) -> ApplyEventResult:
        """
        Apply a contribution or violation event to a principal's record.

        Steps: classify, reject positive deltas while frozen, append to the
        recent window (evicting the oldest beyond K), add the delta without
        clamping, recompute the level, award newly eligible badges using
        lifetime counters, then run the fraud detector and freeze on a
        suspicious verdict. A freeze is reported in the result, not raised.

        Args:
            principal_id: The principal the event applies to.
            event_type: Key into the event table.
            source: External system reporting the event.
            detail: Opaque payload stored for audit.
            event_id: Optional caller-supplied id. Replaying an id that was
                already applied changes nothing and returns ``duplicate=True``.
            occurred_at: When the event happened. Defaults to now. Naive
                values are taken as UTC; aware values are converted to UTC.

        Raises:
            ValueError: If ``principal_id`` is empty.
            UnknownEventTypeError: If ``event_type`` is not registered.
            AccountFrozenError: If the record is frozen and the delta is positive.
        """
        if not principal_id:
            raise ValueError("principal_id must be a non-empty string.")

        classification = self._classifier.classify(event_type)
        delta = classification.point_delta

        async with self._lock_for(principal_id):
            record = await self._load(principal_id)

            if event_id is not None and event_id in record.applied_event_ids:
                return self._duplicate_result(record, event_id, event_type, source, delta)

            if record.frozen and delta > 0:
                logger.warning(
                    "positive_event_blocked",
                    extra={
                        "principal_id": principal_id,
                        "event_type": event_type,
                        "freeze_reason": record.freeze_reason,
                    },
                )
                raise AccountFrozenError(principal_id, record.freeze_reason)

            new_score = record.total_score + delta
            event_fields: dict[str, Any] = {
                "event_type": event_type,
                "source": source,
                "points": delta,
                "detail": dict(detail or {}),
                "new_total": new_score,
            }
            if event_id is not None:
                event_fields["event_id"] = event_id
            if occurred_at is not None:
                event_fields["timestamp"] = _as_utc(occurred_at)
            event = TrustEvent(**event_fields)

            window = (*record.recent_events, event)
            capacity = self._config.recent_event_window_size
            if len(window) > capacity:
                window = window[-capacity:]

            counts = dict(record.event_counts)
            counts[event_type] = counts.get(event_type, 0) + 1

            new_level = calculate_level(new_score, self._config.level_thresholds)
            earned = eligible_badges(self._config.badges, new_score, counts, record.badges)

            verdict = self._detector.evaluate(principal_id, window)
            frozen = record.frozen
            freeze_reason = record.freeze_reason
            frozen_at = record.frozen_at
            newly_frozen = verdict.suspicious and not record.frozen
            if newly_frozen:
                frozen = True
                freeze_reason = verdict.reason
                frozen_at = datetime.now(tz=timezone.utc)

            updated = record.model_copy(
                update={
                    "total_score": new_score,
                    "level": new_level,
                    "badges": (*record.badges, *earned),
                    "recent_events": window,
                    "event_counts": counts,
                    "frozen": frozen,
                    "freeze_reason": freeze_reason,
                    "frozen_at": frozen_at,
                    "applied_event_ids": (
                        record.applied_event_ids | {event_id}
                        if event_id is not None
                        else record.applied_event_ids
                    ),
                    "updated_at": datetime.now(tz=timezone.utc),
                }
            )
            await self._storage.save(updated)

        logger.info(
            "trust_event_applied",
            extra={
                "principal_id": principal_id,
                "event_type": event_type,
                "points": delta,
                "new_score": new_score,
                "new_level": new_level,
                "badges_earned": earned,
            },
        )
        if newly_frozen:
            logger.warning(
                "trust_record_frozen",
                extra={"principal_id": principal_id, "flags": verdict.flags},
            )

        return ApplyEventResult(
            principal_id=principal_id,
            event=event,
            explanation=classification.explanation,
            previous_score=record.total_score,
            new_score=new_score,
            previous_level=record.level,
            new_level=new_level,
            leveled_up=new_level > record.level,
            badges_earned=earned,
            frozen=frozen,
            freeze_reason=freeze_reason,
            newly_frozen=newly_frozen,
            fraud_flags=verdict.flags,
        )

    async def freeze(self, principal_id: str, reason: str) -> TrustRecord:
        """Freeze a record explicitly. An already-frozen record keeps its original reason."""
        async with self._lock_for(principal_id):
            record = await self._load(principal_id)
            if record.frozen:
                return record
            now = datetime.now(tz=timezone.utc)
            updated = record.model_copy(
                update={"frozen": True, "freeze_reason": reason, "frozen_at": now, "updated_at": now}
            )
            await self._storage.save(updated)
        logger.warning("trust_record_frozen", extra={"principal_id": principal_id, "reason": reason})
        return updated

    async def unfreeze(self, principal_id: str) -> TrustRecord:
        """Clear a freeze. Called by the external review process."""
        async with self._lock_for(principal_id):
            record = await self._load(principal_id)
            updated = record.model_copy(
                update={
                    "frozen": False,
                    "freeze_reason": None,
                    "frozen_at": None,
                    "updated_at": datetime.now(tz=timezone.utc),
                }
            )
            await self._storage.save(updated)
        logger.info("trust_record_unfrozen", extra={"principal_id": principal_id})
        return updated

    async def grant_badge(self, principal_id: str, badge_id: str) -> bool:
        """
        Grant a badge outside the automatic criteria (e.g. ``founding_member``).

        Returns:
            True if the badge was added, False if the principal already held it.

        Raises:
            UnknownBadgeError: If ``badge_id`` is not in the catalogue.
        """
        if badge_id not in self._badges:
            raise UnknownBadgeError(badge_id)
        async with self._lock_for(principal_id):
            record = await self._load(principal_id)
            if badge_id in record.badges:
                return False
            updated = record.model_copy(
                update={
                    "badges": (*record.badges, badge_id),
                    "updated_at": datetime.now(tz=timezone.utc),
                }
            )
            await self._storage.save(updated)
        return True

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_record(self, principal_id: str) -> TrustRecord | None:
        return await self._storage.get(principal_id)

    async def get_score(self, principal_id: str) -> int:
        record = await self._storage.get(principal_id)
        return record.total_score if record else 0

    async def get_level(self, principal_id: str) -> int:
        """Return the current level; principals with no record are at the level of score 0."""
        record = await self._storage.get(principal_id)
        if record is None:
            return calculate_level(0, self._config.level_thresholds)
        return record.level

    async def check_level(self, principal_id: str, required_level: int) -> TrustCheckResult:
        """Check a principal's level without raising."""
        actual = await self.get_level(principal_id)
        allowed = actual >= required_level
        relation = "satisfies" if allowed else "is below"
        return TrustCheckResult(
            allowed=allowed,
            principal_id=principal_id,
            required_level=required_level,
            actual_level=actual,
            reason=(
                f"Principal '{principal_id}' has trust level {actual}, which {relation} "
                f"the required level {required_level}."
            ),
        )

    async def require_level(self, principal_id: str, required_level: int) -> None:
        """
        Raises:
            InsufficientTrustError: If the principal's level is below ``required_level``.
        """
        result = await self.check_level(principal_id, required_level)
        if not result.allowed:
            raise InsufficientTrustError(principal_id, required_level, result.actual_level)

    async def list_records(self) -> list[TrustRecord]:
        return await self._storage.list_all()

    async def leaderboard(self, limit: int = 10) -> list[LeaderboardEntry]:
        """Rank principals by score, highest first. Frozen records are excluded."""
        if limit < 1:
            raise ValueError(f"limit must be >= 1; got {limit}.")
        records = [record for record in await self._storage.list_all() if not record.frozen]
        records.sort(key=lambda record: (-record.total_score, record.principal_id))
        return [
            LeaderboardEntry(
                rank=position,
                principal_id=record.principal_id,
                score=record.total_score,
                level=record.level,
                badges=list(record.badges),
            )
            for position, record in enumerate(records[:limit], start=1)
        ]

    async def recent_changes(self, principal_id: str, since: datetime) -> list[TrustEvent]:
        """Return events in the recent window at or after ``since``, oldest first."""
        since = _as_utc(since)
        record = await self._storage.get(principal_id)
        if record is None:
            return []
        return [event for event in record.recent_events if event.timestamp >= since]

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _lock_for(self, principal_id: str) -> asyncio.Lock:
        lock = self._locks.get(principal_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[principal_id] = lock
        return lock

    async def _load(self, principal_id: str) -> TrustRecord:
        record = await self._storage.get(principal_id)
        if record is None:
            record = TrustRecord(
                principal_id=principal_id,
                level=calculate_level(0, self._config.level_thresholds),
            )
        return record

    def _duplicate_result(
        self,
        record: TrustRecord,
        event_id: str,
        event_type: str,
        source: str,
        delta: int,
    ) -> ApplyEventResult:
        event = next(
            (event for event in record.recent_events if event.event_id == event_id),
            None,
        )
        if event is None:
            # Evicted from the window; rebuild an equivalent view.
            event = TrustEvent(
                event_id=event_id,
                event_type=event_type,
                source=source,
                points=delta,
                new_total=record.total_score,
            )
        logger.info(
            "duplicate_trust_event_ignored",
            extra={"principal_id": record.principal_id, "event_id": event_id},
        )
        return ApplyEventResult(
            principal_id=record.principal_id,
            event=event,
            explanation=self._classifier.explain(event.event_type, event.points),
            previous_score=record.total_score,
            new_score=record.total_score,
            previous_level=record.level,
            new_level=record.level,
            leveled_up=False,
            frozen=record.frozen,
            freeze_reason=record.freeze_reason,
            duplicate=True,
        )


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)
