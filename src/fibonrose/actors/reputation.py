# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

from fibonrose.actors.base import (
    ActorInfo,
    Handler,
    describe,
    dispatch,
    require_param,
    target_principal,
)
from fibonrose.errors import InvalidParamsError, UnknownTargetActorError
from fibonrose.routing.request import CoordinationRequest
from fibonrose.trust.ledger import TrustLedger
from fibonrose.trust.levels import level_progress
from fibonrose.types import IdentityContext, Priority

if TYPE_CHECKING:
    from fibonrose.routing.router import CoordinationRouter

logger = logging.getLogger("fibonrose.actors.reputation")


class ReputationTrackerActor:
    """
    Front door to the trust ledger for users and other actors.

    Level-ups and new badges are announced through a MEDIUM
    ``send_notification`` request to the workflow automator. A freeze raised
    by the fraud detector is sent to the safety monitor as a HIGH
    ``review_reputation_gaming`` request.

    Args:
        ledger: The trust ledger.
        router: Router used for outgoing coordination. When None, no
            notifications or reviews are sent.
    """

    actor_id = "reputation_tracker"
    name = "Reputation Tracker"
    description = "Tracks trust scores, levels and badges, and watches for reputation gaming"
    capabilities = frozenset(
        {"score_tracking", "contribution_recording", "badge_management", "fraud_detection"}
    )
    anonymous_actions: frozenset[str] = frozenset({"leaderboard"})

    def __init__(self, ledger: TrustLedger, router: CoordinationRouter | None = None) -> None:
        self._ledger = ledger
        self._router = router
        self._handlers: dict[str, Handler] = {
            "view_score": self._view_score,
            "record_contribution": self._record_contribution,
            "explain_score_change": self._explain_score_change,
            "check_badges": self._check_badges,
            "detect_gaming": self._detect_gaming,
            "leaderboard": self._leaderboard,
        }
        self.actions = frozenset(self._handlers)

    async def execute(
        self, action: str, context: IdentityContext, params: dict[str, Any]
    ) -> dict[str, Any]:
        return await dispatch(self.actor_id, self._handlers, action, context, params)

    def has_capability(self, capability: str) -> bool:
        return capability in self.capabilities

    def info(self) -> ActorInfo:
        return describe(self)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    async def _view_score(self, context: IdentityContext, params: dict[str, Any]) -> dict[str, Any]:
        principal_id = target_principal("view_score", context, params)
        record = await self._ledger.get_record(principal_id)
        score = record.total_score if record else 0
        progress = level_progress(score, self._ledger.config.level_thresholds)
        recent = record.recent_events[-10:] if record else ()

        if context.prefers("prefer_asl"):
            message = "Your trust score is available in ASL video format"
        else:
            message = f"Your current trust score is {score}. You're at Level {progress.level}."

        return {
            "principal_id": principal_id,
            "score": score,
            "level": progress.level,
            "badges": list(record.badges) if record else [],
            "frozen": record.frozen if record else False,
            "progress": progress.model_dump(),
            "recent_activity": [event.model_dump(mode="json") for event in recent],
            "message": message,
        }

    async def _record_contribution(
        self, context: IdentityContext, params: dict[str, Any]
    ) -> dict[str, Any]:
        principal_id = target_principal("record_contribution", context, params)
        event_type = require_param("record_contribution", params, "event_type")
        result = await self._ledger.apply_event(
            principal_id,
            event_type,
            source=params.get("source") or self.actor_id,
            detail=params.get("detail"),
            event_id=params.get("event_id"),
        )

        if result.newly_frozen:
            await self._request_review(principal_id, result.fraud_flags, context)
        elif not result.duplicate and (result.leveled_up or result.badges_earned):
            await self._notify(
                principal_id,
                "level_up" if result.leveled_up else "badge_earned",
                {"new_level": result.new_level, "badges": result.badges_earned},
            )

        if result.leveled_up:
            message = f"Congratulations! You've reached Level {result.new_level}!"
        else:
            message = f"{result.explanation}. Your new score: {result.new_score}."

        return {
            "principal_id": principal_id,
            "event_id": result.event.event_id,
            "event_type": event_type,
            "points": result.event.points,
            "explanation": result.explanation,
            "new_score": result.new_score,
            "new_level": result.new_level,
            "leveled_up": result.leveled_up,
            "badges_earned": result.badges_earned,
            "frozen": result.frozen,
            "duplicate": result.duplicate,
            "message": message,
        }

    async def _explain_score_change(
        self, context: IdentityContext, params: dict[str, Any]
    ) -> dict[str, Any]:
        principal_id = target_principal("explain_score_change", context, params)
        days = int(params.get("days", 7))
        if days < 1:
            raise InvalidParamsError("explain_score_change", "'days' must be >= 1")

        since = datetime.now(timezone.utc) - timedelta(days=days)
        events = await self._ledger.recent_changes(principal_id, since)
        classifier = self._ledger.classifier
        changes = [
            {
                "timestamp": event.timestamp.isoformat(),
                "event_type": event.event_type,
                "points": event.points,
                "explanation": classifier.explain(event.event_type, event.points),
                "new_total": event.new_total,
            }
            for event in events
        ]
        total_change = sum(event.points for event in events)

        if total_change > 0:
            message = f"You gained {total_change} points in the last {days} days!"
        elif total_change < 0:
            message = f"Your score decreased by {abs(total_change)} points in the last {days} days."
        else:
            message = f"No changes to your score in the last {days} days."

        return {
            "principal_id": principal_id,
            "period_days": days,
            "changes": changes,
            "total_change": total_change,
            "current_score": await self._ledger.get_score(principal_id),
            "message": message,
        }

    async def _check_badges(self, context: IdentityContext, params: dict[str, Any]) -> dict[str, Any]:
        principal_id = target_principal("check_badges", context, params)
        record = await self._ledger.get_record(principal_id)
        held = set(record.badges) if record else set()
        score = record.total_score if record else 0
        counts = record.event_counts if record else {}
        catalogue = self._ledger.config.badges

        earned = [badge.model_dump() for badge in catalogue if badge.badge_id in held]
        available = []
        for badge in catalogue:
            if badge.badge_id in held:
                continue
            progress = {
                event_type: {"have": counts.get(event_type, 0), "need": needed}
                for event_type, needed in badge.required_events.items()
            }
            available.append(
                {
                    **badge.model_dump(),
                    "automatic": badge.is_automatic,
                    "score_met": badge.required_score is not None and score >= badge.required_score,
                    "event_progress": progress,
                }
            )

        total = len(catalogue)
        return {
            "principal_id": principal_id,
            "earned": earned,
            "available": available,
            "total_earned": len(earned),
            "total_available": total,
            "percent_complete": round(len(earned) / total * 100) if total else 0,
            "message": f"You have earned {len(earned)} of {total} badges.",
        }

    async def _detect_gaming(self, context: IdentityContext, params: dict[str, Any]) -> dict[str, Any]:
        principal_id = target_principal("detect_gaming", context, params)
        record = await self._ledger.get_record(principal_id)
        if record is None:
            return {"principal_id": principal_id, "suspicious": False, "flags": []}

        verdict = self._ledger.detector.evaluate(principal_id, record.recent_events)
        if not verdict.suspicious:
            return {
                "principal_id": principal_id,
                "suspicious": False,
                "flags": [],
                "message": "No suspicious activity detected",
            }

        already_frozen = record.frozen
        await self._ledger.freeze(principal_id, verdict.reason)
        if not already_frozen:
            await self._request_review(principal_id, verdict.flags, context)
        return {
            "principal_id": principal_id,
            "suspicious": True,
            "flags": verdict.flags,
            "frozen": True,
            "message": "This account has been temporarily restricted while we review recent activity.",
        }

    async def _leaderboard(self, context: IdentityContext, params: dict[str, Any]) -> dict[str, Any]:
        limit = int(params.get("limit", 10))
        if limit < 1:
            raise InvalidParamsError("leaderboard", "'limit' must be >= 1")
        entries = await self._ledger.leaderboard(limit)
        return {
            "leaderboard": [entry.model_dump() for entry in entries],
            "message": f"Top {limit} contributors",
        }

    # ------------------------------------------------------------------
    # Coordination
    # ------------------------------------------------------------------

    async def _notify(self, principal_id: str, kind: str, data: dict[str, Any]) -> None:
        await self._send(
            CoordinationRequest(
                source_actor_id=self.actor_id,
                target_actor_id="workflow_automator",
                request_type="send_notification",
                priority=Priority.MEDIUM,
                payload={"principal_id": principal_id, "type": kind, "data": data},
            )
        )

    async def _request_review(
        self, principal_id: str, flags: list[str], context: IdentityContext
    ) -> None:
        logger.warning(
            "reputation_review_requested",
            extra={"principal_id": principal_id, "flags": flags},
        )
        record = await self._ledger.get_record(principal_id)
        recent = record.recent_events[-20:] if record else ()
        await self._send(
            CoordinationRequest(
                source_actor_id=self.actor_id,
                target_actor_id="safety_monitor",
                request_type="review_reputation_gaming",
                priority=Priority.HIGH,
                payload={
                    "principal_id": principal_id,
                    "flags": flags,
                    "requested_by": context.principal_id,
                    "recent_activity": [event.model_dump(mode="json") for event in recent],
                },
            )
        )

    async def _send(self, request: CoordinationRequest) -> None:
        if self._router is None:
            return
        try:
            await self._router.route(request)
        except UnknownTargetActorError:
            # The ledger update already happened; the router has audited the miss.
            logger.warning(
                "coordination_target_missing",
                extra={
                    "request_type": request.request_type,
                    "target_actor_id": request.target_actor_id,
                },
            )
