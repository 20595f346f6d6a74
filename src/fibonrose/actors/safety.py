# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field

from fibonrose.actors.base import ActorInfo, Handler, describe, dispatch, require_param
from fibonrose.types import IdentityContext

logger = logging.getLogger("fibonrose.actors.safety")

CaseKind = Literal["reputation_gaming", "failed_request"]


class SafetyCase(BaseModel, frozen=True):
    """An item waiting for human review."""

    case_id: str = Field(default_factory=lambda: f"case_{uuid.uuid4().hex[:12]}")
    kind: CaseKind
    subject: str
    summary: str
    detail: dict[str, Any] = Field(default_factory=dict)
    opened_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class SafetyMonitorActor:
    """
    Designated escalation target.

    Opens review cases for frozen trust records and for critical coordination
    requests that failed or timed out. Resolving a case, including any
    unfreeze, happens in the external review process.
    """

    actor_id = "safety_monitor"
    name = "Safety Monitor"
    description = "Collects reputation-gaming reports and failed critical requests for review"
    capabilities = frozenset({"case_management", "escalation"})
    anonymous_actions: frozenset[str] = frozenset()

    def __init__(self) -> None:
        self._cases: list[SafetyCase] = []
        self._handlers: dict[str, Handler] = {
            "review_reputation_gaming": self._review_reputation_gaming,
            "escalate_failed_request": self._escalate_failed_request,
            "list_cases": self._list_cases,
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

    @property
    def cases(self) -> list[SafetyCase]:
        return list(self._cases)

    async def _review_reputation_gaming(
        self, context: IdentityContext, params: dict[str, Any]
    ) -> dict[str, Any]:
        principal_id = str(require_param("review_reputation_gaming", params, "principal_id"))
        flags = list(params.get("flags") or [])
        case = self._open(
            SafetyCase(
                kind="reputation_gaming",
                subject=principal_id,
                summary="; ".join(flags) or "Reputation gaming reported",
                detail={"flags": flags, "reported_by": context.principal_id},
            )
        )
        return {"case": case.model_dump(mode="json"), "status": "pending_review"}

    async def _escalate_failed_request(
        self, context: IdentityContext, params: dict[str, Any]
    ) -> dict[str, Any]:
        request_id = str(require_param("escalate_failed_request", params, "request_id"))
        target = params.get("target_actor_id", "unknown")
        status = params.get("route_status", "failed")
        case = self._open(
            SafetyCase(
                kind="failed_request",
                subject=request_id,
                summary=f"Critical request to '{target}' ended with status '{status}'",
                detail=dict(params),
            )
        )
        return {"case": case.model_dump(mode="json"), "status": "pending_review"}

    async def _list_cases(self, context: IdentityContext, params: dict[str, Any]) -> dict[str, Any]:
        kind = params.get("kind")
        selected = [case for case in self._cases if kind is None or case.kind == kind]
        return {"cases": [case.model_dump(mode="json") for case in selected], "total": len(selected)}

    def _open(self, case: SafetyCase) -> SafetyCase:
        self._cases.append(case)
        logger.warning(
            "safety_case_opened",
            extra={"case_id": case.case_id, "case_kind": case.kind, "subject": case.subject},
        )
        return case
