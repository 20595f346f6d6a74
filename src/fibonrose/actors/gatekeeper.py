# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel

from fibonrose.actors.base import ActorInfo, Handler, describe, dispatch, require_param
from fibonrose.trust.ledger import TrustLedger
from fibonrose.trust.levels import level_progress
from fibonrose.types import IdentityContext


class AccessRule(BaseModel, frozen=True):
    """Minimum trust level for one action in one app."""

    app_name: str
    action: str
    min_level: int
    requirement: str


#: Actions not listed here need no more than a verified identity.
DEFAULT_ACCESS_RULES = MappingProxyType(
    {
        ("dao_voting", "vote"): AccessRule(
            app_name="dao_voting",
            action="vote",
            min_level=2,
            requirement="DAO voting requires trust level 2 or higher",
        ),
        ("dao_voting", "propose"): AccessRule(
            app_name="dao_voting",
            action="propose",
            min_level=3,
            requirement="Submitting DAO proposals requires trust level 3 or higher",
        ),
    }
)

_FIRST_STEPS = (
    "Create your account",
    "Verify your email address",
    "Complete your profile",
    "Start exploring the community apps",
)
_RETURNING_STEPS = (
    "Your identity is verified",
    "Check your available apps and permissions",
    "Visit your dashboard to get started",
)


class GatekeeperActor:
    """Welcomes users and answers access questions from their trust level."""

    actor_id = "gatekeeper"
    name = "Gatekeeper"
    description = "Onboards users and explains what their trust level allows"
    capabilities = frozenset({"onboarding", "access_control"})
    anonymous_actions: frozenset[str] = frozenset({"welcome_user"})

    def __init__(
        self,
        ledger: TrustLedger,
        rules: Mapping[tuple[str, str], AccessRule] = DEFAULT_ACCESS_RULES,
    ) -> None:
        self._ledger = ledger
        self._rules = rules
        self._handlers: dict[str, Handler] = {
            "welcome_user": self._welcome_user,
            "check_access": self._check_access,
            "explain_permissions": self._explain_permissions,
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

    async def _welcome_user(self, context: IdentityContext, params: dict[str, Any]) -> dict[str, Any]:
        user_name = params.get("user_name") or "there"
        app_name = params.get("app_name") or "the community"
        text = (
            f"Welcome to {app_name}, {user_name}! I'm the Gatekeeper. "
            "I help you get started and keep access secure."
        )
        welcome: dict[str, Any] = {"type": "text", "message": text}
        if context.prefers("prefer_asl"):
            welcome = {"type": "asl_video", "message": text, "text_alternative": text}

        registered = context.is_authenticated
        return {
            "welcome": welcome,
            "needs_registration": not registered,
            "next_steps": list(_RETURNING_STEPS if registered else _FIRST_STEPS),
        }

    async def _check_access(self, context: IdentityContext, params: dict[str, Any]) -> dict[str, Any]:
        app_name = str(require_param("check_access", params, "app_name"))
        action = str(params.get("action") or "read")
        level = await self._ledger.get_level(context.principal_id or "")
        rule = self._rules.get((app_name, action))

        can_access = rule is None or level >= rule.min_level
        if can_access:
            reason = "Access granted"
        else:
            reason = rule.requirement
        return {
            "app_name": app_name,
            "action": action,
            "can_access": can_access,
            "reason": reason,
            "trust_level": level,
        }

    async def _explain_permissions(
        self, context: IdentityContext, params: dict[str, Any]
    ) -> dict[str, Any]:
        principal_id = context.principal_id or ""
        score = await self._ledger.get_score(principal_id)
        progress = level_progress(score, self._ledger.config.level_thresholds)

        apps = [
            {
                "app_name": rule.app_name,
                "action": rule.action,
                "allowed": progress.level >= rule.min_level,
                "requirement": rule.requirement,
            }
            for rule in self._rules.values()
        ]
        return {
            "principal_id": context.principal_id,
            "general": [
                "Access to your profile and settings",
                "Participate in community discussions",
                "Access learning resources",
            ],
            "gated_actions": apps,
            "trust": {
                "score": score,
                "level": progress.level,
                "next_threshold": progress.next_threshold,
                "points_to_next": progress.points_to_next,
            },
        }
