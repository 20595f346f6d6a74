# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""
Workflow automator: notifications and fixed automation recipes.

A recipe is a static trigger plus an ordered list of steps. Steps run one
after another and execution stops at the first failing step. There is no
branching, scheduling or retry.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, Field

from fibonrose.actors.base import ActorInfo, Handler, describe, dispatch, require_param
from fibonrose.errors import InvalidParamsError
from fibonrose.routing.request import CoordinationRequest, RouteStatus
from fibonrose.types import IdentityContext, Priority

if TYPE_CHECKING:
    from fibonrose.routing.router import CoordinationRouter

logger = logging.getLogger("fibonrose.actors.workflow")

StepType = Literal["send_notification", "update_trust", "send_email", "noop"]


class RecipeStep(BaseModel, frozen=True):
    step_type: StepType
    config: dict[str, Any] = Field(default_factory=dict)


class WorkflowRecipe(BaseModel, frozen=True):
    """
    A fixed trigger-to-steps sequence.

    Attributes:
        recipe_id: Stable id.
        name: Display name.
        trigger: Event name that would start the recipe upstream.
        steps: Steps executed in order.
        enabled: Disabled recipes are listed only on request and cannot run.
    """

    recipe_id: str
    name: str
    trigger: str
    steps: tuple[RecipeStep, ...]
    enabled: bool = True


class Notification(BaseModel, frozen=True):
    notification_id: str = Field(default_factory=lambda: f"notif_{uuid.uuid4().hex[:12]}")
    principal_id: str
    kind: str
    title: str = "Notification"
    message: str = ""
    data: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


DEFAULT_RECIPES: tuple[WorkflowRecipe, ...] = (
    WorkflowRecipe(
        recipe_id="new_user_onboarding",
        name="New User Onboarding",
        trigger="user_registered",
        steps=(
            RecipeStep(step_type="update_trust", config={"event_type": "complete_onboarding"}),
            RecipeStep(step_type="send_email", config={"template": "welcome"}),
            RecipeStep(step_type="send_notification", config={"kind": "welcome"}),
        ),
    ),
    WorkflowRecipe(
        recipe_id="gig_completion",
        name="Gig Completion",
        trigger="gig_completed",
        steps=(
            RecipeStep(step_type="update_trust", config={"event_type": "complete_gig"}),
            RecipeStep(step_type="send_notification", config={"kind": "gig_completed"}),
        ),
    ),
    WorkflowRecipe(
        recipe_id="weekly_dao_digest",
        name="Weekly DAO Digest",
        trigger="weekly_schedule",
        steps=(RecipeStep(step_type="send_email", config={"template": "dao_digest"}),),
        enabled=False,
    ),
)


class WorkflowAutomatorActor:
    """
    Sends notifications and runs fixed recipes.

    Trust updates in a recipe go to the reputation tracker as HIGH
    coordination requests, so they are audited and gated like any other
    ``record_contribution`` call.
    """

    actor_id = "workflow_automator"
    name = "Workflow Automator"
    description = "Sends notifications and runs fixed automation recipes"
    capabilities = frozenset({"notifications", "workflow_execution"})
    anonymous_actions: frozenset[str] = frozenset()

    def __init__(
        self,
        router: CoordinationRouter | None = None,
        recipes: tuple[WorkflowRecipe, ...] = DEFAULT_RECIPES,
    ) -> None:
        self._router = router
        self._recipes = {recipe.recipe_id: recipe for recipe in recipes}
        self._outbox: list[Notification] = []
        self._handlers: dict[str, Handler] = {
            "send_notification": self._send_notification,
            "list_notifications": self._list_notifications,
            "list_recipes": self._list_recipes,
            "execute_recipe": self._execute_recipe,
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
    def notifications(self) -> list[Notification]:
        return list(self._outbox)

    async def _send_notification(
        self, context: IdentityContext, params: dict[str, Any]
    ) -> dict[str, Any]:
        notification = Notification(
            principal_id=str(require_param("send_notification", params, "principal_id")),
            kind=str(params.get("type") or params.get("kind") or "general"),
            title=params.get("title") or "Notification",
            message=params.get("message") or "",
            data=dict(params.get("data") or {}),
        )
        self._outbox.append(notification)
        logger.info(
            "notification_sent",
            extra={"principal_id": notification.principal_id, "kind": notification.kind},
        )
        return {"notification": notification.model_dump(mode="json")}

    async def _list_notifications(
        self, context: IdentityContext, params: dict[str, Any]
    ) -> dict[str, Any]:
        principal_id = params.get("principal_id") or context.principal_id
        selected = [n for n in self._outbox if n.principal_id == principal_id]
        return {
            "principal_id": principal_id,
            "notifications": [n.model_dump(mode="json") for n in selected],
            "total": len(selected),
        }

    async def _list_recipes(self, context: IdentityContext, params: dict[str, Any]) -> dict[str, Any]:
        include_disabled = bool(params.get("include_disabled", False))
        recipes = [r for r in self._recipes.values() if include_disabled or r.enabled]
        return {
            "recipes": [
                {
                    "recipe_id": r.recipe_id,
                    "name": r.name,
                    "trigger": r.trigger,
                    "enabled": r.enabled,
                    "step_count": len(r.steps),
                }
                for r in recipes
            ],
            "total": len(recipes),
        }

    async def _execute_recipe(
        self, context: IdentityContext, params: dict[str, Any]
    ) -> dict[str, Any]:
        recipe_id = require_param("execute_recipe", params, "recipe_id")
        recipe = self._recipes.get(recipe_id)
        if recipe is None:
            raise InvalidParamsError("execute_recipe", f"unknown recipe '{recipe_id}'")
        if not recipe.enabled:
            raise InvalidParamsError("execute_recipe", f"recipe '{recipe_id}' is disabled")

        payload = dict(params.get("payload") or {})
        if not context.service:
            payload.setdefault("principal_id", context.principal_id)

        results: list[dict[str, Any]] = []
        all_succeeded = True
        for step in recipe.steps:
            succeeded, detail = await self._run_step(step, payload, context)
            results.append({"step_type": step.step_type, "success": succeeded, "detail": detail})
            if not succeeded:
                all_succeeded = False
                break

        logger.info(
            "recipe_executed",
            extra={
                "recipe_id": recipe_id,
                "steps_run": len(results),
                "all_succeeded": all_succeeded,
            },
        )
        return {
            "recipe_id": recipe_id,
            "all_succeeded": all_succeeded,
            "results": results,
            "message": (
                f"Workflow '{recipe.name}' executed successfully"
                if all_succeeded
                else f"Workflow '{recipe.name}' partially failed"
            ),
        }

    async def _run_step(
        self, step: RecipeStep, payload: dict[str, Any], context: IdentityContext
    ) -> tuple[bool, dict[str, Any]]:
        if step.step_type == "send_notification":
            sent = await self._send_notification(
                context, {"type": step.config.get("kind"), **payload}
            )
            return True, sent
        if step.step_type == "update_trust":
            return await self._update_trust(step, payload)
        if step.step_type == "send_email":
            # Delivery is an external integration; the step only records intent.
            return True, {"template": step.config.get("template"), "queued": True}
        return True, {}

    async def _update_trust(
        self, step: RecipeStep, payload: dict[str, Any]
    ) -> tuple[bool, dict[str, Any]]:
        if self._router is None:
            return False, {"error": "no router configured"}
        if not payload.get("principal_id"):
            return False, {"error": "payload has no principal_id"}
        result = await self._router.route(
            CoordinationRequest(
                source_actor_id=self.actor_id,
                target_actor_id="reputation_tracker",
                request_type="record_contribution",
                priority=Priority.HIGH,
                payload={
                    "principal_id": payload.get("principal_id"),
                    "event_type": step.config["event_type"],
                    "source": "workflow_automation",
                    "event_id": payload.get("event_id"),
                },
            )
        )
        if result.status is RouteStatus.DELIVERED:
            return True, result.result or {}
        return False, {"error_code": result.error_code, "error_detail": result.error_detail}
