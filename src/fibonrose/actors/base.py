# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""
The capability contract every actor implements.

Actors are independent types, not subclasses of a shared stateful base.
Auditing and trust gating live in :class:`~fibonrose.envelope.ActionEnvelope`,
which wraps every call to :meth:`Actor.execute`.
"""
from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel

from fibonrose.errors import InvalidParamsError, PermissionDeniedError, UnknownActionError
from fibonrose.types import IdentityContext

MANAGE_TRUST_PERMISSION = "trust:manage"

Handler = Callable[[IdentityContext, dict[str, Any]], Awaitable[dict[str, Any]]]


class ActorInfo(BaseModel, frozen=True):
    """Public description of an actor."""

    actor_id: str
    name: str
    description: str
    capabilities: list[str]
    actions: list[str]


@runtime_checkable
class Actor(Protocol):
    """
    Structural interface for actors held by the registry.

    Attributes:
        actor_id: Registry key.
        name: Display name.
        description: What the actor does.
        capabilities: Coarse capability tags.
        actions: Action names :meth:`execute` accepts.
        anonymous_actions: Subset of ``actions`` callable without identity.
    """

    actor_id: str
    name: str
    description: str
    capabilities: frozenset[str]
    actions: frozenset[str]
    anonymous_actions: frozenset[str]

    async def execute(
        self, action: str, context: IdentityContext, params: dict[str, Any]
    ) -> dict[str, Any]: ...

    def has_capability(self, capability: str) -> bool: ...

    def info(self) -> ActorInfo: ...


async def dispatch(
    actor_id: str,
    handlers: Mapping[str, Handler],
    action: str,
    context: IdentityContext,
    params: dict[str, Any],
) -> dict[str, Any]:
    """Look up ``action`` in ``handlers`` and await it."""
    handler = handlers.get(action)
    if handler is None:
        raise UnknownActionError(actor_id, action)
    return await handler(context, params)


def describe(actor: Actor) -> ActorInfo:
    return ActorInfo(
        actor_id=actor.actor_id,
        name=actor.name,
        description=actor.description,
        capabilities=sorted(actor.capabilities),
        actions=sorted(actor.actions),
    )


def target_principal(action: str, context: IdentityContext, params: dict[str, Any]) -> str:
    """
    Return ``params['principal_id']``, falling back to the caller's own principal.

    Naming another principal needs a service identity or the
    ``trust:manage`` permission.

    Raises:
        InvalidParamsError: If no principal can be determined.
        PermissionDeniedError: If the caller may not act on the named principal.
    """
    principal_id = params.get("principal_id") or context.principal_id
    if not principal_id:
        raise InvalidParamsError(action, "principal_id is required")
    principal_id = str(principal_id)
    if (
        principal_id != context.principal_id
        and not context.service
        and not context.has_permission(MANAGE_TRUST_PERMISSION)
    ):
        raise PermissionDeniedError(action, principal_id, MANAGE_TRUST_PERMISSION)
    return principal_id


def require_param(action: str, params: dict[str, Any], key: str) -> Any:
    value = params.get(key)
    if value is None or value == "":
        raise InvalidParamsError(action, f"'{key}' is required")
    return value
