# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

from fibonrose.actors.base import Actor, ActorInfo
from fibonrose.errors import ActorNotFoundError


class ActorRegistry:
    """
    Maps actor ids to actor instances.

    Populated once at process start; there is no runtime removal. Build a
    fresh registry per test.

    Example::

        registry = ActorRegistry()
        registry.register("gatekeeper", GatekeeperActor(ledger))
        actor = registry.resolve("gatekeeper")
    """

    def __init__(self) -> None:
        self._actors: dict[str, Actor] = {}

    def register(self, actor_id: str, actor: Actor) -> None:
        """
        Raises:
            ValueError: If ``actor_id`` is empty or already registered.
        """
        if not actor_id:
            raise ValueError("actor_id must be a non-empty string.")
        if actor_id in self._actors:
            raise ValueError(f"Actor '{actor_id}' is already registered.")
        self._actors[actor_id] = actor

    def resolve(self, actor_id: str) -> Actor:
        """
        Raises:
            ActorNotFoundError: If no actor is registered under ``actor_id``.
        """
        actor = self._actors.get(actor_id)
        if actor is None:
            raise ActorNotFoundError(actor_id)
        return actor

    def has(self, actor_id: str) -> bool:
        return actor_id in self._actors

    def list_ids(self) -> list[str]:
        return list(self._actors)

    def info(self) -> list[ActorInfo]:
        return [actor.info() for actor in self._actors.values()]

    def __len__(self) -> int:
        return len(self._actors)
