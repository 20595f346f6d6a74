# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""
ActorSystem: one object that wires the trust core together.

Builds, in order, the trust ledger, the action log, the actor registry, the
envelope, the coordination router and the built-in actors, then registers
the actors. Nothing is global; build one system per process (or per test).
"""
from __future__ import annotations

from typing import Any

from fibonrose.actors.concierge import CommunityConciergeActor
from fibonrose.actors.content import ContentGenerator
from fibonrose.actors.gatekeeper import GatekeeperActor
from fibonrose.actors.registry import ActorRegistry
from fibonrose.actors.reputation import ReputationTrackerActor
from fibonrose.actors.safety import SafetyMonitorActor
from fibonrose.actors.workflow import WorkflowAutomatorActor
from fibonrose.audit.log import ActionLog
from fibonrose.config import FibonroseConfig
from fibonrose.envelope import ActionEnvelope, ActorResult, IdentityVerifier
from fibonrose.routing.router import CoordinationRouter
from fibonrose.storage.interface import ActionStorage, TrustStorage
from fibonrose.trust.ledger import TrustLedger
from fibonrose.types import IdentityContext


class ActorSystem:
    """
    Composition root for the trust core.

    Args:
        config: Full configuration. Defaults are used when omitted.
        trust_storage: Backend for trust records. In-memory when omitted.
        action_storage: Backend for action records. In-memory when omitted.
        generator: Content generator for the community concierge.
        identity_verifier: Optional async hook that re-checks identity
            tokens before gated actions.

    Example::

        async with ActorSystem() as system:
            result = await system.execute(
                "reputation_tracker",
                "record_contribution",
                IdentityContext(principal_id="user-1", token="verified"),
                {"event_type": "complete_gig"},
            )
            assert result.data["new_score"] == 40
    """

    def __init__(
        self,
        config: FibonroseConfig | None = None,
        trust_storage: TrustStorage | None = None,
        action_storage: ActionStorage | None = None,
        generator: ContentGenerator | None = None,
        identity_verifier: IdentityVerifier | None = None,
    ) -> None:
        self.config = config or FibonroseConfig()
        self.ledger = TrustLedger(
            config=self.config.ledger,
            storage=trust_storage,
            fraud_config=self.config.fraud,
        )
        self.action_log = ActionLog(storage=action_storage, config=self.config.audit)
        self.registry = ActorRegistry()
        self.envelope = ActionEnvelope(
            self.registry,
            self.ledger,
            self.action_log,
            identity_verifier=identity_verifier,
        )
        self.router = CoordinationRouter(self.registry, self.envelope, self.config.routing)

        for actor in (
            ReputationTrackerActor(self.ledger, self.router),
            WorkflowAutomatorActor(self.router),
            SafetyMonitorActor(),
            GatekeeperActor(self.ledger),
            CommunityConciergeActor(generator),
        ):
            self.registry.register(actor.actor_id, actor)

    async def execute(
        self,
        actor_id: str,
        action_name: str,
        context: IdentityContext | None = None,
        params: dict[str, Any] | None = None,
        minimum_trust_level: int | None = None,
    ) -> ActorResult:
        """Invoke an actor through the envelope. See :meth:`ActionEnvelope.invoke`."""
        return await self.envelope.invoke(
            actor_id,
            action_name,
            context,
            params,
            minimum_trust_level=minimum_trust_level,
        )

    async def start(self) -> None:
        await self.router.start()

    async def stop(self) -> None:
        await self.router.stop()
        self.envelope.close()

    async def __aenter__(self) -> ActorSystem:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()
