# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""
fibonrose: trust scoring, audited actor invocation and actor coordination.

Every actor call goes through :class:`ActionEnvelope`, which checks
identity, checks trust level against the :class:`TrustLedger`, dispatches,
and always writes one hash-chained :class:`ActionRecord`. Actors talk to each
other only through the :class:`CoordinationRouter`.

Quick start::

    import asyncio
    from fibonrose import ActorSystem, IdentityContext

    async def main() -> None:
        async with ActorSystem() as system:
            user = IdentityContext(principal_id="user-1", token="verified")
            result = await system.execute(
                "reputation_tracker", "record_contribution", user, {"event_type": "complete_gig"}
            )
            print(result.data["message"])

    asyncio.run(main())
"""
from __future__ import annotations

from fibonrose.actors.base import Actor, ActorInfo
from fibonrose.actors.concierge import CommunityConciergeActor
from fibonrose.actors.content import ContentGenerator, StaticContentGenerator
from fibonrose.actors.gatekeeper import GatekeeperActor
from fibonrose.actors.registry import ActorRegistry
from fibonrose.actors.reputation import ReputationTrackerActor
from fibonrose.actors.safety import SafetyMonitorActor
from fibonrose.actors.workflow import WorkflowAutomatorActor
from fibonrose.audit.chain import ChainVerification, HashChain
from fibonrose.audit.log import ActionLog
from fibonrose.audit.query import ActionFilter, ActionQueryResult, aggregate_outcomes
from fibonrose.audit.record import ActionRecord
from fibonrose.config import (
    AuditConfig,
    FibonroseConfig,
    FraudConfig,
    LedgerConfig,
    RoutingConfig,
    load_config,
)
from fibonrose.envelope import ActionEnvelope, ActorResult
from fibonrose.errors import (
    AccountFrozenError,
    ActorNotFoundError,
    ConfigurationError,
    ContentGenerationError,
    FibonroseError,
    InsufficientTrustError,
    InvalidParamsError,
    PermissionDeniedError,
    QueueFullError,
    RouteTimeoutError,
    UnauthenticatedError,
    UnknownActionError,
    UnknownBadgeError,
    UnknownEventTypeError,
    UnknownTargetActorError,
)
from fibonrose.routing.request import CoordinationRequest, RouteResult, RouteStatus
from fibonrose.routing.router import CoordinationRouter
from fibonrose.storage import (
    ActionStorage,
    FileActionStorage,
    FileTrustStorage,
    MemoryActionStorage,
    MemoryTrustStorage,
    TrustStorage,
)
from fibonrose.system import ActorSystem
from fibonrose.trust.badges import BadgeDefinition
from fibonrose.trust.classifier import EventClassification, EventClassifier, EventDefinition
from fibonrose.trust.fraud import FraudDetector, FraudVerdict
from fibonrose.trust.ledger import LeaderboardEntry, TrustCheckResult, TrustLedger
from fibonrose.trust.levels import LevelProgress, calculate_level, level_progress
from fibonrose.trust.record import ApplyEventResult, TrustEvent, TrustRecord
from fibonrose.types import IdentityContext, Priority

__version__ = "0.1.0"

__all__ = [
    # System
    "ActorSystem",
    # Trust
    "ApplyEventResult",
    "BadgeDefinition",
    "EventClassification",
    "EventClassifier",
    "EventDefinition",
    "FraudDetector",
    "FraudVerdict",
    "LeaderboardEntry",
    "LevelProgress",
    "TrustCheckResult",
    "TrustEvent",
    "TrustLedger",
    "TrustRecord",
    "calculate_level",
    "level_progress",
    # Audit
    "ActionFilter",
    "ActionLog",
    "ActionQueryResult",
    "ActionRecord",
    "ChainVerification",
    "HashChain",
    "aggregate_outcomes",
    # Envelope and routing
    "ActionEnvelope",
    "ActorResult",
    "CoordinationRequest",
    "CoordinationRouter",
    "RouteResult",
    "RouteStatus",
    # Actors
    "Actor",
    "ActorInfo",
    "ActorRegistry",
    "CommunityConciergeActor",
    "ContentGenerator",
    "GatekeeperActor",
    "ReputationTrackerActor",
    "SafetyMonitorActor",
    "StaticContentGenerator",
    "WorkflowAutomatorActor",
    # Storage
    "ActionStorage",
    "FileActionStorage",
    "FileTrustStorage",
    "MemoryActionStorage",
    "MemoryTrustStorage",
    "TrustStorage",
    # Config
    "AuditConfig",
    "FibonroseConfig",
    "FraudConfig",
    "LedgerConfig",
    "RoutingConfig",
    "load_config",
    # Types
    "IdentityContext",
    "Priority",
    # Errors
    "AccountFrozenError",
    "ActorNotFoundError",
    "ConfigurationError",
    "ContentGenerationError",
    "FibonroseError",
    "InsufficientTrustError",
    "InvalidParamsError",
    "PermissionDeniedError",
    "QueueFullError",
    "RouteTimeoutError",
    "UnauthenticatedError",
    "UnknownActionError",
    "UnknownBadgeError",
    "UnknownEventTypeError",
    "UnknownTargetActorError",
]
