# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""Shared fixtures for fibonrose tests."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from fibonrose.actors.registry import ActorRegistry
from fibonrose.actors.safety import SafetyMonitorActor
from fibonrose.audit.log import ActionLog
from fibonrose.envelope import ActionEnvelope
from fibonrose.storage.memory import MemoryTrustStorage
from fibonrose.system import ActorSystem
from fibonrose.trust.ledger import TrustLedger
from fibonrose.trust.record import TrustEvent, TrustRecord
from fibonrose.types import IdentityContext


@pytest.fixture
def ledger() -> TrustLedger:
    """A TrustLedger with default config and in-memory storage."""
    return TrustLedger()


class YieldingTrustStorage(MemoryTrustStorage):
    """Memory storage that yields to the loop on every read and write, like real IO."""

    async def get(self, principal_id: str) -> TrustRecord | None:
        await asyncio.sleep(0)
        return await super().get(principal_id)

    async def save(self, record: TrustRecord) -> None:
        await asyncio.sleep(0)
        await super().save(record)


@pytest.fixture
def yielding_ledger() -> TrustLedger:
    return TrustLedger(storage=YieldingTrustStorage())


@pytest.fixture
def action_log() -> ActionLog:
    return ActionLog()


@pytest.fixture
def registry() -> ActorRegistry:
    """A registry holding only the safety monitor."""
    registry = ActorRegistry()
    registry.register("safety_monitor", SafetyMonitorActor())
    return registry


@pytest.fixture
def envelope(registry: ActorRegistry, ledger: TrustLedger, action_log: ActionLog) -> ActionEnvelope:
    return ActionEnvelope(registry, ledger, action_log)


@pytest.fixture
def system() -> ActorSystem:
    """A fully wired ActorSystem with the built-in actors registered."""
    return ActorSystem()


@pytest.fixture
def user() -> IdentityContext:
    return IdentityContext(principal_id="user-001", token="verified-token")


@pytest.fixture
def anonymous() -> IdentityContext:
    return IdentityContext.anonymous()


def make_events(
    event_type: str,
    count: int,
    spacing: timedelta,
    start: datetime | None = None,
    points: int = 5,
) -> list[TrustEvent]:
    """Build ``count`` events of one type, ``spacing`` apart."""
    origin = start or datetime(2026, 1, 1, tzinfo=timezone.utc)
    return [
        TrustEvent(
            event_type=event_type,
            source="test",
            points=points,
            timestamp=origin + spacing * index,
        )
        for index in range(count)
    ]


@pytest.fixture
def event_factory():
    """Expose :func:`make_events` to tests."""
    return make_events
