# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""Tests for ActionEnvelope gating and its one-record-per-call audit guarantee."""

from __future__ import annotations

import asyncio
import threading
from pathlib import Path
from typing import Any

import pytest

from fibonrose.actors.base import ActorInfo, describe
from fibonrose.actors.registry import ActorRegistry
from fibonrose.actors.reputation import ReputationTrackerActor
from fibonrose.audit.log import ActionLog
from fibonrose.audit.query import ActionFilter
from fibonrose.envelope import HANDLER_ERROR, ActionEnvelope
from fibonrose.errors import InsufficientTrustError, UnauthenticatedError
from fibonrose.storage import FileActionStorage, FileTrustStorage
from fibonrose.trust.ledger import TrustLedger
from fibonrose.types import IdentityContext


class EchoActor:
    actor_id = "echo"
    name = "Echo"
    description = "Returns its params"
    capabilities = frozenset({"testing"})
    actions = frozenset({"echo", "boom", "public"})
    anonymous_actions = frozenset({"public"})

    async def execute(
        self, action: str, context: IdentityContext, params: dict[str, Any]
    ) -> dict[str, Any]:
        if action == "boom":
            raise RuntimeError("handler exploded")
        return {"action": action, "params": params, "principal_id": context.principal_id}

    def has_capability(self, capability: str) -> bool:
        return capability in self.capabilities

    def info(self) -> ActorInfo:
        return describe(self)


@pytest.fixture
def echo_envelope(registry: ActorRegistry, ledger: TrustLedger, action_log: ActionLog) -> ActionEnvelope:
    registry.register("echo", EchoActor())
    return ActionEnvelope(registry, ledger, action_log)


def _records(log: ActionLog) -> list:
    return asyncio.run(log.query()).records


# ---------------------------------------------------------------------------
# TestOneRecordPerCall
# ---------------------------------------------------------------------------


class TestOneRecordPerCall:
    def test_success(self, echo_envelope: ActionEnvelope, action_log: ActionLog, user) -> None:
        result = asyncio.run(echo_envelope.invoke("echo", "echo", user, {"x": 1}))
        assert result.success is True
        assert result.data == {"action": "echo", "params": {"x": 1}, "principal_id": "user-001"}

        records = _records(action_log)
        assert len(records) == 1
        assert records[0].id == result.audit_record_id
        assert records[0].success is True
        assert records[0].principal_id == "user-001"
        assert records[0].params == {"x": 1}

    def test_actor_not_found(self, echo_envelope: ActionEnvelope, action_log: ActionLog, user) -> None:
        result = asyncio.run(echo_envelope.invoke("missing", "echo", user))
        assert result.success is False
        assert result.error_code == "ACTOR_NOT_FOUND"
        records = _records(action_log)
        assert len(records) == 1
        assert records[0].actor_id == "missing"
        assert records[0].error_code == "ACTOR_NOT_FOUND"

    def test_unknown_action(self, echo_envelope: ActionEnvelope, action_log: ActionLog, user) -> None:
        result = asyncio.run(echo_envelope.invoke("echo", "nope", user))
        assert result.error_code == "UNKNOWN_ACTION"
        assert len(_records(action_log)) == 1

    def test_handler_error_is_captured(
        self, echo_envelope: ActionEnvelope, action_log: ActionLog, user
    ) -> None:
        result = asyncio.run(echo_envelope.invoke("echo", "boom", user))
        assert result.success is False
        assert result.error_code == HANDLER_ERROR
        assert result.error_detail == "RuntimeError: handler exploded"
        assert isinstance(result.exception, RuntimeError)
        with pytest.raises(RuntimeError, match="handler exploded"):
            result.raise_for_error()

        records = _records(action_log)
        assert len(records) == 1
        assert records[0].error_detail == "RuntimeError: handler exploded"

    def test_mixed_calls_write_one_record_each(
        self, echo_envelope: ActionEnvelope, action_log: ActionLog, user, anonymous
    ) -> None:
        async def _run():
            await echo_envelope.invoke("echo", "echo", user)
            await echo_envelope.invoke("echo", "echo", anonymous)
            await echo_envelope.invoke("echo", "boom", user)
            await echo_envelope.invoke("echo", "echo", user, minimum_trust_level=5)
            await echo_envelope.invoke("missing", "echo", user)
            await echo_envelope.invoke("echo", "public", anonymous)

        asyncio.run(_run())
        records = _records(action_log)
        assert len(records) == 6
        assert [record.success for record in records] == [True, False, False, False, False, True]
        assert asyncio.run(action_log.verify()).valid is True


# ---------------------------------------------------------------------------
# TestIdentityGate
# ---------------------------------------------------------------------------


class TestIdentityGate:
    def test_unauthenticated_call_is_rejected_and_audited(
        self, echo_envelope: ActionEnvelope, action_log: ActionLog, anonymous
    ) -> None:
        result = asyncio.run(echo_envelope.invoke("echo", "echo", anonymous))
        assert result.success is False
        assert result.error_code == "UNAUTHENTICATED"
        assert isinstance(result.exception, UnauthenticatedError)

        failed = asyncio.run(action_log.query(ActionFilter(success=False))).records
        assert len(failed) == 1
        assert failed[0].error_code == "UNAUTHENTICATED"
        assert failed[0].error_detail == result.error_detail

    def test_principal_without_token_is_unauthenticated(self, echo_envelope: ActionEnvelope) -> None:
        context = IdentityContext(principal_id="user-001")
        result = asyncio.run(echo_envelope.invoke("echo", "echo", context))
        assert result.error_code == "UNAUTHENTICATED"

    def test_missing_context_is_anonymous(self, echo_envelope: ActionEnvelope) -> None:
        result = asyncio.run(echo_envelope.invoke("echo", "echo"))
        assert result.error_code == "UNAUTHENTICATED"
        assert result.principal_id is None

    def test_anonymous_actions_skip_identity(self, echo_envelope: ActionEnvelope, anonymous) -> None:
        assert asyncio.run(echo_envelope.invoke("echo", "public", anonymous)).success is True

    def test_allow_anonymous_flag(self, echo_envelope: ActionEnvelope, anonymous) -> None:
        result = asyncio.run(echo_envelope.invoke("echo", "echo", anonymous, allow_anonymous=True))
        assert result.success is True

    def test_verifier_hook_can_reject(
        self, registry: ActorRegistry, ledger: TrustLedger, action_log: ActionLog, user
    ) -> None:
        seen: list[str] = []

        async def verifier(context: IdentityContext) -> bool:
            seen.append(context.principal_id)
            return context.token == "good-token"

        registry.register("echo", EchoActor())
        envelope = ActionEnvelope(registry, ledger, action_log, identity_verifier=verifier)

        rejected = asyncio.run(envelope.invoke("echo", "echo", user))
        accepted = asyncio.run(
            envelope.invoke("echo", "echo", IdentityContext(principal_id="user-002", token="good-token"))
        )
        service = asyncio.run(envelope.invoke("echo", "echo", IdentityContext.for_actor("workflow")))

        assert rejected.error_code == "UNAUTHENTICATED"
        assert "identity verification failed" in rejected.error_detail
        assert accepted.success is True
        assert service.success is True
        assert seen == ["user-001", "user-002"]

    def test_service_calls_are_marked_in_metadata(
        self, echo_envelope: ActionEnvelope, action_log: ActionLog
    ) -> None:
        asyncio.run(echo_envelope.invoke("echo", "echo", IdentityContext.for_actor("gatekeeper")))
        record = _records(action_log)[0]
        assert record.metadata == {"service": True}
        assert record.principal_id == "actor:gatekeeper"


# ---------------------------------------------------------------------------
# TestTrustGate
# ---------------------------------------------------------------------------


class TestTrustGate:
    def test_insufficient_level_is_rejected(self, echo_envelope: ActionEnvelope, user) -> None:
        result = asyncio.run(echo_envelope.invoke("echo", "echo", user, minimum_trust_level=2))
        assert result.error_code == "INSUFFICIENT_TRUST"
        assert isinstance(result.exception, InsufficientTrustError)
        assert result.exception.actual_level == 1

    def test_sufficient_level_passes(
        self, echo_envelope: ActionEnvelope, ledger: TrustLedger, user
    ) -> None:
        async def _run():
            await ledger.apply_event("user-001", "complete_gig", "signgigs")
            await ledger.apply_event("user-001", "complete_gig", "signgigs")
            return await echo_envelope.invoke("echo", "echo", user, minimum_trust_level=2)

        assert asyncio.run(_run()).success is True

    def test_trust_gate_needs_a_principal(self, echo_envelope: ActionEnvelope, anonymous) -> None:
        result = asyncio.run(
            echo_envelope.invoke("echo", "public", anonymous, minimum_trust_level=1)
        )
        assert result.error_code == "UNAUTHENTICATED"

    def test_identity_is_checked_before_trust(self, echo_envelope: ActionEnvelope, anonymous) -> None:
        result = asyncio.run(echo_envelope.invoke("echo", "echo", anonymous, minimum_trust_level=3))
        assert result.error_code == "UNAUTHENTICATED"


# ---------------------------------------------------------------------------
# TestSyncInvocation
# ---------------------------------------------------------------------------


class TestSyncInvocation:
    def test_invoke_sync_without_running_loop(
        self, echo_envelope: ActionEnvelope, action_log: ActionLog, user
    ) -> None:
        result = echo_envelope.invoke_sync("echo", "echo", user, {"y": 2})
        assert result.success is True
        assert result.data["params"] == {"y": 2}

    def test_invoke_sync_inside_running_loop(self, echo_envelope: ActionEnvelope, user) -> None:
        async def _run():
            return echo_envelope.invoke_sync("echo", "public", user)

        result = asyncio.run(_run())
        assert result.success is True

    def test_invoke_sync_from_many_threads_serialises_one_principal(
        self, tmp_path: Path, user
    ) -> None:
        ledger = TrustLedger(storage=FileTrustStorage(tmp_path / "trust"))
        log = ActionLog(FileActionStorage(tmp_path / "actions.ndjson"))
        registry = ActorRegistry()
        registry.register("reputation_tracker", ReputationTrackerActor(ledger))
        envelope = ActionEnvelope(registry, ledger, log)
        results = []
        errors = []

        def _contribute() -> None:
            try:
                for _ in range(5):
                    results.append(
                        envelope.invoke_sync(
                            "reputation_tracker",
                            "record_contribution",
                            user,
                            {"event_type": "complete_gig"},
                        )
                    )
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=_contribute) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)
        try:
            assert not any(thread.is_alive() for thread in threads)
            assert errors == []
            assert len(results) == 20
            assert all(result.success for result in results)
            assert sorted(result.data["new_score"] for result in results) == list(
                range(40, 840, 40)
            )

            assert asyncio.run(ledger.get_score("user-001")) == 800
            verification = asyncio.run(log.verify())
            assert verification.valid is True
            assert verification.record_count == 20
        finally:
            envelope.close()

    def test_close_is_idempotent(self, echo_envelope: ActionEnvelope, user) -> None:
        echo_envelope.invoke_sync("echo", "echo", user)
        echo_envelope.close()
        echo_envelope.close()
        assert echo_envelope.invoke_sync("echo", "echo", user).success is True
        echo_envelope.close()

    def test_record_writes_a_non_invocation_step(
        self, echo_envelope: ActionEnvelope, action_log: ActionLog, user
    ) -> None:
        record = asyncio.run(
            echo_envelope.record(
                actor_id="gatekeeper",
                action="coordinate:notify",
                success=False,
                context=user,
                error=ValueError("bad"),
                metadata={"route_status": "failed"},
            )
        )
        assert record.error_code == HANDLER_ERROR
        assert record.error_detail == "ValueError: bad"
        assert record.principal_id == "user-001"
