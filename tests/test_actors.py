# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""Tests for the built-in actors, invoked through the envelope where possible."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

from fibonrose.actors.base import Actor
from fibonrose.actors.content import ContentGenerator, StaticContentGenerator
from fibonrose.actors.reputation import ReputationTrackerActor
from fibonrose.actors.safety import SafetyMonitorActor
from fibonrose.actors.workflow import WorkflowAutomatorActor
from fibonrose.storage.memory import MemoryTrustStorage
from fibonrose.system import ActorSystem
from fibonrose.trust.ledger import TrustLedger
from fibonrose.trust.record import TrustRecord
from fibonrose.types import IdentityContext


class BrokenGenerator:
    async def generate(self, prompt: str) -> str:
        raise ConnectionError("provider unreachable")


# ---------------------------------------------------------------------------
# TestActorContract
# ---------------------------------------------------------------------------


class TestActorContract:
    def test_builtin_actors_satisfy_the_protocol(self, system: ActorSystem) -> None:
        for actor_id in system.registry.list_ids():
            assert isinstance(system.registry.resolve(actor_id), Actor)

    def test_info_lists_sorted_actions(self, system: ActorSystem) -> None:
        info = system.registry.resolve("gatekeeper").info()
        assert info.actions == ["check_access", "explain_permissions", "welcome_user"]
        assert "access_control" in info.capabilities

    def test_registry_holds_five_actors(self, system: ActorSystem) -> None:
        assert sorted(system.registry.list_ids()) == [
            "community_concierge",
            "gatekeeper",
            "reputation_tracker",
            "safety_monitor",
            "workflow_automator",
        ]


# ---------------------------------------------------------------------------
# TestReputationTracker
# ---------------------------------------------------------------------------


class TestReputationTracker:
    def test_view_score_for_new_principal(self, system: ActorSystem, user) -> None:
        result = asyncio.run(system.execute("reputation_tracker", "view_score", user))
        assert result.success is True
        assert result.data["score"] == 0
        assert result.data["level"] == 1
        assert result.data["message"] == "Your current trust score is 0. You're at Level 1."
        assert result.data["progress"]["next_threshold"] == 50

    def test_view_score_respects_asl_preference(self, system: ActorSystem) -> None:
        context = IdentityContext(
            principal_id="user-asl", token="verified", preferences={"prefer_asl": True}
        )
        result = asyncio.run(system.execute("reputation_tracker", "view_score", context))
        assert result.data["message"] == "Your trust score is available in ASL video format"

    def test_record_contribution(self, system: ActorSystem, user) -> None:
        result = asyncio.run(
            system.execute(
                "reputation_tracker", "record_contribution", user, {"event_type": "complete_gig"}
            )
        )
        assert result.success is True
        assert result.data["new_score"] == 40
        assert result.data["points"] == 40
        assert result.data["message"] == "You completed a gig on SignGigs (+40 points). Your new score: 40."

    def test_acting_on_another_principal_needs_permission(
        self, system: ActorSystem, user
    ) -> None:
        params = {"event_type": "complete_gig", "principal_id": "user-002"}
        denied = asyncio.run(
            system.execute("reputation_tracker", "record_contribution", user, params)
        )
        assert denied.error_code == "PERMISSION_DENIED"
        assert "trust:manage" in denied.error_detail
        assert asyncio.run(system.ledger.get_record("user-002")) is None

        moderator = IdentityContext(
            principal_id="moderator-1", token="verified", permissions=frozenset({"trust:manage"})
        )
        allowed = asyncio.run(
            system.execute("reputation_tracker", "record_contribution", moderator, params)
        )
        assert allowed.success is True
        assert asyncio.run(system.ledger.get_score("user-002")) == 40

    def test_naming_yourself_needs_no_permission(self, system: ActorSystem, user) -> None:
        result = asyncio.run(
            system.execute(
                "reputation_tracker", "view_score", user, {"principal_id": "user-001"}
            )
        )
        assert result.success is True

    def test_record_contribution_needs_event_type(self, system: ActorSystem, user) -> None:
        result = asyncio.run(system.execute("reputation_tracker", "record_contribution", user, {}))
        assert result.error_code == "INVALID_PARAMS"

    def test_record_contribution_with_unknown_event(self, system: ActorSystem, user) -> None:
        result = asyncio.run(
            system.execute(
                "reputation_tracker", "record_contribution", user, {"event_type": "made_up"}
            )
        )
        assert result.error_code == "UNKNOWN_EVENT_TYPE"

    def test_explain_score_change(self, system: ActorSystem, user) -> None:
        async def _run():
            await system.ledger.apply_event("user-001", "complete_gig", "signgigs")
            await system.ledger.apply_event(
                "user-001",
                "dao_vote",
                "dao",
                occurred_at=datetime.now(timezone.utc) - timedelta(days=30),
            )
            return await system.execute("reputation_tracker", "explain_score_change", user)

        result = asyncio.run(_run())
        assert result.data["total_change"] == 40
        assert result.data["current_score"] == 45
        assert result.data["message"] == "You gained 40 points in the last 7 days!"
        assert [change["event_type"] for change in result.data["changes"]] == ["complete_gig"]

    def test_explain_score_change_rejects_bad_days(self, system: ActorSystem, user) -> None:
        result = asyncio.run(
            system.execute("reputation_tracker", "explain_score_change", user, {"days": 0})
        )
        assert result.error_code == "INVALID_PARAMS"

    def test_check_badges(self, system: ActorSystem, user) -> None:
        async def _run():
            for _ in range(3):
                await system.ledger.apply_event("user-001", "mentor_session", "mentoring")
            return await system.execute("reputation_tracker", "check_badges", user)

        result = asyncio.run(_run())
        assert result.data["total_earned"] == 0
        assert result.data["total_available"] == 6
        mentor = next(badge for badge in result.data["available"] if badge["badge_id"] == "mentor")
        assert mentor["event_progress"] == {"mentor_session": {"have": 3, "need": 5}}

    def test_leaderboard_is_anonymous(self, system: ActorSystem, anonymous) -> None:
        async def _run():
            await system.ledger.apply_event("alice", "complete_gig", "signgigs")
            await system.ledger.apply_event("bob", "dao_vote", "dao")
            return await system.execute("reputation_tracker", "leaderboard", anonymous, {"limit": 1})

        result = asyncio.run(_run())
        assert result.success is True
        assert [entry["principal_id"] for entry in result.data["leaderboard"]] == ["alice"]

    def test_detect_gaming_freezes_and_requests_review(self, event_factory) -> None:
        storage = MemoryTrustStorage()
        events = event_factory("dao_vote", 21, timedelta(seconds=20))
        asyncio.run(
            storage.save(
                TrustRecord(
                    principal_id="user-001",
                    total_score=105,
                    level=3,
                    recent_events=tuple(events),
                    event_counts={"dao_vote": 21},
                )
            )
        )
        ledger = TrustLedger(storage=storage)
        actor = ReputationTrackerActor(ledger)
        context = IdentityContext.for_actor("safety_monitor")

        result = asyncio.run(actor.execute("detect_gaming", context, {"principal_id": "user-001"}))
        assert result["suspicious"] is True
        assert result["flags"] == ["Repeated action: dao_vote (21 times)"]
        record = asyncio.run(ledger.get_record("user-001"))
        assert record.frozen is True

    def test_detect_gaming_on_clean_record(self, system: ActorSystem, user) -> None:
        async def _run():
            await system.ledger.apply_event("user-001", "complete_gig", "signgigs")
            return await system.execute("reputation_tracker", "detect_gaming", user)

        result = asyncio.run(_run())
        assert result.data["suspicious"] is False


# ---------------------------------------------------------------------------
# TestGatekeeper
# ---------------------------------------------------------------------------


class TestGatekeeper:
    def test_welcome_anonymous_user(self, system: ActorSystem, anonymous) -> None:
        result = asyncio.run(
            system.execute("gatekeeper", "welcome_user", anonymous, {"user_name": "Sam"})
        )
        assert result.success is True
        assert result.data["needs_registration"] is True
        assert result.data["next_steps"][0] == "Create your account"
        assert "Sam" in result.data["welcome"]["message"]

    def test_welcome_verified_user(self, system: ActorSystem, user) -> None:
        result = asyncio.run(system.execute("gatekeeper", "welcome_user", user))
        assert result.data["needs_registration"] is False

    def test_dao_vote_needs_level_two(self, system: ActorSystem, user) -> None:
        params = {"app_name": "dao_voting", "action": "vote"}

        async def _run():
            before = await system.execute("gatekeeper", "check_access", user, params)
            await system.ledger.apply_event("user-001", "complete_gig", "signgigs")
            await system.ledger.apply_event("user-001", "complete_gig", "signgigs")
            after = await system.execute("gatekeeper", "check_access", user, params)
            return before, after

        before, after = asyncio.run(_run())
        assert before.data["can_access"] is False
        assert before.data["reason"] == "DAO voting requires trust level 2 or higher"
        assert before.data["trust_level"] == 1
        assert after.data["can_access"] is True
        assert after.data["reason"] == "Access granted"

    def test_ungated_action_is_allowed(self, system: ActorSystem, user) -> None:
        result = asyncio.run(
            system.execute("gatekeeper", "check_access", user, {"app_name": "signgigs"})
        )
        assert result.data["can_access"] is True
        assert result.data["action"] == "read"

    def test_check_access_needs_app_name(self, system: ActorSystem, user) -> None:
        result = asyncio.run(system.execute("gatekeeper", "check_access", user))
        assert result.error_code == "INVALID_PARAMS"

    def test_explain_permissions(self, system: ActorSystem, user) -> None:
        result = asyncio.run(system.execute("gatekeeper", "explain_permissions", user))
        gated = {(item["app_name"], item["action"]): item["allowed"] for item in result.data["gated_actions"]}
        assert gated == {("dao_voting", "vote"): False, ("dao_voting", "propose"): False}
        assert result.data["trust"]["points_to_next"] == 50


# ---------------------------------------------------------------------------
# TestWorkflowAutomator
# ---------------------------------------------------------------------------


class TestWorkflowAutomator:
    def test_send_and_list_notifications(self, system: ActorSystem, user) -> None:
        async def _run():
            await system.execute(
                "workflow_automator",
                "send_notification",
                user,
                {"principal_id": "user-001", "type": "reminder", "message": "Hi"},
            )
            return await system.execute("workflow_automator", "list_notifications", user)

        result = asyncio.run(_run())
        assert result.data["total"] == 1
        assert result.data["notifications"][0]["kind"] == "reminder"

    def test_list_recipes_hides_disabled(self, system: ActorSystem, user) -> None:
        enabled = asyncio.run(system.execute("workflow_automator", "list_recipes", user))
        everything = asyncio.run(
            system.execute("workflow_automator", "list_recipes", user, {"include_disabled": True})
        )
        assert enabled.data["total"] == 2
        assert everything.data["total"] == 3

    def test_gig_completion_recipe_updates_trust(self, system: ActorSystem, user) -> None:
        async def _run():
            result = await system.execute(
                "workflow_automator", "execute_recipe", user, {"recipe_id": "gig_completion"}
            )
            return result, await system.ledger.get_score("user-001")

        result, score = asyncio.run(_run())
        assert result.data["all_succeeded"] is True
        assert [step["step_type"] for step in result.data["results"]] == [
            "update_trust",
            "send_notification",
        ]
        assert score == 40
        workflow = system.registry.resolve("workflow_automator")
        assert [n.kind for n in workflow.notifications] == ["gig_completed"]

    def test_disabled_and_unknown_recipes_are_rejected(self, system: ActorSystem, user) -> None:
        disabled = asyncio.run(
            system.execute(
                "workflow_automator", "execute_recipe", user, {"recipe_id": "weekly_dao_digest"}
            )
        )
        unknown = asyncio.run(
            system.execute("workflow_automator", "execute_recipe", user, {"recipe_id": "nope"})
        )
        assert disabled.error_code == "INVALID_PARAMS"
        assert unknown.error_code == "INVALID_PARAMS"

    def test_recipe_stops_at_first_failing_step(self, user) -> None:
        actor = WorkflowAutomatorActor(router=None)
        result = asyncio.run(
            actor.execute("execute_recipe", user, {"recipe_id": "new_user_onboarding"})
        )
        assert result["all_succeeded"] is False
        assert len(result["results"]) == 1
        assert result["results"][0]["detail"] == {"error": "no router configured"}
        assert actor.notifications == []


# ---------------------------------------------------------------------------
# TestSafetyMonitor
# ---------------------------------------------------------------------------


class TestSafetyMonitor:
    def test_cases_can_be_listed_by_kind(self) -> None:
        actor = SafetyMonitorActor()
        context = IdentityContext.for_actor("reputation_tracker")

        async def _run():
            await actor.execute(
                "review_reputation_gaming", context, {"principal_id": "user-001", "flags": ["x"]}
            )
            await actor.execute("escalate_failed_request", context, {"request_id": "req-1"})
            return await actor.execute("list_cases", context, {"kind": "failed_request"})

        listed = asyncio.run(_run())
        assert listed["total"] == 1
        assert listed["cases"][0]["subject"] == "req-1"
        assert len(actor.cases) == 2

    def test_review_needs_principal(self, system: ActorSystem, user) -> None:
        result = asyncio.run(system.execute("safety_monitor", "review_reputation_gaming", user))
        assert result.error_code == "INVALID_PARAMS"


# ---------------------------------------------------------------------------
# TestCommunityConcierge
# ---------------------------------------------------------------------------


class TestCommunityConcierge:
    def test_answer_is_returned_verbatim(self, user) -> None:
        generator = StaticContentGenerator({"What is a DAO?": "A community-run organisation."})
        system = ActorSystem(generator=generator)
        result = asyncio.run(
            system.execute(
                "community_concierge", "ask_question", user, {"question": "What is a DAO?"}
            )
        )
        assert result.data == {"question": "What is a DAO?", "answer": "A community-run organisation."}
        assert generator.prompts == ["What is a DAO?"]
        assert isinstance(generator, ContentGenerator)

    def test_generator_failure_is_a_content_error(self, user) -> None:
        system = ActorSystem(generator=BrokenGenerator())
        result = asyncio.run(
            system.execute("community_concierge", "ask_question", user, {"question": "Hello?"})
        )
        assert result.success is False
        assert result.error_code == "CONTENT_GENERATION_FAILED"
        assert "provider unreachable" in result.error_detail

    def test_question_is_required(self, user) -> None:
        result = asyncio.run(ActorSystem().execute("community_concierge", "ask_question", user, {}))
        assert result.error_code == "INVALID_PARAMS"
