# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

from datetime import timedelta
from pathlib import Path
from typing import Annotated

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from fibonrose.errors import ConfigurationError
from fibonrose.trust.badges import DEFAULT_BADGES, BadgeDefinition
from fibonrose.trust.classifier import DEFAULT_EVENT_TABLE, EventDefinition
from fibonrose.trust.levels import DEFAULT_LEVEL_THRESHOLDS


class LedgerConfig(BaseModel, frozen=True):
    """
    Configuration for the TrustLedger.

    Attributes:
        recent_event_window_size: Capacity K of each record's recent event
            window. The oldest event is evicted when the window is full.
        level_thresholds: Strictly ascending score thresholds; level ``i``
            starts at ``level_thresholds[i - 1]``.
        badges: Static badge catalogue.
        event_table: Event type to point delta and description.
    """

    recent_event_window_size: Annotated[int, Field(gt=0)] = 100
    level_thresholds: tuple[int, ...] = DEFAULT_LEVEL_THRESHOLDS
    badges: tuple[BadgeDefinition, ...] = DEFAULT_BADGES
    event_table: dict[str, EventDefinition] = Field(
        default_factory=lambda: dict(DEFAULT_EVENT_TABLE)
    )

    @field_validator("level_thresholds")
    @classmethod
    def _thresholds_ascending(cls, value: tuple[int, ...]) -> tuple[int, ...]:
        if not value:
            raise ValueError("level_thresholds must contain at least one threshold.")
        for lower, upper in zip(value, value[1:]):
            if upper <= lower:
                raise ValueError(f"level_thresholds must be strictly ascending; got {list(value)}.")
        return value

    @field_validator("badges")
    @classmethod
    def _badge_ids_unique(cls, value: tuple[BadgeDefinition, ...]) -> tuple[BadgeDefinition, ...]:
        ids = [badge.badge_id for badge in value]
        if len(ids) != len(set(ids)):
            raise ValueError("badge ids must be unique.")
        return value


class FraudConfig(BaseModel, frozen=True):
    """
    Thresholds for the FraudDetector heuristics.

    Attributes:
        velocity_count_threshold: More than this many events spanning less
            than ``velocity_time_window`` is flagged.
        velocity_time_window: Time span for the velocity heuristic.
        repetition_count_threshold: More than this many events of a single
            type in the recent window is flagged.
    """

    velocity_count_threshold: Annotated[int, Field(gt=0)] = 50
    velocity_time_window: timedelta = timedelta(hours=1)
    repetition_count_threshold: Annotated[int, Field(gt=0)] = 20


class RoutingConfig(BaseModel, frozen=True):
    """
    Configuration for the CoordinationRouter.

    Attributes:
        coordination_timeout: Seconds a HIGH/CRITICAL delivery may take before
            it is recorded as timed out. Also bounds how long a MEDIUM request
            waits for queue space.
        low_priority_queue_capacity: Capacity of the LOW tier queue. New LOW
            requests are dropped when it is full.
        medium_priority_queue_capacity: Capacity of the MEDIUM tier queue.
        escalation_actor_id: Actor that receives a secondary request when a
            CRITICAL delivery fails. None disables escalation.
        escalation_request_type: Request type used for escalations.
    """

    coordination_timeout: Annotated[float, Field(gt=0)] = 5.0
    low_priority_queue_capacity: Annotated[int, Field(gt=0)] = 100
    medium_priority_queue_capacity: Annotated[int, Field(gt=0)] = 100
    escalation_actor_id: str | None = "safety_monitor"
    escalation_request_type: str = "escalate_failed_request"


class AuditConfig(BaseModel, frozen=True):
    """
    Configuration for the ActionLog.

    Attributes:
        max_param_chars: String values in audited params are truncated to
            this many characters.
        redacted_keys: Param keys (case-insensitive) whose values are
            replaced with ``"[REDACTED]"`` before storage.
    """

    max_param_chars: Annotated[int, Field(gt=0)] = 200
    redacted_keys: frozenset[str] = frozenset(
        {"password", "token", "secret", "api_key", "authorization"}
    )


class FibonroseConfig(BaseModel, frozen=True):
    """
    Top-level configuration.

    Example::

        config = FibonroseConfig(
            ledger=LedgerConfig(recent_event_window_size=200),
            fraud=FraudConfig(repetition_count_threshold=30),
            routing=RoutingConfig(coordination_timeout=2.0),
        )
        system = ActorSystem(config=config)
    """

    ledger: LedgerConfig = Field(default_factory=LedgerConfig)
    fraud: FraudConfig = Field(default_factory=FraudConfig)
    routing: RoutingConfig = Field(default_factory=RoutingConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)

    @model_validator(mode="after")
    def _window_can_hold_velocity_run(self) -> FibonroseConfig:
        if self.ledger.recent_event_window_size <= self.fraud.velocity_count_threshold:
            raise ValueError(
                "ledger.recent_event_window_size must exceed "
                "fraud.velocity_count_threshold, otherwise the velocity "
                "heuristic can never fire."
            )
        return self


def load_config(path: str | Path) -> FibonroseConfig:
    """
    Load a :class:`FibonroseConfig` from a JSON file.

    Raises:
        ConfigurationError: If the file is missing or fails validation.
    """
    config_path = Path(path)
    try:
        raw = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Cannot read config file '{config_path}': {exc}") from exc
    try:
        return FibonroseConfig.model_validate_json(raw)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid config file '{config_path}': {exc}") from exc
