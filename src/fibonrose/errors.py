# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations


class FibonroseError(Exception):
    """Base class for all fibonrose errors."""

    code: str = "FIBONROSE_ERROR"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.code = code or type(self).code
        self.message = message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class UnauthenticatedError(FibonroseError):
    """Raised when a call carries no verified identity."""

    code = "UNAUTHENTICATED"

    def __init__(self, actor_id: str, action: str, detail: str | None = None) -> None:
        detail_text = f": {detail}" if detail else ""
        super().__init__(
            f"Action '{action}' on actor '{actor_id}' requires a verified identity{detail_text}."
        )
        self.actor_id = actor_id
        self.action = action


class InsufficientTrustError(FibonroseError):
    """
    Raised when a principal's trust level is below the level an action needs.

    Attributes:
        principal_id: The principal whose level was evaluated.
        required_level: The minimum level required.
        actual_level: The principal's current level.
    """

    code = "INSUFFICIENT_TRUST"

    def __init__(self, principal_id: str, required_level: int, actual_level: int) -> None:
        super().__init__(
            f"Principal '{principal_id}' has trust level {actual_level} "
            f"but action requires level {required_level}."
        )
        self.principal_id = principal_id
        self.required_level = required_level
        self.actual_level = actual_level


class UnknownActionError(FibonroseError):
    """Raised when an actor has no handler registered for an action."""

    code = "UNKNOWN_ACTION"

    def __init__(self, actor_id: str, action: str) -> None:
        super().__init__(f"Actor '{actor_id}' has no handler for action '{action}'.")
        self.actor_id = actor_id
        self.action = action


class UnknownEventTypeError(FibonroseError):
    """Raised when an event type is missing from the classifier table."""

    code = "UNKNOWN_EVENT_TYPE"

    def __init__(self, event_type: str) -> None:
        super().__init__(f"Event type '{event_type}' is not registered in the event table.")
        self.event_type = event_type


class ActorNotFoundError(FibonroseError):
    """Raised when an actor id is not present in the registry."""

    code = "ACTOR_NOT_FOUND"

    def __init__(self, actor_id: str) -> None:
        super().__init__(f"Actor '{actor_id}' is not registered.")
        self.actor_id = actor_id


class UnknownTargetActorError(ActorNotFoundError):
    """Raised when a coordination request names a target that is not registered."""

    code = "UNKNOWN_TARGET_ACTOR"


class AccountFrozenError(FibonroseError):
    """
    Raised when a score-increasing event is submitted for a frozen principal.

    Attributes:
        principal_id: The frozen principal.
        reason: The freeze reason recorded by the fraud detector or an operator.
    """

    code = "ACCOUNT_FROZEN"

    def __init__(self, principal_id: str, reason: str | None) -> None:
        reason_text = f" Reason: {reason}" if reason else ""
        super().__init__(
            f"Trust record for principal '{principal_id}' is frozen; "
            f"positive events are blocked until review.{reason_text}"
        )
        self.principal_id = principal_id
        self.reason = reason


class RouteTimeoutError(FibonroseError):
    """Raised when synchronous coordination delivery exceeds its deadline."""

    code = "ROUTE_TIMEOUT"

    def __init__(self, request_id: str, target_actor_id: str, timeout: float) -> None:
        super().__init__(
            f"Coordination request '{request_id}' to actor '{target_actor_id}' "
            f"did not complete within {timeout:.2f}s."
        )
        self.request_id = request_id
        self.target_actor_id = target_actor_id
        self.timeout = timeout


class QueueFullError(FibonroseError):
    """Raised (and recorded) when a queued priority tier has no free capacity."""

    code = "QUEUE_FULL"

    def __init__(self, priority: str, capacity: int) -> None:
        super().__init__(
            f"The {priority} priority queue is full (capacity {capacity}); request dropped."
        )
        self.priority = priority
        self.capacity = capacity


class UnknownBadgeError(FibonroseError):
    """Raised when a badge id is not part of the configured catalogue."""

    code = "UNKNOWN_BADGE"

    def __init__(self, badge_id: str) -> None:
        super().__init__(f"Badge '{badge_id}' is not defined.")
        self.badge_id = badge_id


class ContentGenerationError(FibonroseError):
    """Raised when the external content generator fails."""

    code = "CONTENT_GENERATION_FAILED"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigurationError(FibonroseError):
    """Raised when fibonrose is misconfigured."""

    code = "CONFIGURATION_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class InvalidParamsError(FibonroseError):
    """Raised by an actor handler when a required parameter is missing or malformed."""

    code = "INVALID_PARAMS"

    def __init__(self, action: str, detail: str) -> None:
        super().__init__(f"Invalid parameters for '{action}': {detail}")
        self.action = action


class PermissionDeniedError(FibonroseError):
    """Raised when a caller acts on another principal without the permission to do so."""

    code = "PERMISSION_DENIED"

    def __init__(self, action: str, principal_id: str, permission: str) -> None:
        super().__init__(
            f"Action '{action}' on principal '{principal_id}' requires the "
            f"'{permission}' permission."
        )
        self.action = action
        self.principal_id = principal_id
        self.permission = permission
