# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, PrivateAttr

from fibonrose.errors import RouteTimeoutError
from fibonrose.types import IdentityContext, Priority


class CoordinationRequest(BaseModel, frozen=True):
    """
    A prioritised message from one actor to another.

    Actors never hold references to each other; they describe the work and
    hand the request to the router.

    Attributes:
        request_id: Unique id, generated when omitted.
        source_actor_id: Actor sending the request.
        target_actor_id: Actor expected to handle it.
        request_type: Action name invoked on the target.
        payload: Parameters for the target action.
        priority: Delivery priority.
        context: Identity the request acts on behalf of. When omitted the
            router uses a service identity for the source actor.
        created_at: Creation time (UTC).
    """

    request_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    source_actor_id: str
    target_actor_id: str
    request_type: str
    payload: dict[str, Any] = Field(default_factory=dict)
    priority: Priority = Priority.MEDIUM
    context: IdentityContext | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class RouteStatus(str, Enum):
    DELIVERED = "delivered"
    FAILED = "failed"
    TIMEOUT = "timeout"
    QUEUED = "queued"
    DROPPED = "dropped"


class RouteResult(BaseModel):
    """
    Outcome of :meth:`~fibonrose.routing.CoordinationRouter.route`.

    For queued priorities this is an acknowledgement; the target's outcome is
    recorded in the action log when the worker delivers it.
    """

    request_id: str
    status: RouteStatus
    result: dict[str, Any] | None = None
    error_code: str | None = None
    error_detail: str | None = None
    escalation: RouteResult | None = None

    _exception: BaseException | None = PrivateAttr(default=None)

    @property
    def exception(self) -> BaseException | None:
        return self._exception

    @property
    def ok(self) -> bool:
        return self.status in (RouteStatus.DELIVERED, RouteStatus.QUEUED)

    def raise_for_status(self) -> None:
        """
        Raise for a failed, timed-out or dropped route.

        Raises:
            RouteTimeoutError: When synchronous delivery missed its deadline.
            FibonroseError: The captured failure for other non-ok statuses.
        """
        if self.ok:
            return
        if self._exception is not None:
            raise self._exception
        raise RuntimeError(self.error_detail or f"Route {self.request_id} {self.status.value}.")

    @classmethod
    def timed_out(cls, request: CoordinationRequest, timeout: float) -> RouteResult:
        error = RouteTimeoutError(request.request_id, request.target_actor_id, timeout)
        result = cls(
            request_id=request.request_id,
            status=RouteStatus.TIMEOUT,
            error_code=error.code,
            error_detail=error.message,
        )
        result._exception = error
        return result
