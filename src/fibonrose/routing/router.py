# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""
Priority-aware message passing between actors.

HIGH and CRITICAL requests are delivered synchronously through the
:class:`~fibonrose.envelope.ActionEnvelope` and the caller waits, up to
``coordination_timeout``, for the target's result. LOW and MEDIUM requests go
into a bounded queue per tier and are delivered by a single background
worker, MEDIUM before LOW and FIFO within a tier.

Every routed request is recorded twice: once on the source actor as
``coordinate:<request_type>`` by the router, and once on the target actor by
the envelope when the target runs.
"""
from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any

from fibonrose.actors.registry import ActorRegistry
from fibonrose.config import RoutingConfig
from fibonrose.envelope import ActionEnvelope, ActorResult
from fibonrose.errors import QueueFullError, UnknownTargetActorError
from fibonrose.routing.request import CoordinationRequest, RouteResult, RouteStatus
from fibonrose.types import IdentityContext, Priority

logger = logging.getLogger("fibonrose.routing")

_Item = tuple[CoordinationRequest, IdentityContext]


class CoordinationRouter:
    """
    Routes :class:`CoordinationRequest` objects to registered actors.

    Queued requests are held until the worker runs; start it with
    :meth:`start` or ``async with router``. :meth:`drain` waits for every
    queued and in-flight delivery to finish.

    Example::

        async with CoordinationRouter(registry, envelope) as router:
            result = await router.route(
                CoordinationRequest(
                    source_actor_id="reputation_tracker",
                    target_actor_id="safety_monitor",
                    request_type="review_reputation_gaming",
                    priority=Priority.HIGH,
                    payload={"principal_id": "user-1"},
                )
            )
            result.raise_for_status()
    """

    def __init__(
        self,
        registry: ActorRegistry,
        envelope: ActionEnvelope,
        config: RoutingConfig | None = None,
    ) -> None:
        self._registry = registry
        self._envelope = envelope
        self._config = config or RoutingConfig()
        # Created on first use so they bind to the running event loop.
        self._queues: dict[Priority, asyncio.Queue[_Item]] | None = None
        self._pending: asyncio.Semaphore | None = None
        self._worker: asyncio.Task[None] | None = None
        self._in_flight: set[asyncio.Future[Any]] = set()
        self._outstanding = 0

    @property
    def config(self) -> RoutingConfig:
        return self._config

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def queue_size(self, priority: Priority) -> int:
        if self._queues is None or priority not in self._queues:
            return 0
        return self._queues[priority].qsize()

    # ------------------------------------------------------------------
    # Routing
    # ------------------------------------------------------------------

    async def route(self, request: CoordinationRequest) -> RouteResult:
        """
        Deliver or enqueue ``request`` according to its priority.

        Returns:
            A :class:`RouteResult`. Synchronous priorities report the target's
            outcome; queued priorities report ``queued`` or ``dropped``.

        Raises:
            UnknownTargetActorError: If the target is not registered. The
                attempt is recorded on the source actor before raising.
        """
        context = request.context or IdentityContext.for_actor(request.source_actor_id)

        if not self._registry.has(request.target_actor_id):
            error = UnknownTargetActorError(request.target_actor_id)
            await self._record_source(request, context, RouteStatus.FAILED, error)
            logger.warning(
                "coordination_unknown_target",
                extra={
                    "request_id": request.request_id,
                    "source_actor_id": request.source_actor_id,
                    "target_actor_id": request.target_actor_id,
                },
            )
            raise error

        if request.priority.is_synchronous:
            return await self._deliver_now(request, context)
        return await self._enqueue(request, context)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start the queue worker. Calling it twice is harmless."""
        if self.running:
            return
        self._ensure_queues()
        self._worker = asyncio.get_running_loop().create_task(self._run_worker())
        logger.debug("coordination_worker_started")

    async def drain(self) -> None:
        """Wait until both queues are empty and no delivery is in flight."""
        await self.start()
        queues = self._ensure_queues()
        # Deliveries can enqueue further requests, so repeat until quiet.
        while True:
            for queue in queues.values():
                await queue.join()
            if self._in_flight:
                await asyncio.gather(*list(self._in_flight), return_exceptions=True)
            if self._outstanding == 0 and not self._in_flight:
                return

    async def stop(self, drain: bool = True) -> None:
        """
        Stop the worker.

        Args:
            drain: Deliver everything already queued before stopping. When
                False, queued requests are left undelivered; a delivery that
                has already started still runs to completion.
        """
        if drain:
            await self.drain()
        worker, self._worker = self._worker, None
        if worker is not None:
            worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await worker
            if self._in_flight:
                await asyncio.gather(*list(self._in_flight), return_exceptions=True)
            logger.debug("coordination_worker_stopped")
        if self._queues is not None and all(q.empty() for q in self._queues.values()):
            self._queues = None
            self._pending = None

    async def __aenter__(self) -> CoordinationRouter:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()

    # ------------------------------------------------------------------
    # Synchronous delivery
    # ------------------------------------------------------------------

    async def _deliver_now(
        self, request: CoordinationRequest, context: IdentityContext
    ) -> RouteResult:
        timeout = self._config.coordination_timeout
        task = asyncio.ensure_future(self._invoke_target(request, context))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

        try:
            actor_result = await asyncio.wait_for(asyncio.shield(task), timeout)
        except asyncio.TimeoutError:
            # The handler keeps running; its own record is written when it ends.
            result = RouteResult.timed_out(request, timeout)
            logger.warning(
                "coordination_timeout",
                extra={
                    "request_id": request.request_id,
                    "target_actor_id": request.target_actor_id,
                    "request_type": request.request_type,
                    "timeout": timeout,
                },
            )
        else:
            result = _from_actor_result(request, actor_result)
            logger.info(
                "coordination_delivered",
                extra={
                    "request_id": request.request_id,
                    "target_actor_id": request.target_actor_id,
                    "request_type": request.request_type,
                    "route_status": result.status.value,
                },
            )

        await self._record_source(request, context, result.status, result.exception)

        if request.priority is Priority.CRITICAL and result.status is not RouteStatus.DELIVERED:
            result.escalation = await self._escalate(request, result)
        return result

    async def _escalate(
        self, request: CoordinationRequest, failed: RouteResult
    ) -> RouteResult | None:
        escalation_actor = self._config.escalation_actor_id
        if escalation_actor is None:
            return None
        if (
            request.target_actor_id == escalation_actor
            or request.request_type == self._config.escalation_request_type
        ):
            return None
        if not self._registry.has(escalation_actor):
            logger.warning(
                "coordination_escalation_unavailable",
                extra={"request_id": request.request_id, "escalation_actor_id": escalation_actor},
            )
            return None

        escalation = CoordinationRequest(
            source_actor_id=request.source_actor_id,
            target_actor_id=escalation_actor,
            request_type=self._config.escalation_request_type,
            priority=Priority.HIGH,
            payload={
                "request_id": request.request_id,
                "source_actor_id": request.source_actor_id,
                "target_actor_id": request.target_actor_id,
                "request_type": request.request_type,
                "route_status": failed.status.value,
                "error_code": failed.error_code,
                "error_detail": failed.error_detail,
            },
        )
        logger.warning(
            "coordination_escalated",
            extra={
                "request_id": request.request_id,
                "escalation_request_id": escalation.request_id,
                "escalation_actor_id": escalation_actor,
            },
        )
        return await self.route(escalation)

    # ------------------------------------------------------------------
    # Queued delivery
    # ------------------------------------------------------------------

    async def _enqueue(self, request: CoordinationRequest, context: IdentityContext) -> RouteResult:
        queue = self._ensure_queues()[request.priority]
        try:
            if request.priority is Priority.LOW:
                queue.put_nowait((request, context))
            else:
                try:
                    queue.put_nowait((request, context))
                except asyncio.QueueFull:
                    await asyncio.wait_for(
                        queue.put((request, context)), self._config.coordination_timeout
                    )
        except (asyncio.QueueFull, asyncio.TimeoutError):
            error = QueueFullError(request.priority.label(), queue.maxsize)
            await self._record_source(request, context, RouteStatus.DROPPED, error)
            logger.warning(
                "coordination_dropped",
                extra={
                    "request_id": request.request_id,
                    "target_actor_id": request.target_actor_id,
                    "priority": request.priority.label(),
                    "capacity": queue.maxsize,
                },
            )
            result = RouteResult(
                request_id=request.request_id,
                status=RouteStatus.DROPPED,
                error_code=error.code,
                error_detail=error.message,
            )
            result._exception = error
            return result

        self._outstanding += 1
        self._ensure_semaphore().release()
        await self._record_source(request, context, RouteStatus.QUEUED, None)
        return RouteResult(request_id=request.request_id, status=RouteStatus.QUEUED)

    async def _run_worker(self) -> None:
        pending = self._ensure_semaphore()
        while True:
            await pending.acquire()
            queue = self._next_queue()
            request, context = queue.get_nowait()
            delivery = asyncio.ensure_future(self._deliver_queued(queue, request, context))
            self._in_flight.add(delivery)
            delivery.add_done_callback(self._in_flight.discard)
            # Cancelling the worker must not cancel a delivery already dispatched.
            await asyncio.shield(delivery)

    async def _deliver_queued(
        self,
        queue: asyncio.Queue[_Item],
        request: CoordinationRequest,
        context: IdentityContext,
    ) -> None:
        try:
            actor_result = await self._invoke_target(request, context)
        except Exception:
            logger.exception(
                "coordination_delivery_crashed",
                extra={"request_id": request.request_id},
            )
        else:
            log = logger.info if actor_result.success else logger.warning
            log(
                "coordination_queued_delivery",
                extra={
                    "request_id": request.request_id,
                    "target_actor_id": request.target_actor_id,
                    "request_type": request.request_type,
                    "delivery_success": actor_result.success,
                    "error_code": actor_result.error_code,
                },
            )
        finally:
            self._outstanding -= 1
            queue.task_done()

    def _ensure_queues(self) -> dict[Priority, asyncio.Queue[_Item]]:
        if self._queues is None:
            self._queues = {
                Priority.MEDIUM: asyncio.Queue(maxsize=self._config.medium_priority_queue_capacity),
                Priority.LOW: asyncio.Queue(maxsize=self._config.low_priority_queue_capacity),
            }
        return self._queues

    def _ensure_semaphore(self) -> asyncio.Semaphore:
        if self._pending is None:
            self._pending = asyncio.Semaphore(0)
        return self._pending

    def _next_queue(self) -> asyncio.Queue[_Item]:
        queues = self._ensure_queues()
        for priority in (Priority.MEDIUM, Priority.LOW):
            queue = queues[priority]
            if not queue.empty():
                return queue
        raise RuntimeError("Coordination worker woke with both queues empty.")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _invoke_target(
        self, request: CoordinationRequest, context: IdentityContext
    ) -> ActorResult:
        return await self._envelope.invoke(
            request.target_actor_id,
            request.request_type,
            context,
            request.payload,
        )

    async def _record_source(
        self,
        request: CoordinationRequest,
        context: IdentityContext,
        status: RouteStatus,
        error: BaseException | None,
    ) -> None:
        await self._envelope.record(
            actor_id=request.source_actor_id,
            action=f"coordinate:{request.request_type}",
            success=status in (RouteStatus.DELIVERED, RouteStatus.QUEUED),
            context=context,
            params=request.payload,
            error=error,
            metadata={
                "request_id": request.request_id,
                "target_actor_id": request.target_actor_id,
                "priority": request.priority.label(),
                "route_status": status.value,
            },
        )


def _from_actor_result(request: CoordinationRequest, actor_result: ActorResult) -> RouteResult:
    if actor_result.success:
        return RouteResult(
            request_id=request.request_id,
            status=RouteStatus.DELIVERED,
            result=actor_result.data,
        )
    result = RouteResult(
        request_id=request.request_id,
        status=RouteStatus.FAILED,
        error_code=actor_result.error_code,
        error_detail=actor_result.error_detail,
    )
    result._exception = actor_result.exception
    return result

