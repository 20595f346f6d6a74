# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import BaseModel, Field, PrivateAttr

from fibonrose.actors.registry import ActorRegistry
from fibonrose.audit.log import ActionLog
from fibonrose.audit.record import ActionRecord
from fibonrose.errors import (
    FibonroseError,
    InsufficientTrustError,
    UnauthenticatedError,
    UnknownActionError,
)
from fibonrose.trust.ledger import TrustLedger
from fibonrose.types import IdentityContext

logger = logging.getLogger("fibonrose.envelope")

HANDLER_ERROR = "HANDLER_ERROR"

IdentityVerifier = Callable[[IdentityContext], Awaitable[bool]]


class ActorResult(BaseModel):
    """
    The outcome of one enveloped actor invocation.

    Rejected and failed calls are returned, not raised, so the caller always
    gets the audit record id. Use :meth:`raise_for_error` to turn a failure
    back into the exception that caused it.

    Attributes:
        success: True when the handler ran and returned.
        actor_id: The invoked actor.
        action: The invoked action.
        principal_id: The acting principal, if any.
        data: Handler output on success.
        error_code: Error code on failure.
        error_detail: Error message on failure.
        audit_record_id: Id of the ActionRecord written for this call.
    """

    success: bool
    actor_id: str
    action: str
    principal_id: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)
    error_code: str | None = None
    error_detail: str | None = None
    audit_record_id: str

    _exception: BaseException | None = PrivateAttr(default=None)

    @property
    def exception(self) -> BaseException | None:
        return self._exception

    def raise_for_error(self) -> None:
        """Re-raise the exception captured for a failed invocation."""
        if self._exception is not None:
            raise self._exception


class ActionEnvelope:
    """
    Mandatory wrapper around every actor invocation.

    Gates run in order and each one fails fast:

    1. Identity: the context must carry a verified identity unless the
       action is anonymous-allowed.
    2. Trust: when ``minimum_trust_level`` is given, the principal's level
       from the ledger must meet it.
    3. Dispatch: the actor must declare a handler for the action.
    4. Audit: exactly one ActionRecord is written, whatever happened above.

    There is no retry at this layer.

    Example::

        envelope = ActionEnvelope(registry, ledger, ActionLog())
        result = await envelope.invoke(
            "reputation_tracker",
            "view_score",
            IdentityContext(principal_id="user-1", token="verified"),
        )
        result.raise_for_error()
    """

    def __init__(
        self,
        registry: ActorRegistry,
        ledger: TrustLedger,
        action_log: ActionLog | None = None,
        identity_verifier: IdentityVerifier | None = None,
    ) -> None:
        self._registry = registry
        self._ledger = ledger
        self._log = action_log or ActionLog()
        self._verify_identity = identity_verifier
        self._sync_guard = threading.Lock()
        self._sync_loop: asyncio.AbstractEventLoop | None = None
        self._sync_thread: threading.Thread | None = None

    @property
    def action_log(self) -> ActionLog:
        return self._log

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def invoke(
        self,
        actor_id: str,
        action_name: str,
        context: IdentityContext | None = None,
        params: dict[str, Any] | None = None,
        minimum_trust_level: int | None = None,
        allow_anonymous: bool = False,
    ) -> ActorResult:
        """
        Run one actor action through the identity, trust and dispatch gates.

        Args:
            actor_id: Registry id of the actor.
            action_name: Action to run.
            context: Caller identity. None is treated as anonymous.
            params: Action parameters, passed to the handler unchanged.
            minimum_trust_level: Optional level the principal must have.
            allow_anonymous: Allow the call without identity even when the
                actor does not list the action as anonymous.

        Returns:
            An :class:`ActorResult`. Never raises for gate failures or
            handler errors; those are captured in the result and audit record.
        """
        ctx = context or IdentityContext.anonymous()
        call_params = dict(params or {})
        data: dict[str, Any] = {}
        failure: BaseException | None = None

        try:
            actor = self._registry.resolve(actor_id)

            anonymous_ok = allow_anonymous or action_name in actor.anonymous_actions
            if not anonymous_ok:
                await self._check_identity(actor_id, action_name, ctx)

            if minimum_trust_level is not None:
                if not ctx.principal_id:
                    raise UnauthenticatedError(
                        actor_id, action_name, "trust-gated actions need a principal"
                    )
                actual = await self._ledger.get_level(ctx.principal_id)
                if actual < minimum_trust_level:
                    raise InsufficientTrustError(ctx.principal_id, minimum_trust_level, actual)

            if action_name not in actor.actions:
                raise UnknownActionError(actor_id, action_name)

            data = await actor.execute(action_name, ctx, call_params)
        except FibonroseError as exc:
            failure = exc
            logger.warning(
                "actor_invocation_rejected",
                extra={
                    "actor_id": actor_id,
                    "action_name": action_name,
                    "principal_id": ctx.principal_id,
                    "error_code": exc.code,
                },
            )
        except Exception as exc:
            failure = exc
            logger.exception(
                "actor_handler_failed",
                extra={
                    "actor_id": actor_id,
                    "action_name": action_name,
                    "principal_id": ctx.principal_id,
                },
            )

        record = await self._write_record(actor_id, action_name, ctx, call_params, failure)
        if failure is None:
            logger.info(
                "actor_invocation_succeeded",
                extra={
                    "actor_id": actor_id,
                    "action_name": action_name,
                    "principal_id": ctx.principal_id,
                },
            )

        result = ActorResult(
            success=failure is None,
            actor_id=actor_id,
            action=action_name,
            principal_id=ctx.principal_id,
            data=data if failure is None else {},
            error_code=record.error_code,
            error_detail=record.error_detail,
            audit_record_id=record.id,
        )
        result._exception = failure
        return result

    def invoke_sync(
        self,
        actor_id: str,
        action_name: str,
        context: IdentityContext | None = None,
        params: dict[str, Any] | None = None,
        minimum_trust_level: int | None = None,
        allow_anonymous: bool = False,
    ) -> ActorResult:
        """
        Synchronous wrapper for :meth:`invoke`.

        Every synchronous call, from any thread, runs on one background event
        loop owned by the envelope. The ledger's per-principal locks and the
        action log's lock therefore serialise calls made from different
        threads. Call :meth:`close` to stop that loop.

        Raises:
            RuntimeError: If called from a handler already running on the
                envelope's background loop. Await :meth:`invoke` there instead.
        """
        loop = self._ensure_sync_loop()
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            raise RuntimeError(
                "invoke_sync() cannot block the envelope's own loop; await invoke() instead."
            )

        future = asyncio.run_coroutine_threadsafe(
            self.invoke(
                actor_id, action_name, context, params, minimum_trust_level, allow_anonymous
            ),
            loop,
        )
        return future.result()

    def close(self) -> None:
        """Stop the background loop used by :meth:`invoke_sync`, if one was started."""
        with self._sync_guard:
            loop, thread = self._sync_loop, self._sync_thread
            if thread is not None and threading.current_thread() is thread:
                raise RuntimeError("close() cannot be called from the envelope's own loop.")
            self._sync_loop = None
            self._sync_thread = None
        if loop is None or thread is None:
            return
        loop.call_soon_threadsafe(loop.stop)
        thread.join()
        loop.close()
        logger.debug("envelope_sync_loop_closed")

    async def record(
        self,
        *,
        actor_id: str,
        action: str,
        success: bool,
        context: IdentityContext | None = None,
        params: dict[str, Any] | None = None,
        error: BaseException | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> ActionRecord:
        """
        Write an ActionRecord for a step that is not an actor invocation.

        The coordination router uses this for its source-side records so all
        audit writes go through the envelope.
        """
        error_code, error_detail = _describe_error(error)
        return await self._log.record(
            actor_id=actor_id,
            action=action,
            success=success,
            principal_id=context.principal_id if context else None,
            params=params,
            error_code=error_code,
            error_detail=error_detail,
            metadata=metadata,
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _ensure_sync_loop(self) -> asyncio.AbstractEventLoop:
        with self._sync_guard:
            if self._sync_loop is None:
                loop = asyncio.new_event_loop()
                thread = threading.Thread(
                    target=loop.run_forever, name="fibonrose-envelope", daemon=True
                )
                thread.start()
                self._sync_loop = loop
                self._sync_thread = thread
            return self._sync_loop

    async def _check_identity(self, actor_id: str, action_name: str, ctx: IdentityContext) -> None:
        if not ctx.is_authenticated:
            raise UnauthenticatedError(actor_id, action_name, "no identity token")
        if self._verify_identity is not None and not ctx.service:
            if not await self._verify_identity(ctx):
                raise UnauthenticatedError(actor_id, action_name, "identity verification failed")

    async def _write_record(
        self,
        actor_id: str,
        action_name: str,
        ctx: IdentityContext,
        params: dict[str, Any],
        failure: BaseException | None,
    ) -> ActionRecord:
        error_code, error_detail = _describe_error(failure)
        return await self._log.record(
            actor_id=actor_id,
            action=action_name,
            success=failure is None,
            principal_id=ctx.principal_id,
            params=params,
            error_code=error_code,
            error_detail=error_detail,
            metadata={"service": True} if ctx.service else None,
        )


def _describe_error(error: BaseException | None) -> tuple[str | None, str | None]:
    if error is None:
        return None, None
    if isinstance(error, FibonroseError):
        return error.code, error.message
    return HANDLER_ERROR, f"{type(error).__name__}: {error}"
