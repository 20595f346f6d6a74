# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""
ActionLog: append-only, hash-chained record of every actor invocation.

The log coordinates three concerns:

1. Record construction, including redaction and truncation of params.
2. Hash chain maintenance, linking each record to the previous one.
3. Storage delegation through a pluggable :class:`~fibonrose.storage.ActionStorage`.
"""
from __future__ import annotations

import asyncio
from typing import Any

from fibonrose.audit.chain import ChainVerification, HashChain
from fibonrose.audit.query import ActionFilter, ActionQueryResult, apply_filter
from fibonrose.audit.record import ActionRecord, build_pending_record, redact_params
from fibonrose.config import AuditConfig
from fibonrose.storage.interface import ActionStorage
from fibonrose.storage.memory import MemoryActionStorage


class ActionLog:
    """
    Records actor invocations as immutable, hash-chained ActionRecords.

    Appends are serialised with a lock so the chain stays linear when many
    invocations finish concurrently. When opened over durable storage that
    already holds records, the chain resumes from the last stored hash.

    Args:
        storage: Backend. Defaults to in-memory storage.
        config: Redaction and truncation settings.
    """

    def __init__(
        self,
        storage: ActionStorage | None = None,
        config: AuditConfig | None = None,
    ) -> None:
        self._storage: ActionStorage = storage if storage is not None else MemoryActionStorage()
        self._config = config or AuditConfig()
        self._chain: HashChain | None = None
        self._lock = asyncio.Lock()

    async def record(
        self,
        *,
        actor_id: str,
        action: str,
        success: bool,
        principal_id: str | None = None,
        params: dict[str, Any] | None = None,
        error_code: str | None = None,
        error_detail: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> ActionRecord:
        """
        Append one record.

        ``params`` are redacted and truncated before hashing, so the stored
        copy never carries secrets.
        """
        safe_params = redact_params(params, self._config)
        async with self._lock:
            chain = await self._ensure_chain()
            pending = build_pending_record(
                actor_id=actor_id,
                action=action,
                success=success,
                previous_hash=chain.last_hash(),
                principal_id=principal_id,
                params=safe_params,
                error_code=error_code,
                error_detail=error_detail,
                metadata=metadata,
            )
            record = chain.seal(pending)
            await self._storage.append(record)
            # A failed write leaves the tip on the last stored record.
            chain.advance(record)
        return record

    async def query(self, action_filter: ActionFilter | None = None) -> ActionQueryResult:
        """Query stored records. Returns everything when no filter is given."""
        effective_filter = action_filter or ActionFilter()
        return apply_filter(await self._storage.all(), effective_filter)

    async def verify(self) -> ChainVerification:
        """Walk every stored record and re-derive its hash."""
        return HashChain.verify(await self._storage.all())

    async def count(self) -> int:
        return await self._storage.count()

    async def latest(self, n: int = 10) -> list[ActionRecord]:
        """Return the ``n`` most recent records, most recent last."""
        if n < 1:
            raise ValueError(f"n must be >= 1; got {n}.")
        records = await self._storage.all()
        return records[-n:]

    async def _ensure_chain(self) -> HashChain:
        if self._chain is None:
            last = await self._storage.last()
            self._chain = HashChain(last.record_hash if last else None)
        return self._chain
