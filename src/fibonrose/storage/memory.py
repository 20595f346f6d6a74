# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""
Volatile in-memory storage backends.

Suitable for tests and short-lived processes. Data is lost when the
process exits.
"""
from __future__ import annotations

from fibonrose.audit.query import ActionFilter, apply_filter
from fibonrose.audit.record import ActionRecord
from fibonrose.storage.interface import ActionStorage, TrustStorage
from fibonrose.trust.record import TrustRecord


class MemoryTrustStorage(TrustStorage):
    """In-memory TrustStorage keyed by principal id."""

    def __init__(self) -> None:
        self._records: dict[str, TrustRecord] = {}

    async def get(self, principal_id: str) -> TrustRecord | None:
        return self._records.get(principal_id)

    async def save(self, record: TrustRecord) -> None:
        self._records[record.principal_id] = record

    async def list_all(self) -> list[TrustRecord]:
        return list(self._records.values())


class MemoryActionStorage(ActionStorage):
    """In-memory ActionStorage holding records in insertion order."""

    def __init__(self) -> None:
        self._records: list[ActionRecord] = []

    async def append(self, record: ActionRecord) -> None:
        self._records.append(record)

    async def query(self, action_filter: ActionFilter) -> list[ActionRecord]:
        return apply_filter(self._records, action_filter).records

    async def all(self) -> list[ActionRecord]:
        return list(self._records)

    async def count(self) -> int:
        return len(self._records)

    async def last(self) -> ActionRecord | None:
        return self._records[-1] if self._records else None
