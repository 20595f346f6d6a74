# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""
Persistence contracts for trust records and action records.

Production deployments back these with a durable engine; tests and
single-process use take the in-memory implementations.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fibonrose.audit.query import ActionFilter
    from fibonrose.audit.record import ActionRecord
    from fibonrose.trust.record import TrustRecord


class TrustStorage(ABC):
    """
    Contract for trust record persistence.

    The ledger is the only writer. Records are replaced whole on every
    update and are never deleted.
    """

    @abstractmethod
    async def get(self, principal_id: str) -> TrustRecord | None:
        """Return the stored record for ``principal_id``, or None."""
        ...

    @abstractmethod
    async def save(self, record: TrustRecord) -> None:
        """Store ``record``, replacing any previous record for its principal."""
        ...

    @abstractmethod
    async def list_all(self) -> list[TrustRecord]:
        """Return every stored record."""
        ...


class ActionStorage(ABC):
    """
    Contract for action record persistence.

    Implementations must be append-only: a record written through
    ``append`` is never altered or deleted by the storage layer.
    """

    @abstractmethod
    async def append(self, record: ActionRecord) -> None:
        """Persist a fully-formed, hashed record without modifying it."""
        ...

    @abstractmethod
    async def query(self, action_filter: ActionFilter) -> list[ActionRecord]:
        """Return records matching the filter, oldest first, paginated."""
        ...

    @abstractmethod
    async def all(self) -> list[ActionRecord]:
        """Return every record, oldest first."""
        ...

    @abstractmethod
    async def count(self) -> int:
        ...

    @abstractmethod
    async def last(self) -> ActionRecord | None:
        """Return the most recently appended record, used to resume the hash chain."""
        ...
