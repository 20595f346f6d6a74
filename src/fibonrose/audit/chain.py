# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""
SHA-256 hash chain over the action log.

Each record is linked to its predecessor, so altering any stored record
invalidates every hash after it.
"""
from __future__ import annotations

import hashlib
import json
from typing import Any

from pydantic import BaseModel, ConfigDict

from fibonrose.audit.record import ActionRecord, finalise_record

GENESIS_HASH: str = "0" * 64


class ChainVerification(BaseModel):
    """
    Result of walking the chain.

    Attributes:
        valid: True when every link is intact.
        record_count: Number of records checked.
        broken_at: Index of the first broken record, if any.
        reason: Explanation of the first break, if any.
    """

    model_config = ConfigDict(frozen=True)

    valid: bool
    record_count: int
    broken_at: int | None = None
    reason: str | None = None


def _canonicalise(pending: dict[str, Any]) -> str:
    return json.dumps(pending, sort_keys=True, ensure_ascii=False, separators=(",", ":"))


def _compute_hash(pending: dict[str, Any], previous_hash: str) -> str:
    # Input is "<canonical JSON>\n<previous hash>" so the fields cannot overlap.
    payload = _canonicalise(pending) + "\n" + previous_hash
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class HashChain:
    """
    Running hash state of an append-only action log.

    Not safe for concurrent use on its own; :class:`~fibonrose.audit.log.ActionLog`
    serialises appends.

    Args:
        initial_hash: Chain tip to resume from when reopening durable
            storage. Defaults to the genesis hash.
    """

    def __init__(self, initial_hash: str | None = None) -> None:
        self._last_record_hash: str = initial_hash or GENESIS_HASH

    def seal(self, pending: dict[str, Any]) -> ActionRecord:
        """Hash ``pending`` against the current tip without moving the tip."""
        return finalise_record(pending, _compute_hash(pending, self._last_record_hash))

    def advance(self, record: ActionRecord) -> None:
        """Move the tip to ``record`` once it has been stored."""
        self._last_record_hash = record.record_hash

    def last_hash(self) -> str:
        return self._last_record_hash

    @staticmethod
    def verify(records: list[ActionRecord]) -> ChainVerification:
        """Re-derive every hash from the genesis hash and compare."""
        expected_previous_hash = GENESIS_HASH

        for index, record in enumerate(records):
            if record.previous_hash != expected_previous_hash:
                return ChainVerification(
                    valid=False,
                    record_count=len(records),
                    broken_at=index,
                    reason=(
                        f"Record at index {index} has previous_hash "
                        f'"{record.previous_hash}" but expected "{expected_previous_hash}".'
                    ),
                )

            pending = record.model_dump(mode="json", exclude={"record_hash"})
            pending = {key: value for key, value in pending.items() if value is not None}
            expected_hash = _compute_hash(pending, expected_previous_hash)

            if record.record_hash != expected_hash:
                return ChainVerification(
                    valid=False,
                    record_count=len(records),
                    broken_at=index,
                    reason=(
                        f'Record at index {index} (id="{record.id}") does not match its '
                        "hash. Record content may have been altered."
                    ),
                )

            expected_previous_hash = record.record_hash

        return ChainVerification(valid=True, record_count=len(records))
