# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

from fibonrose.audit.chain import GENESIS_HASH, ChainVerification, HashChain
from fibonrose.audit.query import (
    ActionFilter,
    ActionQueryResult,
    aggregate_outcomes,
    apply_filter,
    record_matches,
)
from fibonrose.audit.record import (
    ActionRecord,
    build_pending_record,
    finalise_record,
    redact_params,
)

__all__ = [
    "ActionRecord",
    "ActionFilter",
    "ActionQueryResult",
    "ChainVerification",
    "HashChain",
    "GENESIS_HASH",
    "aggregate_outcomes",
    "apply_filter",
    "record_matches",
    "build_pending_record",
    "finalise_record",
    "redact_params",
]
