# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel

from fibonrose.audit.record import ActionRecord, format_timestamp


class ActionFilter(BaseModel, frozen=True):
    """
    Filter criteria for querying action records.

    All fields are optional and combined with AND logic.

    Attributes:
        actor_id: Only records for this actor.
        principal_id: Only records acting for this principal.
        action: Only records with this action name.
        success: Only successful (True) or failed (False) records.
        error_code: Only records that failed with this code.
        since: Only records at or after this time.
        until: Only records before this time.
        limit: Maximum number of records to return. 0 means no limit.
        offset: Number of matching records to skip.
    """

    actor_id: str | None = None
    principal_id: str | None = None
    action: str | None = None
    success: bool | None = None
    error_code: str | None = None
    since: datetime | None = None
    until: datetime | None = None
    limit: int = 0
    offset: int = 0


class ActionQueryResult(BaseModel, frozen=True):
    """
    Result of an action log query.

    Attributes:
        records: Matching records, oldest first.
        total_matched: Matches before ``limit``/``offset`` were applied.
        filter_applied: The filter used.
    """

    records: list[ActionRecord]
    total_matched: int
    filter_applied: ActionFilter


def record_matches(record: ActionRecord, action_filter: ActionFilter) -> bool:
    """Return True if ``record`` satisfies every criterion in ``action_filter``."""
    if action_filter.actor_id is not None and record.actor_id != action_filter.actor_id:
        return False
    if action_filter.principal_id is not None and record.principal_id != action_filter.principal_id:
        return False
    if action_filter.action is not None and record.action != action_filter.action:
        return False
    if action_filter.success is not None and record.success != action_filter.success:
        return False
    if action_filter.error_code is not None and record.error_code != action_filter.error_code:
        return False
    # Record timestamps share one fixed-width format, so string order is time order.
    if action_filter.since is not None and record.timestamp < format_timestamp(action_filter.since):
        return False
    if action_filter.until is not None and record.timestamp >= format_timestamp(action_filter.until):
        return False
    return True


def apply_filter(records: list[ActionRecord], action_filter: ActionFilter) -> ActionQueryResult:
    """Apply ``action_filter`` to ``records`` in memory."""
    matched = [record for record in records if record_matches(record, action_filter)]

    paginated = matched[action_filter.offset :]
    if action_filter.limit > 0:
        paginated = paginated[: action_filter.limit]

    return ActionQueryResult(
        records=paginated,
        total_matched=len(matched),
        filter_applied=action_filter,
    )


def aggregate_outcomes(records: list[ActionRecord]) -> dict[str, Any]:
    """
    Summarise success and failure counts across ``records``.

    Returns:
        Dict with ``'success'``, ``'failure'``, ``'total'``,
        ``'failure_rate'`` and ``'by_error_code'`` (failure count per code).
    """
    succeeded = sum(1 for record in records if record.success)
    failed = len(records) - succeeded

    by_error_code: dict[str, int] = {}
    for record in records:
        if not record.success:
            code = record.error_code or "UNKNOWN"
            by_error_code[code] = by_error_code.get(code, 0) + 1

    total = len(records)
    return {
        "success": succeeded,
        "failure": failed,
        "total": total,
        "failure_rate": failed / total if total > 0 else 0.0,
        "by_error_code": by_error_code,
    }
