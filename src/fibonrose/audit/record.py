# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""
Helpers for constructing ActionRecord instances.

Construction is split in two stages, like the hash chain expects:

1. ``build_pending_record`` assembles every field except ``record_hash``.
2. ``finalise_record`` attaches the hash computed by the HashChain.
"""
from __future__ import annotations

import json
import uuid
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict

from fibonrose.config import AuditConfig

REDACTED = "[REDACTED]"


class ActionRecord(BaseModel):
    """
    One audited actor invocation or coordination step.

    Records are append-only: the core never mutates or deletes them.
    ``record_hash`` links each record to its predecessor so any later
    modification is detectable by :meth:`~fibonrose.audit.log.ActionLog.verify`.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: str
    actor_id: str
    principal_id: str | None = None
    action: str
    params: dict[str, Any] | None = None
    success: bool
    error_code: str | None = None
    error_detail: str | None = None
    metadata: dict[str, Any] | None = None
    previous_hash: str
    record_hash: str


def format_timestamp(moment: datetime) -> str:
    """Format a datetime as the ISO 8601 UTC string used in records."""
    utc = moment.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


def _current_timestamp() -> str:
    return format_timestamp(datetime.now(tz=timezone.utc))


def _truncate(value: str, limit: int) -> str:
    if len(value) <= limit:
        return value
    return value[:limit] + "..."


def _scrub(value: Any, config: AuditConfig) -> Any:
    if isinstance(value, Mapping):
        scrubbed: dict[str, Any] = {}
        for key, item in value.items():
            name = str(key)
            if name.lower() in config.redacted_keys:
                scrubbed[name] = REDACTED
            else:
                scrubbed[name] = _scrub(item, config)
        return scrubbed
    if isinstance(value, list):
        return [_scrub(item, config) for item in value]
    if isinstance(value, str):
        return _truncate(value, config.max_param_chars)
    return value


def redact_params(params: Mapping[str, Any] | None, config: AuditConfig) -> dict[str, Any] | None:
    """
    Return a JSON-safe, redacted and truncated copy of ``params``.

    Non-JSON values are stringified first, secrets named in
    :attr:`~fibonrose.config.AuditConfig.redacted_keys` are replaced, and
    long strings are cut to :attr:`~fibonrose.config.AuditConfig.max_param_chars`.
    """
    if params is None:
        return None
    json_safe = json.loads(json.dumps(dict(params), default=str))
    return _scrub(json_safe, config)


def build_pending_record(
    *,
    actor_id: str,
    action: str,
    success: bool,
    previous_hash: str,
    principal_id: str | None = None,
    params: dict[str, Any] | None = None,
    error_code: str | None = None,
    error_detail: str | None = None,
    metadata: dict[str, Any] | None = None,
    record_id: str | None = None,
    timestamp: str | None = None,
) -> dict[str, Any]:
    """
    Construct the pending record dictionary that the hash chain signs.

    Optional fields are only included when present so the canonical JSON
    covers exactly the fields the record carries.
    """
    pending: dict[str, Any] = {
        "id": record_id or str(uuid.uuid4()),
        "timestamp": timestamp or _current_timestamp(),
        "actor_id": actor_id,
        "action": action,
        "success": success,
        "previous_hash": previous_hash,
    }

    if principal_id is not None:
        pending["principal_id"] = principal_id
    if params is not None:
        pending["params"] = params
    if error_code is not None:
        pending["error_code"] = error_code
    if error_detail is not None:
        pending["error_detail"] = error_detail
    if metadata is not None:
        pending["metadata"] = json.loads(json.dumps(metadata, default=str))

    return pending


def finalise_record(pending: dict[str, Any], record_hash: str) -> ActionRecord:
    """Attach the computed hash and validate into an immutable ActionRecord."""
    return ActionRecord.model_validate({**pending, "record_hash": record_hash})
