# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""
File-backed storage backends.

``FileActionStorage`` appends one JSON object per line (NDJSON) and never
rewrites the file. ``FileTrustStorage`` keeps one JSON document per
principal and replaces it atomically on every save.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from urllib.parse import quote, unquote

import aiofiles
import aiofiles.os
from pydantic import ValidationError

from fibonrose.audit.query import ActionFilter, apply_filter
from fibonrose.audit.record import ActionRecord
from fibonrose.storage.interface import ActionStorage, TrustStorage
from fibonrose.trust.record import TrustRecord

logger = logging.getLogger("fibonrose.storage")


class FileActionStorage(ActionStorage):
    """
    Persistent, append-only NDJSON storage for action records.

    Reading parses the whole file so the in-process view matches anything
    appended by other writers. Malformed lines are logged and skipped; the
    hash chain verifier reports the resulting gap.

    Args:
        file_path: Path to the NDJSON file. Created on first append.
    """

    def __init__(self, file_path: str | Path) -> None:
        self._file_path = Path(file_path)

    async def append(self, record: ActionRecord) -> None:
        line = json.dumps(record.model_dump(mode="json", exclude_none=False)) + "\n"
        async with aiofiles.open(self._file_path, mode="a", encoding="utf-8") as file_handle:
            await file_handle.write(line)

    async def query(self, action_filter: ActionFilter) -> list[ActionRecord]:
        return apply_filter(await self.all(), action_filter).records

    async def all(self) -> list[ActionRecord]:
        if not self._file_path.exists():
            return []

        records: list[ActionRecord] = []
        async with aiofiles.open(self._file_path, mode="r", encoding="utf-8") as file_handle:
            line_number = 0
            async for line in file_handle:
                line_number += 1
                stripped = line.strip()
                if not stripped:
                    continue
                try:
                    records.append(ActionRecord.model_validate_json(stripped))
                except ValidationError:
                    logger.warning(
                        "malformed_action_record",
                        extra={"path": str(self._file_path), "line": line_number},
                    )
        return records

    async def count(self) -> int:
        return len(await self.all())

    async def last(self) -> ActionRecord | None:
        records = await self.all()
        return records[-1] if records else None


class FileTrustStorage(TrustStorage):
    """
    Persistent trust storage with one JSON file per principal.

    Principal ids are percent-encoded into file names. Saves write a
    temporary file and atomically replace the previous document.

    Args:
        directory: Directory holding the documents. Created if missing.
    """

    _SUFFIX = ".json"

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory)
        self._directory.mkdir(parents=True, exist_ok=True)

    def _path_for(self, principal_id: str) -> Path:
        return self._directory / (quote(principal_id, safe="") + self._SUFFIX)

    async def get(self, principal_id: str) -> TrustRecord | None:
        path = self._path_for(principal_id)
        if not path.exists():
            return None
        async with aiofiles.open(path, mode="r", encoding="utf-8") as file_handle:
            raw = await file_handle.read()
        return TrustRecord.model_validate_json(raw)

    async def save(self, record: TrustRecord) -> None:
        path = self._path_for(record.principal_id)
        temp_path = path.with_name(path.name + ".tmp")
        async with aiofiles.open(temp_path, mode="w", encoding="utf-8") as file_handle:
            await file_handle.write(record.model_dump_json())
        await aiofiles.os.replace(temp_path, path)

    async def list_all(self) -> list[TrustRecord]:
        records: list[TrustRecord] = []
        for path in sorted(self._directory.glob("*" + self._SUFFIX)):
            principal_id = unquote(path.name[: -len(self._SUFFIX)])
            record = await self.get(principal_id)
            if record is not None:
                records.append(record)
        return records
