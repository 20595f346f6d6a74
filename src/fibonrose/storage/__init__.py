# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

from fibonrose.storage.file import FileActionStorage, FileTrustStorage
from fibonrose.storage.interface import ActionStorage, TrustStorage
from fibonrose.storage.memory import MemoryActionStorage, MemoryTrustStorage

__all__ = [
    "TrustStorage",
    "ActionStorage",
    "MemoryTrustStorage",
    "MemoryActionStorage",
    "FileTrustStorage",
    "FileActionStorage",
]
