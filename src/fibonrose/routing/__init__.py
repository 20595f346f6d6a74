# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""Coordination routing between actors."""
from __future__ import annotations

from fibonrose.routing.request import CoordinationRequest, RouteResult, RouteStatus
from fibonrose.routing.router import CoordinationRouter

__all__ = [
    "CoordinationRequest",
    "CoordinationRouter",
    "RouteResult",
    "RouteStatus",
]
