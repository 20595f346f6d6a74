# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""
Actor contract and registry.

The built-in actors live in their own modules (``fibonrose.actors.reputation``,
``fibonrose.actors.workflow`` and so on) and are re-exported from the
top-level ``fibonrose`` package. They are not imported here because they
depend on the router, which depends on the registry.
"""
from __future__ import annotations

from fibonrose.actors.base import Actor, ActorInfo, Handler
from fibonrose.actors.registry import ActorRegistry

__all__ = [
    "Actor",
    "ActorInfo",
    "ActorRegistry",
    "Handler",
]
