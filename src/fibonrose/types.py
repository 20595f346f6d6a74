# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

from enum import IntEnum
from typing import Any

from pydantic import BaseModel, Field


class Priority(IntEnum):
    """
    Priority of a coordination request.

    Ordered: a higher value is delivered first. HIGH and CRITICAL are
    delivered synchronously; LOW and MEDIUM are queued.
    """

    LOW = 0
    MEDIUM = 1
    HIGH = 2
    CRITICAL = 3

    def label(self) -> str:
        """Return the lowercase name used in logs and audit records."""
        return self.name.lower()

    @property
    def is_synchronous(self) -> bool:
        return self >= Priority.HIGH


class IdentityContext(BaseModel, frozen=True):
    """
    Verified identity supplied by the caller on every invocation.

    The core never issues or refreshes identities; it only reads them.

    Attributes:
        principal_id: Stable id of the user or service the call acts for.
        token: Opaque verified identity token. Empty or missing means
            the call is anonymous.
        permissions: Opaque permission strings.
        preferences: Accessibility/display preference flags. Passed through
            to actors, never used for trust logic.
        service: True for identities minted for actor-to-actor coordination.
    """

    principal_id: str | None = None
    token: str | None = None
    permissions: frozenset[str] = Field(default_factory=frozenset)
    preferences: dict[str, Any] = Field(default_factory=dict)
    service: bool = False

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token) and bool(self.principal_id)

    def has_permission(self, permission: str) -> bool:
        return permission in self.permissions

    def prefers(self, flag: str) -> bool:
        return bool(self.preferences.get(flag, False))

    @classmethod
    def anonymous(cls) -> IdentityContext:
        return cls()

    @classmethod
    def for_actor(cls, actor_id: str) -> IdentityContext:
        """Service identity used when one actor asks another to act."""
        return cls(
            principal_id=f"actor:{actor_id}",
            token=f"service:{actor_id}",
            permissions=frozenset({"coordination"}),
            service=True,
        )
