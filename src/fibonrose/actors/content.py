# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""
Boundary to the external free-text generation capability.

The only contract is "given text, returns text or fails". Any provider can
be adapted by implementing :class:`ContentGenerator`.
"""
from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class ContentGenerator(Protocol):
    async def generate(self, prompt: str) -> str: ...


class StaticContentGenerator:
    """
    Generator that returns canned answers.

    Used in tests and as the default when no provider is configured.

    Args:
        answers: Exact prompt to answer mappings.
        fallback: Returned for prompts not in ``answers``.
    """

    def __init__(
        self,
        answers: dict[str, str] | None = None,
        fallback: str = "I don't have an answer for that yet. A community member will follow up.",
    ) -> None:
        self._answers = dict(answers or {})
        self._fallback = fallback
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self._answers.get(prompt, self._fallback)
