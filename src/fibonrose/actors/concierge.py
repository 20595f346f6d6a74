# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
from __future__ import annotations

import logging
from typing import Any

from fibonrose.actors.base import ActorInfo, Handler, describe, dispatch, require_param
from fibonrose.actors.content import ContentGenerator, StaticContentGenerator
from fibonrose.errors import ContentGenerationError, FibonroseError
from fibonrose.types import IdentityContext

logger = logging.getLogger("fibonrose.actors.concierge")


class CommunityConciergeActor:
    """
    Answers community questions through a :class:`ContentGenerator`.

    The generator's output is returned verbatim. Generator failures surface
    as :class:`~fibonrose.errors.ContentGenerationError`.
    """

    actor_id = "community_concierge"
    name = "Community Concierge"
    description = "Answers community questions using the content generation capability"
    capabilities = frozenset({"question_answering"})
    anonymous_actions: frozenset[str] = frozenset()

    def __init__(self, generator: ContentGenerator | None = None) -> None:
        self._generator = generator or StaticContentGenerator()
        self._handlers: dict[str, Handler] = {"ask_question": self._ask_question}
        self.actions = frozenset(self._handlers)

    async def execute(
        self, action: str, context: IdentityContext, params: dict[str, Any]
    ) -> dict[str, Any]:
        return await dispatch(self.actor_id, self._handlers, action, context, params)

    def has_capability(self, capability: str) -> bool:
        return capability in self.capabilities

    def info(self) -> ActorInfo:
        return describe(self)

    async def _ask_question(self, context: IdentityContext, params: dict[str, Any]) -> dict[str, Any]:
        question = str(require_param("ask_question", params, "question"))
        try:
            answer = await self._generator.generate(question)
        except FibonroseError:
            raise
        except Exception as exc:
            logger.warning(
                "content_generation_failed",
                extra={"principal_id": context.principal_id, "error_type": type(exc).__name__},
            )
            raise ContentGenerationError(f"Content generation failed: {exc}") from exc
        return {"question": question, "answer": answer}
