from __future__ import annotations

"""pydantic-ai backed completion provider."""

import logging
from typing import Optional, Union

from pydantic_ai import Agent
from pydantic_ai.models import Model

logger = logging.getLogger(__name__)


class PydanticAICompletionProvider:
    """
    ``CompletionProvider`` that runs a one-shot pydantic-ai ``Agent``.

    Args:
        model: A pydantic-ai model instance or identifier such as ``"openai:gpt-4o-mini"``.

    The agent is created per call so a missing API key surfaces as a failed
    completion (which the tools handle) rather than at construction time.
    """

    def __init__(self, model: Union[str, Model]) -> None:
        self._model = model

    @property
    def model_name(self) -> str:
        if isinstance(self._model, str):
            return self._model
        return getattr(self._model, "model_name", type(self._model).__name__)

    async def complete(self, prompt: str, *, system: Optional[str] = None) -> str:
        agent: Agent[None, str] = Agent(self._model, output_type=str, system_prompt=system or ())
        logger.debug(f"Completion request: model={self.model_name} prompt_chars={len(prompt)}")
        result = await agent.run(prompt)
        return result.output
