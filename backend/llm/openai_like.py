from __future__ import annotations

import logging
from typing import Dict, List, Optional

import openai
from openai import OpenAI

from backend.common.config import LLMSettings
from backend.common.errors import LLMError, LLMParseError, LLMTimeoutError
from .base import LLMClient, ChatRequest, ChatResponse, ChatMessage

logger = logging.getLogger(__name__)


class OpenAILikeClient(LLMClient):
    """
    LLM client for endpoints compatible with the OpenAI Chat Completions API.
    (e.g., OpenAI, Azure-style gateways, local llama.cpp / vLLM)
    Retries are delegated to the OpenAI SDK (`max_retries`).
    """

    def __init__(self, settings: Optional[LLMSettings] = None, client: Optional[OpenAI] = None) -> None:
        self.settings = settings or LLMSettings.from_env()
        self.model = self.settings.model
        self._client = client or OpenAI(
            base_url=self.settings.api_base,
            api_key=self.settings.api_key or "dummy-key",
            max_retries=self.settings.max_retries,
        )

    def _convert_messages(
        self, messages: List[ChatMessage]
    ) -> List[Dict[str, str]]:
        return [{"role": m.role, "content": m.content} for m in messages]

    def chat(self, request: ChatRequest, timeout: int = 60) -> ChatResponse:
        model = request.model or self.model
        temperature = request.temperature if request.temperature is not None else self.settings.temperature
        try:
            response = self._client.chat.completions.create(
                model=model,
                messages=self._convert_messages(request.messages),
                max_tokens=request.max_tokens,
                temperature=temperature,
                timeout=timeout,
            )
        except openai.APITimeoutError as e:
            logger.warning("[LLM] %s timed out after %ss", model, timeout)
            raise LLMTimeoutError(model=model, timeout=timeout) from e
        except openai.OpenAIError as e:
            logger.warning("[LLM] %s request failed: %s", model, e)
            raise LLMError(f"LLM request failed: {e}", model=model) from e

        if not response.choices:
            logger.warning("[LLM] %s returned no choices", model)
            raise LLMParseError("", model=model)
        content = response.choices[0].message.content or ""
        raw = response.model_dump() if hasattr(response, "model_dump") else {}
        return ChatResponse(content=content, raw=raw)
