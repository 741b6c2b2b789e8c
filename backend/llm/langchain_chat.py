"""LangChain ChatOpenAI 기반 LLM 클라이언트."""
from __future__ import annotations

import logging
from typing import List, Optional

import openai
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from backend.common.config import LLMSettings
from backend.common.errors import LLMError, LLMTimeoutError
from .base import ChatMessage, ChatRequest, ChatResponse, LLMClient

logger = logging.getLogger(__name__)

_MESSAGE_TYPES = {
    "system": SystemMessage,
    "user": HumanMessage,
    "assistant": AIMessage,
}


class LangChainChatClient(LLMClient):
    def __init__(self, settings: Optional[LLMSettings] = None, llm: Optional[ChatOpenAI] = None) -> None:
        self.settings = settings or LLMSettings.from_env()
        self.model = self.settings.model
        self._llm = llm or ChatOpenAI(
            model=self.settings.model,
            api_key=self.settings.api_key or "dummy-key",  # type: ignore
            base_url=self.settings.api_base,
            temperature=self.settings.temperature,
            timeout=self.settings.timeout,
            max_retries=self.settings.max_retries,
        )

    @staticmethod
    def _to_langchain(messages: List[ChatMessage]) -> List[BaseMessage]:
        return [_MESSAGE_TYPES[m.role](content=m.content) for m in messages]

    def chat(self, request: ChatRequest, timeout: int = 60) -> ChatResponse:
        llm = self._llm
        overrides = {"max_tokens": request.max_tokens, "timeout": timeout}
        if request.temperature is not None:
            overrides["temperature"] = request.temperature
        if request.model:
            overrides["model"] = request.model
        llm = llm.bind(**overrides)

        try:
            response = llm.invoke(self._to_langchain(request.messages))
        except openai.APITimeoutError as e:
            raise LLMTimeoutError(model=self.model, timeout=timeout) from e
        except openai.OpenAIError as e:
            logger.warning("[LLM] LangChain call failed: %s", e)
            raise LLMError(f"LLM request failed: {e}", model=self.model) from e

        content = str(response.content).strip() if response.content else ""
        return ChatResponse(content=content, raw=getattr(response, "response_metadata", {}) or {})
