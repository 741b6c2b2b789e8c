from __future__ import annotations

import time
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Literal

from backend.common.errors import LLMError, LLMParseError

logger = logging.getLogger(__name__)

Role = Literal["system", "user", "assistant"]

@dataclass
class ChatMessage:
    role: Role
    content: str

@dataclass
class ChatRequest:
    messages: List[ChatMessage]
    model: Optional[str] = None
    max_tokens: int = 2048
    temperature: Optional[float] = None

@dataclass
class ChatResponse:
    content: str
    raw: Dict[str, Any] = field(default_factory=dict)


def strip_code_fences(content: str) -> str:
    """```json ... ``` 또는 ``` ... ``` 블록이 있으면 안쪽만 반환."""
    content = content.strip()
    if "```json" in content:
        return content.split("```json", 1)[1].split("```", 1)[0].strip()
    if content.startswith("```"):
        return content.split("```", 2)[1].split("\n", 1)[-1].strip()
    return content


class LLMClient(ABC):
    DEFAULT_TIMEOUT = 60
    DEFAULT_MAX_RETRIES = 2
    DEFAULT_RETRY_DELAY = 1.0

    model: Optional[str] = None

    @abstractmethod
    def chat(self, request: ChatRequest, timeout: int = 60) -> ChatResponse:
        """Handles a chat request.

        Raises:
            LLMTimeoutError: the model did not answer within timeout
            LLMError: any other model/API failure
        """
        raise NotImplementedError

    def complete(self, system_prompt: str, user_prompt: str, **params: Any) -> str:
        """system + user 메시지 한 쌍을 보내고 본문만 반환."""
        timeout = params.pop("timeout", self.DEFAULT_TIMEOUT)
        request = ChatRequest(
            messages=[
                ChatMessage(role="system", content=system_prompt),
                ChatMessage(role="user", content=user_prompt),
            ],
            **params,
        )
        content = self.chat(request, timeout).content
        if not content or not content.strip():
            raise LLMParseError(content or "", model=self.model)
        return content

    def chat_with_retry(
        self,
        request: ChatRequest,
        timeout: int = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
    ) -> ChatResponse:
        last_error: Optional[LLMError] = None

        for attempt in range(max_retries):
            try:
                return self.chat(request, timeout)
            except LLMError as e:
                last_error = e
                if attempt < max_retries - 1:
                    logger.info("[LLM] Retrying in %.1fs (attempt %d/%d)", retry_delay * (attempt + 1), attempt + 1, max_retries)
                    time.sleep(retry_delay * (attempt + 1))
        raise last_error or LLMError("LLM request failed after all retries")
