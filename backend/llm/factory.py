from __future__ import annotations

import logging
from typing import Optional

from backend.common.config import LLMSettings
from .base import LLMClient
from .openai_like import OpenAILikeClient

logger = logging.getLogger(__name__)


def create_llm_client(settings: Optional[LLMSettings] = None) -> LLMClient:
    """
    설정에 맞는 LLM 클라이언트를 생성.

    프로세스 시작 시 한 번 호출되어 app.state에 보관되며,
    라우터에는 FastAPI dependency로 주입됩니다.
    """
    settings = settings or LLMSettings.from_env()
    provider = settings.provider.lower()

    if provider == "langchain":
        from .langchain_chat import LangChainChatClient
        client: LLMClient = LangChainChatClient(settings)
    else:
        if provider != "openai_compatible":
            logger.warning("Unknown LLM provider %r, using openai_compatible", settings.provider)
        client = OpenAILikeClient(settings)

    logger.info("LLM client ready: provider=%s model=%s", provider, settings.model)
    return client
