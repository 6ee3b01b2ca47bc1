import logging
import re
from typing import Any, Iterable

import httpx
from openai import AsyncOpenAI, OpenAIError

from paperlenz.core.config import Settings, get_settings
from paperlenz.core.exceptions import LLMConfigurationError, LLMServiceError
from paperlenz.services.openai_settings import get_openai_settings

logger = logging.getLogger(__name__)

CHAT_SYSTEM_PROMPT = """You are a helpful AI assistant for PaperLenz, a platform that helps users understand scientific papers. You can:

1. Answer questions about PaperLenz features and how to use the platform
2. Provide general guidance about scientific research and papers
3. Help users understand research concepts and terminology
4. Explain how to interpret analysis results from PaperLenz
5. Suggest best practices for academic research

Keep your responses concise, helpful, and friendly. If users ask about specific papers, remind them that you can provide general guidance but they should use the main analysis feature for detailed paper analysis.

Platform features include:
- AI-powered paper analysis with multiple input methods (DOI, abstract, PDF)
- Academic level adaptation (high school to professor level)
- Comprehensive analysis including credibility scores, key insights, and improvement suggestions
- Paper history and note-taking
- Dashboard for managing analyzed papers"""

ALLOWED_ROLES = ("user", "assistant")


class ChatService:
    """Stateless help-desk assistant. The caller sends the whole conversation each time."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        model: str,
        *,
        temperature: float = 0.7,
        max_tokens: int = 1000,
        timeout: float = 60.0,
    ):
        self.base_url = base_url
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self._client: AsyncOpenAI | None = None

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "ChatService":
        settings = settings or get_settings()
        resolved = get_openai_settings("primary", settings)
        return cls(
            base_url=resolved["base_url"],
            api_key=resolved["api_key"],
            model=resolved["model"],
            temperature=settings.chat_temperature,
            max_tokens=settings.chat_max_tokens,
            timeout=settings.llm_timeout_seconds,
        )

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.api_key, base_url=self.base_url or None, timeout=self.timeout)
        return self._client

    @staticmethod
    def _strip_thinking(text: str) -> str:
        """Remove provider reasoning blocks."""
        if not text:
            return ""
        cleaned = re.sub(r"<think[^>]*>[\s\S]*?</think>", "", text, flags=re.I)
        cleaned = re.sub(r"<thinking[^>]*>[\s\S]*?</thinking>", "", cleaned, flags=re.I)
        return cleaned.strip()

    @staticmethod
    def _build_messages(turns: Iterable[Any]) -> list[dict[str, str]]:
        messages = [{"role": "system", "content": CHAT_SYSTEM_PROMPT}]
        for turn in turns:
            role = turn["role"] if isinstance(turn, dict) else turn.role
            content = turn["content"] if isinstance(turn, dict) else turn.content
            if role not in ALLOWED_ROLES:
                raise ValueError(f"Unsupported chat role: {role}")
            messages.append({"role": role, "content": content})
        return messages

    async def get_chat_response(self, turns: Iterable[Any]) -> str:
        if not self.api_key:
            raise LLMConfigurationError("AI service API key not configured")

        messages = self._build_messages(turns)
        try:
            completion = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except (OpenAIError, httpx.HTTPError) as e:
            logger.error("Chat API error (model=%s): %s", self.model, e)
            raise LLMServiceError(f"Chat API error: {e}") from e

        content = completion.choices[0].message.content if completion.choices else None
        reply = self._strip_thinking(content or "")
        if not reply:
            raise LLMServiceError("No response from chat API")
        return reply
