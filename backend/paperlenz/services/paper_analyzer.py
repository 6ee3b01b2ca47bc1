import logging
from typing import Any

import httpx
from openai import AsyncOpenAI, OpenAIError
from pydantic import ValidationError

from paperlenz.core.config import Settings, get_settings
from paperlenz.core.exceptions import (
    InvalidResponseFormatError,
    LLMConfigurationError,
    LLMServiceError,
)
from paperlenz.schemas.schemas import PaperAnalysis
from paperlenz.services.openai_settings import CallPath, get_openai_settings
from paperlenz.services.prompts import ANALYSIS_SYSTEM_PROMPT, build_analysis_prompt
from paperlenz.utils.json_repair import parse_json_response, reconcile_quality_score

logger = logging.getLogger(__name__)


class PaperAnalyzer:
    """Send one paper to a chat-completions endpoint and validate the reply."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        model: str,
        *,
        temperature: float = 0.1,
        max_tokens: int = 6000,
        timeout: float = 120.0,
        name: str = "primary",
    ):
        self.base_url = base_url
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.name = name
        self._client: AsyncOpenAI | None = None

    @classmethod
    def from_settings(cls, path: CallPath = "primary", settings: Settings | None = None) -> "PaperAnalyzer":
        settings = settings or get_settings()
        resolved = get_openai_settings(path, settings)
        return cls(
            base_url=resolved["base_url"],
            api_key=resolved["api_key"],
            model=resolved["model"],
            temperature=settings.analysis_temperature,
            max_tokens=settings.analysis_max_tokens,
            timeout=settings.llm_timeout_seconds,
            name=path,
        )

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url or None,
                timeout=self.timeout,
            )
        return self._client

    async def _complete(self, prompt: str) -> str:
        if not self.api_key:
            raise LLMConfigurationError("AI service API key not configured")

        try:
            completion = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": ANALYSIS_SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except (OpenAIError, httpx.HTTPError) as e:
            logger.error("AI service call failed (%s, model=%s): %s", self.name, self.model, e)
            raise LLMServiceError(f"AI service error: {e}") from e

        content = completion.choices[0].message.content if completion.choices else None
        if not content:
            raise LLMServiceError("No response from AI service")
        return content

    async def analyze_raw(
        self,
        content: str,
        academic_level: str,
        title: str | None = None,
        input_type: str = "abstract",
    ) -> dict[str, Any]:
        """Return the sanitized, score-reconciled analysis dict."""
        prompt = build_analysis_prompt(content, academic_level, title, input_type)
        response = await self._complete(prompt)
        logger.debug("AI response (%s): %s...", self.name, response[:200])
        try:
            data = parse_json_response(response)
        except InvalidResponseFormatError:
            logger.error("Failed to parse AI response: %s...", response[:500])
            raise
        return reconcile_quality_score(data)

    async def analyze(
        self,
        content: str,
        academic_level: str,
        title: str | None = None,
        input_type: str = "abstract",
    ) -> PaperAnalysis:
        data = await self.analyze_raw(content, academic_level, title, input_type)
        try:
            return PaperAnalysis.model_validate(data)
        except ValidationError as e:
            logger.error("AI response does not match the analysis schema: %s", e)
            raise InvalidResponseFormatError(
                f"Invalid response format from AI service: {e.error_count()} schema error(s)",
            ) from e
