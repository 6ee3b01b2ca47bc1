from typing import Literal
from paperlenz.core.config import Settings, get_settings

CallPath = Literal["primary", "fallback"]


def _normalize_base_url(base_url: str | None) -> str:
    base_url = (base_url or "https://api.openai.com/v1").rstrip("/")
    if not base_url.endswith("/v1") and "/v1/" not in base_url:
        base_url = f"{base_url}/v1"
    return base_url


def get_openai_settings(path: CallPath = "primary", settings: Settings | None = None) -> dict[str, str]:
    """Resolve OpenAI-compatible client settings for a call path.

    The fallback path inherits every value it does not override.
    """
    settings = settings or get_settings()

    api_key = settings.openai_api_key or ""
    base_url = settings.openai_base_url
    model = settings.openai_model

    if path == "fallback":
        api_key = settings.fallback_openai_api_key or api_key
        base_url = settings.fallback_openai_base_url or base_url
        model = settings.fallback_openai_model or model

    return {
        "base_url": _normalize_base_url(base_url),
        "api_key": api_key,
        "model": model,
    }
