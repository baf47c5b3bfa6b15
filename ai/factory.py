import os
from typing import Optional, Tuple

from ai.service import AIService
from ai.openai_service import OpenAIService
from ai.gemini_service import GeminiService
from ai.claude_service import ClaudeService
from utils.exceptions import ConfigError

DEFAULT_PROVIDER = "gemini"

PROVIDER_ALIASES = {"anthropic": "claude"}

# Environment variables consulted, in order, for a provider's default key.
_API_KEY_ENV_VARS = {
    "gemini": ("GEMINI_API_KEY", "GOOGLE_API_KEY", "API_KEY"),
    "openai": ("OPENAI_API_KEY",),
    "claude": ("ANTHROPIC_API_KEY",),
}

PROVIDERS: Tuple[str, ...] = tuple(_API_KEY_ENV_VARS)


def normalise_provider(provider: Optional[str] = None) -> str:
    """
    Resolve a provider name.

    Falls back to the AI_ANALYSIS_PROVIDER env var, then to "gemini":
      - "gemini"               → GeminiService
      - "openai"               → OpenAIService
      - "claude" / "anthropic" → ClaudeService
    """
    name = (provider or os.getenv("AI_ANALYSIS_PROVIDER") or DEFAULT_PROVIDER)
    name = name.lower().strip()
    name = PROVIDER_ALIASES.get(name, name)
    if name not in _API_KEY_ENV_VARS:
        raise ConfigError(
            f"Unknown AI provider: {name!r}",
            user_message=(
                f"Unknown AI provider '{name}'. Choose one of: "
                + ", ".join(PROVIDERS)
            ),
        )
    return name


def api_key_env_vars(provider: Optional[str] = None) -> Tuple[str, ...]:
    return _API_KEY_ENV_VARS[normalise_provider(provider)]


def get_analysis_service(
    api_key: str,
    provider: Optional[str] = None,
    model: Optional[str] = None,
) -> AIService:
    """
    Instantiate the AIService for *provider* using *api_key*.

    The model defaults to the AI_ANALYSIS_MODEL env var, then to the
    provider's own default.
    """
    provider = normalise_provider(provider)
    model = model or os.getenv("AI_ANALYSIS_MODEL")
    kwargs = {"model": model} if model else {}

    if provider == "gemini":
        return GeminiService(api_key, **kwargs)
    if provider == "claude":
        return ClaudeService(api_key, **kwargs)
    return OpenAIService(api_key, **kwargs)
