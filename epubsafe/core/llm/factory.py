"""
Factory for LLM providers
"""
from typing import Optional

from epubsafe.config import API_ENDPOINT, API_KEY, DEFAULT_MODEL, LLM_PROVIDER
from .base import LLMProvider
from .providers.openai import OpenAICompatibleProvider


def create_llm_client(provider_type: str = LLM_PROVIDER, api_endpoint: Optional[str] = None,
                      model: Optional[str] = None, api_key: Optional[str] = None,
                      **kwargs) -> LLMProvider:
    """Factory function to create the translation oracle client.

    Args:
        provider_type: Provider name ("openai" covers every OpenAI-compatible endpoint)
        api_endpoint: Chat-completions URL (config default if None)
        model: Model name (config default if None)
        api_key: Bearer token (config default if None)
        **kwargs: Extra provider options (temperature, max_tokens, log_callback)

    Returns:
        LLMProvider instance

    Raises:
        ValueError: If the provider type is unknown
    """
    if provider_type.lower() in ("openai", "deepseek", "kimi"):
        return OpenAICompatibleProvider(
            api_endpoint=api_endpoint or API_ENDPOINT,
            model=model or DEFAULT_MODEL,
            api_key=api_key if api_key is not None else API_KEY,
            **kwargs
        )
    raise ValueError(f"Unknown provider type: {provider_type}")
