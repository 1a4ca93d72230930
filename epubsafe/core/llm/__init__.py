"""
LLM provider layer

Components:
    - base: LLMProvider abstract base and LLMResponse
    - providers: concrete provider implementations
    - utils: response parsing helpers
    - factory: create_llm_client
"""

from .base import LLMProvider, LLMResponse
from .factory import create_llm_client
from .providers.openai import OpenAICompatibleProvider
from .utils.extraction import JsonArrayExtractor

__all__ = [
    'LLMProvider',
    'LLMResponse',
    'OpenAICompatibleProvider',
    'JsonArrayExtractor',
    'create_llm_client',
]
