"""
LLM Provider Implementations

Providers:
    - openai: OpenAI-compatible chat-completions APIs (OpenAI, DeepSeek, Kimi, local servers)
"""

from .openai import OpenAICompatibleProvider

__all__ = ['OpenAICompatibleProvider']
