"""
LLM Utility Modules

Shared utilities used by the providers and the batch orchestrator.

Components:
    - extraction: JSON array extraction from LLM responses
"""

from .extraction import JsonArrayExtractor

__all__ = ['JsonArrayExtractor']
