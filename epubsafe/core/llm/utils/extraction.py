"""
JSON array extraction from LLM responses.

This module provides utilities for extracting the array of translated strings
from free-text oracle responses, handling think blocks and code fences.
"""

import json
import re
from typing import List, Optional

from epubsafe.config import THINK_TAG_IN, THINK_TAG_OUT


class JsonArrayExtractor:
    """
    Extracts a JSON array of strings from LLM responses.

    Handles:
        - Removal of <think>...</think> blocks
        - Removal of markdown code fences around the array
        - Strict parse of the whole response first
        - Bounded balanced-bracket scan when the array is surrounded by prose

    Anything that is not a list of strings counts as a failure.

    Example:
        >>> extractor = JsonArrayExtractor()
        >>> extractor.extract('Sure! ["Bonjour", "Monde"]')
        ['Bonjour', 'Monde']
    """

    def __init__(self, max_scan_chars: int = 200000, max_candidates: int = 8):
        """
        Args:
            max_scan_chars: Longest response the bracket scan will walk
            max_candidates: Number of '[' positions tried before giving up
        """
        self.max_scan_chars = max_scan_chars
        self.max_candidates = max_candidates
        self._think_regex = re.compile(
            rf"{re.escape(THINK_TAG_IN)}.*?{re.escape(THINK_TAG_OUT)}",
            re.DOTALL | re.IGNORECASE
        )
        self._orphan_think_regex = re.compile(
            rf"^.*?{re.escape(THINK_TAG_OUT)}\s*",
            re.DOTALL | re.IGNORECASE
        )
        self._fence_regex = re.compile(r"```[a-zA-Z]*\s*(.*?)```", re.DOTALL)

    def extract(self, response: str) -> Optional[List[str]]:
        """
        Extract the array of strings from a response.

        Args:
            response: Raw LLM response text

        Returns:
            List of strings, or None if no unambiguous array was found
        """
        if not response:
            return None

        text = self._remove_think_blocks(response.strip()).strip()
        text = self._remove_code_fences(text).strip()

        parsed = self._strict_parse(text)
        if parsed is not None:
            return parsed

        return self._scan_for_array(text)

    def _remove_think_blocks(self, response: str) -> str:
        response = self._think_regex.sub('', response)
        # Orphan closing tag: the opening tag was truncated away
        return self._orphan_think_regex.sub('', response)

    def _remove_code_fences(self, text: str) -> str:
        match = self._fence_regex.search(text)
        if match:
            return match.group(1)
        return text

    @staticmethod
    def _as_string_list(value) -> Optional[List[str]]:
        if not isinstance(value, list):
            return None
        if not all(isinstance(item, str) for item in value):
            return None
        return value

    def _strict_parse(self, text: str) -> Optional[List[str]]:
        try:
            return self._as_string_list(json.loads(text))
        except (json.JSONDecodeError, ValueError):
            return None

    def _scan_for_array(self, text: str) -> Optional[List[str]]:
        """Try the balanced [...] span starting at each of the first '[' positions."""
        if len(text) > self.max_scan_chars:
            return None

        start = text.find('[')
        tried = 0
        while start != -1 and tried < self.max_candidates:
            tried += 1
            end = self._matching_bracket(text, start)
            if end is not None:
                parsed = self._strict_parse(text[start:end + 1])
                if parsed is not None:
                    return parsed
            start = text.find('[', start + 1)
        return None

    @staticmethod
    def _matching_bracket(text: str, start: int) -> Optional[int]:
        """Index of the ']' closing the '[' at start, skipping brackets inside strings."""
        depth = 0
        in_string = False
        escaped = False
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == '\\':
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == '[':
                depth += 1
            elif char == ']':
                depth -= 1
                if depth == 0:
                    return index
        return None
