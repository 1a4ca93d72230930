"""
Batch translation orchestrator

Sends the extracted segments of one fragment to the translation oracle in
fixed-size batches, strictly in order, and carries a short digest of the
latest translated text from batch to batch so terminology stays consistent.
"""
from typing import Callable, List, Optional, Sequence, Tuple, Union

from epubsafe.core.llm.base import LLMProvider
from epubsafe.core.llm.utils.extraction import JsonArrayExtractor
from epubsafe.prompts import generate_segment_batch_prompt
from .events import EventBus, create_batch_translated_event
from .exceptions import OracleResponseUnparseable
from .markup_tree import MarkupFragment, parse_fragment
from .segment_extractor import SegmentExtractor

Glossary = Sequence[Tuple[str, str]]

# Formatting residue the oracle sometimes adds despite the prompt
_MODEL_NOISE = ('`', '**', '__', '\u0000')


def clean_model_text(text: str) -> str:
    """Strip backticks, bold/underline markers and NUL characters."""
    for noise in _MODEL_NOISE:
        text = text.replace(noise, '')
    return text


def digest_tail(text: str, length: int) -> str:
    """Last ``length`` characters of text."""
    if length <= 0:
        return ""
    return text[-length:]


class BatchTranslationOrchestrator:
    """Translates every segment of a fragment through the oracle.

    The orchestrator never retries: an oracle failure propagates to the
    caller, which owns the retry and fallback policy.
    """

    def __init__(self, llm_client: LLMProvider, extractor: SegmentExtractor = None,
                 batch_size: int = 24, digest_length: int = 200,
                 response_parser: JsonArrayExtractor = None,
                 event_bus: Optional[EventBus] = None,
                 log_callback: Optional[Callable] = None):
        """
        Args:
            llm_client: Oracle adapter
            extractor: Segment extractor (default instance if None)
            batch_size: Segments per oracle call
            digest_length: Characters kept from the last translated segment
            response_parser: Parser for the oracle's JSON array answer
            event_bus: Optional bus receiving BATCH_TRANSLATED events
            log_callback: Optional log_callback(message_key, details, data)
        """
        self.llm_client = llm_client
        self.extractor = extractor or SegmentExtractor()
        self.batch_size = batch_size
        self.digest_length = digest_length
        self.response_parser = response_parser or JsonArrayExtractor()
        self.event_bus = event_bus
        self.log_callback = log_callback

    def _log(self, message_key: str, details: str, data: dict = None):
        if self.log_callback:
            if data is not None:
                self.log_callback(message_key, details, data)
            else:
                self.log_callback(message_key, details)

    def partition(self, items: Sequence[str]) -> List[List[str]]:
        """Split items into consecutive batches of at most batch_size."""
        return [list(items[i:i + self.batch_size]) for i in range(0, len(items), self.batch_size)]

    async def translate_batch(self, segments: Sequence[str], source_language: str,
                              target_language: str, glossary: Optional[Glossary] = None,
                              digest: str = "") -> List[str]:
        """
        Translate one batch of segment texts.

        Args:
            segments: Segment texts, in document order
            source_language: Source language name
            target_language: Target language name
            glossary: (term, replacement) pairs
            digest: Consistency digest from the previous batch

        Returns:
            Cleaned translated strings, same length as segments

        Raises:
            OracleUnavailable: If the oracle call fails
            OracleResponseUnparseable: If no array of exactly len(segments) strings is found
        """
        prompt = generate_segment_batch_prompt(
            segments,
            source_language=source_language,
            target_language=target_language,
            glossary=glossary,
            previous_digest=digest
        )
        response = await self.llm_client.generate(prompt.user, system_prompt=prompt.system)
        content = response.content if response else ""

        parsed = self.response_parser.extract(content)
        if parsed is None:
            raise OracleResponseUnparseable(
                "Oracle response does not contain a JSON array of strings",
                expected_count=len(segments),
                actual_count=None,
                response_preview=content[:200]
            )
        if len(parsed) != len(segments):
            raise OracleResponseUnparseable(
                f"Oracle returned {len(parsed)} strings for {len(segments)} segments",
                expected_count=len(segments),
                actual_count=len(parsed),
                response_preview=content[:200]
            )
        return [clean_model_text(item) for item in parsed]

    async def translate(self, fragment: Union[str, MarkupFragment], source_language: str,
                        target_language: str, glossary: Optional[Glossary] = None,
                        prior_digest: str = "") -> Tuple[MarkupFragment, str]:
        """
        Translate all text of a fragment, leaving its markup untouched.

        Args:
            fragment: Parsed fragment or raw body markup
            source_language: Source language name
            target_language: Target language name
            glossary: (term, replacement) pairs
            prior_digest: Digest carried over from the previous unit

        Returns:
            Tuple of (translated fragment, new digest). A fragment without
            translatable text is returned as is with the prior digest.

        Raises:
            OracleUnavailable: If any oracle call fails (no partial result)
            OracleResponseUnparseable: If any batch answer is unusable
        """
        if not isinstance(fragment, MarkupFragment):
            fragment = parse_fragment(fragment)

        segments = self.extractor.extract(fragment)
        if not segments:
            return fragment, prior_digest

        batches = self.partition([segment.text for segment in segments])
        translations: List[str] = []
        digest = prior_digest

        for batch_index, batch in enumerate(batches):
            self._log("batch_debug", f"Translating batch {batch_index + 1}/{len(batches)} "
                                     f"({len(batch)} segments)")
            results = await self.translate_batch(
                batch, source_language, target_language, glossary, digest
            )
            translations.extend(results)
            if results:
                digest = digest_tail(results[-1], self.digest_length)

            if self.event_bus:
                self.event_bus.publish(
                    create_batch_translated_event(batch_index, len(batches), len(batch))
                )

        return self.extractor.reinsert(fragment, translations), digest
