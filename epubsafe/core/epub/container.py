"""
Dependency injection container for the EPUB translation pipeline.

Provides centralized creation and configuration of translation components.
"""

from dataclasses import dataclass
from typing import Callable, Optional

from .batch_orchestrator import BatchTranslationOrchestrator
from .events import EventBus
from .segment_extractor import SegmentExtractor
from .structure_validator import StructureValidator
from .tag_classifier import TagClassifier
from epubsafe.core.llm.base import LLMProvider
from epubsafe.core.llm.utils.extraction import JsonArrayExtractor


@dataclass
class TranslationConfig:
    """Configuration for the translation pipeline.

    Attributes:
        batch_size: Segments per oracle call (1-64)
        digest_length: Characters of translated text carried as consistency digest
        min_text_length: Originals at or below this visible length skip the collapse check
        text_collapse_ratio: Share of the original text length a translation must keep
        max_scan_chars: Longest oracle response the bracket scan will walk
        max_array_candidates: '[' positions tried by the bracket scan
        strict: Raise ValidationRejected instead of falling back
    """
    batch_size: int = 24
    digest_length: int = 200
    min_text_length: int = 200
    text_collapse_ratio: float = 0.5
    max_scan_chars: int = 200000
    max_array_candidates: int = 8
    strict: bool = False

    def __post_init__(self):
        """Validate configuration."""
        if not 1 <= self.batch_size <= 64:
            raise ValueError("batch_size must be between 1 and 64")
        if self.digest_length < 0:
            raise ValueError("digest_length must be >= 0")
        if self.min_text_length < 0:
            raise ValueError("min_text_length must be >= 0")
        if not 0 < self.text_collapse_ratio <= 1:
            raise ValueError("text_collapse_ratio must be in (0, 1]")
        if self.max_scan_chars < 1:
            raise ValueError("max_scan_chars must be >= 1")
        if self.max_array_candidates < 1:
            raise ValueError("max_array_candidates must be >= 1")


class TranslationContainer:
    """Dependency injection container for translation components."""

    def __init__(self, config: Optional[TranslationConfig] = None,
                 event_bus: Optional[EventBus] = None):
        """Initialize container with configuration.

        Args:
            config: Translation configuration (uses defaults if None)
            event_bus: Event bus shared by the created components
        """
        self.config = config or TranslationConfig()
        self.event_bus = event_bus

        self._classifier = None
        self._extractor = None
        self._validator = None
        self._response_parser = None

    @property
    def classifier(self) -> TagClassifier:
        if self._classifier is None:
            self._classifier = TagClassifier()
        return self._classifier

    @property
    def extractor(self) -> SegmentExtractor:
        """Get or create SegmentExtractor instance."""
        if self._extractor is None:
            self._extractor = SegmentExtractor(self.classifier)
        return self._extractor

    @property
    def validator(self) -> StructureValidator:
        """Get or create StructureValidator instance."""
        if self._validator is None:
            self._validator = StructureValidator(
                min_text_length=self.config.min_text_length,
                text_collapse_ratio=self.config.text_collapse_ratio,
                classifier=self.classifier
            )
        return self._validator

    @property
    def response_parser(self) -> JsonArrayExtractor:
        if self._response_parser is None:
            self._response_parser = JsonArrayExtractor(
                max_scan_chars=self.config.max_scan_chars,
                max_candidates=self.config.max_array_candidates
            )
        return self._response_parser

    def create_orchestrator(self, llm_client: LLMProvider,
                            log_callback: Optional[Callable] = None) -> BatchTranslationOrchestrator:
        """Create an orchestrator bound to an oracle client.

        Args:
            llm_client: LLM provider instance
            log_callback: Optional logging callback

        Returns:
            Configured BatchTranslationOrchestrator
        """
        return BatchTranslationOrchestrator(
            llm_client,
            extractor=self.extractor,
            batch_size=self.config.batch_size,
            digest_length=self.config.digest_length,
            response_parser=self.response_parser,
            event_bus=self.event_bus,
            log_callback=log_callback
        )
