"""Unit tests for TranslationContainer and TranslationConfig."""

import pytest

from epubsafe.core.epub.batch_orchestrator import BatchTranslationOrchestrator
from epubsafe.core.epub.container import TranslationConfig, TranslationContainer
from epubsafe.core.epub.events import EventBus
from epubsafe.core.epub.segment_extractor import SegmentExtractor
from epubsafe.core.epub.structure_validator import StructureValidator
from epubsafe.core.llm.utils.extraction import JsonArrayExtractor
from fixtures.mock_provider import MockProvider


class TestTranslationConfig:
    """Test TranslationConfig dataclass."""

    def test_default_values(self):
        config = TranslationConfig()

        assert config.batch_size == 24
        assert config.digest_length == 200
        assert config.min_text_length == 200
        assert config.text_collapse_ratio == 0.5
        assert config.strict is False

    @pytest.mark.parametrize("batch_size", [1, 64])
    def test_batch_size_bounds_accepted(self, batch_size):
        assert TranslationConfig(batch_size=batch_size).batch_size == batch_size

    @pytest.mark.parametrize("batch_size", [0, 65])
    def test_batch_size_out_of_range(self, batch_size):
        with pytest.raises(ValueError, match="batch_size must be between 1 and 64"):
            TranslationConfig(batch_size=batch_size)

    @pytest.mark.parametrize("ratio", [0, -0.1, 1.5])
    def test_collapse_ratio_out_of_range(self, ratio):
        with pytest.raises(ValueError, match="text_collapse_ratio"):
            TranslationConfig(text_collapse_ratio=ratio)

    def test_negative_digest_length(self):
        with pytest.raises(ValueError, match="digest_length must be >= 0"):
            TranslationConfig(digest_length=-1)

    def test_scan_limits(self):
        with pytest.raises(ValueError):
            TranslationConfig(max_scan_chars=0)
        with pytest.raises(ValueError):
            TranslationConfig(max_array_candidates=0)


class TestTranslationContainer:
    """Test TranslationContainer dependency injection."""

    def test_components_are_cached(self):
        container = TranslationContainer()

        assert isinstance(container.extractor, SegmentExtractor)
        assert isinstance(container.validator, StructureValidator)
        assert isinstance(container.response_parser, JsonArrayExtractor)
        assert container.extractor is container.extractor
        assert container.validator is container.validator

    def test_config_flows_into_components(self):
        config = TranslationConfig(min_text_length=50, text_collapse_ratio=0.8,
                                   max_scan_chars=1000, max_array_candidates=3)
        container = TranslationContainer(config)

        assert container.validator.min_text_length == 50
        assert container.validator.text_collapse_ratio == 0.8
        assert container.response_parser.max_scan_chars == 1000
        assert container.response_parser.max_candidates == 3

    def test_shared_classifier(self):
        container = TranslationContainer()
        assert container.extractor.classifier is container.validator.classifier

    def test_create_orchestrator(self):
        bus = EventBus()
        provider = MockProvider()
        container = TranslationContainer(TranslationConfig(batch_size=8, digest_length=50), event_bus=bus)

        orchestrator = container.create_orchestrator(provider)

        assert isinstance(orchestrator, BatchTranslationOrchestrator)
        assert orchestrator.llm_client is provider
        assert orchestrator.batch_size == 8
        assert orchestrator.digest_length == 50
        assert orchestrator.extractor is container.extractor
        assert orchestrator.event_bus is bus
