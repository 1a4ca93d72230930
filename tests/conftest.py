"""
Pytest configuration and fixtures for all tests.

This file is automatically loaded by pytest and provides common fixtures
and configuration for all test modules.
"""

import sys
from pathlib import Path

# Add project root (epubsafe) and tests dir (fixtures) to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))
sys.path.insert(0, str(Path(__file__).parent))

import pytest

from epubsafe.core.epub.markup_tree import parse_fragment
from epubsafe.core.epub.structure_validator import StructureValidator
from epubsafe.core.epub.batch_orchestrator import BatchTranslationOrchestrator
from fixtures.mock_provider import MockProvider
from fixtures.sample_epubs import build_epub


@pytest.fixture
def sample_html():
    """Sample body fragment for testing."""
    return '<h1>Title</h1><p>Hello <b>World</b> and <a href="x.html">a link</a>.</p>'


@pytest.fixture
def sample_fragment(sample_html):
    return parse_fragment(sample_html)


@pytest.fixture
def mock_provider():
    """Oracle that upper-cases every segment."""
    return MockProvider()


@pytest.fixture
def orchestrator(mock_provider):
    return BatchTranslationOrchestrator(mock_provider)


@pytest.fixture
def validator():
    return StructureValidator()


@pytest.fixture
def sample_epub_bytes():
    """Three-chapter EPUB 3 archive."""
    return build_epub()


@pytest.fixture
def sample_epub_file(tmp_path, sample_epub_bytes):
    """The sample EPUB written to disk."""
    path = tmp_path / "book.epub"
    path.write_bytes(sample_epub_bytes)
    return path


@pytest.fixture
def no_retry_delay(monkeypatch):
    """Make unit retries immediate."""
    monkeypatch.setattr("epubsafe.core.epub.translator.RETRY_DELAY_SECONDS", 0)
