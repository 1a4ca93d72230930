"""
EPUB translation module

Translates the text of EPUB spine documents while guaranteeing that headings,
lists, tables, links, images and block order survive unchanged.

Main entry point:
    translate_epub_file() - Translate an EPUB file using LLM

Components:
    - segment_extractor: Translatable text runs and their reinsertion
    - batch_orchestrator: Batched oracle calls with a consistency digest
    - structure_validator: Structural fingerprint comparison
    - rebuilder: Archive rebuild by patching the original EPUB
    - archive_reader: Document units and metadata from an EPUB
    - unit: Per-unit translation and fallback policy
"""

from .exceptions import (
    EpubTranslationError,
    OracleUnavailable,
    OracleResponseUnparseable,
    ValidationRejected,
    SegmentCountMismatch,
    XmlParsingError,
    MalformedSourceArchive,
)
from .markup_tree import MarkupFragment, MarkupNode, parse_fragment
from .segment_extractor import Segment, SegmentExtractor
from .structure_validator import StructuralFingerprint, StructureValidator, ValidationReport, compute_fingerprint
from .batch_orchestrator import BatchTranslationOrchestrator
from .container import TranslationConfig, TranslationContainer
from .unit import DocumentUnit, UnitFragment, UnitResult, UnitStatus, translate_unit
from .archive_reader import read_document_units, read_metadata
from .rebuilder import OutputMode, rebuild
from .translator import translate_epub_file

__all__ = [
    # Main translation function
    'translate_epub_file',

    # Pipeline components
    'SegmentExtractor',
    'Segment',
    'BatchTranslationOrchestrator',
    'StructureValidator',
    'StructuralFingerprint',
    'ValidationReport',
    'compute_fingerprint',
    'TranslationConfig',
    'TranslationContainer',

    # Markup model
    'MarkupFragment',
    'MarkupNode',
    'parse_fragment',

    # Units
    'DocumentUnit',
    'UnitFragment',
    'UnitResult',
    'UnitStatus',
    'translate_unit',

    # Archive
    'read_document_units',
    'read_metadata',
    'rebuild',
    'OutputMode',

    # Errors
    'EpubTranslationError',
    'OracleUnavailable',
    'OracleResponseUnparseable',
    'ValidationRejected',
    'SegmentCountMismatch',
    'XmlParsingError',
    'MalformedSourceArchive',
]
