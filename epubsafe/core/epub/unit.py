"""
Document units and the per-unit translation policy

A unit is one markup file of the spine. ``translate_unit`` runs the
orchestrator on its body fragment, validates the candidate and decides what
gets shipped: the translation when the structure survived, the original
fragment otherwise.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

from .batch_orchestrator import BatchTranslationOrchestrator
from .body_serializer import normalize_body_html
from .events import (EventBus, EventType, create_fallback_event, create_unit_event,
                     create_validation_failed_event)
from .exceptions import EpubTranslationError, ValidationRejected
from .markup_tree import parse_fragment
from .structure_validator import StructureValidator


class UnitStatus(Enum):
    """Lifecycle of a unit: untranslated -> in_progress -> translated | validation_failed_fallback"""
    UNTRANSLATED = "untranslated"
    IN_PROGRESS = "in_progress"
    TRANSLATED = "translated"
    VALIDATION_FAILED_FALLBACK = "validation_failed_fallback"


@dataclass
class DocumentUnit:
    """One (X)HTML spine document.

    Attributes:
        id: Manifest id of the document
        relative_path: Full path of the document inside the archive
        index: Spine position
        original_fragment: Inner <body> markup as found in the archive
        title: First heading, or the file name
        translated_fragment: Fragment to ship, once decided
        status: Lifecycle state
    """
    id: str
    relative_path: str
    index: int
    original_fragment: str
    title: str = ""
    translated_fragment: Optional[str] = None
    status: UnitStatus = UnitStatus.UNTRANSLATED


@dataclass(frozen=True)
class UnitFragment:
    """Body content to write for one unit when rebuilding the archive."""
    relative_path: str
    index: int
    fragment: Optional[str]


@dataclass
class UnitResult:
    """Outcome of translating one unit.

    ``translated_fragment`` always holds shippable markup: the validated
    translation, or the original fragment after a fallback or failure.
    """
    unit_id: str
    relative_path: str
    index: int
    translated_fragment: str
    status: UnitStatus
    validation_issues: List[str] = field(default_factory=list)
    fallback_used: bool = False
    fallback_reason: Optional[str] = None
    error: Optional[str] = None
    segment_count: int = 0
    digest: str = ""
    attempts: int = 1

    @property
    def is_failed(self) -> bool:
        return self.error is not None

    @classmethod
    def failed(cls, unit: DocumentUnit, error: Exception, digest: str = "", attempts: int = 1) -> "UnitResult":
        """Result for a unit whose translation raised: original content, error recorded."""
        return cls(
            unit_id=unit.id,
            relative_path=unit.relative_path,
            index=unit.index,
            translated_fragment=unit.original_fragment,
            status=UnitStatus.UNTRANSLATED,
            fallback_used=True,
            fallback_reason="translation_error",
            error=str(error),
            digest=digest,
            attempts=attempts
        )

    @classmethod
    def untouched(cls, unit: DocumentUnit, digest: str = "") -> "UnitResult":
        """Result for a unit that was never processed (e.g. after an interruption)."""
        return cls(
            unit_id=unit.id,
            relative_path=unit.relative_path,
            index=unit.index,
            translated_fragment=unit.original_fragment,
            status=UnitStatus.UNTRANSLATED,
            digest=digest,
            attempts=0
        )

    def to_unit_fragment(self) -> UnitFragment:
        return UnitFragment(relative_path=self.relative_path, index=self.index,
                            fragment=self.translated_fragment)


def _publish(event_bus: Optional[EventBus], event) -> None:
    if event_bus:
        event_bus.publish(event)


async def translate_unit(
    unit: DocumentUnit,
    orchestrator: BatchTranslationOrchestrator,
    validator: StructureValidator,
    source_language: str,
    target_language: str,
    glossary: Optional[Sequence[Tuple[str, str]]] = None,
    prior_digest: str = "",
    strict: bool = False,
    event_bus: Optional[EventBus] = None,
    log_callback: Optional[Callable] = None
) -> UnitResult:
    """
    Translate one unit and apply the fallback policy.

    Args:
        unit: Unit to translate (its status is updated in place)
        orchestrator: Batch orchestrator bound to an oracle
        validator: Structure validator
        source_language: Source language name
        target_language: Target language name
        glossary: (term, replacement) pairs
        prior_digest: Consistency digest from the previous unit
        strict: Raise ValidationRejected instead of falling back
        event_bus: Optional bus receiving unit events
        log_callback: Optional logging callback

    Returns:
        UnitResult. On rejection the original fragment is kept and the digest
        is not advanced.

    Raises:
        OracleUnavailable: If the oracle cannot be reached (unit reset to untranslated)
        OracleResponseUnparseable: If the oracle answer is unusable (unit reset to untranslated)
        ValidationRejected: In strict mode, when the candidate is rejected
    """
    unit.status = UnitStatus.IN_PROGRESS
    _publish(event_bus, create_unit_event(EventType.UNIT_STARTED, unit.id, unit.index,
                                          relative_path=unit.relative_path))
    if log_callback:
        log_callback("unit_start", f"Translating {unit.relative_path} ({unit.title or unit.id})")

    try:
        fragment = parse_fragment(normalize_body_html(unit.original_fragment))
        segment_count = len(orchestrator.extractor.extract(fragment))
        candidate, digest = await orchestrator.translate(
            fragment, source_language, target_language, glossary, prior_digest
        )
    except EpubTranslationError as e:
        unit.status = UnitStatus.UNTRANSLATED
        _publish(event_bus, create_unit_event(EventType.UNIT_FAILED, unit.id, unit.index, error=str(e)))
        raise

    report = validator.validate(fragment, candidate)

    if report.accepted:
        shipped = unit.original_fragment if candidate == fragment else candidate.to_html()
        unit.translated_fragment = shipped
        unit.status = UnitStatus.TRANSLATED
        _publish(event_bus, create_unit_event(EventType.UNIT_TRANSLATED, unit.id, unit.index,
                                              segment_count=segment_count))
        return UnitResult(
            unit_id=unit.id,
            relative_path=unit.relative_path,
            index=unit.index,
            translated_fragment=shipped,
            status=UnitStatus.TRANSLATED,
            segment_count=segment_count,
            digest=digest
        )

    _publish(event_bus, create_validation_failed_event(unit.id, unit.index, report.issues))
    if strict:
        unit.status = UnitStatus.UNTRANSLATED
        raise ValidationRejected(
            f"Translation of {unit.relative_path} changed the document structure",
            issues=report.issues
        )

    unit.translated_fragment = unit.original_fragment
    unit.status = UnitStatus.VALIDATION_FAILED_FALLBACK
    _publish(event_bus, create_fallback_event(unit.id, unit.index, "validation_failed"))
    if log_callback:
        log_callback("unit_validation_fallback",
                     f"Structure check failed for {unit.relative_path}, keeping original content",
                     {'type': 'validation', 'issues': list(report.issues)})

    return UnitResult(
        unit_id=unit.id,
        relative_path=unit.relative_path,
        index=unit.index,
        translated_fragment=unit.original_fragment,
        status=UnitStatus.VALIDATION_FAILED_FALLBACK,
        validation_issues=list(report.issues),
        fallback_used=True,
        fallback_reason="validation_failed",
        segment_count=segment_count,
        digest=prior_digest
    )
