"""
Event system for translation pipeline observability.

Provides decoupled event publishing and subscription for monitoring
unit and batch progress without coupling the pipeline to a UI.
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List
import time
import traceback

from epubsafe.utils.unified_logger import log, LogLevel, LogType


class EventType(Enum):
    """Translation pipeline event types."""

    # Book-level events
    TRANSLATION_STARTED = "translation_started"
    TRANSLATION_COMPLETED = "translation_completed"

    # Unit-level events
    UNIT_STARTED = "unit_started"
    UNIT_TRANSLATED = "unit_translated"
    UNIT_FAILED = "unit_failed"

    # Batch-level events
    BATCH_TRANSLATED = "batch_translated"

    # Validation events
    VALIDATION_FAILED = "validation_failed"

    # Fallback events
    FALLBACK_USED = "fallback_used"


@dataclass
class Event:
    """Translation pipeline event.

    Attributes:
        type: Event type
        data: Event-specific data dictionary
        timestamp: Unix timestamp when event occurred
        source: Optional source identifier (e.g., "batch_orchestrator")
    """
    type: EventType
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)
    source: str = "unknown"


class EventBus:
    """Central event bus for translation pipeline."""

    def __init__(self):
        self._listeners: Dict[EventType, List[Callable]] = {}
        self._history: List[Event] = []
        self._record_history = False

    def subscribe(self, event_type: EventType, callback: Callable[[Event], None]) -> None:
        """Subscribe to an event type.

        Args:
            event_type: Type of event to listen for
            callback: Function to call when event occurs (receives Event object)
        """
        self._listeners.setdefault(event_type, []).append(callback)

    def subscribe_multiple(self, event_types: List[EventType],
                           callback: Callable[[Event], None]) -> None:
        for event_type in event_types:
            self.subscribe(event_type, callback)

    def unsubscribe(self, event_type: EventType, callback: Callable) -> None:
        if event_type in self._listeners:
            try:
                self._listeners[event_type].remove(callback)
            except ValueError:
                pass  # Callback not found

    def publish(self, event: Event) -> None:
        """Publish an event to all subscribers.

        A failing listener is logged and never interrupts the pipeline.

        Args:
            event: Event to publish
        """
        if self._record_history:
            self._history.append(event)

        for listener in self._listeners.get(event.type, []):
            try:
                listener(event)
            except Exception as e:
                log(LogLevel.ERROR, f"Event listener failed: {e}", LogType.ERROR_DETAIL)
                traceback.print_exc()

    def enable_history(self) -> None:
        self._record_history = True

    def disable_history(self) -> None:
        self._record_history = False

    def get_history(self) -> List[Event]:
        """Get recorded event history in chronological order."""
        return self._history.copy()

    def clear_history(self) -> None:
        self._history.clear()

    def get_events_by_type(self, event_type: EventType) -> List[Event]:
        return [e for e in self._history if e.type == event_type]


# === Convenience Event Builders ===

def create_unit_event(event_type: EventType, unit_id: str, index: int, **data) -> Event:
    """Create a unit-level event.

    Args:
        event_type: One of the UNIT_* event types
        unit_id: Manifest id of the unit
        index: Spine position of the unit
        **data: Extra event data (status, error...)

    Returns:
        Event object
    """
    return Event(
        type=event_type,
        data={"unit_id": unit_id, "index": index, **data},
        source="unit_translator"
    )


def create_batch_translated_event(batch_index: int, total_batches: int, segment_count: int) -> Event:
    return Event(
        type=EventType.BATCH_TRANSLATED,
        data={
            "batch_index": batch_index,
            "total_batches": total_batches,
            "segment_count": segment_count,
            "progress": (batch_index + 1) / total_batches if total_batches > 0 else 0
        },
        source="batch_orchestrator"
    )


def create_validation_failed_event(unit_id: str, index: int, issues: List[str]) -> Event:
    """Create validation failed event.

    Args:
        unit_id: Unit whose candidate was rejected
        index: Spine position of the unit
        issues: Validation issue strings

    Returns:
        Event object
    """
    return Event(
        type=EventType.VALIDATION_FAILED,
        data={"unit_id": unit_id, "index": index, "issues": list(issues)},
        source="structure_validator"
    )


def create_fallback_event(unit_id: str, index: int, reason: str) -> Event:
    return Event(
        type=EventType.FALLBACK_USED,
        data={"unit_id": unit_id, "index": index, "reason": reason},
        source="unit_translator"
    )
