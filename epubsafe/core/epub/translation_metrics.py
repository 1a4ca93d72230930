"""Translation metrics and statistics tracking.

Counts what happened to every unit of a book: translated, kept original after
a structure check failed, failed after all retries, or had nothing to
translate.
"""

import time
from dataclasses import dataclass, field
from typing import Dict, List

from .unit import UnitResult, UnitStatus


@dataclass
class TranslationMetrics:
    """Per-book translation metrics.

    Tracks unit outcomes, retries, timing and the validation issues that
    caused fallbacks.
    """
    # === Counts ===
    total_units: int = 0
    translated_units: int = 0
    successful_after_retry: int = 0
    fallback_units: int = 0  # Structure check failed, original kept
    failed_units: int = 0  # Oracle failure after all attempts, original kept
    skipped_empty_units: int = 0  # Nothing translatable
    untouched_units: int = 0  # Not processed (interruption)
    total_segments: int = 0

    # === Timing ===
    total_time_seconds: float = 0.0
    start_time: float = field(default_factory=time.time)
    end_time: float = 0.0

    # === Retry Distribution ===
    retry_distribution: Dict[int, int] = field(default_factory=dict)
    """Map of retry_count -> number_of_units. Example: {0: 85, 1: 10}"""

    # === Issues ===
    unit_issues: Dict[str, List[str]] = field(default_factory=dict)
    unit_errors: Dict[str, str] = field(default_factory=dict)

    def record(self, result: UnitResult) -> None:
        """Record the outcome of one unit."""
        self.total_units += 1
        self.total_segments += result.segment_count

        if result.attempts == 0:
            self.untouched_units += 1
            return

        retries = max(result.attempts - 1, 0)
        self.retry_distribution[retries] = self.retry_distribution.get(retries, 0) + 1

        if result.is_failed:
            self.failed_units += 1
            self.unit_errors[result.relative_path] = result.error
        elif result.status is UnitStatus.VALIDATION_FAILED_FALLBACK:
            self.fallback_units += 1
            self.unit_issues[result.relative_path] = list(result.validation_issues)
        elif result.segment_count == 0:
            self.skipped_empty_units += 1
        else:
            self.translated_units += 1
            if retries:
                self.successful_after_retry += 1

    def finalize(self) -> None:
        """Finalize metrics (call when translation completes)."""
        self.end_time = time.time()
        self.total_time_seconds = self.end_time - self.start_time

    @property
    def avg_time_per_unit(self) -> float:
        processed = self.total_units - self.untouched_units
        if processed == 0:
            return 0.0
        return self.total_time_seconds / processed

    @property
    def success_rate(self) -> float:
        """Share of units with translatable text that shipped a translation."""
        attempted = self.translated_units + self.fallback_units + self.failed_units
        if attempted == 0:
            return 0.0
        return self.translated_units / attempted

    def to_dict(self) -> Dict:
        """Convert metrics to dictionary for serialization."""
        return {
            "total_units": self.total_units,
            "translated_units": self.translated_units,
            "successful_after_retry": self.successful_after_retry,
            "fallback_units": self.fallback_units,
            "failed_units": self.failed_units,
            "skipped_empty_units": self.skipped_empty_units,
            "untouched_units": self.untouched_units,
            "total_segments": self.total_segments,
            "total_time_seconds": self.total_time_seconds,
            "avg_time_per_unit": self.avg_time_per_unit,
            "success_rate": self.success_rate,
            "retry_distribution": dict(self.retry_distribution),
            "unit_issues": {path: list(issues) for path, issues in self.unit_issues.items()},
            "unit_errors": dict(self.unit_errors),
        }

    def log_summary(self, log_callback=None) -> str:
        """Log comprehensive summary.

        Args:
            log_callback: Optional callback for logging

        Returns:
            The summary text
        """
        summary = f"""
=== Translation Metrics Summary ===
Total Units: {self.total_units}
Translated: {self.translated_units} (after retry: {self.successful_after_retry})
Original kept (structure check failed): {self.fallback_units}
Failed: {self.failed_units}
Nothing to translate: {self.skipped_empty_units}
Not processed: {self.untouched_units}
Segments: {self.total_segments}

Success Rate: {self.success_rate:.1%}

Timing:
  Total Time: {self.total_time_seconds:.2f}s
  Avg per Unit: {self.avg_time_per_unit:.2f}s
"""
        for path, issues in self.unit_issues.items():
            summary += f"\n{path}:\n"
            for issue in issues:
                summary += f"  - {issue}\n"
        for path, error in self.unit_errors.items():
            summary += f"\n{path}: {error}\n"

        if log_callback:
            log_callback("translation_metrics", summary)
        else:
            print(summary)
        return summary
