"""Unit tests for TranslationMetrics."""

import pytest

from epubsafe.core.epub.translation_metrics import TranslationMetrics
from epubsafe.core.epub.unit import UnitResult, UnitStatus


def _result(status=UnitStatus.TRANSLATED, segments=3, attempts=1, **kwargs):
    return UnitResult(unit_id="c1", relative_path=kwargs.pop("path", "OEBPS/c1.xhtml"), index=0,
                      translated_fragment="<p>x</p>", status=status, segment_count=segments,
                      attempts=attempts, **kwargs)


class TestTranslationMetrics:
    """Test TranslationMetrics functionality."""

    def test_initialization(self):
        metrics = TranslationMetrics()

        assert metrics.total_units == 0
        assert metrics.translated_units == 0
        assert metrics.retry_distribution == {}
        assert metrics.start_time > 0

    def test_record_translated(self):
        metrics = TranslationMetrics()
        metrics.record(_result())

        assert metrics.total_units == 1
        assert metrics.translated_units == 1
        assert metrics.total_segments == 3
        assert metrics.retry_distribution == {0: 1}

    def test_record_success_after_retry(self):
        metrics = TranslationMetrics()
        metrics.record(_result(attempts=2))

        assert metrics.successful_after_retry == 1
        assert metrics.retry_distribution == {1: 1}

    def test_record_fallback(self):
        metrics = TranslationMetrics()
        metrics.record(_result(UnitStatus.VALIDATION_FAILED_FALLBACK,
                               validation_issues=["headings disappeared"]))

        assert metrics.fallback_units == 1
        assert metrics.unit_issues == {"OEBPS/c1.xhtml": ["headings disappeared"]}

    def test_record_failure(self):
        metrics = TranslationMetrics()
        metrics.record(_result(UnitStatus.UNTRANSLATED, segments=0, attempts=2, error="oracle down"))

        assert metrics.failed_units == 1
        assert metrics.unit_errors == {"OEBPS/c1.xhtml": "oracle down"}

    def test_record_empty_and_untouched(self):
        metrics = TranslationMetrics()
        metrics.record(_result(segments=0))
        metrics.record(_result(UnitStatus.UNTRANSLATED, segments=0, attempts=0))

        assert metrics.skipped_empty_units == 1
        assert metrics.untouched_units == 1
        assert metrics.retry_distribution == {0: 1}

    def test_success_rate(self):
        metrics = TranslationMetrics()
        assert metrics.success_rate == 0.0

        metrics.record(_result())
        metrics.record(_result())
        metrics.record(_result(UnitStatus.VALIDATION_FAILED_FALLBACK))
        metrics.record(_result(segments=0))

        assert metrics.success_rate == pytest.approx(2 / 3)

    def test_finalize_and_average(self):
        metrics = TranslationMetrics()
        metrics.start_time -= 4
        metrics.record(_result())
        metrics.record(_result())
        metrics.finalize()

        assert metrics.total_time_seconds >= 4
        assert metrics.avg_time_per_unit >= 2

    def test_to_dict(self):
        metrics = TranslationMetrics()
        metrics.record(_result(UnitStatus.VALIDATION_FAILED_FALLBACK, validation_issues=["x"]))

        data = metrics.to_dict()

        assert data["fallback_units"] == 1
        assert data["unit_issues"] == {"OEBPS/c1.xhtml": ["x"]}
        assert "success_rate" in data

    def test_log_summary(self):
        metrics = TranslationMetrics()
        metrics.record(_result(UnitStatus.VALIDATION_FAILED_FALLBACK, validation_issues=["list shapes changed"]))
        logged = []

        summary = metrics.log_summary(lambda key, message: logged.append((key, message)))

        assert logged == [("translation_metrics", summary)]
        assert "Original kept (structure check failed): 1" in summary
        assert "list shapes changed" in summary

    def test_log_summary_prints_without_callback(self, capsys):
        TranslationMetrics().log_summary()
        assert "Translation Metrics Summary" in capsys.readouterr().out
