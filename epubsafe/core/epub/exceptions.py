"""
Custom exceptions for the EPUB translation pipeline.

This module defines specific exception types for each failure scenario so that
callers can tell recoverable oracle problems apart from integration bugs and
unusable source archives.
"""

from typing import List, Optional


class EpubTranslationError(Exception):
    """Base exception for all EPUB translation errors."""
    pass


class OracleUnavailable(EpubTranslationError):
    """Raised when the translation oracle cannot be reached or answers with an HTTP error.

    Recoverable: the caller decides whether to retry the unit or skip it.

    Attributes:
        status_code: HTTP status code, if the oracle answered at all
        original_error: The underlying transport exception
    """
    def __init__(self, message: str, status_code: Optional[int] = None,
                 original_error: Exception = None):
        super().__init__(message)
        self.status_code = status_code
        self.original_error = original_error


class OracleResponseUnparseable(EpubTranslationError):
    """Raised when the oracle output holds no usable array of strings.

    Also raised when the array length differs from the batch size; batches
    are never partially accepted.

    Attributes:
        expected_count: Number of segments sent in the batch
        actual_count: Number of strings found (None if nothing parsed)
        response_preview: First 200 chars of the raw response
    """
    def __init__(self, message: str, expected_count: int = None,
                 actual_count: int = None, response_preview: str = None):
        super().__init__(message)
        self.expected_count = expected_count
        self.actual_count = actual_count
        self.response_preview = response_preview


class ValidationRejected(EpubTranslationError):
    """Raised in strict mode when a candidate fragment fails structural validation.

    In the default mode a rejection is not an error: the unit falls back to its
    original fragment and the issues are reported on the unit result.

    Attributes:
        issues: Ordered list of validation issue strings
    """
    def __init__(self, message: str, issues: List[str] = None):
        super().__init__(message)
        self.issues = list(issues or [])


class SegmentCountMismatch(EpubTranslationError):
    """Raised when reinsertion receives a different number of strings than segments.

    This is an integration error and is fatal for the unit.

    Attributes:
        expected_count: Number of extracted segments
        actual_count: Number of strings supplied
    """
    def __init__(self, message: str, expected_count: int = None, actual_count: int = None):
        super().__init__(message)
        self.expected_count = expected_count
        self.actual_count = actual_count


class XmlParsingError(EpubTranslationError):
    """Raised when a markup fragment cannot be parsed at all.

    Attributes:
        original_error: The underlying parsing error
        content_preview: First 200 chars of problematic content
    """
    def __init__(self, message: str, original_error: Exception = None, content_preview: str = None):
        super().__init__(message)
        self.original_error = original_error
        self.content_preview = content_preview


class MalformedSourceArchive(EpubTranslationError):
    """Raised when the source EPUB cannot be used for a rebuild.

    Covers a missing container.xml, a missing or unparseable package document,
    and a package document without manifest or spine.

    Attributes:
        archive_path: Path inside the archive that caused the failure
        original_error: The underlying parsing error, if any
    """
    def __init__(self, message: str, archive_path: str = None, original_error: Exception = None):
        super().__init__(message)
        self.archive_path = archive_path
        self.original_error = original_error
