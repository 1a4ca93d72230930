"""
Segment extraction and reinsertion

Walks a fragment in document order, collects the text nodes that should be
translated and writes translated strings back into exactly those nodes.
"""
from dataclasses import dataclass
from typing import List, Sequence, Union

from .exceptions import SegmentCountMismatch
from .markup_tree import MarkupFragment, NodePath, parse_fragment, walk
from .tag_classifier import TagClassifier


@dataclass(frozen=True)
class Segment:
    """One translatable text run.

    Attributes:
        text: Original text, whitespace included
        anchor: Child-index path of the text node inside the fragment
    """
    text: str
    anchor: NodePath


def _with_source_spacing(source: str, translation: str) -> str:
    leading = source[:len(source) - len(source.lstrip())]
    trailing = source[len(source.rstrip()):]
    return leading + translation.strip() + trailing


def _as_fragment(fragment: Union[str, MarkupFragment]) -> MarkupFragment:
    if isinstance(fragment, MarkupFragment):
        return fragment
    return parse_fragment(fragment)


class SegmentExtractor:
    """Extracts translatable segments from a fragment and reinserts translations."""

    def __init__(self, classifier: TagClassifier = None):
        self.classifier = classifier or TagClassifier()

    def extract(self, fragment: Union[str, MarkupFragment]) -> List[Segment]:
        """Collect translatable text runs in document order.

        Text below script, style, code, pre and embedded media containers is
        skipped, as is whitespace-only text.

        Args:
            fragment: Parsed fragment or raw markup

        Returns:
            Ordered list of segments (empty if nothing is translatable)
        """
        fragment = _as_fragment(fragment)
        segments = []
        for path, node, ancestors in walk(fragment):
            if not node.is_text or not node.text.strip():
                continue
            if any(self.classifier.is_skipped_container(a.tag) for a in ancestors):
                continue
            segments.append(Segment(text=node.text, anchor=path))
        return segments

    def reinsert(self, fragment: Union[str, MarkupFragment],
                 translations: Sequence[str]) -> MarkupFragment:
        """Write translated strings back into the extracted positions.

        Each string is stripped and given the leading and trailing whitespace
        of the source text it replaces, so spacing around inline markup stays.

        Args:
            fragment: The fragment the segments were extracted from
            translations: One string per segment, same order

        Returns:
            New fragment; the input fragment is left as it was

        Raises:
            SegmentCountMismatch: If the number of strings differs from the segment count
        """
        fragment = _as_fragment(fragment)
        segments = self.extract(fragment)
        if len(translations) != len(segments):
            raise SegmentCountMismatch(
                f"Cannot reinsert {len(translations)} strings into {len(segments)} segments",
                expected_count=len(segments),
                actual_count=len(translations)
            )
        replacements = {segment.anchor: _with_source_spacing(segment.text, str(text))
                        for segment, text in zip(segments, translations)}
        return fragment.with_texts(replacements)
