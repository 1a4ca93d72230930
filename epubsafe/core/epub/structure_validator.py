"""
Structural fidelity validation for translated fragments.

A structural fingerprint summarizes everything about a fragment that a
translation must not change: structural tag counts, link and image targets,
list and table shapes, the top-level element sequence and the inline
structure of every block. Comparing the fingerprints of the original and the
translated fragment tells whether the translation can be shipped.
"""

import re
from dataclasses import dataclass, field, replace
from typing import Dict, List, Tuple, Union

from .markup_tree import MarkupFragment, MarkupNode, iter_elements, parse_fragment, walk
from .tag_classifier import TagClassifier

# Emphasis/verbatim syntax of text-formatting languages that must not leak into markup
MARKDOWN_MARKERS = ('**', '__', '```')

_WHITESPACE_RUN = re.compile(r'\s+')


@dataclass(frozen=True)
class BlockSignature:
    """Tag of a block element and the ordered inline structure inside it."""
    tag: str
    inline: str


@dataclass(frozen=True)
class StructuralFingerprint:
    """Order-sensitive structural summary of a fragment.

    Attributes:
        counts: Occurrences of each tag in TagClassifier.COUNTED_TAGS
        img_src: Image sources in document order
        link_href: Hyperlink targets in document order
        list_item_counts: Direct <li> count of each list, in document order
        has_heading: Whether any h1-h6 is present
        top_level_sequence: Tag names of the fragment's top-level elements
        blocks: Signature of every block element in document order
        list_shapes: "tag:items:[nested lists per item]" for every list
        table_shapes: "table:r<rows>:c<max cols>" for every table
        text_length: Length of visible text with whitespace collapsed
        markdown_markers: Occurrences of each markdown marker in visible text
    """
    counts: Dict[str, int] = field(default_factory=dict)
    img_src: Tuple[str, ...] = ()
    link_href: Tuple[str, ...] = ()
    list_item_counts: Tuple[int, ...] = ()
    has_heading: bool = False
    top_level_sequence: Tuple[str, ...] = ()
    blocks: Tuple[BlockSignature, ...] = ()
    list_shapes: Tuple[str, ...] = ()
    table_shapes: Tuple[str, ...] = ()
    text_length: int = 0
    markdown_markers: Dict[str, int] = field(default_factory=dict)


@dataclass
class ValidationReport:
    """Outcome of a structural comparison."""
    accepted: bool
    issues: List[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.accepted


def _strip_non_content(nodes: Tuple[MarkupNode, ...], classifier: TagClassifier) -> Tuple[MarkupNode, ...]:
    kept = []
    for node in nodes:
        if node.is_element and classifier.is_non_content(node.tag):
            continue
        if node.is_element and node.children:
            node = replace(node, children=_strip_non_content(node.children, classifier))
        kept.append(node)
    return tuple(kept)


def _inline_signature(block: MarkupNode, classifier: TagClassifier) -> str:
    parts = []
    for element in iter_elements(block):
        if not classifier.is_inline(element.tag):
            continue
        if element.tag == 'a':
            parts.append(f"a({(element.get('href') or '').strip()})")
        elif element.tag == 'img':
            parts.append(f"img({(element.get('src') or '').strip()})")
        else:
            parts.append(element.tag)
    return "|".join(parts)


def compute_fingerprint(fragment: Union[str, MarkupFragment],
                        classifier: TagClassifier = None) -> StructuralFingerprint:
    """Compute the structural fingerprint of a fragment.

    Script, style and noscript subtrees are ignored.

    Args:
        fragment: Parsed fragment or raw markup
        classifier: Tag classifier (default instance if None)

    Returns:
        StructuralFingerprint
    """
    classifier = classifier or TagClassifier()
    if not isinstance(fragment, MarkupFragment):
        fragment = parse_fragment(fragment)
    fragment = MarkupFragment(children=_strip_non_content(fragment.children, classifier))

    counts = {tag: 0 for tag in classifier.COUNTED_TAGS}
    img_src, link_href, list_item_counts = [], [], []
    blocks, list_shapes, table_shapes = [], [], []
    text_parts = []
    has_heading = False

    for _, node, _ in walk(fragment):
        if node.is_text:
            text_parts.append(node.text)
            continue
        if not node.is_element:
            continue

        tag = node.tag
        if tag in counts:
            counts[tag] += 1
        if classifier.is_heading(tag):
            has_heading = True
        if tag == 'img':
            img_src.append(node.get('src') or '')
        elif tag == 'a':
            link_href.append(node.get('href') or '')

        if classifier.is_block(tag):
            blocks.append(BlockSignature(tag=tag, inline=_inline_signature(node, classifier)))

        if classifier.is_list(tag):
            items = [child for child in node.element_children() if child.tag == 'li']
            nested = [sum(1 for c in item.element_children() if classifier.is_list(c.tag)) for item in items]
            list_item_counts.append(len(items))
            list_shapes.append(f"{tag}:{len(items)}:[{','.join(str(n) for n in nested)}]")
        elif tag == 'table':
            rows = [el for el in iter_elements(node) if el.tag == 'tr']
            cols = [sum(1 for c in iter_elements(row) if c.tag in classifier.TABLE_CELL_TAGS) for row in rows]
            table_shapes.append(f"table:r{len(rows)}:c{max(cols) if cols else 0}")

    visible_text = "".join(text_parts)
    normalized = _WHITESPACE_RUN.sub(' ', visible_text).strip()

    return StructuralFingerprint(
        counts=counts,
        img_src=tuple(img_src),
        link_href=tuple(link_href),
        list_item_counts=tuple(list_item_counts),
        has_heading=has_heading,
        top_level_sequence=tuple(node.tag for node in fragment.children if node.is_element),
        blocks=tuple(blocks),
        list_shapes=tuple(list_shapes),
        table_shapes=tuple(table_shapes),
        text_length=len(normalized),
        markdown_markers={marker: visible_text.count(marker) for marker in MARKDOWN_MARKERS},
    )


class StructureValidator:
    """Compares fingerprints of an original fragment and its translation.

    Every check runs even after an earlier one failed, so the report lists
    all problems at once.
    """

    def __init__(self, min_text_length: int = 200, text_collapse_ratio: float = 0.5,
                 classifier: TagClassifier = None):
        """
        Args:
            min_text_length: Originals at or below this visible length skip the collapse check
            text_collapse_ratio: Candidate text must keep at least this share of the original length
            classifier: Tag classifier (default instance if None)
        """
        self.min_text_length = min_text_length
        self.text_collapse_ratio = text_collapse_ratio
        self.classifier = classifier or TagClassifier()

    def fingerprint(self, fragment: Union[str, MarkupFragment]) -> StructuralFingerprint:
        return compute_fingerprint(fragment, self.classifier)

    def validate(self, original: Union[str, MarkupFragment],
                 candidate: Union[str, MarkupFragment]) -> ValidationReport:
        """Check that the candidate kept the structure of the original.

        Args:
            original: Untranslated fragment
            candidate: Translated fragment

        Returns:
            ValidationReport with accepted == (no issues)
        """
        o = self.fingerprint(original)
        t = self.fingerprint(candidate)
        issues: List[str] = []

        for tag in self.classifier.COUNTED_TAGS:
            if o.counts[tag] != t.counts[tag]:
                issues.append(f"tag <{tag}> count changed: {o.counts[tag]} -> {t.counts[tag]}")

        if o.img_src != t.img_src:
            issues.append("img src sequence changed")
        if o.link_href != t.link_href:
            issues.append("a href sequence changed")

        if o.list_item_counts != t.list_item_counts:
            issues.append("list item distribution changed")

        if o.has_heading and not t.has_heading:
            issues.append("headings disappeared")

        if o.top_level_sequence != t.top_level_sequence:
            issues.append("top-level element sequence changed")

        if len(o.blocks) != len(t.blocks):
            issues.append(f"block count changed: {len(o.blocks)} -> {len(t.blocks)}")
        else:
            for index, (ob, tb) in enumerate(zip(o.blocks, t.blocks)):
                if ob.tag != tb.tag:
                    issues.append(f"block[{index}] tag changed: {ob.tag} -> {tb.tag}")
                    break
                if ob.inline != tb.inline:
                    issues.append(f"block[{index}] inline structure changed")
                    break

        if o.list_shapes != t.list_shapes:
            issues.append("list shapes changed")
        if o.table_shapes != t.table_shapes:
            issues.append("table shapes changed")

        if o.text_length > self.min_text_length and \
                t.text_length < int(o.text_length * self.text_collapse_ratio):
            issues.append(f"text length collapsed: {o.text_length} -> {t.text_length}")

        leaked = [m for m in MARKDOWN_MARKERS if t.markdown_markers[m] > o.markdown_markers[m]]
        if leaked:
            issues.append(f"markdown markers detected in html: {' '.join(leaked)}")

        return ValidationReport(accepted=not issues, issues=issues)
