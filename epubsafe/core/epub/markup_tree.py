"""
Immutable markup tree for body fragments

A fragment is parsed once with lxml and converted into plain value objects
(``MarkupNode``). Body content is read as XML first, so case-sensitive SVG and
MathML names such as ``viewBox`` survive; markup that is not well-formed is
read with the HTML parser instead. Every node is addressed by its child-index
path from the fragment root, so segments can point back into the tree without
holding live lxml elements. Edits always produce a new fragment.
"""
import html
import re
from dataclasses import dataclass, replace
from enum import Enum
from html.entities import html5
from typing import Dict, Iterator, Optional, Set, Tuple

from lxml import etree
from lxml import html as lxml_html

from .exceptions import XmlParsingError
from .tag_classifier import TagClassifier

NodePath = Tuple[int, ...]

_classifier = TagClassifier()

XML_NAMESPACE = 'http://www.w3.org/XML/1998/namespace'
XHTML_NAMESPACE = 'http://www.w3.org/1999/xhtml'

# Prefixes a chapter body may use while only its <html> element declares them
INHERITED_PREFIXES = {
    'epub': 'http://www.idpf.org/2007/ops',
    'xlink': 'http://www.w3.org/1999/xlink',
}

_WRAPPER_TAG = 'epubsafe-fragment'
_XML_ENTITIES = {'amp', 'lt', 'gt', 'quot', 'apos'}
_NAMED_ENTITY = re.compile(r'&([A-Za-z][A-Za-z0-9]*);')


class NodeKind(Enum):
    """Kinds of nodes kept in the tree"""
    ELEMENT = "element"
    TEXT = "text"
    COMMENT = "comment"
    RAW = "raw"  # processing instructions, entities: serialized verbatim


@dataclass(frozen=True)
class MarkupNode:
    """One node of a fragment.

    Attributes:
        kind: Node kind
        tag: Lower-case local tag name, used for classification (elements only)
        attributes: Attribute (name, value) pairs in source order, names as
            written in the source (``viewBox``, ``epub:type``, ``xmlns``)
        children: Child nodes (elements only)
        text: Character data (text, comment and raw nodes)
        name: Tag name as written in the source (``linearGradient``,
            ``svg:svg``); ``tag`` is used when empty
    """
    kind: NodeKind
    tag: str = ""
    attributes: Tuple[Tuple[str, str], ...] = ()
    children: Tuple["MarkupNode", ...] = ()
    text: str = ""
    name: str = ""

    @property
    def qualified_name(self) -> str:
        return self.name or self.tag

    @property
    def is_element(self) -> bool:
        return self.kind is NodeKind.ELEMENT

    @property
    def is_text(self) -> bool:
        return self.kind is NodeKind.TEXT

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Return an attribute value."""
        for key, value in self.attributes:
            if key == name:
                return value
        return default

    def element_children(self) -> Tuple["MarkupNode", ...]:
        return tuple(child for child in self.children if child.is_element)


@dataclass(frozen=True)
class MarkupFragment:
    """A self-contained run of body content (the inner markup of ``<body>``)."""
    children: Tuple[MarkupNode, ...] = ()

    def node_at(self, path: NodePath) -> MarkupNode:
        """Return the node addressed by a child-index path.

        Raises:
            IndexError: If the path does not exist in this fragment
        """
        if not path:
            raise IndexError("Empty node path")
        nodes = self.children
        node = None
        for index in path:
            node = nodes[index]
            nodes = node.children
        return node

    def with_texts(self, replacements: Dict[NodePath, str]) -> "MarkupFragment":
        """Return a copy where the text nodes at the given paths carry new text.

        Args:
            replacements: Map of text-node path to replacement string

        Returns:
            New fragment; untouched subtrees are shared with this one
        """
        if not replacements:
            return self
        prefixes: Set[NodePath] = set()
        for path in replacements:
            for depth in range(1, len(path)):
                prefixes.add(path[:depth])
        return MarkupFragment(children=_rebuild(self.children, (), replacements, prefixes))

    def text_content(self) -> str:
        """Concatenated text of all text nodes outside script/style/noscript."""
        parts = [node.text for _, node, ancestors in walk(self)
                 if node.is_text and not any(_classifier.is_non_content(a.tag) for a in ancestors)]
        return "".join(parts)

    def to_html(self) -> str:
        """Serialize to XHTML-compatible markup."""
        return "".join(serialize_node(node) for node in self.children)

    def __str__(self) -> str:
        return self.to_html()


def _rebuild(nodes: Tuple[MarkupNode, ...], prefix: NodePath,
             replacements: Dict[NodePath, str], prefixes: Set[NodePath]) -> Tuple[MarkupNode, ...]:
    rebuilt = []
    for index, node in enumerate(nodes):
        path = prefix + (index,)
        if path in replacements:
            node = replace(node, text=replacements[path])
        elif path in prefixes:
            node = replace(node, children=_rebuild(node.children, path, replacements, prefixes))
        rebuilt.append(node)
    return tuple(rebuilt)


def walk(fragment: MarkupFragment) -> Iterator[Tuple[NodePath, MarkupNode, Tuple[MarkupNode, ...]]]:
    """Pre-order traversal of a fragment.

    Yields:
        (path, node, ancestors) with ancestors ordered from outermost to parent
    """
    stack = [((index,), node, ()) for index, node in reversed(list(enumerate(fragment.children)))]
    while stack:
        path, node, ancestors = stack.pop()
        yield path, node, ancestors
        if node.children:
            child_ancestors = ancestors + (node,)
            for index in range(len(node.children) - 1, -1, -1):
                stack.append((path + (index,), node.children[index], child_ancestors))


def iter_elements(node: MarkupNode) -> Iterator[MarkupNode]:
    """Pre-order traversal of the element descendants of a node (node excluded)."""
    for child in node.children:
        if child.is_element:
            yield child
            yield from iter_elements(child)


def parse_fragment(markup: str) -> MarkupFragment:
    """Parse a body fragment into an immutable tree.

    Args:
        markup: Inner body markup (HTML or XHTML)

    Returns:
        MarkupFragment (empty for empty input)

    Raises:
        XmlParsingError: If lxml cannot parse the content at all
    """
    if not markup:
        return MarkupFragment()
    if not markup.strip():
        return MarkupFragment(children=(MarkupNode(NodeKind.TEXT, text=markup),))

    container = _parse_xml(markup)
    if container is None:
        container = _parse_html(markup)
    return MarkupFragment(children=_convert_children(container))


def _numeric_entities(markup: str) -> str:
    """Rewrite HTML named entities unknown to XML (``&nbsp;``) as character references."""
    def substitute(match):
        name = match.group(1)
        if name in _XML_ENTITIES:
            return match.group(0)
        chars = html5.get(f"{name};")
        if chars is None:
            return match.group(0)
        return "".join(f"&#{ord(char)};" for char in chars)

    return _NAMED_ENTITY.sub(substitute, markup)


def _parse_xml(markup: str):
    """Parse well-formed body content inside a wrapper element.

    Returns:
        The wrapper element, or None if the content is not well-formed XML
    """
    declarations = f' xmlns="{XHTML_NAMESPACE}"'
    for prefix, uri in INHERITED_PREFIXES.items():
        # Only undeclared prefixes, so declarations made in the body are kept
        if f'{prefix}:' in markup and f'xmlns:{prefix}=' not in markup:
            declarations += f' xmlns:{prefix}="{uri}"'
    wrapped = f"<{_WRAPPER_TAG}{declarations}>{_numeric_entities(markup)}</{_WRAPPER_TAG}>"
    parser = etree.XMLParser(encoding='utf-8', resolve_entities=False)
    try:
        return etree.fromstring(wrapped.encode('utf-8'), parser)
    except etree.XMLSyntaxError:
        return None


def _parse_html(markup: str):
    try:
        container = lxml_html.fragment_fromstring(markup, create_parent='div')
    except (etree.ParserError, etree.XMLSyntaxError, ValueError) as e:
        raise XmlParsingError(
            f"Cannot parse markup fragment: {e}",
            original_error=e,
            content_preview=markup[:200]
        )

    # lxml drops whitespace-only text ahead of the first element
    if not container.text:
        leading = markup[:len(markup) - len(markup.lstrip())]
        if leading:
            container.text = leading
    return container


def _convert_children(element) -> Tuple[MarkupNode, ...]:
    nodes = []
    if element.text:
        nodes.append(MarkupNode(NodeKind.TEXT, text=element.text))
    for child in element:
        nodes.append(_convert_node(child, element.nsmap))
        if child.tail:
            nodes.append(MarkupNode(NodeKind.TEXT, text=child.tail))
    return tuple(nodes)


def _element_name(node) -> str:
    tag = node.tag
    if not tag.startswith('{'):
        return tag
    local = tag.split('}', 1)[1]
    return f"{node.prefix}:{local}" if node.prefix else local


def _attribute_name(key: str, nsmap) -> str:
    if not key.startswith('{'):
        return key
    uri, local = key[1:].split('}', 1)
    if uri == XML_NAMESPACE:
        return f"xml:{local}"
    for prefix, value in nsmap.items():
        if prefix and value == uri:
            return f"{prefix}:{local}"
    return local


def _namespace_declarations(node, parent_nsmap) -> Tuple[Tuple[str, str], ...]:
    """xmlns attributes introduced on this element."""
    return tuple(
        ('xmlns' if prefix is None else f'xmlns:{prefix}', uri)
        for prefix, uri in node.nsmap.items()
        if parent_nsmap.get(prefix) != uri
    )


def _convert_node(node, parent_nsmap) -> MarkupNode:
    if isinstance(node, etree._Comment):
        return MarkupNode(NodeKind.COMMENT, text=node.text or "")
    if not isinstance(node.tag, str):
        # Processing instructions and entities
        raw = etree.tostring(node, encoding='unicode', with_tail=False)
        return MarkupNode(NodeKind.RAW, text=raw)
    attributes = _namespace_declarations(node, parent_nsmap) + tuple(
        (_attribute_name(str(k), node.nsmap), str(v)) for k, v in node.attrib.items()
    )
    return MarkupNode(
        NodeKind.ELEMENT,
        tag=TagClassifier.local_name(node.tag),
        attributes=attributes,
        children=_convert_children(node),
        name=_element_name(node),
    )


def serialize_node(node: MarkupNode) -> str:
    """Serialize one node (and its subtree) to XHTML-compatible markup."""
    if node.kind is NodeKind.TEXT:
        return html.escape(node.text, quote=False)
    if node.kind is NodeKind.COMMENT:
        return f"<!--{node.text}-->"
    if node.kind is NodeKind.RAW:
        return node.text

    name = node.qualified_name
    attrs = "".join(f' {key}="{html.escape(value, quote=True)}"' for key, value in node.attributes)
    if not node.children and _classifier.is_void(node.tag):
        return f"<{name}{attrs}/>"
    inner = "".join(serialize_node(child) for child in node.children)
    return f"<{name}{attrs}>{inner}</{name}>"
