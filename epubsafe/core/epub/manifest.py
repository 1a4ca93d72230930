"""
Package document (OPF) model

Parses META-INF/container.xml and the OPF manifest/spine into immutable
values, grows them through ``ManifestBuilder`` (bilingual output only ever
adds items and spine entries) and writes the additions back into the
original OPF tree.
"""
import posixpath
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple
from urllib.parse import unquote

from lxml import etree

from epubsafe.config import CONTAINER_PATH, MARKUP_MEDIA_TYPE_PATTERN, NAMESPACES
from .exceptions import MalformedSourceArchive

_MARKUP_MEDIA_TYPE = re.compile(MARKUP_MEDIA_TYPE_PATTERN, re.IGNORECASE)
_UNSAFE_ID_CHARS = re.compile(r'[^a-zA-Z0-9_\-:.]')


def _xml_parser() -> etree.XMLParser:
    return etree.XMLParser(resolve_entities=False, no_network=True, remove_blank_text=False)


def _find_first(element, local_name: str):
    found = element.xpath(f'.//*[local-name()="{local_name}"]')
    return found[0] if found else None


def _find_children(element, local_name: str):
    return element.xpath(f'./*[local-name()="{local_name}"]')


def safe_id(value: str) -> str:
    """Make a string usable as an XML id (max 80 chars)."""
    return _UNSAFE_ID_CHARS.sub('_', str(value or ''))[:80]


def strip_fragment(href: str) -> str:
    """Drop the ``#fragment`` part of an href."""
    return href.split('#', 1)[0]


@dataclass(frozen=True)
class ManifestItem:
    """One <item> of the manifest."""
    id: str
    href: str
    media_type: str = ""

    @property
    def is_markup(self) -> bool:
        return bool(_MARKUP_MEDIA_TYPE.search(self.media_type or ""))


@dataclass(frozen=True)
class SpineEntry:
    """One <itemref> of the spine."""
    idref: str
    linear: Optional[str] = None


@dataclass(frozen=True)
class PackageManifest:
    """Manifest items and reading order of a package document.

    Attributes:
        opf_path: Full archive path of the OPF file
        items: Manifest items in document order
        spine: Spine entries in reading order
    """
    opf_path: str
    items: Tuple[ManifestItem, ...] = ()
    spine: Tuple[SpineEntry, ...] = ()

    @property
    def opf_dir(self) -> str:
        return posixpath.dirname(self.opf_path)

    def item(self, item_id: str) -> Optional[ManifestItem]:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def has_item(self, item_id: str) -> bool:
        return self.item(item_id) is not None

    def full_path(self, href: str) -> str:
        """Archive path of an href relative to the OPF (URL-decoded, fragment dropped)."""
        path = unquote(strip_fragment(href))
        if self.opf_dir:
            path = posixpath.join(self.opf_dir, path)
        return posixpath.normpath(path)

    def spine_items(self) -> List[Tuple[int, SpineEntry, ManifestItem]]:
        """(spine position, entry, item) for every spine entry with a manifest item."""
        resolved = []
        for position, entry in enumerate(self.spine):
            item = self.item(entry.idref)
            if item is not None:
                resolved.append((position, entry, item))
        return resolved


class ManifestBuilder:
    """Grows a PackageManifest without ever removing or reordering entries."""

    def __init__(self, manifest: PackageManifest):
        self._base = manifest
        self._items: List[ManifestItem] = list(manifest.items)
        self._spine: List[SpineEntry] = list(manifest.spine)

    def has_item(self, item_id: str) -> bool:
        return any(item.id == item_id for item in self._items)

    def add_item(self, item: ManifestItem) -> "ManifestBuilder":
        """Append a manifest item.

        Raises:
            ValueError: If the id is already used
        """
        if self.has_item(item.id):
            raise ValueError(f"Manifest item id already exists: {item.id}")
        self._items.append(item)
        return self

    def insert_spine_after(self, after_idref: str, entry: SpineEntry) -> "ManifestBuilder":
        """Insert a spine entry immediately after the first entry with after_idref.

        Raises:
            ValueError: If after_idref is not in the spine
        """
        for position, existing in enumerate(self._spine):
            if existing.idref == after_idref:
                self._spine.insert(position + 1, entry)
                return self
        raise ValueError(f"Spine has no entry for idref: {after_idref}")

    def build(self) -> PackageManifest:
        return PackageManifest(
            opf_path=self._base.opf_path,
            items=tuple(self._items),
            spine=tuple(self._spine)
        )


def parse_container_xml(container_bytes: Optional[bytes]) -> str:
    """
    Return the OPF full-path declared by META-INF/container.xml.

    Raises:
        MalformedSourceArchive: If the file is missing, unparseable or has no rootfile
    """
    if container_bytes is None:
        raise MalformedSourceArchive(f"EPUB is missing {CONTAINER_PATH}", archive_path=CONTAINER_PATH)
    try:
        root = etree.fromstring(container_bytes, parser=_xml_parser())
    except etree.XMLSyntaxError as e:
        raise MalformedSourceArchive(f"Cannot parse {CONTAINER_PATH}: {e}",
                                     archive_path=CONTAINER_PATH, original_error=e)

    for rootfile in root.xpath('.//*[local-name()="rootfile"]'):
        full_path = rootfile.get('full-path')
        if full_path:
            return full_path.lstrip('/')
    raise MalformedSourceArchive(f"{CONTAINER_PATH} declares no rootfile full-path",
                                 archive_path=CONTAINER_PATH)


def parse_opf_tree(opf_bytes: Optional[bytes], opf_path: str):
    """
    Parse the OPF into an lxml tree root.

    Raises:
        MalformedSourceArchive: If the OPF is missing or is not well-formed XML
    """
    if opf_bytes is None:
        raise MalformedSourceArchive(f"Package document not found: {opf_path}", archive_path=opf_path)
    try:
        return etree.fromstring(opf_bytes, parser=_xml_parser())
    except etree.XMLSyntaxError as e:
        raise MalformedSourceArchive(f"Cannot parse package document {opf_path}: {e}",
                                     archive_path=opf_path, original_error=e)


def parse_opf(opf_bytes: Optional[bytes], opf_path: str) -> PackageManifest:
    """
    Build the manifest model of a package document.

    Args:
        opf_bytes: Raw OPF content (None if the archive lacks it)
        opf_path: Full archive path of the OPF

    Returns:
        PackageManifest

    Raises:
        MalformedSourceArchive: If the OPF is missing, unparseable or lacks manifest/spine
    """
    root = parse_opf_tree(opf_bytes, opf_path)
    manifest_el = _find_first(root, 'manifest')
    spine_el = _find_first(root, 'spine')
    if manifest_el is None or spine_el is None:
        raise MalformedSourceArchive(f"Package document {opf_path} has no manifest or spine",
                                     archive_path=opf_path)

    items = []
    for item_el in _find_children(manifest_el, 'item'):
        item_id = item_el.get('id')
        href = item_el.get('href')
        if item_id and href:
            items.append(ManifestItem(id=item_id, href=href, media_type=item_el.get('media-type') or ''))

    spine = []
    for itemref_el in _find_children(spine_el, 'itemref'):
        idref = itemref_el.get('idref')
        if idref:
            spine.append(SpineEntry(idref=idref, linear=itemref_el.get('linear')))

    return PackageManifest(opf_path=opf_path, items=tuple(items), spine=tuple(spine))


def read_opf_metadata(opf_bytes: bytes, opf_path: str) -> Dict[str, str]:
    """Title, creator, language, description and publisher from the OPF dc: metadata."""
    root = parse_opf_tree(opf_bytes, opf_path)
    metadata = {}
    for field_name in ('title', 'creator', 'language', 'description', 'publisher'):
        element = root.find(f'.//dc:{field_name}', namespaces=NAMESPACES)
        if element is not None and element.text and element.text.strip():
            metadata[field_name] = element.text.strip()
    return metadata


def _child_separator(parent) -> Optional[str]:
    """Whitespace found between two consecutive children of parent."""
    children = list(parent)
    if len(children) > 1:
        return children[-2].tail
    return parent.text


def serialize_opf(opf_bytes: bytes, original: PackageManifest, updated: PackageManifest) -> bytes:
    """
    Write manifest and spine additions into the original OPF.

    Existing elements are left in place; new <item> elements are appended to
    the manifest and new <itemref> elements are inserted after the entry that
    precedes them in the updated spine.

    Args:
        opf_bytes: Original OPF content
        original: Manifest parsed from opf_bytes
        updated: Manifest grown from original by ManifestBuilder

    Returns:
        Serialized OPF (UTF-8, with XML declaration)
    """
    root = parse_opf_tree(opf_bytes, original.opf_path)
    manifest_el = _find_first(root, 'manifest')
    spine_el = _find_first(root, 'spine')
    namespace = etree.QName(manifest_el).namespace
    item_tag = f"{{{namespace}}}item" if namespace else "item"
    itemref_tag = f"{{{namespace}}}itemref" if namespace else "itemref"

    original_ids = {item.id for item in original.items}
    separator = _child_separator(manifest_el)
    for item in updated.items:
        if item.id in original_ids:
            continue
        last = manifest_el[-1] if len(manifest_el) else None
        new_item = etree.SubElement(manifest_el, item_tag)
        new_item.set('id', item.id)
        new_item.set('href', item.href)
        new_item.set('media-type', item.media_type)
        if last is not None:
            new_item.tail = last.tail
            last.tail = separator

    separator = _child_separator(spine_el)
    itemrefs_by_idref = {el.get('idref'): el for el in _find_children(spine_el, 'itemref')}
    original_idrefs = {entry.idref for entry in original.spine}
    previous_el = None
    for entry in updated.spine:
        if entry.idref in original_idrefs:
            previous_el = itemrefs_by_idref.get(entry.idref, previous_el)
            continue
        new_itemref = etree.Element(itemref_tag)
        new_itemref.set('idref', entry.idref)
        if entry.linear:
            new_itemref.set('linear', entry.linear)
        if previous_el is not None:
            new_itemref.tail = previous_el.tail
            previous_el.tail = separator
            previous_el.addnext(new_itemref)
        else:
            new_itemref.tail = spine_el.text
            spine_el.insert(0, new_itemref)
        previous_el = new_itemref

    return etree.tostring(root.getroottree(), xml_declaration=True, encoding='UTF-8')
