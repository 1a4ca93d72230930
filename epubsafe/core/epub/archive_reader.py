"""
EPUB archive reading

Turns an EPUB (as bytes) into document units in reading order, using the
same container/OPF parsing as the rebuilder.
"""
import io
import posixpath
import zipfile
from typing import Dict, List, Optional, Tuple

from epubsafe.config import CONTAINER_PATH
from .body_serializer import decode_markup, extract_body_inner
from .exceptions import MalformedSourceArchive, XmlParsingError
from .manifest import PackageManifest, parse_container_xml, parse_opf, read_opf_metadata
from .markup_tree import MarkupFragment, parse_fragment, walk
from .unit import DocumentUnit

DEFAULT_METADATA = {
    'title': 'Unknown Title',
    'creator': 'Unknown Author',
    'language': 'unknown',
    'description': '',
    'publisher': '',
}

_TITLE_TAGS = ('h1', 'h2', 'h3')


def open_archive(archive_bytes: bytes) -> zipfile.ZipFile:
    """
    Open EPUB bytes as a zip file.

    Raises:
        MalformedSourceArchive: If the bytes are not a zip archive
    """
    try:
        return zipfile.ZipFile(io.BytesIO(archive_bytes))
    except zipfile.BadZipFile as e:
        raise MalformedSourceArchive(f"Not a valid EPUB/zip archive: {e}", original_error=e)


def read_entry(archive: zipfile.ZipFile, name: str) -> Optional[bytes]:
    """Entry content, or None if the archive has no such entry."""
    try:
        return archive.read(name)
    except KeyError:
        return None


def load_package(archive: zipfile.ZipFile) -> Tuple[PackageManifest, bytes]:
    """
    Locate and parse the package document.

    Returns:
        Tuple of (manifest model, raw OPF bytes)

    Raises:
        MalformedSourceArchive: If container.xml or the OPF is missing or invalid
    """
    opf_path = parse_container_xml(read_entry(archive, CONTAINER_PATH))
    opf_bytes = read_entry(archive, opf_path)
    return parse_opf(opf_bytes, opf_path), opf_bytes


def guess_title(fragment: str, relative_path: str) -> str:
    """First h1-h3 text of a body fragment, else the file name."""
    try:
        parsed = parse_fragment(fragment)
    except XmlParsingError:
        parsed = MarkupFragment()
    for _, node, _ in walk(parsed):
        if node.is_element and node.tag in _TITLE_TAGS:
            text = " ".join(MarkupFragment(children=node.children).text_content().split())
            if text:
                return text
    return posixpath.basename(relative_path) or "Untitled"


def read_document_units(archive_bytes: bytes) -> List[DocumentUnit]:
    """
    Read one unit per (X)HTML spine document, in reading order.

    Args:
        archive_bytes: Complete EPUB file content

    Returns:
        Units with ``index`` = spine position and ``relative_path`` = full
        archive path. A document without a body yields an empty fragment.

    Raises:
        MalformedSourceArchive: If the archive or its package document is unusable
    """
    with open_archive(archive_bytes) as archive:
        manifest, _ = load_package(archive)
        units = []
        for position, entry, item in manifest.spine_items():
            if not item.is_markup:
                continue
            full_path = manifest.full_path(item.href)
            data = read_entry(archive, full_path)
            if data is None:
                continue
            fragment = extract_body_inner(decode_markup(data)) or ""
            units.append(DocumentUnit(
                id=entry.idref,
                relative_path=full_path,
                index=position,
                original_fragment=fragment,
                title=guess_title(fragment, full_path)
            ))
        return units


def read_metadata(archive_bytes: bytes) -> Dict[str, str]:
    """
    Book metadata from the OPF dc: elements, with defaults for missing fields.

    Raises:
        MalformedSourceArchive: If the archive or its package document is unusable
    """
    with open_archive(archive_bytes) as archive:
        manifest, opf_bytes = load_package(archive)
        metadata = dict(DEFAULT_METADATA)
        metadata.update(read_opf_metadata(opf_bytes, manifest.opf_path))
        return metadata
