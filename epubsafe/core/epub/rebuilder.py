"""
Container patch rebuilder

Rebuilds an EPUB by patching the original archive: only the <body> content
of spine documents changes (single mode), or translated siblings are added
next to untouched originals (bilingual mode). Navigation, stylesheets,
images and fonts are copied byte for byte.
"""
import io
import posixpath
import zipfile
from enum import Enum
from typing import Dict, Optional, Sequence, Union
from urllib.parse import unquote

from epubsafe.config import (BILINGUAL_FILE_SUFFIX, BILINGUAL_ID_SUFFIX,
                             MIMETYPE_CONTENT, MIMETYPE_ENTRY)
from .archive_reader import load_package, open_archive, read_entry
from .body_serializer import (decode_markup, detect_encoding, encode_markup, extract_body_inner,
                              normalize_body_html, replace_body_inner)
from .manifest import (ManifestBuilder, ManifestItem, SpineEntry,
                       safe_id, serialize_opf, strip_fragment)
from .unit import UnitFragment


class OutputMode(Enum):
    """How translated content is written"""
    SINGLE = "single"
    BILINGUAL = "bilingual"


def translated_sibling_path(path: str) -> str:
    """``Text/ch1.xhtml`` -> ``Text/ch1_translated.xhtml``"""
    directory, name = posixpath.split(path)
    stem, ext = posixpath.splitext(name)
    if not ext:
        return posixpath.join(directory, f"{name}{BILINGUAL_FILE_SUFFIX}.xhtml")
    return posixpath.join(directory, f"{stem}{BILINGUAL_FILE_SUFFIX}{ext}")


class _FragmentLookup:
    """Finds the unit fragment for a spine document: by href, by full path, then by spine index."""

    def __init__(self, unit_fragments: Sequence[UnitFragment]):
        self._by_path: Dict[str, UnitFragment] = {}
        self._by_index: Dict[int, UnitFragment] = {}
        for unit in unit_fragments:
            if unit.relative_path:
                key = unquote(strip_fragment(unit.relative_path))
                self._by_path.setdefault(posixpath.normpath(key), unit)
            if unit.index is not None:
                self._by_index.setdefault(unit.index, unit)

    def find(self, href: str, full_path: str, spine_index: int) -> Optional[UnitFragment]:
        href_key = posixpath.normpath(unquote(strip_fragment(href)))
        return (self._by_path.get(href_key)
                or self._by_path.get(posixpath.normpath(full_path))
                or self._by_index.get(spine_index))


def _clone_info(info: zipfile.ZipInfo) -> zipfile.ZipInfo:
    clone = zipfile.ZipInfo(info.filename, date_time=info.date_time)
    clone.compress_type = info.compress_type
    clone.external_attr = info.external_attr
    clone.create_system = info.create_system
    clone.comment = info.comment
    return clone


def _patch_document(original: bytes, fragment: str) -> bytes:
    """Chapter bytes with the body replaced, in the chapter's own encoding.

    The original bytes are returned as they are when the body would not
    change or the document has no body.
    """
    encoding = detect_encoding(original)
    document = decode_markup(original, encoding)
    new_inner = normalize_body_html(fragment)
    current = extract_body_inner(document)
    if current is None or current == new_inner:
        return original
    return encode_markup(replace_body_inner(document, new_inner), encoding)


def rebuild(original_archive_bytes: bytes,
            unit_fragments: Sequence[UnitFragment],
            mode: Union[OutputMode, str] = OutputMode.SINGLE) -> bytes:
    """
    Build the output EPUB from the original archive and per-unit fragments.

    Args:
        original_archive_bytes: Source EPUB content
        unit_fragments: Body content per unit (matched by path, then spine index)
        mode: "single" replaces bodies in place; "bilingual" adds translated siblings

    Returns:
        Output EPUB content. ``mimetype`` is the first, uncompressed entry.

    Raises:
        MalformedSourceArchive: If container.xml or the OPF is missing or invalid
        ValueError: If the mode is unknown
    """
    mode = OutputMode(mode)
    lookup = _FragmentLookup(unit_fragments)

    with open_archive(original_archive_bytes) as source:
        manifest, opf_bytes = load_package(source)
        existing_names = set(source.namelist())

        patched: Dict[str, bytes] = {}
        added: Dict[str, bytes] = {}
        builder = ManifestBuilder(manifest)

        for position, entry, item in manifest.spine_items():
            if not item.is_markup:
                continue
            full_path = manifest.full_path(item.href)
            original = read_entry(source, full_path)
            if original is None:
                continue
            unit = lookup.find(item.href, full_path, position)
            if unit is None or unit.fragment is None:
                continue

            if mode is OutputMode.SINGLE:
                patched[full_path] = _patch_document(original, unit.fragment)
                continue

            new_id = safe_id(f"{entry.idref}{BILINGUAL_ID_SUFFIX}")
            new_path = translated_sibling_path(full_path)
            if builder.has_item(new_id) or new_path in existing_names or new_path in added:
                continue
            added[new_path] = _patch_document(original, unit.fragment)
            builder.add_item(ManifestItem(
                id=new_id,
                href=translated_sibling_path(strip_fragment(item.href)),
                media_type=item.media_type
            ))
            builder.insert_spine_after(entry.idref, SpineEntry(idref=new_id, linear=entry.linear))

        if added:
            patched[manifest.opf_path] = serialize_opf(opf_bytes, manifest, builder.build())

        return _write_archive(source, patched, added)


def _write_archive(source: zipfile.ZipFile, patched: Dict[str, bytes], added: Dict[str, bytes]) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, 'w') as output:
        output.writestr(zipfile.ZipInfo(MIMETYPE_ENTRY), MIMETYPE_CONTENT.encode('ascii'),
                        compress_type=zipfile.ZIP_STORED)
        written = {MIMETYPE_ENTRY}

        for info in source.infolist():
            if info.filename in written:
                continue
            written.add(info.filename)
            if info.is_dir():
                output.writestr(_clone_info(info), b'')
                continue
            data = patched.get(info.filename)
            if data is None:
                data = source.read(info.filename)
            output.writestr(_clone_info(info), data)

        for name, data in added.items():
            output.writestr(name, data, compress_type=zipfile.ZIP_DEFLATED)

    return buffer.getvalue()
