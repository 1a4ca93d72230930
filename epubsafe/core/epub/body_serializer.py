"""
Body extraction and replacement for XHTML documents

Chapter files are patched textually: only the characters between the <body>
start tag and </body> are replaced, so the XML declaration, doctype, head and
the body attributes stay byte-identical.
"""
import codecs
import re
from typing import Optional

from lxml import etree
from lxml import html as lxml_html

from .exceptions import XmlParsingError

_BODY_REGEX = re.compile(r'(<body\b[^>]*>)(.*?)(</body\s*>)', re.DOTALL | re.IGNORECASE)
_HTML_DOCUMENT_REGEX = re.compile(r'<html[\s>]', re.IGNORECASE)


# Longest marks first: the UTF-32 LE mark starts with the UTF-16 LE one
_BYTE_ORDER_MARKS = (
    (codecs.BOM_UTF32_LE, 'utf-32-le'),
    (codecs.BOM_UTF32_BE, 'utf-32-be'),
    (codecs.BOM_UTF8, 'utf-8'),
    (codecs.BOM_UTF16_LE, 'utf-16-le'),
    (codecs.BOM_UTF16_BE, 'utf-16-be'),
)
_XML_DECLARATION_ENCODING = re.compile(rb'^<\?xml[^>]*?encoding\s*=\s*["\']([A-Za-z0-9._:-]+)["\']')


def detect_encoding(data: bytes) -> str:
    """
    Encoding of a chapter file.

    The byte order mark wins, then a BOM-less UTF-16 ``<?`` start, then the
    XML declaration. Anything else is read as UTF-8.

    Returns:
        A Python codec name. Explicit-endian codecs are used so a leading
        BOM is decoded as a character and written back unchanged.
    """
    for mark, encoding in _BYTE_ORDER_MARKS:
        if data.startswith(mark):
            return encoding
    if data.startswith(b'<\x00?\x00'):
        return 'utf-16-le'
    if data.startswith(b'\x00<\x00?'):
        return 'utf-16-be'

    match = _XML_DECLARATION_ENCODING.match(data)
    if match:
        try:
            name = codecs.lookup(match.group(1).decode('ascii')).name
        except LookupError:
            return 'utf-8'
        # A declaration readable as ASCII cannot belong to a UTF-16/32 file
        if not name.startswith(('utf-16', 'utf-32')):
            return name
    return 'utf-8'


def decode_markup(data: bytes, encoding: Optional[str] = None) -> str:
    """Decode a chapter file, keeping a leading BOM as a character."""
    return data.decode(encoding or detect_encoding(data), errors='replace')


def encode_markup(document: str, encoding: str) -> bytes:
    """Encode a patched chapter; characters the encoding lacks become character references."""
    return document.encode(encoding, errors='xmlcharrefreplace')


def extract_body_inner(document: str) -> Optional[str]:
    """
    Return the inner markup of <body>.

    Args:
        document: Full XHTML document

    Returns:
        The raw characters between <body ...> and </body>, or None if the
        document has no body element
    """
    match = _BODY_REGEX.search(document or "")
    if not match:
        return None
    return match.group(2)


def replace_body_inner(document: str, new_inner: str) -> str:
    """
    Replace the inner markup of <body>, keeping everything else verbatim.

    Args:
        document: Full XHTML document
        new_inner: Replacement body content

    Returns:
        Patched document (unchanged if it has no body element)
    """
    match = _BODY_REGEX.search(document or "")
    if not match:
        return document
    return document[:match.start(2)] + new_inner + document[match.end(2):]


def normalize_body_html(content: Optional[str]) -> str:
    """
    Reduce a full HTML document to its body content.

    Prevents nested <html> elements when a caller hands over a whole
    document instead of a body fragment. Fragments are returned unchanged.

    Raises:
        XmlParsingError: If a full document cannot be parsed at all
    """
    if not content:
        return ""
    if not _HTML_DOCUMENT_REGEX.search(content):
        return content

    inner = extract_body_inner(content)
    if inner is not None:
        return inner

    try:
        document = lxml_html.document_fromstring(content)
    except (etree.ParserError, ValueError) as e:
        raise XmlParsingError(f"Cannot parse HTML document: {e}",
                              original_error=e, content_preview=content[:200])
    body = document.find('body')
    if body is None:
        return content
    parts = [body.text or ""]
    parts.extend(etree.tostring(child, encoding='unicode', method='xml') for child in body)
    return "".join(parts)
