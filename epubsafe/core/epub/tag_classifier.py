"""HTML tag classification for extraction and structural fingerprinting.

This module groups tag names into the categories the extractor, the
serializer and the structure validator rely on.
"""


class TagClassifier:
    """Classifies HTML tags by the role they play in translation.

    Tag names are compared lower-cased and without namespace prefix
    (``{http://www.w3.org/1999/xhtml}p`` and ``P`` both classify as ``p``).
    """

    # Text below these containers is never sent to the oracle
    SKIPPED_CONTAINERS = {'script', 'style', 'noscript', 'iframe', 'svg',
                          'math', 'code', 'pre'}

    # Ignored entirely when fingerprinting
    NON_CONTENT_TAGS = {'script', 'style', 'noscript'}

    # Counted one by one in the fingerprint
    COUNTED_TAGS = ('h1', 'h2', 'h3', 'h4', 'h5', 'h6', 'p', 'ul', 'ol', 'li',
                    'table', 'thead', 'tbody', 'tr', 'td', 'th', 'blockquote',
                    'pre', 'code', 'img', 'a')

    BLOCK_TAGS = {'h1', 'h2', 'h3', 'h4', 'h5', 'h6', 'p', 'li', 'blockquote',
                  'figcaption', 'td', 'th', 'pre', 'code'}

    INLINE_TAGS = {'a', 'img', 'strong', 'b', 'em', 'i', 'u', 's', 'span', 'br',
                   'sup', 'sub', 'code', 'kbd', 'small', 'mark', 'del', 'ins'}

    HEADING_TAGS = {'h1', 'h2', 'h3', 'h4', 'h5', 'h6'}

    LIST_TAGS = {'ul', 'ol'}

    TABLE_CELL_TAGS = {'td', 'th'}

    # Serialized as self-closing elements
    VOID_TAGS = {'area', 'base', 'br', 'col', 'embed', 'hr', 'img', 'input',
                 'link', 'meta', 'param', 'source', 'track', 'wbr'}

    @staticmethod
    def local_name(tag: str) -> str:
        """Strip any ``{namespace}`` part and lower-case the tag.

        Args:
            tag: Raw tag name

        Returns:
            Local tag name, e.g. "p"
        """
        if not tag:
            return ""
        if '}' in tag:
            tag = tag.split('}', 1)[1]
        return tag.lower()

    def is_skipped_container(self, tag: str) -> bool:
        """Check if text below this tag must be kept verbatim."""
        return self.local_name(tag) in self.SKIPPED_CONTAINERS

    def is_non_content(self, tag: str) -> bool:
        """Check if this tag is ignored by the fingerprint."""
        return self.local_name(tag) in self.NON_CONTENT_TAGS

    def is_block(self, tag: str) -> bool:
        """Check if this tag gets its own block signature."""
        return self.local_name(tag) in self.BLOCK_TAGS

    def is_inline(self, tag: str) -> bool:
        """Check if this tag is part of a block's inline signature."""
        return self.local_name(tag) in self.INLINE_TAGS

    def is_heading(self, tag: str) -> bool:
        """Check if this tag is a heading (h1-h6)."""
        return self.local_name(tag) in self.HEADING_TAGS

    def is_list(self, tag: str) -> bool:
        """Check if this tag is an ordered or unordered list."""
        return self.local_name(tag) in self.LIST_TAGS

    def is_void(self, tag: str) -> bool:
        """Check if this tag never has content."""
        return self.local_name(tag) in self.VOID_TAGS
