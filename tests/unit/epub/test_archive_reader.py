"""Unit tests for reading document units from an EPUB."""

import pytest

from epubsafe.core.epub.archive_reader import guess_title, read_document_units, read_metadata
from epubsafe.core.epub.exceptions import MalformedSourceArchive
from epubsafe.core.epub.unit import UnitStatus
from fixtures.sample_epubs import DEFAULT_CHAPTERS, build_epub, create_opf


class TestReadDocumentUnits:

    def test_spine_documents_in_order(self, sample_epub_bytes):
        units = read_document_units(sample_epub_bytes)

        assert [u.id for u in units] == ["chapter1", "chapter2", "chapter3"]
        assert [u.index for u in units] == [0, 1, 2]
        assert units[0].relative_path == "OEBPS/Text/chapter1.xhtml"
        assert all(u.status is UnitStatus.UNTRANSLATED for u in units)

    def test_fragment_is_raw_body_content(self, sample_epub_bytes):
        units = read_document_units(sample_epub_bytes)
        assert [u.original_fragment for u in units] == [body for _, body in DEFAULT_CHAPTERS]

    def test_titles(self, sample_epub_bytes):
        units = read_document_units(sample_epub_bytes)
        assert [u.title for u in units] == ["Chapter One", "Chapter Two", "Chapter Three"]

    def test_navigation_document_not_in_spine(self, sample_epub_bytes):
        units = read_document_units(sample_epub_bytes)
        assert all("nav.xhtml" not in u.relative_path for u in units)

    def test_non_markup_spine_items_skipped(self):
        opf = create_opf(["a.xhtml"]).replace('<itemref idref="chapter1"/>',
                                               '<itemref idref="cover-image"/><itemref idref="chapter1"/>')
        units = read_document_units(build_epub(chapters=[("a.xhtml", "<p>A</p>")], opf_override=opf))

        assert [u.id for u in units] == ["chapter1"]
        assert units[0].index == 1

    def test_missing_document_skipped(self):
        opf = create_opf(["a.xhtml", "gone.xhtml"])
        units = read_document_units(build_epub(chapters=[("a.xhtml", "<p>A</p>")], opf_override=opf))
        assert [u.id for u in units] == ["chapter1"]

    def test_document_without_body(self):
        archive = build_epub(chapters=[("a.xhtml", "")],
                             chapter_documents={"a.xhtml": b"<html><head/></html>"})
        units = read_document_units(archive)
        assert units[0].original_fragment == ""
        assert units[0].title == "a.xhtml"

    def test_missing_container(self):
        with pytest.raises(MalformedSourceArchive):
            read_document_units(build_epub(include_container=False))

    def test_not_a_zip(self):
        with pytest.raises(MalformedSourceArchive):
            read_document_units(b"plain text, not an archive")


def test_read_metadata(sample_epub_bytes):
    metadata = read_metadata(sample_epub_bytes)
    assert metadata["title"] == "Test Book"
    assert metadata["creator"] == "Test Author"
    assert metadata["publisher"] == ""


@pytest.mark.parametrize("fragment, expected", [
    ("<h2>The <em>Return</em></h2><p>x</p>", "The Return"),
    ("<p>No heading</p>", "ch9.xhtml"),
    ("", "ch9.xhtml"),
])
def test_guess_title(fragment, expected):
    assert guess_title(fragment, "OEBPS/Text/ch9.xhtml") == expected
