"""Unit tests for SegmentExtractor."""

import pytest

from epubsafe.core.epub.exceptions import SegmentCountMismatch
from epubsafe.core.epub.markup_tree import parse_fragment
from epubsafe.core.epub.segment_extractor import SegmentExtractor


@pytest.fixture
def extractor():
    return SegmentExtractor()


class TestExtract:
    """Collecting translatable text runs."""

    def test_document_order(self, extractor):
        segments = extractor.extract('<h1>Title</h1><p>Hello <b>World</b>!</p>')
        assert [s.text for s in segments] == ['Title', 'Hello ', 'World', '!']

    def test_whitespace_is_kept_inside_segments(self, extractor):
        segments = extractor.extract('<p>  padded  </p>')
        assert segments[0].text == '  padded  '

    def test_whitespace_only_nodes_skipped(self, extractor):
        segments = extractor.extract('\n<p>A</p>\n  <p>B</p>\n')
        assert [s.text for s in segments] == ['A', 'B']

    def test_skipped_containers(self, extractor):
        html = ('<p>Keep</p><script>var x = 1;</script><style>p {}</style>'
                '<pre>verbatim</pre><p><code>x()</code> call</p>')
        segments = extractor.extract(html)
        assert [s.text for s in segments] == ['Keep', ' call']

    def test_anchor_points_at_text_node(self, extractor):
        fragment = parse_fragment('<p>Hello <b>World</b></p>')
        segments = extractor.extract(fragment)
        assert fragment.node_at(segments[1].anchor).text == 'World'

    def test_empty_fragment(self, extractor):
        assert extractor.extract('') == []
        assert extractor.extract('<img src="a.png"/>') == []


class TestReinsert:
    """Writing translations back."""

    def test_reinsert_translations(self, extractor):
        fragment = parse_fragment('<p>Hello <a href="x.html">World</a></p>')
        result = extractor.reinsert(fragment, ['Bonjour ', 'Monde'])
        assert result.to_html() == '<p>Bonjour <a href="x.html">Monde</a></p>'

    def test_reinsert_keeps_source_spacing(self, extractor):
        fragment = parse_fragment('<p>Hello <em>world</em> again</p>')
        result = extractor.reinsert(fragment, ['Bonjour', 'monde', 'encore'])
        assert result.to_html() == '<p>Bonjour <em>monde</em> encore</p>'

    def test_reinsert_drops_oracle_spacing(self, extractor):
        fragment = parse_fragment('<li>\n  Item\n</li>')
        result = extractor.reinsert(fragment, [' Article  '])
        assert result.to_html() == '<li>\n  Article\n</li>'

    def test_reinsert_originals_is_identity(self, extractor):
        html = '<h2>T</h2><ul><li>One <em>two</em></li><li>Three</li></ul><pre>code</pre>'
        fragment = parse_fragment(html)
        texts = [s.text for s in extractor.extract(fragment)]

        result = extractor.reinsert(fragment, texts)

        assert result == fragment
        assert result.to_html() == fragment.to_html()

    def test_input_fragment_untouched(self, extractor):
        fragment = parse_fragment('<p>Hello</p>')
        extractor.reinsert(fragment, ['Salut'])
        assert fragment.to_html() == '<p>Hello</p>'

    def test_markup_in_translation_is_text(self, extractor):
        result = extractor.reinsert('<p>Hello</p>', ['<b>Salut</b>'])
        assert result.to_html() == '<p>&lt;b&gt;Salut&lt;/b&gt;</p>'

    @pytest.mark.parametrize("translations", [[], ['a'], ['a', 'b', 'c']])
    def test_count_mismatch(self, extractor, translations):
        with pytest.raises(SegmentCountMismatch) as exc_info:
            extractor.reinsert('<p>One</p><p>Two</p>', translations)
        assert exc_info.value.expected_count == 2
        assert exc_info.value.actual_count == len(translations)
