"""Unit tests for JsonArrayExtractor."""

import pytest

from epubsafe.core.llm.utils.extraction import JsonArrayExtractor


@pytest.fixture
def extractor():
    return JsonArrayExtractor()


class TestStrictParse:

    def test_plain_array(self, extractor):
        assert extractor.extract('["Bonjour", "Monde"]') == ["Bonjour", "Monde"]

    def test_surrounding_whitespace(self, extractor):
        assert extractor.extract('\n  ["a"]  \n') == ["a"]

    def test_empty_array(self, extractor):
        assert extractor.extract('[]') == []

    def test_unicode_and_escapes(self, extractor):
        assert extractor.extract('["一\\"二\\"", "line\\nbreak"]') == ['一"二"', "line\nbreak"]


class TestWrappedAnswers:

    def test_code_fence(self, extractor):
        assert extractor.extract('```json\n["a", "b"]\n```') == ["a", "b"]

    def test_code_fence_without_language(self, extractor):
        assert extractor.extract('```\n["a"]\n```') == ["a"]

    def test_think_block(self, extractor):
        response = '<think>The user wants [1, 2] translated</think>\n["Salut"]'
        assert extractor.extract(response) == ["Salut"]

    def test_orphan_think_close(self, extractor):
        assert extractor.extract('reasoning was cut off</think>["Salut"]') == ["Salut"]

    def test_prose_around_array(self, extractor):
        assert extractor.extract('Sure! Here it is: ["Bonjour", "Monde"] Hope it helps.') == ["Bonjour", "Monde"]

    def test_brackets_inside_strings(self, extractor):
        assert extractor.extract('Result: ["see [1]", "a ] b"] done') == ["see [1]", "a ] b"]

    def test_array_inside_object(self, extractor):
        assert extractor.extract('{"translations": ["a", "b"]}') == ["a", "b"]

    def test_skips_non_string_candidates(self, extractor):
        assert extractor.extract('Indexes [1, 2] then ["x", "y"]') == ["x", "y"]


class TestFailures:

    @pytest.mark.parametrize("response", [
        "",
        None,
        "I cannot translate this.",
        '["a", 2]',
        '["unterminated", "array"',
    ])
    def test_no_usable_array(self, extractor, response):
        assert extractor.extract(response) is None

    def test_candidate_limit(self):
        extractor = JsonArrayExtractor(max_candidates=2)
        assert extractor.extract('[1] [2] ["late"]') is None
        assert JsonArrayExtractor(max_candidates=3).extract('[1] [2] ["late"]') == ["late"]

    def test_scan_length_limit(self):
        extractor = JsonArrayExtractor(max_scan_chars=20)
        response = 'Some long preamble text. ["a"]'
        assert extractor.extract(response) is None
        assert extractor.extract('["a"]') == ["a"]
