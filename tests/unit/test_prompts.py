"""Unit tests for the segment batch prompt."""

import json

from epubsafe.prompts import PromptPair, format_glossary_lines, generate_segment_batch_prompt
from fixtures.mock_provider import segments_from_prompt


def test_segments_embedded_as_json():
    segments = ["Hello ", "World", 'He said "hi"\n']
    prompt = generate_segment_batch_prompt(segments, "English", "Chinese")

    assert isinstance(prompt, PromptPair)
    assert json.dumps(segments, ensure_ascii=False) in prompt.user
    assert segments_from_prompt(prompt.user) == segments
    assert "SAME LENGTH (3 items)" in prompt.user


def test_languages():
    prompt = generate_segment_batch_prompt(["x"], "German", "Japanese")
    assert "German into Japanese" in prompt.system
    assert "- Target language: Japanese" in prompt.user


def test_non_ascii_kept_readable():
    prompt = generate_segment_batch_prompt(["café"], "French", "English")
    assert '["café"]' in prompt.user


def test_glossary_section():
    prompt = generate_segment_batch_prompt(["Frodo"], glossary=[("Frodo", "佛罗多"), ("Shire", "夏尔")])
    assert "# GLOSSARY (MANDATORY)" in prompt.user
    assert prompt.user.index('"Frodo" must be translated as "佛罗多"') < prompt.user.index('"Shire"')


def test_no_glossary_no_context():
    prompt = generate_segment_batch_prompt(["x"], previous_digest="   ")
    assert "# GLOSSARY" not in prompt.user
    assert "# CONTEXT" not in prompt.user


def test_context_section():
    prompt = generate_segment_batch_prompt(["x"], previous_digest="上一段的结尾")
    assert "# CONTEXT" in prompt.user
    assert "上一段的结尾" in prompt.user


def test_format_glossary_lines():
    assert format_glossary_lines(None) == ""
    assert format_glossary_lines([("a", "b")]) == '- "a" must be translated as "b"'
