"""
End-to-end tests for translate_epub_file with a scripted oracle.

Each test writes a small EPUB to tmp_path, translates it with MockProvider
(upper-cases every segment unless told otherwise) and inspects the rebuilt
archive.
"""

import io
import zipfile

import pytest

from epubsafe.core.epub import (OracleUnavailable, TranslationConfig, ValidationRejected,
                                translate_epub_file)
from epubsafe.core.epub.events import EventBus, EventType
from fixtures.mock_provider import MockProvider
from fixtures.sample_epubs import build_epub, read_entries

CHAPTER1 = "OEBPS/Text/chapter1.xhtml"
CHAPTER2 = "OEBPS/Text/chapter2.xhtml"
CHAPTER3 = "OEBPS/Text/chapter3.xhtml"

LONG_PARAGRAPH = "<p>" + "the quick brown fox jumps over the lazy dog " * 8 + "</p>"

pytestmark = pytest.mark.integration


@pytest.fixture
def output_file(tmp_path):
    return tmp_path / "out" / "book_translated.epub"


@pytest.fixture
def logged():
    return []


@pytest.fixture
def log_callback(logged):
    return lambda *args: logged.append(args)


async def _translate(input_file, output_file, provider, **kwargs):
    kwargs.setdefault("log_callback", lambda *args: None)
    return await translate_epub_file(str(input_file), str(output_file),
                                     "English", "Chinese", llm_client=provider, **kwargs)


class TestSingleMode:

    @pytest.mark.asyncio
    async def test_translates_every_chapter(self, sample_epub_file, sample_epub_bytes, output_file):
        provider = MockProvider()
        metrics = await _translate(sample_epub_file, output_file, provider)

        assert output_file.exists()
        assert metrics.total_units == 3
        assert metrics.translated_units == 3
        assert metrics.failed_units == 0
        assert provider.call_count == 3

        entries = read_entries(output_file.read_bytes())
        original = read_entries(sample_epub_bytes)

        chapter1 = entries[CHAPTER1].decode("utf-8")
        assert "<h1>CHAPTER ONE</h1>" in chapter1
        assert "<em>BRIGHT</em>" in chapter1
        assert '<a href="chapter2.xhtml">THE NEXT CHAPTER</a>' in chapter1
        assert "<title>Chapter 1</title>" in chapter1

        chapter3 = entries[CHAPTER3].decode("utf-8")
        assert "<pre>code stays</pre>" in chapter3
        assert "<td>ALPHA</td>" in chapter3

        assert list(entries) == list(original)
        for name in original:
            if name not in (CHAPTER1, CHAPTER2, CHAPTER3):
                assert entries[name] == original[name]

    @pytest.mark.asyncio
    async def test_mimetype_first_and_stored(self, sample_epub_file, output_file):
        await _translate(sample_epub_file, output_file, MockProvider())

        with zipfile.ZipFile(io.BytesIO(output_file.read_bytes())) as archive:
            first = archive.infolist()[0]
            assert first.filename == "mimetype"
            assert first.compress_type == zipfile.ZIP_STORED
            assert archive.read("mimetype") == b"application/epub+zip"

    @pytest.mark.asyncio
    async def test_identity_translation_keeps_bytes(self, sample_epub_file, sample_epub_bytes, output_file):
        await _translate(sample_epub_file, output_file, MockProvider(translate=lambda text: text))
        assert read_entries(output_file.read_bytes()) == read_entries(sample_epub_bytes)

    @pytest.mark.asyncio
    async def test_svg_cover_survives(self, tmp_path, output_file):
        body = ('<div><svg xmlns="http://www.w3.org/2000/svg" '
                'xmlns:xlink="http://www.w3.org/1999/xlink" version="1.1" '
                'viewBox="0 0 600 800" preserveAspectRatio="xMidYMid meet">'
                '<image width="600" height="800" xlink:href="../Images/cover.png"></image>'
                '</svg></div><p>Caption text</p>')
        input_file = tmp_path / "cover.epub"
        input_file.write_bytes(build_epub(chapters=[("cover.xhtml", body)]))

        metrics = await _translate(input_file, output_file, MockProvider())

        assert metrics.translated_units == 1
        doc = read_entries(output_file.read_bytes())["OEBPS/Text/cover.xhtml"].decode("utf-8")
        assert 'viewBox="0 0 600 800"' in doc
        assert 'preserveAspectRatio="xMidYMid meet"' in doc
        assert 'xlink:href="../Images/cover.png"' in doc
        assert "<p>CAPTION TEXT</p>" in doc

    @pytest.mark.asyncio
    async def test_injected_client_left_open(self, sample_epub_file, output_file):
        provider = MockProvider()
        await _translate(sample_epub_file, output_file, provider)
        assert not provider.closed


class TestBilingualMode:

    @pytest.mark.asyncio
    async def test_translated_siblings_added(self, sample_epub_file, sample_epub_bytes, output_file):
        await _translate(sample_epub_file, output_file, MockProvider(), mode="bilingual")

        entries = read_entries(output_file.read_bytes())
        original = read_entries(sample_epub_bytes)

        assert entries[CHAPTER1] == original[CHAPTER1]
        assert "CHAPTER ONE" in entries["OEBPS/Text/chapter1_translated.xhtml"].decode("utf-8")
        assert "CHAPTER THREE" in entries["OEBPS/Text/chapter3_translated.xhtml"].decode("utf-8")

        opf = entries["OEBPS/content.opf"].decode("utf-8")
        assert 'href="Text/chapter1_translated.xhtml"' in opf
        assert opf.index('idref="chapter1"') < opf.index('idref="chapter1__translated"') < opf.index('idref="chapter2"')


class TestContext:

    @pytest.mark.asyncio
    async def test_digest_reaches_later_prompts(self, sample_epub_file, output_file):
        provider = MockProvider()
        await _translate(sample_epub_file, output_file, provider)

        assert "# CONTEXT" not in provider.prompts[0]
        assert "# CONTEXT" in provider.prompts[1]
        assert "# CONTEXT" in provider.prompts[2]

    @pytest.mark.asyncio
    async def test_glossary_in_every_prompt(self, sample_epub_file, output_file):
        provider = MockProvider()
        await _translate(sample_epub_file, output_file, provider, glossary={"Chapter": "章"})

        assert all('"Chapter" must be translated as "章"' in prompt for prompt in provider.prompts)

    @pytest.mark.asyncio
    async def test_languages_in_system_prompt(self, sample_epub_file, output_file):
        provider = MockProvider()
        await _translate(sample_epub_file, output_file, provider)
        assert "English into Chinese" in provider.system_prompts[0]


class TestFailures:

    @pytest.mark.asyncio
    async def test_retry_after_unavailable_oracle(self, sample_epub_file, output_file, no_retry_delay):
        provider = MockProvider(responses=[OracleUnavailable("503 Service Unavailable", status_code=503)])
        metrics = await _translate(sample_epub_file, output_file, provider)

        assert metrics.translated_units == 3
        assert metrics.successful_after_retry == 1
        assert provider.call_count == 4
        assert "CHAPTER ONE" in read_entries(output_file.read_bytes())[CHAPTER1].decode("utf-8")

    @pytest.mark.asyncio
    async def test_persistent_failure_keeps_original(self, sample_epub_file, sample_epub_bytes,
                                                     output_file, no_retry_delay, logged, log_callback):
        provider = MockProvider(responses=[OracleUnavailable("down"), OracleUnavailable("down")])
        metrics = await _translate(sample_epub_file, output_file, provider, log_callback=log_callback)

        assert metrics.failed_units == 1
        assert metrics.translated_units == 2
        assert CHAPTER1 in metrics.unit_errors

        entries = read_entries(output_file.read_bytes())
        assert entries[CHAPTER1] == read_entries(sample_epub_bytes)[CHAPTER1]
        assert "CHAPTER TWO" in entries[CHAPTER2].decode("utf-8")
        assert any(entry[0] == "unit_translation_error" for entry in logged)

    @pytest.mark.asyncio
    async def test_unparseable_answer_keeps_original(self, sample_epub_file, output_file, no_retry_delay):
        provider = MockProvider(responses=["I cannot help with that.", "Still no array."])
        metrics = await _translate(sample_epub_file, output_file, provider)

        assert metrics.failed_units == 1
        assert metrics.translated_units == 2

    @pytest.mark.asyncio
    async def test_missing_input(self, tmp_path, output_file):
        with pytest.raises(FileNotFoundError):
            await _translate(tmp_path / "missing.epub", output_file, MockProvider())
        assert not output_file.exists()


class TestValidationFallback:

    @pytest.fixture
    def long_epub_file(self, tmp_path):
        path = tmp_path / "long.epub"
        path.write_bytes(build_epub(chapters=[("long.xhtml", "\n" + LONG_PARAGRAPH + "\n")]))
        return path

    @pytest.mark.asyncio
    async def test_collapsed_translation_falls_back(self, long_epub_file, output_file):
        metrics = await _translate(long_epub_file, output_file, MockProvider(translate=lambda text: "x"))

        assert metrics.fallback_units == 1
        assert metrics.translated_units == 0
        assert read_entries(output_file.read_bytes()) == read_entries(long_epub_file.read_bytes())

    @pytest.mark.asyncio
    async def test_strict_mode_aborts(self, long_epub_file, output_file):
        with pytest.raises(ValidationRejected):
            await _translate(long_epub_file, output_file, MockProvider(translate=lambda text: "x"),
                             config=TranslationConfig(strict=True))
        assert not output_file.exists()


class TestCallbacks:

    @pytest.mark.asyncio
    async def test_interruption_leaves_remaining_units(self, sample_epub_file, sample_epub_bytes, output_file):
        provider = MockProvider()
        metrics = await _translate(sample_epub_file, output_file, provider,
                                   check_interruption_callback=lambda: provider.call_count >= 1)

        assert metrics.translated_units == 1
        assert metrics.untouched_units == 2
        entries = read_entries(output_file.read_bytes())
        assert "CHAPTER ONE" in entries[CHAPTER1].decode("utf-8")
        assert entries[CHAPTER2] == read_entries(sample_epub_bytes)[CHAPTER2]

    @pytest.mark.asyncio
    async def test_progress_and_stats(self, sample_epub_file, output_file):
        progress, stats = [], []
        await _translate(sample_epub_file, output_file, MockProvider(),
                         progress_callback=progress.append, stats_callback=stats.append)

        assert progress[0] == 0
        assert progress[-1] == 100
        assert progress == sorted(progress)
        assert stats[-1] == {'total_units': 3, 'completed_units': 3, 'fallback_units': 0, 'failed_units': 0}

    @pytest.mark.asyncio
    async def test_units_collected_logged(self, sample_epub_file, output_file, logged, log_callback):
        await _translate(sample_epub_file, output_file, MockProvider(), log_callback=log_callback)

        collected = [entry for entry in logged if entry[0] == "units_collected"]
        assert collected[0][2] == {'total_units': 3}
        keys = [entry[0] for entry in logged]
        assert keys.index("epub_save_success") < keys.index("translation_metrics")

    @pytest.mark.asyncio
    async def test_events(self, sample_epub_file, output_file):
        bus = EventBus()
        bus.enable_history()
        await _translate(sample_epub_file, output_file, MockProvider(), event_bus=bus)

        history = bus.get_history()
        assert history[0].type == EventType.TRANSLATION_STARTED
        assert history[0].data == {'total_units': 3, 'mode': 'single'}
        assert history[-1].type == EventType.TRANSLATION_COMPLETED
        assert len(bus.get_events_by_type(EventType.UNIT_TRANSLATED)) == 3
