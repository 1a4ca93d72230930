"""
EPUB translation driver

Reads an EPUB, translates its spine documents one after the other while
carrying the consistency digest, and writes the rebuilt archive. Units that
cannot be translated keep their original content; the book is always
rebuilt.
"""
import asyncio
import os
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import aiofiles
from tqdm.auto import tqdm

from epubsafe.config import (API_ENDPOINT, API_KEY, DEFAULT_MODEL, LLM_PROVIDER,
                             MAX_TRANSLATION_ATTEMPTS, RETRY_DELAY_SECONDS)
from epubsafe.core.llm.base import LLMProvider
from .archive_reader import read_document_units
from .container import TranslationConfig, TranslationContainer
from .events import Event, EventBus, EventType
from .exceptions import (EpubTranslationError, OracleResponseUnparseable,
                         OracleUnavailable, ValidationRejected)
from .rebuilder import OutputMode, rebuild
from .translation_metrics import TranslationMetrics
from .unit import UnitResult, translate_unit

GlossaryInput = Union[Mapping[str, str], Sequence[Tuple[str, str]], None]

RECOVERABLE_ERRORS = (OracleUnavailable, OracleResponseUnparseable)


def normalize_glossary(glossary: GlossaryInput) -> List[Tuple[str, str]]:
    """Glossary as an ordered list of (term, replacement) pairs."""
    if not glossary:
        return []
    if isinstance(glossary, Mapping):
        return [(str(term), str(replacement)) for term, replacement in glossary.items()]
    return [(str(term), str(replacement)) for term, replacement in glossary]


async def translate_epub_file(
    input_filepath: str,
    output_filepath: str,
    source_language: str = "English",
    target_language: str = "Chinese",
    glossary: GlossaryInput = None,
    mode: Union[OutputMode, str] = OutputMode.SINGLE,
    llm_client: Optional[LLMProvider] = None,
    model_name: str = DEFAULT_MODEL,
    api_endpoint: str = API_ENDPOINT,
    api_key: Optional[str] = None,
    llm_provider: str = LLM_PROVIDER,
    config: Optional[TranslationConfig] = None,
    progress_callback: Optional[Callable] = None,
    log_callback: Optional[Callable] = None,
    stats_callback: Optional[Callable] = None,
    check_interruption_callback: Optional[Callable] = None,
    event_bus: Optional[EventBus] = None
) -> TranslationMetrics:
    """
    Translate an EPUB file through the oracle, preserving its structure.

    Args:
        input_filepath: Path to input EPUB
        output_filepath: Path to output EPUB
        source_language: Source language
        target_language: Target language
        glossary: Mapping or (term, replacement) pairs the oracle must honour
        mode: "single" (translated book) or "bilingual" (original + translated pages)
        llm_client: Oracle client; created from the endpoint settings if None
        model_name: Model used when creating the client
        api_endpoint: Endpoint used when creating the client
        api_key: API key used when creating the client
        llm_provider: Provider type used when creating the client
        config: Pipeline tunables
        progress_callback: Receives progress in percent
        log_callback: log_callback(message_key, details, data)
        stats_callback: Receives a dict of running unit counts
        check_interruption_callback: Returns True to stop issuing further units
        event_bus: Optional bus receiving pipeline events

    Returns:
        TranslationMetrics summary

    Raises:
        FileNotFoundError: If the input file does not exist
        MalformedSourceArchive: If the input is not a usable EPUB
        ValidationRejected: Only when config.strict is set
    """
    if not os.path.exists(input_filepath):
        err_msg = f"ERROR: Input EPUB file '{input_filepath}' not found."
        if log_callback:
            log_callback("epub_input_file_not_found_error", err_msg)
        raise FileNotFoundError(err_msg)

    mode = OutputMode(mode)
    config = config or TranslationConfig()
    glossary_pairs = normalize_glossary(glossary)

    async with aiofiles.open(input_filepath, 'rb') as f:
        archive_bytes = await f.read()

    units = read_document_units(archive_bytes)
    if log_callback:
        log_callback("units_collected", f"{len(units)} documents to translate",
                     {'total_units': len(units)})

    container = TranslationContainer(config, event_bus=event_bus)
    owns_client = llm_client is None
    if owns_client:
        # Import here to avoid circular dependencies
        from epubsafe.core.llm.factory import create_llm_client
        llm_client = create_llm_client(
            llm_provider,
            api_endpoint=api_endpoint,
            model=model_name,
            api_key=api_key if api_key is not None else API_KEY,
            log_callback=log_callback
        )
    orchestrator = container.create_orchestrator(llm_client, log_callback=log_callback)

    if event_bus:
        event_bus.publish(Event(EventType.TRANSLATION_STARTED,
                                {'total_units': len(units), 'mode': mode.value},
                                source="epub_translator"))

    metrics = TranslationMetrics()
    results: List[UnitResult] = []
    digest = ""

    try:
        iterator = tqdm(units, desc=f"Translating {source_language} to {target_language}",
                        unit="doc") if not log_callback else units

        for i, unit in enumerate(iterator):
            if check_interruption_callback and check_interruption_callback():
                message = f"Translation interrupted at document {i + 1}/{len(units)}."
                if log_callback:
                    log_callback("epub_translation_interrupted", message)
                else:
                    tqdm.write(f"\n{message}")
                for remaining in units[i:]:
                    result = UnitResult.untouched(remaining, digest)
                    results.append(result)
                    metrics.record(result)
                break

            if progress_callback and units:
                progress_callback((i / len(units)) * 100)

            result = await _translate_unit_with_retries(
                unit, orchestrator, container, source_language, target_language,
                glossary_pairs, digest, event_bus, log_callback
            )
            digest = result.digest
            results.append(result)
            metrics.record(result)

            if stats_callback:
                stats_callback({
                    'total_units': len(units),
                    'completed_units': i + 1,
                    'fallback_units': metrics.fallback_units,
                    'failed_units': metrics.failed_units
                })
    finally:
        if owns_client:
            await llm_client.close()

    output_bytes = rebuild(archive_bytes, [r.to_unit_fragment() for r in results], mode)

    output_dir = os.path.dirname(output_filepath)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
    async with aiofiles.open(output_filepath, 'wb') as f:
        await f.write(output_bytes)

    metrics.finalize()
    if log_callback:
        log_callback("epub_save_success", f"Translated EPUB saved: '{output_filepath}'")
        metrics.log_summary(log_callback)
    if event_bus:
        event_bus.publish(Event(EventType.TRANSLATION_COMPLETED, metrics.to_dict(),
                                source="epub_translator"))
    if progress_callback:
        progress_callback(100)

    return metrics


async def _translate_unit_with_retries(unit, orchestrator, container: TranslationContainer,
                                       source_language: str, target_language: str,
                                       glossary: List[Tuple[str, str]], digest: str,
                                       event_bus: Optional[EventBus],
                                       log_callback: Optional[Callable]) -> UnitResult:
    """Run translate_unit, retrying recoverable oracle errors with a fixed delay."""
    max_attempts = max(MAX_TRANSLATION_ATTEMPTS, 1)
    for attempt in range(1, max_attempts + 1):
        try:
            result = await translate_unit(
                unit, orchestrator, container.validator,
                source_language, target_language,
                glossary=glossary,
                prior_digest=digest,
                strict=container.config.strict,
                event_bus=event_bus,
                log_callback=log_callback
            )
            result.attempts = attempt
            return result
        except ValidationRejected:
            raise
        except RECOVERABLE_ERRORS as e:
            if attempt < max_attempts:
                _report(log_callback, "unit_retry_warning",
                        f"{unit.relative_path}: {e} (attempt {attempt}/{max_attempts}), retrying")
                await asyncio.sleep(RETRY_DELAY_SECONDS)
                continue
            _report(log_callback, "unit_translation_error",
                    f"{unit.relative_path}: {e}, keeping original content")
            return UnitResult.failed(unit, e, digest=digest, attempts=attempt)
        except EpubTranslationError as e:
            _report(log_callback, "unit_translation_error",
                    f"{unit.relative_path}: {e}, keeping original content")
            return UnitResult.failed(unit, e, digest=digest, attempts=attempt)


def _report(log_callback: Optional[Callable], message_key: str, message: str) -> None:
    if log_callback:
        log_callback(message_key, message)
    else:
        tqdm.write(f"\n{message}")


def build_stats(metrics: TranslationMetrics) -> Dict:
    """Stats payload in the shape used by the CLI end-of-translation summary."""
    return {
        'translated_units': metrics.translated_units,
        'fallback_units': metrics.fallback_units,
        'failed_units': metrics.failed_units,
    }
