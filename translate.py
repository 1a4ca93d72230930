"""
Command-line interface for EPUB translation
"""
import argparse
import asyncio
import sys

from epubsafe.config import (DEFAULT_MODEL, API_ENDPOINT, API_KEY, LLM_PROVIDER, OUTPUT_DIR,
                             DEFAULT_OUTPUT_MODE, DEFAULT_SOURCE_LANGUAGE, DEFAULT_TARGET_LANGUAGE)
from epubsafe.core.epub import translate_epub_file, OutputMode, EpubTranslationError
from epubsafe.core.epub.translator import build_stats
from epubsafe.utils.file_utils import default_output_path, get_unique_output_path, load_glossary
from epubsafe.utils.unified_logger import setup_cli_logger, LogType


def build_parser():
    parser = argparse.ArgumentParser(description="Translate an EPUB file using an LLM while preserving its structure.")
    parser.add_argument("-i", "--input", required=True, help="Path to the input EPUB file.")
    parser.add_argument("-o", "--output", default=None, help=f"Path to the output EPUB. If not specified, written to '{OUTPUT_DIR}/'.")
    parser.add_argument("-sl", "--source_lang", default=DEFAULT_SOURCE_LANGUAGE, help=f"Source language (default: {DEFAULT_SOURCE_LANGUAGE}).")
    parser.add_argument("-tl", "--target_lang", default=DEFAULT_TARGET_LANGUAGE, help=f"Target language (default: {DEFAULT_TARGET_LANGUAGE}).")
    parser.add_argument("-m", "--model", default=DEFAULT_MODEL, help=f"LLM model (default: {DEFAULT_MODEL}).")
    parser.add_argument("--api_endpoint", default=API_ENDPOINT, help=f"OpenAI compatible chat completions endpoint (default: {API_ENDPOINT}).")
    parser.add_argument("--api_key", default=API_KEY, help="API key for the endpoint (default: API_KEY from environment).")
    parser.add_argument("--provider", default=LLM_PROVIDER, choices=["openai", "deepseek", "kimi"], help=f"LLM provider to use (default: {LLM_PROVIDER}).")
    parser.add_argument("--mode", default=DEFAULT_OUTPUT_MODE, choices=[m.value for m in OutputMode], help=f"Output mode (default: {DEFAULT_OUTPUT_MODE}).")
    parser.add_argument("--glossary", default=None, help="JSON glossary file of terms that must be translated a fixed way.")
    parser.add_argument("--no-color", action="store_true", help="Disable colored output.")
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.api_key:
        parser.error("--api_key is required (or set API_KEY in .env)")

    glossary = []
    if args.glossary:
        try:
            glossary = load_glossary(args.glossary)
        except (OSError, ValueError) as e:
            parser.error(f"Cannot load glossary: {e}")

    if args.output is None:
        args.output = default_output_path(args.input, args.target_lang, OUTPUT_DIR)

    # Ensure output path is unique (add number suffix if file exists)
    args.output = get_unique_output_path(args.output)

    logger = setup_cli_logger(enable_colors=not args.no_color)

    logger.info("Translation Started", LogType.TRANSLATION_START, {
        'source_lang': args.source_lang,
        'target_lang': args.target_lang,
        'mode': args.mode,
        'model': args.model,
        'input_file': args.input,
        'output_file': args.output,
        'api_endpoint': args.api_endpoint,
        'llm_provider': args.provider,
        'glossary_terms': len(glossary)
    })

    log_callback = logger.create_legacy_callback()

    try:
        metrics = asyncio.run(translate_epub_file(
            args.input,
            args.output,
            source_language=args.source_lang,
            target_language=args.target_lang,
            glossary=glossary,
            mode=args.mode,
            model_name=args.model,
            api_endpoint=args.api_endpoint,
            api_key=args.api_key,
            llm_provider=args.provider,
            log_callback=log_callback
        ))
    except (FileNotFoundError, EpubTranslationError) as e:
        logger.error(f"Translation failed: {str(e)}", LogType.ERROR_DETAIL, {
            'details': str(e),
            'input_file': args.input
        })
        return 1

    logger.info("Translation Completed Successfully", LogType.TRANSLATION_END, {
        'output_file': args.output,
        'stats': build_stats(metrics)
    })
    return 0


if __name__ == "__main__":
    sys.exit(main())
