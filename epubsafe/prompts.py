import json
from typing import NamedTuple, Optional, Sequence, Tuple


class PromptPair(NamedTuple):
    """A pair of system and user prompts for LLM translation."""
    system: str
    user: str


def format_glossary_lines(glossary: Optional[Sequence[Tuple[str, str]]]) -> str:
    """Render glossary pairs as one mandatory rule per line.

    Args:
        glossary: (term, replacement) pairs, in the order they must be shown

    Returns:
        str: Newline-joined rules, empty if there is no glossary
    """
    if not glossary:
        return ""
    return "\n".join(f'- "{term}" must be translated as "{replacement}"'
                     for term, replacement in glossary)


def generate_segment_batch_prompt(
    segments: Sequence[str],
    source_language: str = "English",
    target_language: str = "Chinese",
    glossary: Optional[Sequence[Tuple[str, str]]] = None,
    previous_digest: str = ""
) -> PromptPair:
    """
    Generate the prompt for one batch of text segments.

    The segments are sent as a JSON array and the model must answer with a
    JSON array of the same length, item i translating segment i.

    Args:
        segments: Plain-text segments extracted from markup
        source_language: Source language name
        target_language: Target language name
        glossary: (term, replacement) pairs that must be honoured
        previous_digest: Tail of the previously translated text, for consistency

    Returns:
        PromptPair: A named tuple with 'system' and 'user' prompts
    """
    system_prompt = f"""You are a professional translation engine translating {source_language} into {target_language}.

Follow the output format exactly.
Do NOT output Markdown (no **bold**, __bold__, `code` or code fences).
Do NOT add explanations, comments or greetings."""

    glossary_lines = format_glossary_lines(glossary)
    glossary_block = ""
    if glossary_lines:
        glossary_block = f"""
# GLOSSARY (MANDATORY)

{glossary_lines}
"""

    digest_block = ""
    if previous_digest and previous_digest.strip():
        digest_block = f"""
# CONTEXT - Previously translated text (keep terminology consistent)

{previous_digest}
"""

    user_prompt = f"""Translate each plain-text fragment taken from an HTML document.

# RULES

- Source language: {source_language}
- Target language: {target_language}
- Do not output Markdown (do not use **, __, * or ` formatting symbols)
- Return JSON only
{glossary_block}{digest_block}
# INPUT

The input is a JSON array; every element is an independent fragment.
Output a JSON array of the SAME LENGTH ({len(segments)} items), translating item by item.

{json.dumps(list(segments), ensure_ascii=False)}

# OUTPUT"""

    return PromptPair(system=system_prompt.strip(), user=user_prompt.strip())
