"""
File utilities for translation operations
"""
import json
from pathlib import Path
from typing import List, Tuple


def get_unique_output_path(output_path):
    """
    Generate a unique output path by adding a number suffix if the file already exists.

    Args:
        output_path (str): Desired output path

    Returns:
        str: Unique output path (original or with numeric suffix)

    Examples:
        book.epub -> book.epub (if doesn't exist)
        book.epub -> book (1).epub (if book.epub exists)
        book.epub -> book (2).epub (if book.epub and book (1).epub exist)
    """
    path = Path(output_path)
    if not path.exists():
        return output_path

    parent = path.parent
    stem = path.stem
    suffix = path.suffix

    counter = 1
    while True:
        new_path = parent / f"{stem} ({counter}){suffix}"
        if not new_path.exists():
            return str(new_path)
        counter += 1
        if counter > 9999:
            raise RuntimeError(f"Could not find unique filename after 9999 attempts for: {output_path}")


def default_output_path(input_path: str, target_language: str, output_dir: str = "") -> str:
    """``book.epub`` -> ``book_chinese.epub`` (in output_dir when given)."""
    path = Path(input_path)
    name = f"{path.stem}_{target_language.lower().replace(' ', '_')}{path.suffix or '.epub'}"
    return str(Path(output_dir) / name) if output_dir else str(path.with_name(name))


def load_glossary(glossary_path: str) -> List[Tuple[str, str]]:
    """
    Load a glossary file.

    Accepted JSON shapes:
        {"term": "replacement", ...}
        [["term", "replacement"], ...]
        [{"source": "term", "target": "replacement"}, ...]

    Args:
        glossary_path: Path to a UTF-8 JSON file

    Returns:
        Ordered list of (term, replacement) pairs; empty terms are dropped

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the content is not valid JSON or has another shape
    """
    with open(glossary_path, 'r', encoding='utf-8') as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Glossary '{glossary_path}' is not valid JSON: {e}") from e

    if isinstance(data, dict):
        entries = list(data.items())
    elif isinstance(data, list):
        entries = []
        for entry in data:
            if isinstance(entry, dict) and 'source' in entry and 'target' in entry:
                entries.append((entry['source'], entry['target']))
            elif isinstance(entry, (list, tuple)) and len(entry) == 2:
                entries.append((entry[0], entry[1]))
            else:
                raise ValueError(f"Unsupported glossary entry in '{glossary_path}': {entry!r}")
    else:
        raise ValueError(f"Glossary '{glossary_path}' must be a JSON object or list")

    return [(str(term).strip(), str(replacement).strip())
            for term, replacement in entries if str(term).strip()]
