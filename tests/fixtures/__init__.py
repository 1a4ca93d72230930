"""Test fixtures: in-memory EPUB builder and scripted oracle."""
