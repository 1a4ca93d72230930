"""
Core translation modules

Subpackages:
    - epub: structure-preserving EPUB pipeline
    - llm: translation oracle providers
"""
