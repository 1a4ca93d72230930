"""
epubsafe - structure-preserving EPUB translation through an LLM
"""

__version__ = "1.0.0"
