"""
Utility modules

Note: To prevent circular import issues, nothing is re-exported here. Import
directly from the module:

    from epubsafe.utils.unified_logger import setup_cli_logger
"""

__all__ = []
