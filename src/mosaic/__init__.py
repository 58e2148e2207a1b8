"""
Mosaic server
Plugin-composed API server backed by a document store
"""

__version__ = "0.1.0"

from .config import settings

__all__ = ["settings", "__version__"]
