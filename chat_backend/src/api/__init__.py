"""
API package for the Chat Backend.

This module exposes common metadata and ensures package initialization.
"""

__all__ = ["__version__", "__author__"]
__version__ = "1.0.0"
__author__ = "Chat Backend Team"
