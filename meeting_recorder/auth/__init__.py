"""
Authentication material for browser contexts.
"""

from .credential_store import CookieFileStore

__all__ = ["CookieFileStore"]
