"""Media-hosting providers.

The upload endpoint forwards accepted files to a MediaProvider. A module-level
singleton is initialised in ``app/main.py`` from config.
"""
from typing import Optional

from .base import MediaProvider, ProviderUpload
from .imagekit import ImageKitProvider

_provider: Optional[MediaProvider] = None


def get_media_provider() -> Optional[MediaProvider]:
    """Return the global MediaProvider, or None if not yet initialised."""
    return _provider


def set_media_provider(provider: Optional[MediaProvider]) -> None:
    """Set (or replace) the global MediaProvider instance."""
    global _provider
    _provider = provider


__all__ = [
    "MediaProvider",
    "ProviderUpload",
    "ImageKitProvider",
    "get_media_provider",
    "set_media_provider",
]
