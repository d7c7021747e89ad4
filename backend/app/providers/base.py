"""Abstract MediaProvider interface.

Every media-hosting back-end (ImageKit today) must implement this interface so
the upload endpoint stays provider-agnostic. The endpoint only relies on the
three fields of ProviderUpload and never interprets anything else the provider
returns.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ProviderUpload:
    """What the provider hands back for a stored file.

    Attributes:
        url: Public URL of the stored file.
        thumbnail_url: Thumbnail URL, if the provider generates one.
        file_id: Provider-assigned identifier.
    """
    url: str
    thumbnail_url: Optional[str]
    file_id: str


class MediaProvider(ABC):
    """Abstract base class for media-hosting providers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Short provider name used in logs."""

    @abstractmethod
    async def upload(self, content: bytes, file_name: str, folder: str) -> ProviderUpload:
        """Store a file with the provider.

        Args:
            content: Raw file bytes.
            file_name: Sanitized filename to store under.
            folder: Destination folder on the provider side.

        Returns:
            ProviderUpload with the public URL, thumbnail URL and file ID.

        Raises:
            UpstreamFailure: On any provider-side or transport error.
        """
