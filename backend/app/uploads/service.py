"""Upload relay service.

Validates a received file and forwards it to the configured MediaProvider:

    ReceivedFile -> validate -> sanitize filename -> provider.upload -> UploadResult

Nothing is written to disk; the bytes only live as long as the request.
"""
import logging
from typing import Optional

from app.providers.base import MediaProvider

from .errors import FileTooLarge, MissingFile, UnsupportedType, UpstreamFailure
from .receiver import ReceivedFile
from .schemas import MAX_FILE_SIZE_BYTES, UploadResult, is_allowed_mime_type, sanitize_filename

logger = logging.getLogger(__name__)

DEFAULT_FOLDER = "/uploads"


class UploadRelayService:
    """Forwards validated uploads to a media provider.

    Args:
        provider: The media provider to store files with. ``None`` means the
                  relay is not configured and every upload fails upstream.
        folder:   Fixed destination folder on the provider side.
    """

    def __init__(self, provider: Optional[MediaProvider], folder: str = DEFAULT_FOLDER) -> None:
        self._provider = provider
        self._folder = folder

    @property
    def folder(self) -> str:
        return self._folder

    def validate(self, received: Optional[ReceivedFile]) -> ReceivedFile:
        """Apply the upload rules in order: presence, size, MIME type.

        Raises:
            MissingFile: No file part was sent.
            FileTooLarge: The file exceeds MAX_FILE_SIZE_BYTES.
            UnsupportedType: The MIME type is not in the allow-list.
        """
        if received is None:
            raise MissingFile()
        if received.size > MAX_FILE_SIZE_BYTES:
            raise FileTooLarge()
        if not is_allowed_mime_type(received.mime_type):
            raise UnsupportedType(received.mime_type)
        return received

    async def relay(self, received: Optional[ReceivedFile]) -> UploadResult:
        """Validate the file, store it with the provider and build the result.

        Returns:
            UploadResult describing the stored file.

        Raises:
            UploadError: For validation failures (400) or provider failures (500).
        """
        received = self.validate(received)

        if self._provider is None:
            raise UpstreamFailure("No media provider configured")

        file_name = sanitize_filename(received.filename)
        stored = await self._provider.upload(received.content, file_name, self._folder)

        logger.info(
            f"File uploaded: {file_name} ({received.size} bytes, {received.mime_type}) "
            f"via {self._provider.name} as {stored.file_id}"
        )

        return UploadResult(
            file_url=stored.url,
            thumbnail_url=stored.thumbnail_url,
            file_id=stored.file_id,
            file_type=received.mime_type,
            file_size=received.size,
            file_name=file_name,
        )
