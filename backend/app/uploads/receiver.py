"""Receiving layer for POST /upload.

Everything here runs before the upload handler:

- UploadSizeLimitMiddleware turns away requests whose declared body size can
  not possibly fit the limit, without reading the body.
- receive_upload() is a FastAPI dependency that checks the MIME type of the
  ``file`` part and buffers its bytes in memory, stopping as soon as the size
  limit is exceeded.

Both raise (or respond with) the same errors the handler uses, so the client
always gets an ErrorResult body.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import File, UploadFile
from fastapi.responses import JSONResponse

from .errors import FileTooLarge, UnsupportedType
from .schemas import MAX_FILE_SIZE_BYTES, ErrorResult, is_allowed_mime_type

logger = logging.getLogger(__name__)

# Room for multipart boundaries and part headers on top of the file itself.
MULTIPART_OVERHEAD_BYTES = 64 * 1024

READ_CHUNK_BYTES = 1024 * 1024


@dataclass(frozen=True)
class ReceivedFile:
    """A file part buffered in memory for the duration of one request."""
    content: bytes
    filename: str
    mime_type: str

    @property
    def size(self) -> int:
        return len(self.content)


class UploadSizeLimitMiddleware:
    """ASGI middleware rejecting oversized upload bodies up front.

    Only requests to ``path`` with a ``Content-Length`` header are checked;
    chunked bodies fall through to receive_upload(), which enforces the same
    limit while reading.
    """

    def __init__(
        self,
        app,
        path: str = "/upload",
        max_body_bytes: int = MAX_FILE_SIZE_BYTES + MULTIPART_OVERHEAD_BYTES,
    ) -> None:
        self.app = app
        self.path = path
        self.max_body_bytes = max_body_bytes

    async def __call__(self, scope, receive, send):
        if (
            scope["type"] == "http"
            and scope["method"] == "POST"
            and scope["path"] == self.path
        ):
            length = _content_length(scope)
            if length is not None and length > self.max_body_bytes:
                logger.warning(
                    "Rejected upload body of %d bytes (limit %d)",
                    length,
                    self.max_body_bytes,
                )
                response = JSONResponse(
                    ErrorResult(error=FileTooLarge.message).model_dump(),
                    status_code=FileTooLarge.status_code,
                )
                await response(scope, receive, send)
                return
        await self.app(scope, receive, send)


def _content_length(scope) -> Optional[int]:
    for name, value in scope.get("headers", []):
        if name == b"content-length":
            try:
                return int(value)
            except ValueError:
                return None
    return None


async def receive_upload(file: Optional[UploadFile] = File(None)) -> Optional[ReceivedFile]:
    """Buffer the ``file`` part of a multipart request.

    Returns:
        ReceivedFile, or None when the request has no ``file`` part or the
        part has an empty filename (the handler reports MissingFile).

    Raises:
        UnsupportedType: If the part's content type is not allowed.
        FileTooLarge: If the part is bigger than MAX_FILE_SIZE_BYTES.
    """
    # Browsers send an empty filename when no file was chosen.
    if file is None or not file.filename:
        return None

    mime_type = file.content_type
    if not is_allowed_mime_type(mime_type):
        logger.warning(f"Rejected upload {file.filename!r}: unsupported type {mime_type!r}")
        raise UnsupportedType(mime_type)

    chunks = []
    total = 0
    while True:
        chunk = await file.read(READ_CHUNK_BYTES)
        if not chunk:
            break
        total += len(chunk)
        if total > MAX_FILE_SIZE_BYTES:
            logger.warning(f"Rejected upload {file.filename!r}: exceeds {MAX_FILE_SIZE_BYTES} bytes")
            raise FileTooLarge()
        chunks.append(chunk)

    return ReceivedFile(
        content=b"".join(chunks),
        filename=file.filename,
        mime_type=mime_type,
    )
