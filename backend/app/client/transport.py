"""Progress-tracked multipart upload transport.

The transport encodes the file as ``multipart/form-data`` (field ``file``),
then streams the encoded body in chunks. After each chunk has been handed to
the connection a ProgressEvent(loaded, total) is put on an ``asyncio.Queue``.
The transport never renders anything; whoever owns the queue decides what to
do with the events.

Failures (connection errors, non-200 responses, unparseable bodies) are raised
as TransportFailure.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import AsyncIterator, Optional

import httpx
from pydantic import ValidationError

from app.uploads.schemas import UploadResult

from .state import SelectedFile

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class ProgressEvent:
    """Bytes of the request body sent so far."""
    loaded: int
    total: int

    @property
    def percent(self) -> float:
        return (self.loaded / self.total) * 100 if self.total else 100.0


class TransportFailure(Exception):
    """An upload did not produce a successful UploadResult."""


class UploadTransport:
    """Sends one file per call to the relay's ``POST /upload`` endpoint.

    Args:
        base_url:    Relay base URL, e.g. ``http://localhost:3000``.
        http_client: Optional ``httpx.AsyncClient``. When omitted a client
                     without timeouts is created per upload.
        chunk_size:  Size of the body chunks progress is reported for.
    """

    def __init__(
        self,
        base_url: str,
        http_client: Optional[httpx.AsyncClient] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self.upload_url = base_url.rstrip("/") + "/upload"
        self._http_client = http_client
        self._chunk_size = chunk_size

    async def send(self, file: SelectedFile, events: "asyncio.Queue[Optional[ProgressEvent]]") -> UploadResult:
        """Upload ``file`` and report progress on ``events``.

        Returns:
            The UploadResult parsed from the relay's 200 response.

        Raises:
            TransportFailure: On network errors, non-200 responses or a body
                that is not an UploadResult.
        """
        encoded = httpx.Request(
            "POST",
            self.upload_url,
            files={"file": (file.name, file.read_bytes(), file.mime_type)},
        )
        body = encoded.read()
        headers = {
            "Content-Type": encoded.headers["Content-Type"],
            "Content-Length": str(len(body)),
        }

        try:
            if self._http_client is not None:
                response = await self._http_client.post(
                    self.upload_url, content=self._stream(body, events), headers=headers
                )
            else:
                async with httpx.AsyncClient(timeout=None) as client:
                    response = await client.post(
                        self.upload_url, content=self._stream(body, events), headers=headers
                    )
        except httpx.HTTPError as exc:
            raise TransportFailure(f"Upload error: {exc!r}") from exc

        if response.status_code != 200:
            raise TransportFailure(f"Upload failed with HTTP {response.status_code}: {response.text[:200]}")

        try:
            return UploadResult.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise TransportFailure(f"Unexpected upload response: {exc}") from exc

    async def _stream(
        self, body: bytes, events: "asyncio.Queue[Optional[ProgressEvent]]"
    ) -> AsyncIterator[bytes]:
        total = len(body)
        loaded = 0
        for start in range(0, total, self._chunk_size):
            chunk = body[start:start + self._chunk_size]
            yield chunk
            loaded += len(chunk)
            events.put_nowait(ProgressEvent(loaded=loaded, total=total))
