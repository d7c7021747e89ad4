"""ImageKit media provider.

Calls the ImageKit upload API with the file as a multipart body. Requests are
authenticated with HTTP Basic auth: the private key is the username and the
password is empty.

Request (multipart/form-data)
-----------------------------
::

    file              <binary>
    fileName          my_file_.png
    folder            /uploads
    useUniqueFileName true

Response (subset used here)
---------------------------
::

    { "fileId": "...", "name": "...", "url": "https://ik.imagekit.io/...",
      "thumbnailUrl": "https://ik.imagekit.io/.../tr:n-ik_ml_thumbnail/..." }

Error responses carry ``{"message": "..."}`` with a non-2xx status.
"""
import logging
from typing import Optional

import httpx

from app.uploads.errors import UpstreamFailure

from .base import MediaProvider, ProviderUpload

logger = logging.getLogger(__name__)

DEFAULT_UPLOAD_URL = "https://upload.imagekit.io/api/v1/files/upload"
DEFAULT_TIMEOUT_SECONDS = 120.0


class ImageKitProvider(MediaProvider):
    """Media provider backed by the ImageKit upload API.

    Args:
        private_key:     ImageKit private API key (used for Basic auth).
        public_key:      ImageKit public key. Logged at construction for diagnostics.
        url_endpoint:    ImageKit URL endpoint, e.g. ``https://ik.imagekit.io/demo``.
        upload_url:      Upload API URL. Overridable for tests and proxies.
        timeout_seconds: Timeout for the whole upload call.
        http_client:     Optional pre-built ``httpx.AsyncClient``. When omitted a
                         client is created per call.
    """

    def __init__(
        self,
        private_key: str,
        public_key: Optional[str] = None,
        url_endpoint: Optional[str] = None,
        upload_url: str = DEFAULT_UPLOAD_URL,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if not private_key:
            raise ValueError("ImageKit private key is required")
        self._private_key = private_key
        self._url_endpoint = url_endpoint
        self._upload_url = upload_url
        self._timeout = timeout_seconds
        self._http_client = http_client
        logger.info(
            "[providers/imagekit] configured public_key=%s endpoint=%s upload_url=%s",
            public_key or "<unset>",
            url_endpoint or "<unset>",
            upload_url,
        )

    @property
    def name(self) -> str:
        return "imagekit"

    @property
    def url_endpoint(self) -> Optional[str]:
        return self._url_endpoint

    async def upload(self, content: bytes, file_name: str, folder: str) -> ProviderUpload:
        """Upload a file to ImageKit.

        Raises:
            UpstreamFailure: If ImageKit is unreachable, answers with a non-2xx
                status, or returns a body without ``url``/``fileId``.
        """
        files = {"file": (file_name, content, "application/octet-stream")}
        data = {
            "fileName": file_name,
            "folder": folder,
            "useUniqueFileName": "true",
        }

        logger.debug(
            "[providers/imagekit] uploading %s (%d bytes) to folder %s",
            file_name,
            len(content),
            folder,
        )

        try:
            if self._http_client is not None:
                response = await self._post(self._http_client, files, data)
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await self._post(client, files, data)
        except httpx.HTTPError as exc:
            raise UpstreamFailure(f"ImageKit request failed: {exc!r}") from exc

        if response.status_code >= 400:
            raise UpstreamFailure(
                f"ImageKit returned {response.status_code}: {_error_message(response)}"
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise UpstreamFailure("ImageKit returned a non-JSON response") from exc

        if not isinstance(body, dict) or not body.get("url") or not body.get("fileId"):
            raise UpstreamFailure(f"Unexpected ImageKit response: {body!r}")

        return ProviderUpload(
            url=body["url"],
            thumbnail_url=body.get("thumbnailUrl"),
            file_id=body["fileId"],
        )

    async def _post(self, client: httpx.AsyncClient, files: dict, data: dict) -> httpx.Response:
        return await client.post(
            self._upload_url,
            files=files,
            data=data,
            auth=(self._private_key, ""),
        )


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return str(body)[:200]
