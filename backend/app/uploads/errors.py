"""Upload error taxonomy.

Every error carries the HTTP status and a message that is safe to show to the
client. Exception handlers in ``app/main.py`` turn these into ErrorResult JSON.

    MissingFile      400  no ``file`` part in the request
    FileTooLarge     400  file exceeds MAX_FILE_SIZE_BYTES
    UnsupportedType  400  MIME type outside ALLOWED_MIME_TYPES
    UpstreamFailure  500  the provider call failed (detail is logged only)
"""
from typing import Optional

GENERIC_UPLOAD_ERROR = "An error occurred while uploading the file"


class UploadError(Exception):
    """Base class for errors that end an upload request."""

    status_code: int = 400
    message: str = "Upload rejected"

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class MissingFile(UploadError):
    message = "No file was uploaded"


class FileTooLarge(UploadError):
    message = "File too large. Maximum 100MB"


class UnsupportedType(UploadError):
    message = "Unsupported file type"

    def __init__(self, mime_type: Optional[str] = None):
        super().__init__()
        self.mime_type = mime_type


class UpstreamFailure(UploadError):
    """The media provider rejected the upload or could not be reached.

    ``detail`` holds the provider-side reason for the logs; the client only
    ever sees the generic message.
    """

    status_code = 500
    message = GENERIC_UPLOAD_ERROR

    def __init__(self, detail: str):
        super().__init__()
        self.detail = detail

    def __str__(self) -> str:
        return self.detail
