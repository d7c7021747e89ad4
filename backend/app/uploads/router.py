"""FastAPI router for the upload relay endpoint.

Endpoints:
    POST /upload: multipart/form-data with a single ``file`` field

Responses:
    200  UploadResult  {success: true, fileUrl, thumbnailUrl, fileId, ...}
    400  ErrorResult   missing file, file too large, unsupported type
    500  ErrorResult   provider or unexpected failure (generic message)
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from app.providers import get_media_provider

from .errors import GENERIC_UPLOAD_ERROR, UploadError, UpstreamFailure
from .receiver import ReceivedFile, receive_upload
from .schemas import ErrorResult, UploadResult
from .service import UploadRelayService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["uploads"])


def error_response(status_code: int, message: str) -> JSONResponse:
    """Build an ErrorResult JSON response."""
    return JSONResponse(ErrorResult(error=message).model_dump(), status_code=status_code)


def get_upload_service() -> UploadRelayService:
    """Build the relay service from the active provider and config."""
    from app.config import get_config  # local import to avoid circular deps

    return UploadRelayService(get_media_provider(), folder=get_config().upload.folder)


@router.post(
    "/upload",
    response_model=UploadResult,
    responses={400: {"model": ErrorResult}, 500: {"model": ErrorResult}},
)
async def upload_file(
    received: Optional[ReceivedFile] = Depends(receive_upload),
    service: UploadRelayService = Depends(get_upload_service),
):
    """Upload a single file and relay it to the media provider.

    Returns:
        UploadResult with the public URL and file details

    Example::

        POST /upload   (file=@"my file!.png";type=image/png)

        200 OK
        {
            "success": true,
            "fileUrl": "https://ik.imagekit.io/demo/uploads/my_file_.png",
            "thumbnailUrl": "https://ik.imagekit.io/demo/tr:n-ik_ml_thumbnail/uploads/my_file_.png",
            "fileId": "6539d3bf6c6a0f3e0c0a4d2b",
            "fileType": "image/png",
            "fileSize": 10,
            "fileName": "my_file_.png",
            "uploadTime": "2026-10-19T09:15:00.123Z"
        }
    """
    try:
        return await service.relay(received)
    except UpstreamFailure as exc:
        logger.exception(f"Upload relay failed: {exc.detail}")
        return error_response(exc.status_code, exc.message)
    except UploadError as exc:
        logger.warning(f"Upload rejected: {exc.message}")
        return error_response(exc.status_code, exc.message)
    except Exception:
        logger.exception("Upload failed with an unexpected error")
        return error_response(500, GENERIC_UPLOAD_ERROR)
