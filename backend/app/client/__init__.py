"""Upload client for the relay.

Validates files with the same rules as the server, previews them, uploads
them one at a time with byte-level progress and keeps all display state in an
explicit UIState object.

Usage:
    from app.client import RelayUploader, UploadTransport

    uploader = RelayUploader(UploadTransport("http://localhost:3000"))
    report = await uploader.handle_selection(uploader.select_paths(["a.png"]))
"""
from .state import FileStatus, PreviewEntry, SelectedFile, UIState
from .transport import ProgressEvent, TransportFailure, UploadTransport
from .uploader import BatchReport, RelayUploader

__all__ = [
    "BatchReport",
    "FileStatus",
    "PreviewEntry",
    "ProgressEvent",
    "RelayUploader",
    "SelectedFile",
    "TransportFailure",
    "UIState",
    "UploadTransport",
]
