"""Sequential upload client.

RelayUploader drives the per-file lifecycle:

    selected -> validated -> uploading -> succeeded | failed
    selected -> rejected            (fails client-side validation)

Files are validated with the same rules as the server (shared allow-list and
size limit). Valid files get a preview and are then uploaded strictly one
after another: each upload is awaited before the next one starts. A failed
upload shows a notification and the batch moves on; nothing is raised out of
the batch loop.

Progress is an explicit event stream: the transport puts ProgressEvents on a
queue and a display coroutine consumes them, updating UIState.progress and
calling the ``on_change`` render hook.
"""
import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional

from app.uploads.schemas import MAX_FILE_SIZE_BYTES, UploadResult, is_allowed_mime_type

from .clipboard import ClipboardUnavailable, SystemClipboard
from .state import FileStatus, PreviewEntry, SelectedFile, UIState
from .theme import ThemeStore, flip_theme
from .transport import ProgressEvent, TransportFailure, UploadTransport

logger = logging.getLogger(__name__)

MSG_TOO_LARGE = "File too large! Maximum 100MB"
MSG_UNSUPPORTED = "Unsupported file type"
MSG_UPLOADED = "File uploaded successfully!"
MSG_UPLOAD_FAILED = "Failed to upload file"
MSG_COPIED = "URL copied!"
MSG_NOTHING_TO_COPY = "No URL to copy yet"
MSG_COPY_FAILED = "Could not copy URL"


@dataclass
class BatchReport:
    """Outcome of one upload batch."""
    succeeded: List[UploadResult] = field(default_factory=list)
    failed: List[SelectedFile] = field(default_factory=list)
    rejected: List[SelectedFile] = field(default_factory=list)

    @property
    def all_succeeded(self) -> bool:
        return not self.failed and not self.rejected


class RelayUploader:
    """Validates, previews and uploads selected files.

    Args:
        transport:   Transport used to send each file.
        state:       UI state to update. Created if omitted.
        theme_store: Persisted theme preference.
        clipboard:   Object with a ``copy(text)`` method.
        on_change:   Render hook called with the UI state after each change.
        clock:       Time source for notification expiry.
    """

    def __init__(
        self,
        transport: UploadTransport,
        state: Optional[UIState] = None,
        theme_store: Optional[ThemeStore] = None,
        clipboard=None,
        on_change: Optional[Callable[[UIState], None]] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.transport = transport
        self.state = state or UIState()
        self.theme_store = theme_store or ThemeStore()
        self.clipboard = clipboard or SystemClipboard()
        self._on_change = on_change
        self._clock = clock
        self.state.theme = self.theme_store.load()

    # -----------------------------------------------------------------------
    # Selection and validation
    # -----------------------------------------------------------------------

    def select_paths(self, paths: Iterable) -> List[SelectedFile]:
        return [SelectedFile.from_path(p) for p in paths]

    def validate_file(self, file: SelectedFile) -> bool:
        """Check size and type; notify and mark the file rejected on failure."""
        if file.size > MAX_FILE_SIZE_BYTES:
            self._notify(MSG_TOO_LARGE, "error")
            file.advance(FileStatus.REJECTED)
            return False
        if not is_allowed_mime_type(file.mime_type):
            self._notify(MSG_UNSUPPORTED, "error")
            file.advance(FileStatus.REJECTED)
            return False
        file.advance(FileStatus.VALIDATED)
        return True

    def process_files(self, files: Iterable[SelectedFile]) -> List[SelectedFile]:
        """Validate a new selection and rebuild the preview list.

        Returns:
            The files that passed validation, in selection order.
        """
        self.state.previews = []
        accepted = []
        for file in files:
            if not self.validate_file(file):
                continue
            self.state.previews.append(PreviewEntry.for_file(file))
            accepted.append(file)
        self._render()
        return accepted

    # -----------------------------------------------------------------------
    # Uploading
    # -----------------------------------------------------------------------

    async def handle_selection(self, files: List[SelectedFile]) -> BatchReport:
        """Validate, preview and upload a selection (click or drop)."""
        accepted = self.process_files(files)
        report = await self.upload_files(accepted)
        report.rejected = [f for f in files if f.status == FileStatus.REJECTED]
        return report

    async def upload_files(self, files: List[SelectedFile]) -> BatchReport:
        """Upload validated files one at a time, in order."""
        report = BatchReport()
        self.state.result.hide()
        for file in files:
            result = await self.upload_single_file(file)
            if result is None:
                report.failed.append(file)
            else:
                report.succeeded.append(result)
        return report

    async def upload_single_file(self, file: SelectedFile) -> Optional[UploadResult]:
        """Upload one file. Failures are reported, never raised.

        Returns:
            The UploadResult, or None if the upload failed.
        """
        file.advance(FileStatus.UPLOADING)
        self.state.progress.show()
        self._render()

        events: "asyncio.Queue[Optional[ProgressEvent]]" = asyncio.Queue()
        display = asyncio.create_task(self._display_progress(events))
        try:
            result = await self.transport.send(file, events)
        except TransportFailure as e:
            logger.error(f"Upload of {file.name} failed: {e}")
            file.advance(FileStatus.FAILED)
            self._notify(MSG_UPLOAD_FAILED, "error")
            return None
        except Exception:
            logger.exception(f"Upload of {file.name} failed unexpectedly")
            file.advance(FileStatus.FAILED)
            self._notify(MSG_UPLOAD_FAILED, "error")
            return None
        finally:
            events.put_nowait(None)
            await display
            self.state.progress.hide()
            self._render()

        file.advance(FileStatus.SUCCEEDED)
        self.state.result.show(result)
        self._notify(MSG_UPLOADED, "success")
        return result

    async def _display_progress(self, events: "asyncio.Queue[Optional[ProgressEvent]]") -> None:
        """Consume progress events until the ``None`` sentinel arrives."""
        while True:
            event = await events.get()
            if event is None:
                return
            self.state.progress.update(event.loaded, event.total)
            self._render()

    # -----------------------------------------------------------------------
    # Result panel and preferences
    # -----------------------------------------------------------------------

    def copy_url(self) -> bool:
        """Copy the URL shown in the result panel to the clipboard."""
        if not self.state.result.visible or not self.state.result.url:
            self._notify(MSG_NOTHING_TO_COPY, "error")
            return False
        try:
            self.clipboard.copy(self.state.result.url)
        except ClipboardUnavailable as e:
            logger.warning(f"Clipboard copy failed: {e}")
            self._notify(MSG_COPY_FAILED, "error")
            return False
        self._notify(MSG_COPIED, "success")
        return True

    def toggle_theme(self) -> str:
        """Flip between dark and light and persist the choice."""
        theme = flip_theme(self.state.theme)
        self.state.theme = theme
        self.theme_store.save(theme)
        self._render()
        return theme

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    def _notify(self, message: str, level: str) -> None:
        now = self._clock()
        self.state.active_notifications(now)
        self.state.notify(message, level, now=now)
        self._render()

    def _render(self) -> None:
        if self._on_change is not None:
            self._on_change(self.state)
