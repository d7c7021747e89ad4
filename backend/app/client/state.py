"""Client-side UI state.

All display state of the upload client lives in one explicit UIState object
that is handed to the uploader and to the rendering functions:

    theme            current theme ("dark" / "light")
    previews         one PreviewEntry per validated file
    progress         progress panel (percent, bar, "loaded / total")
    result           result panel of the last successful upload
    notifications    toast-style messages with a 3 second lifetime
"""
import logging
import mimetypes
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from app.uploads.schemas import (
    FileCategory,
    UploadResult,
    format_file_size,
    get_file_category,
    sanitize_filename,
)

logger = logging.getLogger(__name__)

NOTIFICATION_TTL_SECONDS = 3.0

THEME_ICONS = {"dark": "🌙", "light": "☀️"}

# Browsers report these types for the allow-listed extensions; the stdlib
# defaults differ for some of them (.wav, .rar).
_MIME_TYPES = mimetypes.MimeTypes()
for _ext, _type in (
    (".jpg", "image/jpeg"),
    (".webp", "image/webp"),
    (".webm", "video/webm"),
    (".mov", "video/quicktime"),
    (".mp3", "audio/mpeg"),
    (".wav", "audio/wav"),
    (".ogg", "audio/ogg"),
    (".rar", "application/x-rar-compressed"),
):
    _MIME_TYPES.add_type(_type, _ext)


# =============================================================================
# Selected files
# =============================================================================


class FileStatus(str, Enum):
    """Lifecycle of a selected file.

    selected -> validated -> uploading -> succeeded | failed
    selected -> rejected
    """
    SELECTED = "selected"
    VALIDATED = "validated"
    REJECTED = "rejected"
    UPLOADING = "uploading"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


_TRANSITIONS = {
    FileStatus.SELECTED: {FileStatus.VALIDATED, FileStatus.REJECTED},
    FileStatus.VALIDATED: {FileStatus.UPLOADING},
    FileStatus.UPLOADING: {FileStatus.SUCCEEDED, FileStatus.FAILED},
}


@dataclass
class SelectedFile:
    """A file picked by the user, plus where it is in its lifecycle."""
    path: Path
    name: str
    mime_type: str
    size: int
    status: FileStatus = FileStatus.SELECTED

    @classmethod
    def from_path(cls, path) -> "SelectedFile":
        """Describe a file on disk; the MIME type is guessed from its name."""
        path = Path(path)
        mime_type, _ = _MIME_TYPES.guess_type(path.name)
        return cls(
            path=path,
            name=path.name,
            mime_type=mime_type or "",
            size=path.stat().st_size,
        )

    def read_bytes(self) -> bytes:
        return self.path.read_bytes()

    def advance(self, status: FileStatus) -> None:
        if status not in _TRANSITIONS.get(self.status, set()):
            raise ValueError(f"Invalid transition {self.status.value} -> {status.value} for {self.name}")
        self.status = status


# =============================================================================
# Panels
# =============================================================================


@dataclass(frozen=True)
class PreviewEntry:
    """Preview of a validated file.

    ``kind`` is ``image``, ``video`` or ``audio`` for inline previews, and
    ``badge`` for everything else, with ``badge`` holding PDF, ZIP or FILE.
    """
    kind: str
    source: Path
    name: str
    size: str
    badge: Optional[str] = None

    @classmethod
    def for_file(cls, file: SelectedFile) -> "PreviewEntry":
        category = get_file_category(file.mime_type)
        name = sanitize_filename(file.name)
        size = format_file_size(file.size)
        if category in (FileCategory.IMAGE, FileCategory.VIDEO, FileCategory.AUDIO):
            return cls(kind=category.value, source=file.path, name=name, size=size)
        if category == FileCategory.PDF:
            badge = "PDF"
        elif category == FileCategory.ARCHIVE:
            badge = "ZIP"
        else:
            badge = "FILE"
        return cls(kind="badge", source=file.path, name=name, size=size, badge=badge)


@dataclass
class ProgressState:
    visible: bool = False
    percent: float = 0.0
    stats: str = ""

    @property
    def bar_fraction(self) -> float:
        return self.percent / 100

    @property
    def percent_label(self) -> str:
        return f"{round(self.percent)}%"

    def update(self, loaded: int, total: int) -> None:
        self.percent = (loaded / total) * 100 if total else 0.0
        self.stats = f"{format_file_size(loaded)} / {format_file_size(total)}"

    def show(self) -> None:
        self.visible = True

    def hide(self) -> None:
        self.visible = False
        self.update(0, 0)


@dataclass
class ResultPanel:
    """Details of the most recent successful upload."""
    visible: bool = False
    url: str = ""
    file_name: str = ""
    file_type: str = ""
    size: str = ""
    file_id: str = ""

    def show(self, result: UploadResult) -> None:
        self.url = result.file_url
        self.file_name = result.file_name
        self.file_type = result.file_type
        self.size = format_file_size(result.file_size)
        self.file_id = result.file_id
        self.visible = True

    def hide(self) -> None:
        self.visible = False


@dataclass(frozen=True)
class Notification:
    """A toast. ``seq`` increases by one per notification shown."""
    message: str
    level: str
    expires_at: float
    seq: int = 0


# =============================================================================
# UI state
# =============================================================================


@dataclass
class UIState:
    theme: str = "dark"
    previews: List[PreviewEntry] = field(default_factory=list)
    progress: ProgressState = field(default_factory=ProgressState)
    result: ResultPanel = field(default_factory=ResultPanel)
    notifications: List[Notification] = field(default_factory=list)
    notification_seq: int = 0

    @property
    def theme_icon(self) -> str:
        return THEME_ICONS[self.theme]

    def notify(self, message: str, level: str, now: float) -> Notification:
        """Show a transient notification and log it."""
        self.notification_seq += 1
        notification = Notification(
            message=message,
            level=level,
            expires_at=now + NOTIFICATION_TTL_SECONDS,
            seq=self.notification_seq,
        )
        self.notifications.append(notification)
        if level == "error":
            logger.error(message)
        else:
            logger.info(message)
        return notification

    def active_notifications(self, now: float) -> List[Notification]:
        """Notifications still on screen at ``now``; expired ones are dropped."""
        self.notifications = [n for n in self.notifications if n.expires_at > now]
        return list(self.notifications)
