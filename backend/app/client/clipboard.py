"""System clipboard access through the platform's copy command.

Tries, in order: pbcopy (macOS), wl-copy (Wayland), xclip, xsel (X11) and
clip (Windows). The first one found on PATH is used.
"""
import logging
import shutil
import subprocess
from typing import List, Optional

logger = logging.getLogger(__name__)

_COPY_COMMANDS = (
    ["pbcopy"],
    ["wl-copy"],
    ["xclip", "-selection", "clipboard"],
    ["xsel", "--clipboard", "--input"],
    ["clip"],
)


class ClipboardUnavailable(RuntimeError):
    """No usable clipboard command, or the command failed."""


class SystemClipboard:
    """Copies text with the first available platform clipboard command."""

    def __init__(self, command: Optional[List[str]] = None) -> None:
        self._command = command

    def _find_command(self) -> List[str]:
        if self._command:
            return self._command
        for cmd in _COPY_COMMANDS:
            if shutil.which(cmd[0]):
                self._command = cmd
                return cmd
        raise ClipboardUnavailable("No clipboard command found (pbcopy, wl-copy, xclip, xsel, clip)")

    def copy(self, text: str) -> None:
        cmd = self._find_command()
        try:
            subprocess.run(cmd, input=text.encode("utf-8"), check=True, capture_output=True)
        except (OSError, subprocess.CalledProcessError) as e:
            raise ClipboardUnavailable(f"{cmd[0]} failed: {e}") from e
        logger.debug("Copied %d characters with %s", len(text), cmd[0])
