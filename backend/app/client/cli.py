"""Command-line front-end for the upload client.

Usage:
    python -m app.client photo.png clip.mp4 --url http://localhost:3000 --copy
    python -m app.client --toggle-theme

Paths given on the command line take the place of click-to-browse and
drag-and-drop; they are validated, previewed and uploaded in order.
"""
import argparse
import asyncio
import os
import sys
import time
from pathlib import Path
from typing import List, Optional, TextIO

from .state import UIState
from .theme import ThemeStore
from .transport import UploadTransport
from .uploader import RelayUploader

DEFAULT_RELAY_URL = "http://localhost:3000"
BAR_WIDTH = 30


class TerminalRenderer:
    """Draws UIState changes to a terminal stream."""

    def __init__(self, stream: TextIO = sys.stdout) -> None:
        self.stream = stream
        self._last_seq = 0
        self._shown_previews = False
        self._progress_line = False

    def __call__(self, state: UIState) -> None:
        if state.previews and not self._shown_previews:
            self.render_previews(state)
            self._shown_previews = True
        self.render_progress(state)
        self.render_notifications(state)

    def render_previews(self, state: UIState) -> None:
        for entry in state.previews:
            label = entry.badge or entry.kind.upper()
            self.stream.write(f"[{label:<5}] {entry.name}  {entry.size}\n")

    def render_progress(self, state: UIState) -> None:
        progress = state.progress
        if progress.visible:
            filled = int(progress.bar_fraction * BAR_WIDTH)
            bar = "#" * filled + "-" * (BAR_WIDTH - filled)
            self.stream.write(f"\r[{bar}] {progress.percent_label:>4} {progress.stats}")
            self._progress_line = True
        elif self._progress_line:
            self.stream.write("\n")
            self._progress_line = False
        self.stream.flush()

    def render_notifications(self, state: UIState) -> None:
        new = [n for n in state.notifications if n.seq > self._last_seq]
        for notification in new:
            if self._progress_line:
                self.stream.write("\n")
                self._progress_line = False
            self.stream.write(f"{state.theme_icon} {notification.level.upper()}: {notification.message}\n")
        if new:
            self._last_seq = new[-1].seq

    def render_result(self, state: UIState) -> None:
        result = state.result
        if not result.visible:
            return
        self.stream.write(
            f"\nURL:  {result.url}\n"
            f"Name: {result.file_name}\n"
            f"Type: {result.file_type}\n"
            f"Size: {result.size}\n"
            f"ID:   {result.file_id}\n"
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="upload-relay-client",
        description="Upload files to the upload relay and print their public URLs",
    )
    parser.add_argument("files", nargs="*", type=Path, help="Files to upload, in order")
    parser.add_argument(
        "--url",
        default=os.environ.get("RELAY_URL", DEFAULT_RELAY_URL),
        help=f"Relay base URL (default: $RELAY_URL or {DEFAULT_RELAY_URL})",
    )
    parser.add_argument("--copy", action="store_true", help="Copy the last URL to the clipboard")
    parser.add_argument("--toggle-theme", action="store_true", help="Switch between dark and light theme")
    parser.add_argument("--prefs", type=Path, default=None, help="Preferences file location")
    return parser


async def run(args: argparse.Namespace, stream: TextIO = sys.stdout) -> int:
    renderer = TerminalRenderer(stream)
    uploader = RelayUploader(
        transport=UploadTransport(args.url),
        theme_store=ThemeStore(args.prefs),
        on_change=renderer,
    )

    if args.toggle_theme:
        theme = uploader.toggle_theme()
        stream.write(f"Theme: {theme} {uploader.state.theme_icon}\n")

    if not args.files:
        return 0

    missing = [p for p in args.files if not p.is_file()]
    if missing:
        for path in missing:
            stream.write(f"Not a file: {path}\n")
        return 1

    report = await uploader.handle_selection(uploader.select_paths(args.files))
    renderer.render_result(uploader.state)

    if args.copy and report.succeeded:
        uploader.copy_url()

    return 0 if report.all_succeeded else 1


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    started = time.monotonic()
    code = asyncio.run(run(args))
    if args.files:
        sys.stdout.write(f"Done in {time.monotonic() - started:.1f}s\n")
    return code
