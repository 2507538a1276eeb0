"""
Output layout for workflow runs.

Every run writes into its own timestamped directory:

    output/<workflow>_<YYYY-MM-DD_HH-MM-SS>/
        screenshots/
        timecode.txt, markers.vtt, chapters.txt
        video.mp4 (or video.webm when conversion failed)

Raw browser captures land in output/temp-videos first. File operations
here wrap OS errors in FileSystemError carrying the offending path.
"""

import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Tuple, Union

from workflow_errors import FileSystemError

PathLike = Union[str, Path]

OUTPUT_ROOT = "output"
TEMP_VIDEO_DIR = "temp-videos"
SCREENSHOTS_DIR = "screenshots"
CAPTURE_SUFFIX = ".webm"


def generate_timestamp(now: Optional[datetime] = None) -> str:
    """Timestamp safe for file names, e.g. 2025-01-18_12-00-00 (UTC)."""
    now = now or datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%d_%H-%M-%S")


def ensure_directory(path: PathLike) -> Path:
    path = Path(path)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FileSystemError(f"Failed to create directory: {e}", str(path)) from e
    return path


def write_text(path: PathLike, content: str) -> None:
    """Write a text file, creating its parent directory first."""
    path = Path(path)
    ensure_directory(path.parent)
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise FileSystemError(f"Failed to write file: {e}", str(path)) from e


def read_text(path: PathLike) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise FileSystemError(f"Failed to read file: {e}", str(path)) from e


def copy_file(source: PathLike, destination: PathLike) -> Path:
    destination = Path(destination)
    ensure_directory(destination.parent)
    try:
        shutil.copyfile(source, destination)
    except OSError as e:
        raise FileSystemError(
            f"Failed to copy file from {source} to {destination}: {e}", str(source)
        ) from e
    return destination


def delete_file(path: PathLike) -> None:
    try:
        Path(path).unlink()
    except OSError as e:
        raise FileSystemError(f"Failed to delete file: {e}", str(path)) from e


def list_files(directory: PathLike, suffix: Optional[str] = None) -> List[str]:
    """Names of the regular files in a directory, sorted, optionally by suffix."""
    try:
        entries = sorted(Path(directory).iterdir())
    except OSError as e:
        raise FileSystemError(f"Failed to list files: {e}", str(directory)) from e
    return [
        entry.name for entry in entries
        if entry.is_file() and (suffix is None or entry.suffix == suffix)
    ]


def list_directories(directory: PathLike) -> List[str]:
    try:
        entries = sorted(Path(directory).iterdir())
    except OSError as e:
        raise FileSystemError(f"Failed to list directories: {e}", str(directory)) from e
    return [entry.name for entry in entries if entry.is_dir()]


class OutputStore:
    """
    Resolves where a run's artifacts go.

    Kept separate from the runner so tests can point it at a temp dir.
    """

    def __init__(self, root: PathLike = OUTPUT_ROOT):
        self.root = Path(root)

    @property
    def temp_video_dir(self) -> Path:
        return self.root / TEMP_VIDEO_DIR

    def run_directory(self, workflow_name: str, timestamp: Optional[str] = None) -> Path:
        return self.root / f"{workflow_name}_{timestamp or generate_timestamp()}"

    def create_run_directory(self, workflow_name: str, timestamp: Optional[str] = None) -> Path:
        """Create the run directory and its screenshots/ subdirectory."""
        run_dir = ensure_directory(self.run_directory(workflow_name, timestamp))
        ensure_directory(run_dir / SCREENSHOTS_DIR)
        return run_dir

    @staticmethod
    def screenshot_path(run_dir: PathLike, filename: str) -> Path:
        return Path(run_dir) / SCREENSHOTS_DIR / f"{filename}.png"

    @staticmethod
    def video_paths(run_dir: PathLike) -> Tuple[Path, Path]:
        """(raw copy, encoded) paths of the run's video."""
        run_dir = Path(run_dir)
        return run_dir / "video.webm", run_dir / "video.mp4"

    def latest_capture(self) -> Optional[Path]:
        """Most recently written capture in the temp video directory."""
        if not self.temp_video_dir.exists():
            return None
        captures = [
            self.temp_video_dir / name
            for name in list_files(self.temp_video_dir, CAPTURE_SUFFIX)
        ]
        if not captures:
            return None
        return max(captures, key=lambda p: p.stat().st_mtime)
