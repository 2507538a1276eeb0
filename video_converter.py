"""
WebM -> MP4 conversion with ffmpeg.

The browser records WebM; runs are delivered as H.264/AAC MP4 with the
workflow's chapters attached as container metadata.
"""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path
from typing import List, Optional

from persistence import delete_file
from workflow_errors import EncoderError

logger = logging.getLogger(__name__)

FFMPEG_BIN = os.environ.get("FFMPEG_BIN", "ffmpeg")

ENCODE_OPTIONS = [
    "-c:v", "libx264",
    "-preset", "fast",
    "-crf", "22",
    "-c:a", "aac",
    "-b:a", "128k",
]

CHAPTER_OPTIONS = [
    "-map", "0",
    "-c", "copy",
    "-map_metadata", "0",
    "-map_chapters", "1",
    "-movflags", "use_metadata_tags",
]


def run_cmd(cmd: List[str]) -> None:
    """Run a command, raising EncoderError with its output if it fails."""
    try:
        p = subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.STDOUT, text=True)
    except OSError as e:
        raise EncoderError(f"Could not start {cmd[0]}: {e}") from e
    if p.returncode != 0:
        logger.error(f"Command failed ({p.returncode}): {' '.join(cmd)}")
        logger.debug(f"Output:\n{p.stdout}")
        raise EncoderError(f"Command failed ({p.returncode}): {' '.join(cmd)}")
    logger.debug(f"Command ok: {' '.join(cmd)}")


def check_ffmpeg() -> bool:
    """True if the ffmpeg binary can be run."""
    try:
        run_cmd([FFMPEG_BIN, "-version"])
    except EncoderError:
        return False
    return True


def _attach_chapters(mp4_path: Path, chapter_path: Path) -> None:
    temp_output = mp4_path.with_name(f"{mp4_path.stem}_temp{mp4_path.suffix}")
    run_cmd([
        FFMPEG_BIN, "-y",
        "-i", str(mp4_path),
        "-i", str(chapter_path),
        *CHAPTER_OPTIONS,
        str(temp_output),
    ])
    os.replace(temp_output, mp4_path)


def convert_webm_to_mp4(input_path: Path | str, output_path: Path | str,
                        chapter_path: Optional[Path | str] = None) -> Path:
    """
    Transcode a capture to MP4, then add chapters in a second pass.

    A failed chapter pass is only logged; the MP4 is kept without chapters.

    Raises:
        EncoderError: If the transcode itself fails
    """
    output_path = Path(output_path)
    run_cmd([
        FFMPEG_BIN, "-y",
        "-i", str(input_path),
        *ENCODE_OPTIONS,
        str(output_path),
    ])
    logger.info("Video conversion completed")

    if chapter_path and Path(chapter_path).exists():
        logger.info(f"Adding chapters from: {chapter_path}")
        try:
            _attach_chapters(output_path, Path(chapter_path))
            logger.info("Chapters added successfully")
        except (EncoderError, OSError) as e:
            logger.warning(f"Failed to add chapters, keeping video without chapters: {e}")

    return output_path


def convert_and_cleanup(webm_path: Path | str, mp4_path: Path | str,
                        chapter_path: Optional[Path | str] = None) -> Path:
    """
    Convert and delete the WebM on success.

    Returns:
        The MP4 path, or the untouched WebM path if conversion failed
    """
    try:
        result = convert_webm_to_mp4(webm_path, mp4_path, chapter_path)
    except EncoderError as e:
        logger.error(f"Failed to convert video, keeping WebM format: {e}")
        return Path(webm_path)
    delete_file(webm_path)
    return result
