"""
Timeline logger: a timecoded narrative of a workflow run.

Walks the action stream alongside execution and produces three correlated
artifacts in the run directory:

    timecode.txt   plain-text log, one line per action start/completion/error
    markers.vtt    WebVTT cues, one per action, each shown for 3 seconds
    chapters.txt   FFmpeg metadata chapters, consumed by the video encoder

The clock is restarted on the first ``goto`` so times line up with the
browser capture, which begins roughly when the first page loads. Entries
recorded before that point are pinned to 0 so chapters never run backwards.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from fractions import Fraction
from pathlib import Path
from typing import Callable, Iterator, Optional

from persistence import write_text
from workflow_errors import FileSystemError
from workflow_models import action_label

logger = logging.getLogger(__name__)

LOG_FILE = "timecode.txt"
VTT_FILE = "markers.vtt"
CHAPTER_FILE = "chapters.txt"

CUE_DURATION_MS = 3000
RULE_WIDTH = 80


@dataclass
class TimelineEntry:
    elapsed_ms: int
    action_type: str
    description: str
    index: int
    duration_ms: Optional[int] = None
    error: Optional[str] = None
    skip_vtt: bool = False
    skip_chapter: bool = False


@dataclass(frozen=True)
class Cue:
    start_ms: int
    end_ms: int
    text: str


@dataclass(frozen=True)
class Chapter:
    start_ms: int
    end_ms: Optional[int]  # None for the last chapter
    title: str


def format_log_time(ms: int) -> str:
    """MM:SS.mmm"""
    total_seconds, millis = divmod(int(ms), 1000)
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes:02d}:{seconds:02d}.{millis:03d}"


def format_vtt_time(ms: int) -> str:
    """HH:MM:SS.mmm"""
    total_seconds, millis = divmod(int(ms), 1000)
    total_minutes, seconds = divmod(total_seconds, 60)
    hours, minutes = divmod(total_minutes, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}.{millis:03d}"


def format_duration(ms: int) -> str:
    total_seconds, millis = divmod(int(ms), 1000)
    if total_seconds >= 60:
        minutes, seconds = divmod(total_seconds, 60)
        return f"{minutes}m {seconds}s {millis}ms"
    return f"{total_seconds}s {millis}ms"


# FFmpeg metadata values need these characters backslash-escaped
_METADATA_SPECIALS = "\\=;#\n"


def escape_metadata(value: str) -> str:
    for ch in _METADATA_SPECIALS:
        value = value.replace(ch, "\\" + ch)
    return value


def render_vtt(cues: list[Cue]) -> str:
    parts = ["WEBVTT\n\n"]
    for number, cue in enumerate(cues, start=1):
        text = " ".join(cue.text.splitlines())
        parts.append(f"{number}\n")
        parts.append(f"{format_vtt_time(cue.start_ms)} --> {format_vtt_time(cue.end_ms)}\n")
        parts.append(f"{text}\n\n")
    return "".join(parts)


def render_chapters(chapters: list[Chapter]) -> str:
    parts = [";FFMETADATA1\n"]
    for chapter in chapters:
        parts.append("\n[CHAPTER]\n")
        parts.append("TIMEBASE=1/1000\n")
        parts.append(f"START={chapter.start_ms}\n")
        if chapter.end_ms is not None:
            parts.append(f"END={chapter.end_ms}\n")
        parts.append(f"title={escape_metadata(chapter.title)}\n")
    return "".join(parts)


def _logical_lines(text: str) -> Iterator[list[str]]:
    """Split metadata text into lines of tokens; escaped chars stay 2-char tokens."""
    line: list[str] = []
    escaped = False
    for ch in text:
        if escaped:
            line.append("\\" + ch)
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch == "\n":
            yield line
            line = []
        else:
            line.append(ch)
    if line:
        yield line


def _unescape(tokens: list[str]) -> str:
    return "".join(token[-1] for token in tokens)


def _to_ms(value: str, timebase: Fraction) -> int:
    return int(Fraction(int(value)) * timebase * 1000)


def parse_chapter_metadata(text: str) -> list[Chapter]:
    """
    Parse an FFmpeg metadata file back into chapters.

    Only [CHAPTER] sections are read; global metadata is ignored.
    """
    sections: list[dict[str, str]] = []
    current: Optional[dict[str, str]] = None

    for tokens in _logical_lines(text):
        if not tokens or tokens[0] in (";", "#"):
            continue
        raw = "".join(tokens)
        if raw.startswith("["):
            current = {} if raw == "[CHAPTER]" else None
            if current is not None:
                sections.append(current)
            continue
        if current is None or "=" not in tokens:
            continue
        split = tokens.index("=")
        current[_unescape(tokens[:split]).upper()] = _unescape(tokens[split + 1:])

    chapters = []
    for section in sections:
        timebase = Fraction(section.get("TIMEBASE", "1/1000"))
        end = section.get("END")
        chapters.append(Chapter(
            start_ms=_to_ms(section.get("START", "0"), timebase),
            end_ms=_to_ms(end, timebase) if end is not None else None,
            title=section.get("TITLE", ""),
        ))
    return chapters


class TimelineLogger:
    """
    Records one workflow run.

    Owned by the runner for the duration of a run; entries are append-only
    and only this object reads them until the run is finalized.
    """

    def __init__(
        self,
        output_dir: Path | str,
        workflow_name: str,
        skip_all_vtt: bool = False,
        skip_all_chapters: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.output_dir = Path(output_dir)
        self.log_path = self.output_dir / LOG_FILE
        self.vtt_path = self.output_dir / VTT_FILE
        self.chapter_path = self.output_dir / CHAPTER_FILE
        self.workflow_name = workflow_name
        self.skip_all_vtt = skip_all_vtt
        self.skip_all_chapters = skip_all_chapters

        self._clock = clock
        self._origin = clock()
        self._origin_reset = False
        self._entries: list[TimelineEntry] = []
        self._finalized = False
        self.started_at = datetime.now(timezone.utc)

        self._write_header()

    @property
    def entries(self) -> tuple[TimelineEntry, ...]:
        return tuple(self._entries)

    @property
    def finalized(self) -> bool:
        return self._finalized

    def _elapsed_ms(self) -> int:
        return max(0, int(round((self._clock() - self._origin) * 1000)))

    def _write_header(self) -> None:
        header = "\n".join([
            f"Workflow: {self.workflow_name}",
            f"Started at: {self.started_at.isoformat(timespec='milliseconds')}",
            "=" * RULE_WIDTH,
            "",
            "TIME\t\tDURATION\tACTION\t\t\tDESCRIPTION",
            "-" * RULE_WIDTH,
            "",
        ])
        write_text(self.log_path, header)

    def _append(self, text: str) -> None:
        try:
            with open(self.log_path, "a", encoding="utf-8") as f:
                f.write(text)
        except OSError as e:
            raise FileSystemError(f"Failed to write timecode log: {e}", str(self.log_path)) from e

    def record_start(self, action, index: int) -> TimelineEntry:
        """Append an entry for an action that is about to run."""
        if not self._origin_reset and action.type == "goto":
            self._origin = self._clock()
            self._origin_reset = True
            # Actions before the first page load collapse onto the new origin
            for earlier in self._entries:
                earlier.elapsed_ms = 0

        elapsed = self._elapsed_ms()
        entry = TimelineEntry(
            elapsed_ms=elapsed,
            action_type=action.type,
            description=action_label(action),
            index=index,
            skip_vtt=action.skip_vtt,
            skip_chapter=action.skip_chapter,
        )
        self._entries.append(entry)
        self._append(f"{format_log_time(elapsed)}\t\t+0ms\t\t{action.type:<20}\t{entry.description}\n")
        return entry

    def record_complete(self, action, index: int, duration_ms: int) -> None:
        if self._entries:
            self._entries[-1].duration_ms = duration_ms
        elapsed = self._elapsed_ms()
        self._append(f"{format_log_time(elapsed)}\t\t+{duration_ms}ms\t\t[Completed #{index + 1}]\n")

    def record_failure(self, action, index: int, error: BaseException) -> None:
        if self._entries and self._entries[-1].index == index:
            self._entries[-1].error = str(error)
        elapsed = self._elapsed_ms()
        self._append(f"{format_log_time(elapsed)}\t\t[ERROR]\t\t{action.type}\t\t{error}\n")

    def cues(self) -> list[Cue]:
        if self.skip_all_vtt:
            return []
        return [
            Cue(e.elapsed_ms, e.elapsed_ms + CUE_DURATION_MS, e.description)
            for e in self._entries if not e.skip_vtt
        ]

    def chapters(self) -> list[Chapter]:
        if self.skip_all_chapters:
            return []
        kept = [e for e in self._entries if not e.skip_chapter]
        chapters = []
        for position, entry in enumerate(kept):
            end = kept[position + 1].elapsed_ms if position + 1 < len(kept) else None
            chapters.append(Chapter(entry.elapsed_ms, end, entry.description))
        return chapters

    def emit_derived_tracks(self) -> None:
        """(Re)write the cue and chapter files from the current entries."""
        write_text(self.vtt_path, render_vtt(self.cues()))
        write_text(self.chapter_path, render_chapters(self.chapters()))

    def finalize(self, total_duration_ms: int) -> None:
        """Close out the log with a footer. Must be called exactly once per run."""
        if self._finalized:
            raise RuntimeError("Timeline already finalized")
        self._finalized = True

        footer = "\n".join([
            "",
            "-" * RULE_WIDTH,
            f"Total duration: {format_duration(total_duration_ms)}",
            f"Completed at: {datetime.now(timezone.utc).isoformat(timespec='milliseconds')}",
            "",
        ])
        self._append(footer)
        self.emit_derived_tracks()
        logger.info(f"Timecode log saved: {self.log_path}")
