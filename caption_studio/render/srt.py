"""SRT cue generation from word timestamps.

WHY: The burned-in caption track is rendered by ffmpeg's subtitles
filter, which reads a timed-text file. One cue per word gives the
word-by-word reveal the editor previews.

HOW: build_cues() shifts every word by the caption speed offset and
clamps at zero; build_srt() serializes cues in SubRip format.

RULES:
- Cue index starts at 1 and is sequential
- Timecodes are HH:MM:SS,mmm, computed from whole milliseconds
- Negative shifted times are clamped to 0
- Cue body is the literal word text
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

from caption_studio.core.ir import WordTimestamp


@dataclass(frozen=True)
class Cue:
    index: int
    start: float
    end: float
    text: str


def format_srt_time(seconds: float) -> str:
    """Format seconds as an SRT timecode, e.g. 3661.5 → "01:01:01,500"."""
    total_ms = max(0, int(round(seconds * 1000)))
    hours, rem = divmod(total_ms, 3_600_000)
    minutes, rem = divmod(rem, 60_000)
    secs, ms = divmod(rem, 1000)
    return "{:02d}:{:02d}:{:02d},{:03d}".format(hours, minutes, secs, ms)


def build_cues(words: Sequence[WordTimestamp], speed_offset: float = 0.0) -> List[Cue]:
    return [
        Cue(
            index=i,
            start=max(0.0, w.start + speed_offset),
            end=max(0.0, w.end + speed_offset),
            text=w.word,
        )
        for i, w in enumerate(words, start=1)
    ]


def build_srt(cues: Sequence[Cue]) -> str:
    """Serialize cues as an SRT document (blank line after every cue)."""
    return "".join(
        "{}\n{} --> {}\n{}\n\n".format(
            cue.index, format_srt_time(cue.start), format_srt_time(cue.end), cue.text
        )
        for cue in cues
    )
