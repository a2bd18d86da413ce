"""Export rendering: filter-program building, encoding, and job execution.

WHY: Export turns the editor timeline into a video with captions and
overlays burned in. The deterministic part (what to draw, when) is kept
separate from the side-effecting part (running ffmpeg, tracking jobs)
so the former can be tested byte-for-byte.

HOW: srt.py and program.py are pure; encoder.py wraps the ffmpeg
subprocess; executor.py runs jobs in the background against a
JobRepository.
"""

from caption_studio.render.program import FilterProgram, build

__all__ = ["FilterProgram", "build"]
