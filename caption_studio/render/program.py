"""Render program builder: layers + words + caption style → ffmpeg filter chain.

WHY: Export must burn exactly what the editor shows into the video in a
single encoder pass (every extra pass re-encodes and loses quality). This
module is the pure, deterministic translation from the in-memory timeline
to that one filter chain, kept free of I/O so it can be tested
byte-for-byte.

HOW: build() emits, in order:
  1. a subtitles filter over an SRT track (one cue per word timestamp),
     styled via ASS force_style derived from the CaptionStyle
  2. one always-on drawtext per static text layer, in layer order
  3. only when there are no word timestamps: one time-gated drawtext per
     word layer (enable='between(t,start,end)')
The SRT text travels inside the returned FilterProgram; the executor
writes it to subtitle_path before running the encoder.

RULES:
- Same inputs → byte-identical output
- PrimaryColour is &H00BBGGRR (ASS alpha-blue-green-red)
- MarginV = round((100 - vertical_position) * 10.8)  (1080-row frame)
- Outline = max(2, round(shadow_blur / 3))
- Shadow  = max(1, round(hypot(shadow_x, shadow_y) / 2))
- Rounding is half-up, matching the editor's preview maths
- Image layers are not burned in; they are reported in skipped_layers
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from caption_studio.config import CANVAS_HEIGHT
from caption_studio.core.ir import CaptionStyle, Layer, TextLayer, WordLayer, WordTimestamp
from caption_studio.render.srt import build_cues, build_srt

logger = logging.getLogger(__name__)

DEFAULT_SUBTITLE_PATH = "subtitles.srt"

_ALIGNMENT = {"left": 1, "center": 2, "right": 3}
_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


@dataclass(frozen=True)
class FilterProgram:
    """A complete single-pass filter chain plus the subtitle track it reads."""

    filters: Tuple[str, ...]
    subtitles_srt: Optional[str] = None
    subtitle_path: Optional[str] = None
    skipped_layers: Tuple[str, ...] = ()

    @property
    def filter_chain(self) -> str:
        return ",".join(self.filters)

    @property
    def has_subtitles(self) -> bool:
        return self.subtitles_srt is not None


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _format_number(value: float) -> str:
    """Compact deterministic number formatting: 2.0 → "2", 0.4567 → "0.457"."""
    if float(value).is_integer():
        return str(int(value))
    return "{:.3f}".format(value).rstrip("0").rstrip(".")


def _hex_digits(color: str) -> str:
    match = _HEX_RE.match(color.strip())
    if not match:
        raise ValueError("Invalid hex colour: {!r}".format(color))
    digits = match.group(1)
    if len(digits) == 3:
        digits = "".join(c * 2 for c in digits)
    return digits.upper()


def hex_to_ass_color(color: str) -> str:
    """Convert "#RRGGBB" into the ASS "&H00BBGGRR" form."""
    digits = _hex_digits(color)
    return "&H00{}{}{}".format(digits[4:6], digits[2:4], digits[0:2])


def hex_to_ffmpeg_color(color: str) -> str:
    return "0x" + _hex_digits(color)


def _escape_option_value(value: str) -> str:
    """Backslash-escape the characters the filter option parser splits on."""
    return re.sub(r"([\\':])", r"\\\1", value)


def _quote_graph_value(value: str) -> str:
    """Single-quote a value for the filtergraph parser.

    Inside quotes everything is literal except the quote itself, which has
    to be closed, escaped and reopened.
    """
    return "'{}'".format(value.replace("'", "'\\''"))


def escape_filter_text(text: str) -> str:
    """Quote a drawtext text value so it survives all three unescaping levels.

    The filtergraph parser strips one level, the option parser a second,
    and drawtext's own expansion a third (where '%' and '\\' are special).
    """
    expanded = text.replace("\n", " ").replace("\\", "\\\\").replace("%", "\\%")
    return _quote_graph_value(_escape_option_value(expanded))


def escape_filter_path(path: str) -> str:
    return _quote_graph_value(_escape_option_value(path.replace("\\", "/")))


def margin_v(style: CaptionStyle) -> int:
    return _round_half_up((100 - style.vertical_position) * (CANVAS_HEIGHT / 100))


def outline_size(style: CaptionStyle) -> int:
    return max(2, _round_half_up(style.shadow_blur / 3))


def shadow_depth(style: CaptionStyle) -> int:
    return max(1, _round_half_up(math.hypot(style.shadow_offset_x, style.shadow_offset_y) / 2))


def force_style(style: CaptionStyle) -> str:
    """The ASS force_style override string for the subtitles filter."""
    return ",".join([
        "FontName={}".format(style.font_family.replace(",", " ")),
        "FontSize={}".format(_format_number(style.font_size)),
        "PrimaryColour={}".format(hex_to_ass_color(style.color)),
        "OutlineColour=&H00000000",
        "BackColour=&H80000000",
        "BorderStyle=1",
        "Outline={}".format(outline_size(style)),
        "Shadow={}".format(shadow_depth(style)),
        "Bold={}".format(-1 if style.is_bold else 0),
        "Alignment={}".format(_ALIGNMENT.get(style.text_align, 2)),
        "MarginV={}".format(margin_v(style)),
        "Spacing=0",
    ])


def subtitles_filter(subtitle_path: str, style: CaptionStyle) -> str:
    return "subtitles={}:force_style={}".format(
        escape_filter_path(subtitle_path),
        _quote_graph_value(_escape_option_value(force_style(style))),
    )


def static_text_filter(layer: TextLayer) -> str:
    return "drawtext=text={}:x={}:y={}:fontsize={}:fontcolor={}".format(
        escape_filter_text(layer.text),
        _format_number(layer.left),
        _format_number(layer.top),
        _format_number(layer.font_size),
        hex_to_ffmpeg_color(layer.fill),
    )


def word_layer_filter(layer: WordLayer, style: CaptionStyle) -> str:
    """Time-gated drawtext for one word layer, styled by the caption style."""
    return (
        "drawtext=text={}:x=(w-text_w)/2:y=(h*{})/100:fontsize={}:fontcolor={}"
        ":enable='between(t,{},{})'"
    ).format(
        escape_filter_text(layer.text),
        _format_number(style.vertical_position),
        _format_number(style.font_size),
        hex_to_ffmpeg_color(style.color),
        _format_number(layer.start_time),
        _format_number(layer.end_time),
    )


def build(
    layers: Sequence[Layer],
    word_timestamps: Sequence[WordTimestamp],
    caption_style: CaptionStyle,
    subtitle_path: str = DEFAULT_SUBTITLE_PATH,
) -> FilterProgram:
    """Translate the timeline into one ordered filter chain.

    Args:
        layers: All layers in z-order.
        word_timestamps: Words for the subtitle track (may be empty).
        caption_style: Frozen style snapshot.
        subtitle_path: Where the executor will write the SRT track.

    Raises:
        ValueError: a colour is not a valid hex triplet.
    """
    filters = []
    srt_text = None

    if word_timestamps:
        cues = build_cues(word_timestamps, caption_style.speed_offset)
        srt_text = build_srt(cues)
        filters.append(subtitles_filter(subtitle_path, caption_style))

    word_layers = []
    skipped = []
    for layer in layers:
        if layer.is_word_layer:
            word_layers.append(layer)
        elif isinstance(layer, TextLayer):
            filters.append(static_text_filter(layer))
        else:
            skipped.append(layer.id)

    if word_layers and not word_timestamps:
        filters.extend(word_layer_filter(layer, caption_style) for layer in word_layers)

    if skipped:
        logger.info("Image layers are not burned in; skipping %d layer(s)", len(skipped))

    return FilterProgram(
        filters=tuple(filters),
        subtitles_srt=srt_text,
        subtitle_path=subtitle_path if srt_text is not None else None,
        skipped_layers=tuple(skipped),
    )
