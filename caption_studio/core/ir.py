"""Intermediate representation for word timings, caption style, and layers.

WHY: Three pipelines share the same data: transcription produces word
timestamps, transliteration rewrites their text, the timeline turns them
into per-word layers, and the render builder consumes all of it. A single
set of well-typed dataclasses is the stable contract between them.

HOW: Plain dataclasses:
  WordTimestamp — one spoken word with start/end seconds and confidence
  CaptionStyle  — frozen snapshot of the caption look (font, colour, shadow)
  Layer         — base overlay entity in 1920x1080 design space
  TextLayer     — static text overlay
  WordLayer     — per-word timed text overlay (tagged sub-variant of TextLayer)
  ImageLayer    — image overlay (data URI or URL)
Each has from_dict/to_dict helpers that speak the editor's camelCase wire
format, so the HTTP layer never hand-maps field names.

RULES:
- All times are float seconds
- WordTimestamp: end >= start >= 0 after normalization
- A word read without an end lasts DEFAULT_WORD_DURATION seconds
- CaptionStyle is immutable; use .replace() to derive a new snapshot
- Layer ids are unique hex strings generated at construction time
- is_word_layer is a class-level tag, True only on WordLayer
"""

from __future__ import annotations

import dataclasses
import uuid
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Optional

# Duration given to a word whose end time is missing.
DEFAULT_WORD_DURATION = 0.3


def new_layer_id() -> str:
    return uuid.uuid4().hex


@dataclass
class WordTimestamp:
    """A single word with its spoken interval.

    RULES:
    - word: the display text (mutated only by transliteration)
    - start / end: seconds from the start of the media
    - confidence: 0.0–1.0, or None when the source did not provide one
    """

    word: str
    start: float
    end: float
    confidence: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> WordTimestamp:
        start = float(data.get("start") or 0.0)
        end = data.get("end")
        return cls(
            word=str(data.get("word") or ""),
            start=start,
            end=float(end) if end is not None else start + DEFAULT_WORD_DURATION,
            confidence=data.get("confidence"),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"word": self.word, "start": self.start, "end": self.end}
        if self.confidence is not None:
            out["confidence"] = self.confidence
        return out


# Editor wire names → CaptionStyle field names.
_STYLE_WIRE_NAMES = {
    "fontFamily": "font_family",
    "fontSize": "font_size",
    "fill": "color",
    "color": "color",
    "fontWeight": "font_weight",
    "shadowBlur": "shadow_blur",
    "shadowX": "shadow_offset_x",
    "shadowOffsetX": "shadow_offset_x",
    "shadowY": "shadow_offset_y",
    "shadowOffsetY": "shadow_offset_y",
    "shadowOpacity": "shadow_opacity",
    "verticalPosition": "vertical_position",
    "speedOffset": "speed_offset",
    "textAlign": "text_align",
}


@dataclass(frozen=True)
class CaptionStyle:
    """Immutable caption look, snapshotted at export time.

    WHY: The editor mutates the style live while the user drags sliders.
    An in-flight export must not observe those edits, so the render path
    only ever receives a frozen copy.

    RULES:
    - color: "#RRGGBB" hex
    - vertical_position: 0–100, percent from the top of the frame
    - speed_offset: signed seconds added to every cue
    - shadow_opacity: 0.0–1.0
    """

    font_family: str = "Arial"
    font_size: int = 80
    color: str = "#FFFF00"
    font_weight: str = "bold"
    shadow_blur: float = 10
    shadow_offset_x: float = 3
    shadow_offset_y: float = 3
    shadow_opacity: float = 0.9
    vertical_position: float = 50
    speed_offset: float = 0.0
    text_align: str = "center"

    @property
    def is_bold(self) -> bool:
        return str(self.font_weight).lower() == "bold"

    def replace(self, **changes: Any) -> CaptionStyle:
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> CaptionStyle:
        """Build a style from editor (camelCase) or snake_case keys.

        Unknown keys are ignored; None values fall back to defaults.
        """
        if not data:
            return cls()
        known = {f.name for f in dataclasses.fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            name = _STYLE_WIRE_NAMES.get(key, key)
            if name in known and value is not None:
                kwargs[name] = value
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fontFamily": self.font_family,
            "fontSize": self.font_size,
            "fill": self.color,
            "fontWeight": self.font_weight,
            "shadowBlur": self.shadow_blur,
            "shadowX": self.shadow_offset_x,
            "shadowY": self.shadow_offset_y,
            "shadowOpacity": self.shadow_opacity,
            "verticalPosition": self.vertical_position,
            "speedOffset": self.speed_offset,
            "textAlign": self.text_align,
        }


@dataclass
class Layer:
    """Base overlay entity positioned in 1920x1080 design space."""

    type: ClassVar[str] = ""
    is_word_layer: ClassVar[bool] = False

    id: str = field(default_factory=new_layer_id)
    left: float = 0.0
    top: float = 0.0
    scale_x: float = 1.0
    scale_y: float = 1.0
    angle: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "left": self.left,
            "top": self.top,
            "scaleX": self.scale_x,
            "scaleY": self.scale_y,
            "angle": self.angle,
        }


@dataclass
class TextLayer(Layer):
    type: ClassVar[str] = "text"

    text: str = ""
    font_size: int = 48
    fill: str = "#ffffff"
    font_family: str = "Arial"
    font_weight: str = "normal"
    font_style: str = "normal"

    def to_dict(self) -> Dict[str, Any]:
        out = super().to_dict()
        out.update({
            "text": self.text,
            "fontSize": self.font_size,
            "fill": self.fill,
            "fontFamily": self.font_family,
            "fontWeight": self.font_weight,
            "fontStyle": self.font_style,
        })
        return out


@dataclass
class WordLayer(TextLayer):
    """A per-word caption layer that is only visible inside its interval."""

    is_word_layer: ClassVar[bool] = True

    start_time: float = 0.0
    end_time: float = 0.0
    word_index: int = 0

    def to_dict(self) -> Dict[str, Any]:
        out = super().to_dict()
        out.update({
            "isWordLayer": True,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "wordIndex": self.word_index,
        })
        return out


@dataclass
class ImageLayer(Layer):
    type: ClassVar[str] = "image"

    src: str = ""
    name: str = ""

    def to_dict(self) -> Dict[str, Any]:
        out = super().to_dict()
        out.update({"src": self.src, "name": self.name})
        return out


def _common_layer_kwargs(data: Dict[str, Any]) -> Dict[str, Any]:
    kwargs: Dict[str, Any] = {
        "left": float(data.get("left") or 0.0),
        "top": float(data.get("top") or 0.0),
        "scale_x": float(data.get("scaleX") or 1.0),
        "scale_y": float(data.get("scaleY") or 1.0),
        "angle": float(data.get("angle") or 0.0),
    }
    if data.get("id"):
        kwargs["id"] = str(data["id"])
    return kwargs


def layer_from_dict(data: Dict[str, Any]) -> Layer:
    """Parse one layer from the editor wire format.

    RULES:
    - type "image" → ImageLayer
    - type "text" with isWordLayer → WordLayer
    - any other text layer → TextLayer
    - Unknown types raise ValueError
    """
    layer_type = data.get("type", "text")
    kwargs = _common_layer_kwargs(data)

    if layer_type == "image":
        return ImageLayer(src=data.get("src") or "", name=data.get("name") or "", **kwargs)

    if layer_type != "text":
        raise ValueError("Unknown layer type: {!r}".format(layer_type))

    kwargs.update({
        "text": data.get("text") or "",
        "font_size": int(data.get("fontSize") or 48),
        "fill": data.get("fill") or "#ffffff",
        "font_family": data.get("fontFamily") or "Arial",
        "font_weight": data.get("fontWeight") or "normal",
        "font_style": data.get("fontStyle") or "normal",
    })
    if data.get("isWordLayer"):
        start = float(data.get("startTime") or 0.0)
        end = data.get("endTime")
        return WordLayer(
            start_time=start,
            end_time=float(end) if end is not None else start + 1.0,
            word_index=int(data.get("wordIndex") or 0),
            **kwargs,
        )
    return TextLayer(**kwargs)
