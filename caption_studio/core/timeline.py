"""Timeline/layer model: the editor session's in-memory overlay state.

WHY: Word timings arrive from transcription or a typed script, get turned
into per-word caption layers, and sit alongside manually added text and
image overlays. Export needs a consistent snapshot of all of it. The
dangerous failure mode is stale word layers, meaning layers whose text or timing
belongs to a previous transcription. So invalidation is built into
every operation that replaces the words.

HOW: Timeline holds the word sequence, the script, the caption style
snapshot, and an ordered layer list (list order is z-order). It performs
no I/O.

RULES:
- set_words() and set_script() remove every word layer, keep all others
- materialize_word_layers() snapshots the style; later style edits do
  not touch existing layers unless apply_style_to_all_word_layers() is used
- materialize_word_layers() is a no-op with no timestamps
- reorder_layers() must receive a permutation of the current layers
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Iterable, List, Optional

from caption_studio.config import CANVAS_WIDTH
from caption_studio.core.ir import CaptionStyle, Layer, WordLayer, WordTimestamp

logger = logging.getLogger(__name__)

DEFAULT_WORD_ANCHOR = (CANVAS_WIDTH / 2, 850.0)


class Timeline:
    """Ordered overlay layers plus the word timings they were built from."""

    def __init__(self, caption_style: Optional[CaptionStyle] = None) -> None:
        self.caption_style = caption_style or CaptionStyle()
        self.script = ""
        self._words: List[WordTimestamp] = []
        self._layers: List[Layer] = []

    # ------------------------------------------------------------------
    # Words
    # ------------------------------------------------------------------

    @property
    def words(self) -> List[WordTimestamp]:
        return list(self._words)

    @property
    def layers(self) -> List[Layer]:
        return list(self._layers)

    @property
    def word_layers(self) -> List[WordLayer]:
        return [layer for layer in self._layers if layer.is_word_layer]

    @property
    def static_layers(self) -> List[Layer]:
        return [layer for layer in self._layers if not layer.is_word_layer]

    def _invalidate_word_layers(self) -> None:
        removed = len(self._layers) - len(self.static_layers)
        self._layers = self.static_layers
        if removed:
            logger.debug("Removed %d stale word layers", removed)

    def set_words(self, timestamps: Iterable[WordTimestamp]) -> None:
        """Replace the word sequence and drop every existing word layer."""
        self._words = [dataclasses.replace(t) for t in timestamps]
        self._invalidate_word_layers()

    def set_script(self, text: str) -> None:
        """Store the script text; any script edit invalidates word layers."""
        self.script = text
        self._invalidate_word_layers()

    def materialize_word_layers(
        self,
        left: float = DEFAULT_WORD_ANCHOR[0],
        top: float = DEFAULT_WORD_ANCHOR[1],
    ) -> List[WordLayer]:
        """Create one word layer per timestamp at the given anchor.

        Font attributes are copied from the current caption style.
        Returns the created layers (empty when there are no timestamps).
        """
        if not self._words:
            return []

        style = self.caption_style
        created = [
            WordLayer(
                text=item.word,
                left=left,
                top=top,
                font_size=style.font_size,
                fill=style.color,
                font_family=style.font_family,
                font_weight=style.font_weight,
                start_time=item.start,
                end_time=item.end,
                word_index=index,
            )
            for index, item in enumerate(self._words)
        ]
        self._layers.extend(created)
        return created

    def apply_style_to_all_word_layers(self, **fields: Any) -> int:
        """Overwrite the given fields on every word layer; return the count."""
        count = 0
        for layer in self.word_layers:
            for name, value in fields.items():
                if not hasattr(layer, name):
                    raise AttributeError("WordLayer has no field {!r}".format(name))
                setattr(layer, name, value)
            count += 1
        return count

    def update_caption_style(self, **changes: Any) -> CaptionStyle:
        self.caption_style = self.caption_style.replace(**changes)
        return self.caption_style

    def active_word_index(self, current_time: float) -> int:
        """Index of the last word starting at or before current_time, else -1."""
        for i in range(len(self._words) - 1, -1, -1):
            if current_time >= self._words[i].start:
                return i
        return -1

    def export_timestamps(self) -> List[WordTimestamp]:
        """Timings to export: word layers if any exist, else the stored words."""
        word_layers = self.word_layers
        if word_layers:
            return [
                WordTimestamp(word=layer.text, start=layer.start_time, end=layer.end_time)
                for layer in word_layers
            ]
        return self.words

    # ------------------------------------------------------------------
    # Layers
    # ------------------------------------------------------------------

    def add_layer(self, layer: Layer) -> Layer:
        if self.get_layer(layer.id) is not None:
            raise ValueError("Duplicate layer id: {}".format(layer.id))
        self._layers.append(layer)
        return layer

    def get_layer(self, layer_id: str) -> Optional[Layer]:
        for layer in self._layers:
            if layer.id == layer_id:
                return layer
        return None

    def update_layer(self, layer_id: str, **changes: Any) -> Layer:
        layer = self.get_layer(layer_id)
        if layer is None:
            raise KeyError(layer_id)
        for name, value in changes.items():
            if name == "id" or not hasattr(layer, name):
                raise AttributeError("Cannot set {!r} on {}".format(name, type(layer).__name__))
            setattr(layer, name, value)
        return layer

    def remove_layer(self, layer_id: str) -> bool:
        before = len(self._layers)
        self._layers = [layer for layer in self._layers if layer.id != layer_id]
        return len(self._layers) != before

    def swap_layers(self, index: int) -> None:
        """Swap the entries at index and index + 1."""
        if not 0 <= index < len(self._layers) - 1:
            raise IndexError("Cannot swap layer at index {}".format(index))
        self._layers[index], self._layers[index + 1] = self._layers[index + 1], self._layers[index]

    def move_layer(self, layer_id: str, delta: int) -> int:
        """Move a layer one step up (+1) or down (-1); return its new index.

        Moves past either end are clamped.
        """
        ids = [layer.id for layer in self._layers]
        if layer_id not in ids:
            raise KeyError(layer_id)
        index = ids.index(layer_id)
        if delta > 0 and index < len(ids) - 1:
            self.swap_layers(index)
            return index + 1
        if delta < 0 and index > 0:
            self.swap_layers(index - 1)
            return index - 1
        return index

    def reorder_layers(self, new_layers: Iterable[Layer]) -> None:
        """Replace the layer order with a permutation of the current layers."""
        new_layers = list(new_layers)
        if sorted(layer.id for layer in new_layers) != sorted(layer.id for layer in self._layers):
            raise ValueError("reorder_layers() requires a permutation of the current layers")
        self._layers = new_layers
