"""Tests for the Timeline layer model.

WHY: Stale word layers (left over from a previous transcription) are the
editor's worst export bug: the video gets captions for words nobody
says. Every path that replaces the words must drop them.
"""

import pytest

from caption_studio.core.ir import CaptionStyle, ImageLayer, TextLayer, WordTimestamp
from caption_studio.core.timeline import Timeline


@pytest.fixture
def timeline(hello_world_words):
    tl = Timeline()
    tl.add_layer(TextLayer(id="title", text="Title", left=100, top=100))
    tl.set_words(hello_world_words)
    return tl


class TestWordLayers:

    def test_materialize_creates_one_layer_per_word(self, timeline):
        created = timeline.materialize_word_layers()
        assert [layer.text for layer in created] == ["hello", "world"]
        assert [layer.word_index for layer in created] == [0, 1]
        assert (created[0].start_time, created[0].end_time) == (0.4, 0.6)
        assert (created[0].left, created[0].top) == (960.0, 850.0)
        assert len(timeline.layers) == 3

    def test_materialize_snapshots_style(self, timeline):
        timeline.update_caption_style(font_size=64, color="#00FF00")
        layer = timeline.materialize_word_layers()[0]
        timeline.update_caption_style(font_size=20)
        assert layer.font_size == 64
        assert layer.fill == "#00FF00"

    def test_materialize_without_words_is_noop(self):
        tl = Timeline()
        assert tl.materialize_word_layers() == []
        assert tl.layers == []

    def test_set_words_removes_every_word_layer(self, timeline):
        timeline.materialize_word_layers()
        timeline.set_words([WordTimestamp("new", 0.0, 0.5)])
        assert timeline.word_layers == []
        assert [layer.id for layer in timeline.layers] == ["title"]

    def test_set_script_removes_every_word_layer(self, timeline):
        timeline.materialize_word_layers()
        timeline.set_script("a different script")
        assert timeline.word_layers == []
        assert timeline.script == "a different script"
        assert len(timeline.static_layers) == 1

    def test_set_words_copies_input(self, hello_world_words):
        tl = Timeline()
        tl.set_words(hello_world_words)
        hello_world_words[0].word = "changed"
        assert tl.words[0].word == "hello"

    def test_apply_style_to_all_word_layers(self, timeline):
        timeline.materialize_word_layers()
        count = timeline.apply_style_to_all_word_layers(font_size=30, fill="#FF0000")
        assert count == 2
        assert all(layer.font_size == 30 for layer in timeline.word_layers)
        assert timeline.get_layer("title").font_size == 48

    def test_apply_style_unknown_field_raises(self, timeline):
        timeline.materialize_word_layers()
        with pytest.raises(AttributeError):
            timeline.apply_style_to_all_word_layers(glow=True)

    def test_export_timestamps_prefers_word_layers(self, timeline):
        assert [w.word for w in timeline.export_timestamps()] == ["hello", "world"]
        timeline.materialize_word_layers()
        timeline.update_layer(timeline.word_layers[1].id, text="World!", end_time=1.5)
        exported = timeline.export_timestamps()
        assert exported[1].word == "World!"
        assert exported[1].end == 1.5

    @pytest.mark.parametrize("t, expected", [(0.0, -1), (0.4, 0), (0.7, 0), (0.8, 1), (9.0, 1)])
    def test_active_word_index(self, timeline, t, expected):
        assert timeline.active_word_index(t) == expected


class TestLayerEditing:

    def test_duplicate_id_rejected(self, timeline):
        with pytest.raises(ValueError, match="Duplicate"):
            timeline.add_layer(TextLayer(id="title"))

    def test_update_unknown_layer(self, timeline):
        with pytest.raises(KeyError):
            timeline.update_layer("missing", text="x")

    def test_update_cannot_change_id(self, timeline):
        with pytest.raises(AttributeError):
            timeline.update_layer("title", id="other")

    def test_remove_layer(self, timeline):
        assert timeline.remove_layer("title") is True
        assert timeline.remove_layer("title") is False
        assert timeline.layers == []

    def test_caption_style_is_replaced_not_mutated(self):
        original = CaptionStyle()
        tl = Timeline(original)
        tl.update_caption_style(vertical_position=80)
        assert original.vertical_position == 50
        assert tl.caption_style.vertical_position == 80


class TestOrdering:

    @pytest.fixture
    def three(self):
        tl = Timeline()
        for layer_id in ("a", "b", "c"):
            tl.add_layer(TextLayer(id=layer_id))
        return tl

    @staticmethod
    def _ids(tl):
        return [layer.id for layer in tl.layers]

    def test_swap(self, three):
        three.swap_layers(0)
        assert self._ids(three) == ["b", "a", "c"]

    def test_swap_out_of_range(self, three):
        with pytest.raises(IndexError):
            three.swap_layers(2)

    def test_move_up_and_down(self, three):
        assert three.move_layer("a", +1) == 1
        assert self._ids(three) == ["b", "a", "c"]
        assert three.move_layer("c", -1) == 1
        assert self._ids(three) == ["b", "c", "a"]

    def test_move_past_end_is_clamped(self, three):
        assert three.move_layer("c", +1) == 2
        assert three.move_layer("a", -1) == 0
        assert self._ids(three) == ["a", "b", "c"]

    def test_reorder_with_permutation(self, three):
        layers = three.layers
        three.reorder_layers([layers[2], layers[0], layers[1]])
        assert self._ids(three) == ["c", "a", "b"]

    def test_reorder_rejects_non_permutation(self, three):
        with pytest.raises(ValueError):
            three.reorder_layers([ImageLayer(id="x")] + three.layers[1:])
