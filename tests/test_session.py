import numpy as np
import pytest

from spriteslice.core import (
    GridSettings,
    IslandSettings,
    PixelBuffer,
    ProcessingSettings,
    Rect,
    RectSource,
    SliceMode,
    SliceSettings,
)
from spriteslice.core.errors import ValidationError
from spriteslice.core.session import SliceSession


def _sheet():
    """32x16 sheet with two 4x4 sprites on transparent background."""

    pixels = np.zeros((16, 32, 4), dtype=np.uint8)
    pixels[2:6, 2:6] = (255, 0, 0, 255)
    pixels[8:12, 20:24] = (0, 0, 255, 255)
    return PixelBuffer(pixels)


def _session(mode=SliceMode.GRID, **settings):
    session = SliceSession(SliceSettings(mode=mode, grid=GridSettings(width=16, height=16), **settings))
    session.load_image(_sheet())
    return session


def test_grid_mode_generates_non_empty_cells():
    session = _session()
    frames = session.generate()
    assert [f.id for f in frames] == ["grid-0", "grid-1"]
    assert session.frames == frames


def test_island_mode_uses_detected_rects():
    session = _session(SliceMode.ISLANDS, islands=IslandSettings(min_width=2, min_height=2))
    frames = session.generate()
    assert [(f.id, f.source_rect.x, f.source_rect.y) for f in frames] == [("island-0", 2, 2), ("island-1", 20, 8)]


def test_manual_rects_come_after_mode_rects():
    session = _session()
    manual = session.add_manual_rect(2, 2, 3, 3)
    rects = session.collect_rects()
    assert rects[-1] == manual
    assert [r.source for r in rects] == [RectSource.GRID, RectSource.GRID, RectSource.MANUAL]


def test_manual_mode_only_uses_manual_rects():
    session = _session(SliceMode.MANUAL)
    assert session.collect_rects() == []
    rect = session.add_manual_rect(20, 8, 4, 4)
    assert [f.id for f in session.generate()] == [rect.id]


def test_add_rect_rejects_non_manual_and_empty_rects():
    session = _session()
    with pytest.raises(ValidationError):
        session.add_rect(Rect(RectSource.GRID, "9", 0, 0, 4, 4))
    with pytest.raises(ValidationError):
        session.add_manual_rect(0, 0, 0, 4)


def test_delete_routes_manual_and_detected_ids():
    session = _session()
    manual = session.add_manual_rect(2, 2, 3, 3)
    session.generate()
    session.select(manual.id)

    session.delete_frames([manual.id, "grid-1"])

    assert session.manual_rects == []
    assert session.hidden_ids == {"grid-1"}
    assert [f.id for f in session.frames] == ["grid-0"]
    assert session.selected_id is None
    assert [f.id for f in session.generate()] == ["grid-0"]


def test_grid_change_clears_hidden_ids_but_processing_change_does_not():
    session = _session()
    session.delete_frames(["grid-0"])
    session.update_settings(processing=ProcessingSettings(auto_trim=True))
    assert session.hidden_ids == {"grid-0"}
    session.update_settings(grid=GridSettings(width=8, height=8))
    assert session.hidden_ids == set()


def test_island_cache_is_reused_even_when_empty(monkeypatch):
    session = SliceSession(SliceSettings(mode=SliceMode.ISLANDS))
    session.load_image(PixelBuffer.blank(8, 8))
    calls = []

    from spriteslice.core import session as session_module

    real_detect = session_module.detect_islands

    def counting_detect(*args, **kwargs):
        calls.append(args)
        return real_detect(*args, **kwargs)

    monkeypatch.setattr(session_module, "detect_islands", counting_detect)
    assert session.generate() == []
    assert session.generate() == []
    assert len(calls) == 1

    session.update_settings(islands=IslandSettings(min_width=1, min_height=1))
    session.generate()
    assert len(calls) == 2

    session.islands.invalidate()
    session.generate()
    assert len(calls) == 3


def test_color_key_change_triggers_island_redetection():
    session = _session(SliceMode.ISLANDS, islands=IslandSettings(min_width=1, min_height=1))
    assert len(session.island_rects()) == 2
    session.update_settings(
        processing=ProcessingSettings(color_key_enabled=True, color_key_colors=["#ff0000"], color_key_tolerance=5)
    )
    assert [(r.x, r.y) for r in session.island_rects()] == [(20, 8)]


def test_update_rect_edits_islands_and_manual_but_not_grid():
    session = _session(SliceMode.ISLANDS, islands=IslandSettings(min_width=1, min_height=1))
    session.island_rects()
    updated = session.update_rect("island-0", 1, 1, 6, 6)
    assert session.island_rects()[0] == updated

    manual = session.add_manual_rect(0, 0, 2, 2)
    session.update_rect(manual.id, 0, 0, 5, 5)
    assert session.manual_rects[0].w == 5

    with pytest.raises(ValidationError):
        session.update_rect("grid-0", 0, 0, 4, 4)
    with pytest.raises(ValidationError):
        session.update_rect("island-0", 0, 0, 0, 4)
    with pytest.raises(ValidationError):
        session.update_rect("island-99", 0, 0, 4, 4)


def test_stale_pass_is_discarded():
    session = _session()
    first = session.generate()
    stale = session.begin_pass()
    fresh = session.begin_pass()

    assert stale.run() is None
    assert session.frames == first

    frames = fresh.run()
    assert frames is not None
    assert session.frames == frames


def test_cancelled_pass_commits_nothing():
    session = _session()
    generation_pass = session.begin_pass()
    generation_pass.cancel()
    assert generation_pass.run() is None
    assert session.frames == []


def test_reorder_and_clear():
    session = _session()
    session.add_manual_rect(20, 8, 4, 4)
    session.generate()
    session.reorder_frames(2, 0)
    assert session.frames[0].id.startswith("manual-")
    with pytest.raises(ValidationError):
        session.reorder_frames(0, 9)

    session.delete_frames(["grid-0"])
    session.clear()
    assert session.frames == []
    assert session.manual_rects == []
    assert session.hidden_ids == set()


def test_loading_new_image_resets_rect_state():
    session = _session()
    session.add_manual_rect(0, 0, 4, 4)
    session.delete_frames(["grid-1"])
    session.load_image(_sheet())
    assert session.manual_rects == []
    assert session.hidden_ids == set()


def _banded_sheet():
    """Green, magenta and red bands touching as one island, plus a separate blue sprite."""

    pixels = np.zeros((4, 16, 4), dtype=np.uint8)
    pixels[0:3, 0:3] = (0, 255, 0, 255)
    pixels[0:3, 3:6] = (255, 0, 255, 255)
    pixels[0:3, 6:9] = (255, 0, 0, 255)
    pixels[0:3, 12:15] = (0, 0, 255, 255)
    return PixelBuffer(pixels)


def test_color_key_change_in_island_mode_clears_hidden_ids():
    session = SliceSession(SliceSettings(mode=SliceMode.ISLANDS, islands=IslandSettings(min_width=1, min_height=1)))
    session.load_image(_banded_sheet())
    assert [(f.id, f.source_rect.x) for f in session.generate()] == [("island-0", 0), ("island-1", 12)]

    session.delete_frames(["island-1"])
    session.update_settings(processing=ProcessingSettings(color_key_enabled=True, color_key_colors=["#ff00ff"]))

    assert session.hidden_ids == set()
    frames = session.generate()
    assert [(f.id, f.source_rect.x) for f in frames] == [("island-0", 0), ("island-1", 6), ("island-2", 12)]


def test_color_key_change_in_grid_mode_keeps_hidden_ids():
    session = _session()
    session.delete_frames(["grid-1"])
    session.update_settings(processing=ProcessingSettings(color_key_enabled=True, color_key_colors=["#0000ff"]))
    assert session.hidden_ids == {"grid-1"}


def test_delete_with_unknown_id_changes_nothing():
    session = _session()
    manual = session.add_manual_rect(2, 2, 3, 3)
    frames = session.generate()

    with pytest.raises(ValidationError):
        session.delete_frames(["grid-0", manual.id, "bogus"])

    assert session.frames == frames
    assert session.manual_rects == [manual]
    assert session.hidden_ids == set()
    assert [f.id for f in session.generate()] == ["grid-0", "grid-1", manual.id]


def test_select_requires_a_current_frame():
    session = _session()
    session.generate()
    session.select("grid-1")
    assert session.selected_id == "grid-1"
    with pytest.raises(ValidationError):
        session.select("grid-7")
    assert session.selected_id == "grid-1"
    session.select(None)
    assert session.selected_id is None
