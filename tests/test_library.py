"""Tests for page, project and block operations."""
import pytest

from core import library as ops
from core.errors import DuplicateBlockError, DuplicateNameError, OutputUnavailableError
from core.hashing import hash_file, hash_text
from core.layout import Bounds, Offsets, Point, Rect, overlaps
from core.models import Page

from conftest import FakePlayback

BOUNDS = Bounds(800, 600)


def assert_consistent(page):
    assert page.check() == []
    for block_id, block in page.blocks.items():
        assert (block.rect is not None) == (block_id in page.placed_ids)


# ---------------------------------------------------------------------------
# Adding and removing blocks
# ---------------------------------------------------------------------------

def test_add_block_goes_to_deck(page, clips):
    block = ops.add_block(page, clips[0])
    assert block.id == hash_file(clips[0])
    assert block.text == "clip0"
    assert block.rect is None
    assert ops.block_state(page, block.id) == ops.DECK
    assert block.stats.play_count == 0


def test_same_file_twice_is_reported_not_added(page, clips):
    result = ops.add_blocks(page, [clips[0], clips[0]])
    assert len(page.blocks) == 1
    assert len(result.added) == 1
    assert result.skipped == 1


def test_identical_content_under_other_name_is_duplicate(page, audio_dir):
    ops.add_block(page, str(audio_dir / "clip0.wav"))
    before = dict(page.blocks)
    with pytest.raises(DuplicateBlockError):
        ops.add_block(page, str(audio_dir / "copy_of_clip0.wav"))
    assert page.blocks == before


def test_unreadable_file_is_counted(page, clips, tmp_path):
    result = ops.add_blocks(page, [clips[0], str(tmp_path / "missing.wav")])
    assert len(result.added) == 1
    assert result.failed == [str(tmp_path / "missing.wav")]


def test_remove_block_unloads_audio(page, clips, playback):
    block = ops.add_block(page, clips[0])
    ops.place_from_deck(page, block.id, BOUNDS)
    assert ops.remove_block(page, block.id, playback)
    assert block.id not in page.blocks
    assert block.id not in page.placed_ids
    assert playback.unloaded() == [block.id]
    assert not ops.remove_block(page, block.id, playback)


# ---------------------------------------------------------------------------
# Placement
# ---------------------------------------------------------------------------

def test_auto_place_never_overlaps(page, clips):
    ops.add_blocks(page, clips)
    for block_id in page.deck_ids():
        result = ops.place_from_deck(page, block_id, BOUNDS, width=100, height=50)
        assert result.ok
        others = page.placed_rects(exclude=block_id)
        assert all(not overlaps(result.rect, other) for other in others)
    assert len(page.placed_ids) == 5
    assert_consistent(page)


def test_auto_place_stacks_below_last_placed(page, clips):
    ops.add_blocks(page, clips[:2])
    first, second = page.deck_ids()
    r1 = ops.place_from_deck(page, first, BOUNDS, width=100, height=50).rect
    r2 = ops.place_from_deck(page, second, BOUNDS, width=100, height=50).rect
    assert r1 == Rect(0, 10, 100, 50)
    assert r2 == Rect(0, 60, 100, 50)
    assert page.placed_ids == [first, second]


def test_explicit_placement_may_overlap(page, clips):
    ops.add_blocks(page, clips[:2])
    first, second = page.deck_ids()
    ops.place_from_deck(page, first, BOUNDS, position=Point(40, 40), width=100, height=50)
    result = ops.place_from_deck(page, second, BOUNDS, position=Point(60, 60), width=100, height=50)
    assert result.rect == Rect(60, 60, 100, 50)
    assert overlaps(page.blocks[first].rect, page.blocks[second].rect)
    assert_consistent(page)


def test_full_canvas_leaves_block_in_deck(page, clips):
    ops.add_blocks(page, clips[:2])
    first, second = page.deck_ids()
    tiny = Bounds(150, 70)
    assert ops.place_from_deck(page, first, tiny, width=100, height=50).ok
    result = ops.place_from_deck(page, second, tiny, width=100, height=50)
    assert not result.ok
    assert page.blocks[second].rect is None
    assert page.placed_ids == [first]
    assert_consistent(page)


def test_return_to_deck_clears_rect_and_color(page, clips):
    block = ops.add_block(page, clips[0])
    ops.place_from_deck(page, block.id, BOUNDS)
    assert ops.set_block_color(page, block.id, "red")
    assert ops.return_to_deck(page, block.id)
    assert block.rect is None
    assert block.color is None
    assert page.placed_ids == []
    assert not ops.return_to_deck(page, block.id)


def test_color_only_for_placed_blocks(page, clips):
    block = ops.add_block(page, clips[0])
    assert not ops.set_block_color(page, block.id, "blue")
    assert block.color is None


def test_move_block_snaps_and_becomes_anchor(page, clips):
    ops.add_blocks(page, clips[:2])
    first, second = page.deck_ids()
    ops.place_from_deck(page, first, BOUNDS)
    ops.place_from_deck(page, second, BOUNDS)
    rect = ops.move_block(page, first, Point(317, 212), Offsets(left=10, top=10))
    assert rect.left == 310 and rect.top == 210
    assert page.placed_ids[-1] == first


def test_move_and_resize_deck_block_is_noop(page, clips):
    block = ops.add_block(page, clips[0])
    assert ops.move_block(page, block.id, Point(10, 10)) is None
    assert ops.resize_block(page, block.id, 50, 50) is None
    assert_consistent(page)


def test_resize_block_snaps_with_minimum(page, clips):
    block = ops.add_block(page, clips[0])
    ops.place_from_deck(page, block.id, BOUNDS)
    rect = ops.resize_block(page, block.id, 123, 0)
    assert (rect.width, rect.height) == (130, 10)


def test_set_block_text_falls_back_to_file_name(page, clips):
    block = ops.add_block(page, clips[0])
    ops.set_block_text(page, block.id, "  Airhorn ")
    assert block.text == "Airhorn"
    ops.set_block_text(page, block.id, "   ")
    assert block.text == "clip0"


# ---------------------------------------------------------------------------
# Batch operations
# ---------------------------------------------------------------------------

def test_place_deck_blocks_reports_partial_progress(page, clips):
    ops.add_blocks(page, clips)
    # Room for exactly two 100x50 blocks in one column
    result = ops.place_deck_blocks(page, Bounds(150, 120), width=100, height=50)
    assert result.processed == 2
    assert result.failed == 3
    assert len(page.placed_ids) == 2
    assert len(page.deck_ids()) == 3
    assert_consistent(page)


def test_place_deck_blocks_counts_repeated_ids_once(page, clips):
    ops.add_blocks(page, clips[:2])
    first, second = page.deck_ids()
    result = ops.place_deck_blocks(page, BOUNDS, block_ids=[first, first, second, first])
    assert result.processed == 2
    assert result.failed == 0
    assert page.placed_ids == [first, second]
    assert_consistent(page)


def test_flush_placed_returns_everything_to_deck(page, clips):
    ops.add_blocks(page, clips)
    ops.place_deck_blocks(page, BOUNDS)
    result = ops.flush_placed_blocks(page)
    assert result.processed == 5
    assert page.placed_ids == []
    assert len(page.deck_ids()) == 5
    assert_consistent(page)


def test_flush_deck_removes_only_deck_blocks(page, clips, playback):
    ops.add_blocks(page, clips)
    placed_id = page.deck_ids()[0]
    ops.place_from_deck(page, placed_id, BOUNDS)
    result = ops.flush_deck_blocks(page, playback)
    assert result.processed == 4
    assert list(page.blocks) == [placed_id]
    assert len(playback.unloaded()) == 4


# ---------------------------------------------------------------------------
# Playback
# ---------------------------------------------------------------------------

def test_trigger_loads_once_and_counts_plays(page, clips, playback):
    block = ops.add_block(page, clips[0])
    assert ops.trigger_block(page, block.id, playback)
    assert ops.trigger_block(page, block.id, playback)
    assert [c for c, _ in playback.calls] == ["load", "play", "play"]
    assert block.stats.play_count == 2
    assert block.stats.last_played_at is not None


def test_unavailable_audio_flags_block(page, clips):
    block = ops.add_block(page, clips[0])
    playback = FakePlayback(broken=[block.id])
    assert not ops.trigger_block(page, block.id, playback)
    assert block.unavailable
    assert block.id in page.blocks
    assert block.stats.play_count == 0


def test_missing_output_device_does_not_flag_block(page, clips):
    block = ops.add_block(page, clips[0])
    playback = FakePlayback(no_output=True)
    with pytest.raises(OutputUnavailableError):
        ops.trigger_block(page, block.id, playback)
    assert not block.unavailable
    assert block.stats.play_count == 0


def test_stop_never_called_before_load(page, clips, playback):
    block = ops.add_block(page, clips[0])
    assert not ops.stop_block(block.id, playback)
    ops.trigger_block(page, block.id, playback)
    assert ops.stop_block(block.id, playback)


# ---------------------------------------------------------------------------
# Pages
# ---------------------------------------------------------------------------

def test_create_page_rejects_duplicate_names(library):
    page = ops.create_page(library, "Drums")
    with pytest.raises(DuplicateNameError):
        ops.create_page(library, "  drums ")
    assert list(library.pages) == [page.id]
    with pytest.raises(ValueError):
        ops.create_page(library, "   ")


def test_rename_page_rekeys_library_and_projects(library):
    page = ops.create_page(library, "Drums")
    other = ops.create_page(library, "Voices")
    ops.open_page(library, page.id)
    project = ops.create_project(library, "Show", [page.id, other.id])

    old_id = page.id
    new_id = ops.rename_page(library, old_id, "Percussion")

    assert new_id == hash_text("Percussion")
    assert old_id not in library.pages
    assert library.pages[new_id] is page
    assert page.id == new_id and page.name == "Percussion"
    assert project.page_ids == [new_id, other.id]
    assert library.active_page_order == [new_id]
    assert library.current_page_id == new_id
    assert ops.open_project(library, project.id)[0] == new_id


def test_rename_page_to_existing_name_fails_unchanged(library):
    page = ops.create_page(library, "Drums")
    ops.create_page(library, "Voices")
    with pytest.raises(DuplicateNameError):
        ops.rename_page(library, page.id, "VOICES")
    assert page.name == "Drums"
    assert page.id in library.pages


def test_rename_page_case_only_keeps_id(library):
    page = ops.create_page(library, "drums")
    assert ops.rename_page(library, page.id, "Drums") == page.id
    assert page.name == "Drums"


def test_close_current_page_selects_previous(library, playback):
    pages = [ops.create_page(library, name) for name in ("A", "B", "C")]
    for page in pages:
        ops.open_page(library, page.id)
    assert library.current_page_id == pages[2].id

    assert ops.close_active_page(library, pages[2].id, playback)
    assert library.current_page_id == pages[1].id
    assert pages[2].id in library.pages

    ops.select_page(library, pages[0].id)
    ops.close_active_page(library, pages[0].id, playback)
    assert library.current_page_id == pages[1].id

    ops.close_active_page(library, pages[1].id, playback)
    assert library.current_page_id is None
    assert library.active_page_order == []
    assert not ops.close_active_page(library, pages[1].id, playback)


def test_close_page_unloads_its_blocks(library, clips, playback):
    page = ops.create_page(library, "A")
    ops.open_page(library, page.id)
    ops.add_blocks(page, clips[:3])
    ops.close_active_page(library, page.id, playback)
    assert sorted(playback.unloaded()) == sorted(page.blocks)


def test_close_non_current_page_keeps_current(library):
    a = ops.create_page(library, "A")
    b = ops.create_page(library, "B")
    ops.open_page(library, a.id)
    ops.open_page(library, b.id)
    ops.close_active_page(library, a.id)
    assert library.current_page_id == b.id


def test_delete_page_drops_project_references(library, playback):
    page = ops.create_page(library, "A")
    keep = ops.create_page(library, "B")
    project = ops.create_project(library, "P", [page.id, keep.id])
    ops.open_page(library, page.id)

    assert ops.delete_page(library, page.id, playback)
    assert page.id not in library.pages
    assert project.page_ids == [keep.id]
    assert project.id in library.projects
    assert library.active_page_order == []


def test_reorder_active_pages_requires_permutation(library):
    a = ops.create_page(library, "A")
    b = ops.create_page(library, "B")
    ops.open_page(library, a.id)
    ops.open_page(library, b.id)
    assert not ops.reorder_active_pages(library, [a.id])
    assert ops.reorder_active_pages(library, [b.id, a.id])
    assert library.active_page_order == [b.id, a.id]


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------

def test_open_project_opens_pages_in_order(library):
    a = ops.create_page(library, "A")
    b = ops.create_page(library, "B")
    project = ops.create_project(library, "Set", [b.id, a.id, "unknown"])
    assert project.page_ids == [b.id, a.id]

    opened = ops.open_project(library, project.id)
    assert opened == [b.id, a.id]
    assert library.active_page_order == [b.id, a.id]
    assert library.current_page_id == b.id
    assert library.current_project_id == project.id


def test_project_membership(library):
    a = ops.create_page(library, "A")
    project = ops.create_project(library, "Set")
    assert ops.add_page_to_project(library, project.id, a.id)
    assert not ops.add_page_to_project(library, project.id, a.id)
    assert ops.remove_page_from_project(library, project.id, a.id)
    assert project.page_ids == []
    assert a.id in library.pages


def test_rename_and_delete_project(library):
    project = ops.create_project(library, "Set")
    ops.create_project(library, "Other")
    library.current_project_id = project.id
    with pytest.raises(DuplicateNameError):
        ops.rename_project(library, project.id, "other")

    new_id = ops.rename_project(library, project.id, "Live Set")
    assert library.current_project_id == new_id
    assert ops.delete_project(library, new_id)
    assert library.current_project_id is None
    assert not ops.delete_project(library, new_id)


def test_save_active_as_project(library):
    a = ops.create_page(library, "A")
    b = ops.create_page(library, "B")
    ops.open_page(library, a.id)
    ops.open_page(library, b.id)
    project = ops.save_active_as_project(library, "Tonight")
    assert project.page_ids == [a.id, b.id]
    assert library.current_project_id == project.id
