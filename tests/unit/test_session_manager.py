"""
------------------------------------------------------------------------------
Project:        SpellBook
File:           tests/unit/test_session_manager.py
Version:        1.0.0
Description:    Window lifecycle, focus and z-order, drag/resize gestures,
                viewport re-clamping and shortcut dispatch.
------------------------------------------------------------------------------
"""

import pytest

from core.layout import Rect
from core.models.types import ShortcutOutcome
from core.session import BASE_Z_NORMAL, BASE_Z_ON_TOP, FOCUS_Z_BOOST, FULLSCREEN_Z


@pytest.fixture
def recorder(session):
    """Records every session signal as (signal name, args...) tuples."""
    events = []
    session.window_opened.connect(lambda cid: events.append(("opened", cid)))
    session.window_closed.connect(lambda cid: events.append(("closed", cid)))
    session.window_focused.connect(lambda cid: events.append(("focused", cid)))
    session.z_order_changed.connect(lambda cid, z: events.append(("z", cid, z)))
    return events


@pytest.fixture
def three_windows(document, session):
    ids = ["default-cat"] + [document.add_category(name).id for name in ("B", "C")]
    for cid in ids:
        session.open(cid)
    return ids


# --- Lifecycle ---

def test_open_creates_focused_window(document, session, commits, recorder):
    handle = session.open("default-cat")

    assert handle.rect == Rect(left=100, top=100, width=650, height=550)
    assert handle.focused
    assert document.categories[0].window_state.is_open is True
    assert session.open_ids == ["default-cat"]
    assert ("opened", "default-cat") in recorder
    assert commits


def test_opening_twice_only_focuses(session, recorder):
    first = session.open("default-cat")
    second = session.open("default-cat")

    assert first is second
    assert session.open_ids == ["default-cat"]
    assert [e for e in recorder if e[0] == "opened"] == [("opened", "default-cat")]
    assert recorder.count(("focused", "default-cat")) == 2


def test_open_unknown_category_is_ignored(session):
    assert session.open("missing") is None
    assert session.open_ids == []


def test_open_clamps_stored_geometry(document, session):
    state = document.categories[0].window_state
    state.left, state.top = 5000, -40
    handle = session.open("default-cat")
    assert (handle.rect.left, handle.rect.top) == (1280 - 650, 0)
    assert (state.left, state.top) == (1280 - 650, 0)


def test_close_hands_focus_to_most_recent(session, three_windows):
    a, b, c = three_windows
    session.focus(a)
    session.focus(c)

    assert session.close(c) is True
    assert session.focused_id() == a
    assert not session.handle(b).focused


def test_close_unfocused_window_keeps_focus(session, three_windows):
    a, b, c = three_windows
    session.close(a)
    assert session.focused_id() == c


def test_close_without_window_still_marks_closed(document, session):
    document.categories[0].window_state.is_open = True
    assert session.close("default-cat") is False
    assert document.categories[0].window_state.is_open is False


# --- Z-order ---

def test_focused_window_is_raised(session, three_windows):
    a, b, c = three_windows
    assert session.handle(c).z_order == BASE_Z_ON_TOP + FOCUS_Z_BOOST
    assert session.handle(a).z_order == BASE_Z_ON_TOP

    session.focus(a)
    assert session.handle(a).z_order == BASE_Z_ON_TOP + FOCUS_Z_BOOST
    assert session.handle(c).z_order == BASE_Z_ON_TOP


def test_always_on_top_changes_base(document, session):
    session.open("default-cat")
    document.update_settings(always_on_top=False)
    session.refresh_z_order()
    assert session.handle("default-cat").z_order == BASE_Z_NORMAL + FOCUS_Z_BOOST


def test_refresh_only_signals_changes(session, recorder):
    session.open("default-cat")
    recorder.clear()
    session.refresh_z_order()
    assert recorder == []


def test_fullscreen_z_and_geometry_restore(document, session):
    handle = session.open("default-cat")
    original = handle.rect

    assert session.toggle_fullscreen("default-cat") is True
    assert handle.z_order == FULLSCREEN_Z + FOCUS_Z_BOOST
    assert session.drag_start("default-cat", 0, 0) is False

    assert session.toggle_fullscreen("default-cat") is False
    assert handle.rect == original
    assert handle.z_order == BASE_Z_ON_TOP + FOCUS_Z_BOOST


def test_toggle_fullscreen_requires_open_window(session):
    assert session.toggle_fullscreen("default-cat") is None


# --- Gestures ---

def test_drag_commits_only_on_end(document, session, commits):
    session.open("default-cat")
    commits.clear()
    state = document.categories[0].window_state

    assert session.drag_start("default-cat", 500, 500) is True
    rect = session.drag_move("default-cat", 550, 520)
    assert (rect.left, rect.top) == (150, 120)
    assert (state.left, state.top) == (100, 100)
    assert commits == []

    assert session.drag_end("default-cat") is True
    assert (state.left, state.top) == (150, 120)
    assert commits == [True]


def test_drag_is_clamped_to_viewport(session):
    session.open("default-cat")
    session.drag_start("default-cat", 0, 0)
    rect = session.drag_move("default-cat", 4000, 4000)
    assert (rect.left, rect.top) == (1280 - 650, 800 - 550)


def test_disabled_edge_is_not_enforced(document, session):
    document.settings.boundaries.right.enabled = False
    session.open("default-cat")
    session.drag_start("default-cat", 0, 0)
    rect = session.drag_move("default-cat", 4000, 0)
    assert rect.left == 4100


def test_edge_offset_insets_boundary(document, session):
    document.settings.boundaries.left.offset = 40
    session.open("default-cat")
    session.drag_start("default-cat", 0, 0)
    assert session.drag_move("default-cat", -500, 0).left == 40


def test_drag_move_without_start_is_ignored(session):
    session.open("default-cat")
    assert session.drag_move("default-cat", 10, 10) is None
    assert session.drag_end("default-cat") is False


@pytest.mark.parametrize("lock", ["window", "global"])
def test_locked_window_refuses_gestures(document, session, lock):
    session.open("default-cat")
    if lock == "window":
        assert session.toggle_lock("default-cat") is True
    else:
        document.update_settings(lock_layout=True)

    assert session.is_locked("default-cat")
    assert session.drag_start("default-cat", 0, 0) is False
    assert session.resize_end("default-cat", 900, 700) is None


def test_lock_cancels_running_drag(session):
    handle = session.open("default-cat")
    session.drag_start("default-cat", 0, 0)
    session.toggle_lock("default-cat")
    assert handle.drag_anchor is None


def test_layout_lock_during_drag_snaps_back(document, session):
    handle = session.open("default-cat")
    origin = handle.rect
    session.drag_start("default-cat", 0, 0)
    assert session.drag_move("default-cat", 40, 30).left == origin.left + 40

    document.update_settings(lock_layout=True)
    assert session.drag_move("default-cat", 80, 60) is None
    assert handle.rect == origin
    assert session.drag_end("default-cat") is False
    state = document.categories[0].window_state
    assert (state.left, state.top) == (origin.left, origin.top)


def test_resize_is_capped_and_floored(document, session):
    session.open("default-cat")
    rect = session.resize_end("default-cat", 5000, 5000)
    assert rect == Rect(left=0, top=0, width=1280, height=800)

    rect = session.resize_end("default-cat", 10, 10)
    assert (rect.width, rect.height) == (300, 200)
    assert document.categories[0].window_state.width == 300


def test_sidebar_width_is_clamped(session):
    assert session.set_sidebar_width("default-cat", 10) == 150
    assert session.set_sidebar_width("default-cat", 2000) == 600
    assert session.set_sidebar_width("missing", 200) is None


def test_viewport_shrink_reclamps_windows(document, session):
    session.open("default-cat")
    assert session.set_viewport(800, 600) == ["default-cat"]
    assert document.categories[0].window_state.top == 50
    assert session.set_viewport(800, 600) == []


def test_fullscreen_window_ignores_viewport_change(session):
    session.open("default-cat")
    session.toggle_fullscreen("default-cat")
    assert session.set_viewport(400, 300) == []


# --- Shortcuts ---

def test_shortcut_toggles_window(document, session):
    document.set_shortcut("default-cat", "Ctrl+1")

    assert session.handle_shortcut("ctrl+1") == ShortcutOutcome.OPENED
    assert session.is_open("default-cat")
    assert session.handle_shortcut("Ctrl+1") == ShortcutOutcome.CLOSED
    assert not session.is_open("default-cat")


def test_shortcut_focuses_unfocused_window(document, session):
    other = document.add_category("Other")
    document.set_shortcut("default-cat", "Alt+S")
    session.open("default-cat")
    session.open(other.id)

    assert session.handle_shortcut("Alt+S") == ShortcutOutcome.FOCUSED
    assert session.focused_id() == "default-cat"


def test_shortcut_ignored_cases(document, session):
    document.set_shortcut("default-cat", "Ctrl+1")
    assert session.handle_shortcut("Ctrl+1", from_text_input=True) == ShortcutOutcome.IGNORED
    assert session.handle_shortcut("Ctrl+9") == ShortcutOutcome.IGNORED
    assert session.handle_shortcut(None) == ShortcutOutcome.IGNORED

    document.update_settings(is_enabled=False)
    assert session.handle_shortcut("Ctrl+1") == ShortcutOutcome.IGNORED
    assert session.toggle_default() == ShortcutOutcome.IGNORED
    assert session.open_ids == []


def test_toggle_default_uses_configured_category(document, session):
    extra = document.add_category("Extra")
    document.set_default_category(extra.id)
    assert session.toggle_default() == ShortcutOutcome.OPENED
    assert session.open_ids == [extra.id]


# --- Switching and sync ---

def test_switch_category_reuses_geometry(document, session, recorder):
    target = document.add_category("Target")
    session.open("default-cat")
    session.drag_start("default-cat", 0, 0)
    session.drag_move("default-cat", 30, 40)
    session.drag_end("default-cat")

    assert session.switch_category("default-cat", target.id) == target.id
    assert session.open_ids == [target.id]
    assert session.handle(target.id).rect == Rect(left=130, top=140, width=650, height=550)
    assert session.focused_id() == target.id
    assert document.categories[0].window_state.is_open is False

    names = [e[0] for e in recorder if e[0] in ("opened", "closed")]
    assert names[-2:] == ["opened", "closed"]


def test_switch_to_open_category_focuses_it(document, session):
    target = document.add_category("Target")
    session.open(target.id)
    session.open("default-cat")
    assert session.switch_category("default-cat", target.id) == target.id
    assert set(session.open_ids) == {"default-cat", target.id}
    assert session.focused_id() == target.id


def test_restore_open_windows(document, session):
    extra = document.add_category("Extra")
    document.categories[0].window_state.is_open = True
    extra.window_state.is_open = True

    assert session.restore_open_windows() == ["default-cat", extra.id]
    assert session.focused_id() == extra.id


def test_sync_drops_deleted_categories(document, session, three_windows, recorder):
    a, b, c = three_windows
    document.delete_category(c)
    assert session.sync_with_document() == [c]
    assert ("closed", c) in recorder
    assert session.focused_id() == b


def test_stale_ids_are_silent_noops(session):
    assert session.close("ghost") is False
    assert session.drag_start("ghost", 0, 0) is False
    assert session.resize_end("ghost", 500, 500) is None
    assert session.toggle_lock("ghost") is None
    assert session.switch_category("ghost", "default-cat") is None
